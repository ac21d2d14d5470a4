"""
JSON schemas for configuration validation.
"""

QUEUE_SCHEMA = {
    "type": "object",
    "properties": {
        "agents": {
            "type": "array",
            "items": {"type": "string", "minLength": 1},
            "minItems": 1,
            "uniqueItems": True,
        },
        "retention_limit": {"type": "integer", "minimum": 1},
        "drain_delay": {"type": "number", "minimum": 0.0, "maximum": 0.1},
    },
    "additionalProperties": False,
}

FOLLOWUP_SCHEMA = {
    "type": "object",
    "properties": {
        "ttl_seconds": {"type": "number", "exclusiveMinimum": 0},
        "confirmation_types": {"type": "array", "items": {"type": "string"}},
    },
    "additionalProperties": False,
}

MESSAGING_SCHEMA = {
    "type": "object",
    "properties": {
        "enabled": {"type": "boolean"},
        "model": {"type": "string"},
        "temperature": {"type": "number", "minimum": 0.0, "maximum": 2.0},
        "ack_max_tokens": {"type": "integer", "minimum": 1},
        "completion_max_tokens": {"type": "integer", "minimum": 1},
        "platform_name": {"type": "string"},
    },
    "additionalProperties": False,
}

LOGGING_SCHEMA = {
    "type": "object",
    "properties": {
        "level": {"type": "string", "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]},
        "format": {"type": "string", "enum": ["text", "json"]},
        "log_message_content": {"type": "boolean"},
    },
    "additionalProperties": False,
}

CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "queue": QUEUE_SCHEMA,
        "followup": FOLLOWUP_SCHEMA,
        "messaging": MESSAGING_SCHEMA,
        "logging": LOGGING_SCHEMA,
    },
}
