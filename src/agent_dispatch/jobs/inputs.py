"""
Job inputs and results.

Job input is tagged by ``job_type``: each known job type has a JSON schema
that ``input_data`` is validated against when the job is submitted. Unknown
job types only need to carry a JSON object.

``JobResult`` is the normalised outcome of an executor run.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import jsonschema

from ..errors import JobValidationError

# Keys removed from executor output before it is stored or forwarded
SENSITIVE_KEYS = frozenset({"apiKey", "api_key", "password", "secret"})

_STRING_LIST = {"type": "array", "items": {"type": "string"}}

GENERIC_INPUT_SCHEMA: dict[str, Any] = {"type": "object"}

JOB_INPUT_SCHEMAS: dict[str, dict[str, Any]] = {
    "lead_generation": {
        "type": "object",
        "properties": {
            "locations": _STRING_LIST,
            "businesses": _STRING_LIST,
            "jobTitles": _STRING_LIST,
            "maxResults": {"type": "integer", "minimum": 1},
        },
    },
    "lead_research": {
        "type": "object",
        "properties": {
            "linkedinUrl": {"type": "string", "minLength": 1},
            "leadId": {"type": "string"},
            "includeCompanyAnalysis": {"type": "boolean"},
            "includeContactRecommendations": {"type": "boolean"},
        },
        "required": ["linkedinUrl"],
    },
    "auto_reply": {
        "type": "object",
        "properties": {
            "leadId": {"type": "string"},
            "messageType": {"enum": ["initial_outreach", "follow_up", "response"]},
            "context": {"type": "string"},
            "tone": {"enum": ["professional", "casual", "friendly"]},
        },
    },
    "email_monitoring": {
        "type": "object",
        "properties": {
            "monitoringEnabled": {"type": "boolean"},
            "checkInterval": {"type": "integer", "minimum": 1},
            "filterCriteria": {
                "type": "object",
                "properties": {
                    "excludeDomains": _STRING_LIST,
                    "includeDomains": _STRING_LIST,
                    "keywords": _STRING_LIST,
                },
            },
        },
    },
    "calendar_booking": {
        "type": "object",
        "properties": {
            "emailAddress": {"type": "string"},
            "requestedDateTime": {"type": "string"},
            "requestedDate": {"type": "string"},
            "eventType": {"enum": ["consultation", "demo", "meeting"]},
            "duration": {"type": "integer", "minimum": 1},
        },
    },
    "reminder": {
        "type": "object",
        "properties": {
            "isFollowUp": {"type": "boolean"},
            "confirmationResponse": {"type": "string"},
        },
    },
}


def schema_for(job_type: str) -> dict[str, Any]:
    """Return the input schema registered for a job type."""
    return JOB_INPUT_SCHEMAS.get(job_type, GENERIC_INPUT_SCHEMA)


def validate_job_input(job_type: str, input_data: Any) -> dict[str, Any]:
    """Validate job input against its job type schema.

    Returns:
        A shallow copy of the validated input

    Raises:
        JobValidationError: If the input does not match the schema
    """
    if not job_type or not isinstance(job_type, str):
        raise JobValidationError("job_type must be a non-empty string", job_type=job_type)
    if input_data is None:
        input_data = {}
    if isinstance(input_data, Mapping):
        input_data = dict(input_data)

    validator = jsonschema.Draft7Validator(schema_for(job_type))
    errors = sorted(validator.iter_errors(input_data), key=lambda e: list(e.path))
    if errors:
        messages = [
            f"{'/'.join(str(p) for p in e.path) or '<root>'}: {e.message}" for e in errors
        ]
        raise JobValidationError(
            f"Invalid input for job type '{job_type}': {'; '.join(messages)}",
            job_type=job_type,
            errors=messages,
        )
    return input_data


def sanitize_output(output: Any) -> Any:
    """Remove sensitive top-level keys from executor output."""
    if isinstance(output, Mapping):
        return {k: v for k, v in output.items() if k not in SENSITIVE_KEYS}
    return output


@dataclass(frozen=True)
class JobResult:
    """Outcome of an executor run."""
    success: bool = True
    data: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def needs_confirmation(self) -> bool:
        return bool(self.data.get("needsConfirmation"))

    @property
    def confirmation_type(self) -> str | None:
        return self.data.get("confirmationType")

    @classmethod
    def failure(cls, error: str) -> JobResult:
        """Synthetic result describing a failed job."""
        return cls(success=False, error=error)

    @classmethod
    def coerce(cls, value: Any) -> JobResult:
        """Normalise whatever an executor returned into a JobResult.

        Mappings carrying a ``success`` key are read as structured results;
        any other mapping becomes the result data.
        """
        if isinstance(value, JobResult):
            return value
        if value is None:
            return cls()
        if isinstance(value, Mapping):
            if "success" in value:
                data = value.get("data")
                if data is None:
                    data = {}
                elif not isinstance(data, Mapping):
                    data = {"value": data}
                return cls(
                    success=bool(value["success"]),
                    data=sanitize_output(data),
                    error=value.get("error"),
                    metadata=dict(value.get("metadata") or {}),
                )
            return cls(data=sanitize_output(value))
        return cls(data={"value": value})

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"success": self.success, "data": dict(self.data)}
        if self.error is not None:
            d["error"] = self.error
        if self.metadata:
            d["metadata"] = dict(self.metadata)
        return d


__all__ = [
    "JobResult",
    "JOB_INPUT_SCHEMAS",
    "GENERIC_INPUT_SCHEMA",
    "schema_for",
    "validate_job_input",
    "sanitize_output",
]
