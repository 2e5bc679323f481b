from __future__ import annotations

from typing import Any

from jsonschema import ValidationError
from jsonschema.validators import Draft202012Validator

from turbobar.core.models import (
    ASSIGNMENT_ENUMS,
    ASSIGNMENT_FIELDS,
    ASSIGNMENT_WIRE_KEYS,
    DUE_PRESETS,
    MODES,
    NOTE_STATUSES,
    PRIORITY_OPTIONS,
)


_RESULT_REQUIRED = [
    "mode",
    "title",
    "body",
    "tags",
    "taskNow",
    "taskPriority",
    "duePreset",
    "noteStatus",
    "assignments",
    "summary",
]


def _string(options: tuple[str, ...] | None = None) -> dict[str, Any]:
    schema: dict[str, Any] = {"type": "STRING"}
    if options:
        schema["enum"] = list(options)
    return schema


def _assignments_schema() -> dict[str, Any]:
    properties = {
        ASSIGNMENT_WIRE_KEYS[name]: _string(ASSIGNMENT_ENUMS.get(name)) for name in ASSIGNMENT_FIELDS
    }
    return {
        "type": "OBJECT",
        "required": [ASSIGNMENT_WIRE_KEYS[name] for name in ASSIGNMENT_FIELDS],
        "properties": properties,
    }


def organize_response_schema() -> dict[str, Any]:
    """Response schema in the OpenAPI subset accepted by Gemini ``responseSchema``."""
    return {
        "type": "OBJECT",
        "required": list(_RESULT_REQUIRED),
        "properties": {
            "mode": _string(MODES),
            "title": _string(),
            "body": _string(),
            "tags": {"type": "ARRAY", "items": _string()},
            "taskNow": {"type": "BOOLEAN"},
            "taskPriority": _string(PRIORITY_OPTIONS),
            "duePreset": _string(DUE_PRESETS),
            "noteStatus": _string(NOTE_STATUSES),
            "assignments": _assignments_schema(),
            "summary": _string(),
        },
    }


def to_json_schema(schema: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in schema.items():
        if key == "type" and isinstance(value, str):
            out[key] = value.lower()
        elif key == "properties" and isinstance(value, dict):
            out[key] = {name: to_json_schema(child) for name, child in value.items()}
        elif key == "items" and isinstance(value, dict):
            out[key] = to_json_schema(value)
        else:
            out[key] = value
    return out


def validate_organize_output(output: Any) -> tuple[bool, str | None]:
    """Check a parsed classifier payload against the response schema.

    Returns ``(ok, error)``; the first violation is reported as ``path: message``.
    """
    if output is None:
        return False, "Output JSON is required for schema validation."
    validator = Draft202012Validator(to_json_schema(organize_response_schema()))
    try:
        validator.validate(output)
    except ValidationError as exc:
        path = ".".join(str(part) for part in exc.path)
        path_text = path if path else "$"
        return False, f"{path_text}: {exc.message}"
    return True, None
