from __future__ import annotations

import logging
from typing import Any

from turbobar.core.models import ASSIGNMENT_FIELDS
from turbobar.services.normalize import compact_whitespace


logger = logging.getLogger(__name__)

SUPPORTED_PROPERTY_TYPES = {"select", "multi_select", "rich_text"}


def encode_property_value(prop_type: str, value: str) -> dict[str, Any] | None:
    if prop_type not in SUPPORTED_PROPERTY_TYPES:
        return None
    if prop_type == "select":
        return {"select": {"name": value}}
    if prop_type == "multi_select":
        return {"multi_select": [{"name": value}]}
    return {"rich_text": [{"type": "text", "text": {"content": value}}]}


def map_assignment_properties(property_types: Any, assignments: Any, targets: Any) -> dict[str, Any]:
    """Encode assignment fields onto the properties a collection actually has.

    Fields are skipped silently when the target name is blank, when the
    collection has no property of that name, when the value is empty, or when
    the property type cannot be represented. This never raises.
    """
    if not isinstance(property_types, dict) or assignments is None or targets is None:
        return {}

    out: dict[str, Any] = {}
    for field_name in ASSIGNMENT_FIELDS:
        target = getattr(targets, field_name, None)
        prop_name = target.strip() if isinstance(target, str) else ""
        if not prop_name:
            continue
        prop_type = property_types.get(prop_name)
        if not isinstance(prop_type, str):
            logger.debug("Skipping %s: property %r not in collection schema", field_name, prop_name)
            continue
        raw_value = getattr(assignments, field_name, None)
        value = compact_whitespace(raw_value) if isinstance(raw_value, str) else ""
        if not value:
            continue
        encoded = encode_property_value(prop_type, value)
        if encoded is None:
            logger.debug("Skipping %s: unsupported property type %r", field_name, prop_type)
            continue
        out[prop_name] = encoded
    return out
