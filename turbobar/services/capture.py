from __future__ import annotations

import logging
import re
from datetime import date
from typing import Any

from turbobar.core.models import (
    CaptureAssignments,
    CaptureDraft,
    CreatedDocument,
    OrganizeResult,
    PropertyTargets,
)
from turbobar.core.time import local_today, resolve_due_date
from turbobar.services.normalize import (
    fallback_title_from_input,
    normalize_note_status,
    normalize_priority,
    normalize_tags,
    normalize_title,
)
from turbobar.services.property_mapping import map_assignment_properties
from turbobar.services.schema_cache import CollectionSchemaCache


logger = logging.getLogger(__name__)

DEFAULT_TASK_STATUS = "Not started"
DEFAULT_CAPTURE_TYPE = "Quick"

_LINE_SPLIT_RE = re.compile(r"\r?\n")
_SLUG_RE = re.compile(r"[^a-z0-9]+")


def body_to_paragraph_blocks(body: str | None) -> list[dict[str, Any]]:
    if not body or not body.strip():
        return []
    return [
        {
            "object": "block",
            "type": "paragraph",
            "paragraph": {
                "rich_text": [
                    {
                        "type": "text",
                        # Notion rejects empty text content.
                        "text": {"content": line if line else " "},
                    }
                ]
            },
        }
        for line in _LINE_SPLIT_RE.split(body)
    ]


def slug_tag(value: str) -> str:
    return _SLUG_RE.sub("-", (value or "").lower()).strip("-") or "general"


def assignment_tags(assignments: CaptureAssignments) -> list[str]:
    return [
        f"project/{slug_tag(assignments.project)}",
        f"goal/{slug_tag(assignments.goal)}",
        f"area/{slug_tag(assignments.area)}",
        f"sub-area/{slug_tag(assignments.sub_area)}",
        f"intent/{assignments.intent}",
        f"effort/{assignments.effort}",
        f"energy/{assignments.energy}",
        f"horizon/{assignments.horizon}",
        f"project-status/{assignments.project_status}",
    ]


def assignment_block(assignments: CaptureAssignments) -> str:
    return "\n".join(
        [
            "AI Assignments:",
            f"- Project: {assignments.project}",
            f"- Goal: {assignments.goal}",
            f"- Area: {assignments.area}",
            f"- Sub-Area: {assignments.sub_area}",
            f"- Intent: {assignments.intent}",
            f"- Effort: {assignments.effort}",
            f"- Energy: {assignments.energy}",
            f"- Horizon: {assignments.horizon}",
            f"- Project Status: {assignments.project_status}",
            f"- Next Action: {assignments.next_action}",
        ]
    )


def append_assignment_block(body: str, assignments: CaptureAssignments) -> str:
    trimmed = (body or "").strip()
    block = assignment_block(assignments)
    if not trimmed:
        return block
    return f"{trimmed}\n\n{block}"


def _title_property(title: str) -> dict[str, Any]:
    return {"title": [{"text": {"content": title}}]}


def build_task_properties(record: CaptureDraft, *, title: str, due_iso: str | None) -> dict[str, Any]:
    properties: dict[str, Any] = {
        "Task": _title_property(title),
        "Status": {"status": {"name": DEFAULT_TASK_STATUS}},
        "Priority": {"select": {"name": normalize_priority(record.task_priority)}},
        "NOW": {"checkbox": record.task_now is True},
    }
    if due_iso:
        properties["Due"] = {"date": {"start": due_iso}}
    return properties


def build_note_properties(record: CaptureDraft, *, title: str, tags: list[str]) -> dict[str, Any]:
    status = normalize_note_status(record.note_status, record.mode)
    properties: dict[str, Any] = {
        "Note": _title_property(title),
        "Status": {"select": {"name": status}},
        "Capture Type": {"select": {"name": DEFAULT_CAPTURE_TYPE}},
    }
    if tags:
        properties["Tags"] = {"multi_select": [{"name": tag} for tag in tags]}
    return properties


class CaptureWriter:
    """Composes a capture into a Notion page and creates it.

    ``notion`` needs ``retrieve_database(id)`` and ``create_page(payload)``. The
    schema cache is usually shared across writers for the whole process.
    """

    def __init__(
        self,
        notion,
        schema_cache: CollectionSchemaCache | None = None,
        *,
        timezone: str = "UTC",
    ) -> None:
        self.notion = notion
        self.schema_cache = schema_cache or CollectionSchemaCache()
        self.timezone = timezone

    def get_collection_property_types(self, collection_id: str) -> dict[str, str]:
        return self.schema_cache.get_property_types(collection_id, self.notion.retrieve_database)

    def apply_assignment_properties(
        self,
        collection_id: str,
        properties_out: dict[str, Any],
        assignments: CaptureAssignments | None,
        property_targets: PropertyTargets | None,
    ) -> None:
        if assignments is None or property_targets is None:
            return
        property_types = self.get_collection_property_types(collection_id)
        properties_out.update(map_assignment_properties(property_types, assignments, property_targets))

    def build_payload(
        self,
        record: CaptureDraft,
        collection_id: str,
        property_targets: PropertyTargets | None,
        *,
        include_assignments: bool | None = None,
        today: date | None = None,
    ) -> dict[str, Any]:
        include = isinstance(record, OrganizeResult) if include_assignments is None else include_assignments
        title = normalize_title(record.title, fallback_title_from_input(record.title, record.body))

        if record.mode == "task":
            body = append_assignment_block(record.body, record.assignments) if include else (record.body or "").strip()
            due_iso = resolve_due_date(record.due_preset, today or local_today(self.timezone))
            properties = build_task_properties(record, title=title, due_iso=due_iso)
        else:
            body = record.body
            tags = list(record.tags)
            if include:
                tags = normalize_tags([*tags, *assignment_tags(record.assignments)], [])
            properties = build_note_properties(record, title=title, tags=tags)

        if include:
            self.apply_assignment_properties(collection_id, properties, record.assignments, property_targets)

        payload: dict[str, Any] = {
            "parent": {"database_id": collection_id},
            "properties": properties,
        }
        children = body_to_paragraph_blocks(body)
        if children:
            payload["children"] = children
        return payload

    def write_capture(
        self,
        record: CaptureDraft,
        collection_id: str,
        property_targets: PropertyTargets | None,
        *,
        include_assignments: bool | None = None,
        today: date | None = None,
    ) -> CreatedDocument:
        payload = self.build_payload(
            record,
            collection_id,
            property_targets,
            include_assignments=include_assignments,
            today=today,
        )
        page = self.notion.create_page(payload)
        url = page.get("url")
        created = CreatedDocument(id=str(page.get("id") or ""), url=url if isinstance(url, str) else None)
        logger.info("Created %s page %s in %s", record.mode, created.id, collection_id)
        return created
