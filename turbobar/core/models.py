from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


MODES = ("task", "brainDump", "inbox")
PRIORITY_OPTIONS = ("P1 🔴", "P2 🟠", "P3 🟡")
DEFAULT_PRIORITY = "P2 🟠"
DUE_PRESETS = ("none", "today", "tomorrow")
NOTE_STATUSES = ("Brain Dump", "Inbox")

INTENT_OPTIONS = ("action", "reference", "idea", "planning", "follow-up")
EFFORT_OPTIONS = ("quick", "medium", "deep")
ENERGY_OPTIONS = ("low", "medium", "high")
HORIZON_OPTIONS = ("today", "this-week", "this-month", "this-quarter", "someday")
PROJECT_STATUS_OPTIONS = ("planned", "active", "blocked", "on-hold", "complete")

MAX_TITLE_CHARS = 60
MAX_LABEL_CHARS = 60
MAX_NEXT_ACTION_CHARS = 120
UNTITLED_CAPTURE = "Untitled capture"
DEFAULT_SUMMARY = "Capture organized by AI."

ASSIGNMENT_FIELDS = (
    "project",
    "goal",
    "area",
    "sub_area",
    "intent",
    "effort",
    "energy",
    "horizon",
    "project_status",
    "next_action",
)

# Attribute name -> key used by the classifier schema and the HTTP API.
ASSIGNMENT_WIRE_KEYS = {
    "project": "project",
    "goal": "goal",
    "area": "area",
    "sub_area": "subArea",
    "intent": "intent",
    "effort": "effort",
    "energy": "energy",
    "horizon": "horizon",
    "project_status": "projectStatus",
    "next_action": "nextAction",
}

ASSIGNMENT_ENUMS = {
    "intent": INTENT_OPTIONS,
    "effort": EFFORT_OPTIONS,
    "energy": ENERGY_OPTIONS,
    "horizon": HORIZON_OPTIONS,
    "project_status": PROJECT_STATUS_OPTIONS,
}


@dataclass(frozen=True)
class CaptureAssignments:
    project: str = "General"
    goal: str = "General"
    area: str = "General"
    sub_area: str = "General"
    intent: str = "reference"
    effort: str = "medium"
    energy: str = "medium"
    horizon: str = "this-week"
    project_status: str = "planned"
    next_action: str = "Review during triage"

    def to_payload(self) -> dict[str, str]:
        return {ASSIGNMENT_WIRE_KEYS[name]: getattr(self, name) for name in ASSIGNMENT_FIELDS}


DEFAULT_CAPTURE_ASSIGNMENTS = CaptureAssignments()


@dataclass(frozen=True)
class CaptureDraft:
    mode: str = "task"
    title: str = ""
    body: str = ""
    tags: tuple[str, ...] = ()
    task_now: bool = False
    task_priority: str = DEFAULT_PRIORITY
    due_preset: str = "none"
    assignments: CaptureAssignments = field(default_factory=CaptureAssignments)
    # None derives the status from the mode when the note is written.
    note_status: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "mode": self.mode,
            "title": self.title,
            "body": self.body,
            "tags": list(self.tags),
            "taskNow": self.task_now,
            "taskPriority": self.task_priority,
            "duePreset": self.due_preset,
            "assignments": self.assignments.to_payload(),
        }
        if self.note_status is not None:
            payload["noteStatus"] = self.note_status
        return payload


@dataclass(frozen=True)
class OrganizeResult(CaptureDraft):
    note_status: str = "Brain Dump"
    summary: str = DEFAULT_SUMMARY

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["summary"] = self.summary
        return payload


@dataclass(frozen=True)
class PropertyTargets:
    project: str = "Project"
    goal: str = "Goal"
    area: str = "Area"
    sub_area: str = "Sub-Area"
    intent: str = "Intent"
    effort: str = "Effort"
    energy: str = "Energy"
    horizon: str = "Horizon"
    project_status: str = "Project Status"
    next_action: str = "Next Action"

    @classmethod
    def from_mapping(cls, mapping: Any) -> "PropertyTargets":
        """Overlay a user mapping (camelCase or snake_case keys) on the canonical names.

        Unknown keys and non-string values are ignored. An empty string is kept:
        it means the user opted out of mapping that field.
        """
        if not isinstance(mapping, dict):
            return cls()
        wire_to_field = {wire: name for name, wire in ASSIGNMENT_WIRE_KEYS.items()}
        values: dict[str, str] = {}
        for key, value in mapping.items():
            name = wire_to_field.get(key, key)
            if name in ASSIGNMENT_FIELDS and isinstance(value, str):
                values[name] = value
        return cls(**values)


@dataclass(frozen=True)
class CreatedDocument:
    id: str
    url: str | None = None
