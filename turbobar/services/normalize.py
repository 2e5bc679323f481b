from __future__ import annotations

import re
from typing import Any, Iterable

from turbobar.core.models import (
    ASSIGNMENT_WIRE_KEYS,
    DEFAULT_CAPTURE_ASSIGNMENTS,
    DEFAULT_PRIORITY,
    DUE_PRESETS,
    EFFORT_OPTIONS,
    ENERGY_OPTIONS,
    HORIZON_OPTIONS,
    INTENT_OPTIONS,
    MAX_LABEL_CHARS,
    MAX_NEXT_ACTION_CHARS,
    MAX_TITLE_CHARS,
    MODES,
    NOTE_STATUSES,
    PRIORITY_OPTIONS,
    PROJECT_STATUS_OPTIONS,
    UNTITLED_CAPTURE,
    CaptureAssignments,
    CaptureDraft,
)


_WHITESPACE_RE = re.compile(r"\s+")
_TRAILING_PUNCT_RE = re.compile(r"[.!?:;,]+$")
_CHECKLIST_RE = re.compile(r"(?:^|\n)\s*-\s*\[[xX ]\]\s+\S+")
_MIN_WORD_CUT = 20

SUGGESTED_SUBTASKS = "\n".join(
    [
        "Suggested subtasks:",
        "- [ ] Clarify scope and constraints",
        "- [ ] Execute the core work",
        "- [ ] Review and finalize",
    ]
)


def compact_whitespace(value: str) -> str:
    return _WHITESPACE_RE.sub(" ", value or "").strip()


def normalize_choice(value: Any, options: Iterable[str], fallback: str) -> str:
    if isinstance(value, str) and value in options:
        return value
    return fallback


def normalize_label(value: Any, fallback: str, *, max_chars: int = MAX_LABEL_CHARS) -> str:
    if not isinstance(value, str):
        return fallback
    cleaned = compact_whitespace(value)
    if not cleaned:
        return fallback
    if len(cleaned) <= max_chars:
        return cleaned
    return cleaned[:max_chars].rstrip()


def normalize_tags(value: Any, fallback: Iterable[str]) -> list[str]:
    if not isinstance(value, list):
        return list(fallback)
    out: list[str] = []
    for item in value:
        if not isinstance(item, str):
            continue
        tag = item.strip()
        if tag and tag not in out:
            out.append(tag)
    return out


def normalize_bool(value: Any, fallback: bool) -> bool:
    return value if isinstance(value, bool) else fallback


def normalize_mode(value: Any, fallback: str) -> str:
    return normalize_choice(value, MODES, fallback)


def normalize_priority(value: Any, fallback: str = DEFAULT_PRIORITY) -> str:
    if fallback not in PRIORITY_OPTIONS:
        fallback = DEFAULT_PRIORITY
    return normalize_choice(value, PRIORITY_OPTIONS, fallback)


def normalize_due_preset(value: Any, fallback: str) -> str:
    return normalize_choice(value, DUE_PRESETS, fallback)


def note_status_for_mode(mode: str) -> str:
    return "Inbox" if mode == "inbox" else "Brain Dump"


def normalize_note_status(value: Any, mode: str) -> str:
    return normalize_choice(value, NOTE_STATUSES, note_status_for_mode(mode))


def explicit_note_status(data: Any) -> str | None:
    """Return the caller-chosen note status (`noteStatus`, or the older `statusName`), if valid."""
    if not isinstance(data, dict):
        return None
    value = data.get("noteStatus")
    if value is None:
        value = data.get("statusName")
    return value if isinstance(value, str) and value in NOTE_STATUSES else None


def short_title(value: str) -> str:
    cleaned = _TRAILING_PUNCT_RE.sub("", compact_whitespace(value)).strip()
    if len(cleaned) <= MAX_TITLE_CHARS:
        return cleaned
    truncated = cleaned[:MAX_TITLE_CHARS]
    cut_at = truncated.rfind(" ")
    if cut_at >= _MIN_WORD_CUT:
        return truncated[:cut_at].strip()
    return truncated.strip()


def fallback_title_from_input(title: str, body: str) -> str:
    from_title = short_title(title or "")
    if from_title:
        return from_title
    for line in (body or "").splitlines():
        from_line = short_title(line)
        if from_line:
            return from_line
    return UNTITLED_CAPTURE


def normalize_title(value: Any, fallback: str) -> str:
    if isinstance(value, str):
        cleaned = short_title(value)
        if cleaned:
            return cleaned
    return short_title(fallback or "") or UNTITLED_CAPTURE


def has_checklist_items(body: str) -> bool:
    return bool(_CHECKLIST_RE.search(body or ""))


def ensure_task_body_subtasks(mode: str, body: str) -> str:
    trimmed = (body or "").strip()
    if mode != "task" or has_checklist_items(trimmed):
        return trimmed
    if not trimmed:
        return SUGGESTED_SUBTASKS
    return f"{trimmed}\n\n{SUGGESTED_SUBTASKS}"


def _complete_fallback(fallback: Any) -> CaptureAssignments:
    base = DEFAULT_CAPTURE_ASSIGNMENTS
    if not isinstance(fallback, CaptureAssignments):
        return base
    return CaptureAssignments(
        project=normalize_label(fallback.project, base.project),
        goal=normalize_label(fallback.goal, base.goal),
        area=normalize_label(fallback.area, base.area),
        sub_area=normalize_label(fallback.sub_area, base.sub_area),
        intent=normalize_choice(fallback.intent, INTENT_OPTIONS, base.intent),
        effort=normalize_choice(fallback.effort, EFFORT_OPTIONS, base.effort),
        energy=normalize_choice(fallback.energy, ENERGY_OPTIONS, base.energy),
        horizon=normalize_choice(fallback.horizon, HORIZON_OPTIONS, base.horizon),
        project_status=normalize_choice(fallback.project_status, PROJECT_STATUS_OPTIONS, base.project_status),
        next_action=normalize_label(fallback.next_action, base.next_action, max_chars=MAX_NEXT_ACTION_CHARS),
    )


def normalize_assignments(
    candidate: Any,
    mode: str,
    fallback: CaptureAssignments = DEFAULT_CAPTURE_ASSIGNMENTS,
) -> CaptureAssignments:
    """Build a complete assignment record from untrusted input.

    Accepts either camelCase (wire) or snake_case keys. ``None`` values count as
    absent. ``intent``, ``project_status`` and ``next_action`` fall back to
    mode-dependent defaults; every other field falls back to ``fallback``.
    """
    source: dict[str, Any] = {}
    if isinstance(candidate, dict):
        for name, wire_key in ASSIGNMENT_WIRE_KEYS.items():
            value = candidate.get(wire_key)
            if value is None:
                value = candidate.get(name)
            source[name] = value
    fallback = _complete_fallback(fallback)

    is_task = mode == "task"
    return CaptureAssignments(
        project=normalize_label(source.get("project"), fallback.project),
        goal=normalize_label(source.get("goal"), fallback.goal),
        area=normalize_label(source.get("area"), fallback.area),
        sub_area=normalize_label(source.get("sub_area"), fallback.sub_area),
        intent=normalize_choice(source.get("intent"), INTENT_OPTIONS, "action" if is_task else "reference"),
        effort=normalize_choice(source.get("effort"), EFFORT_OPTIONS, fallback.effort),
        energy=normalize_choice(source.get("energy"), ENERGY_OPTIONS, fallback.energy),
        horizon=normalize_choice(source.get("horizon"), HORIZON_OPTIONS, fallback.horizon),
        project_status=normalize_choice(
            source.get("project_status"),
            PROJECT_STATUS_OPTIONS,
            "active" if is_task else "planned",
        ),
        next_action=normalize_label(
            source.get("next_action"),
            "Define first action step" if is_task else "Review during triage",
            max_chars=MAX_NEXT_ACTION_CHARS,
        ),
    )


def draft_from_payload(data: Any, *, default_priority: str = DEFAULT_PRIORITY, default_task_now: bool = False) -> CaptureDraft:
    """Build a valid draft from an untrusted request body."""
    source = data if isinstance(data, dict) else {}
    mode = normalize_mode(source.get("mode"), "task")
    title = source.get("title")
    body = source.get("body")
    return CaptureDraft(
        mode=mode,
        title=title.strip() if isinstance(title, str) else "",
        body=body if isinstance(body, str) else "",
        tags=tuple(normalize_tags(source.get("tags"), [])),
        task_now=normalize_bool(source.get("taskNow"), default_task_now),
        task_priority=normalize_priority(source.get("taskPriority"), default_priority),
        due_preset=normalize_due_preset(source.get("duePreset"), "none"),
        assignments=normalize_assignments(source.get("assignments"), mode),
        note_status=explicit_note_status(source),
    )
