from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel, ConfigDict, Field

from turbobar.core.config import Settings, property_targets_for, resolve_collection_id
from turbobar.core.errors import InvalidDraftError
from turbobar.core.models import CaptureDraft, OrganizeResult, PropertyTargets
from turbobar.services.capture import CaptureWriter
from turbobar.services.normalize import draft_from_payload
from turbobar.services.notion import NotionClient
from turbobar.services.organizer import classify_capture, organizer_enabled

router = APIRouter(prefix="/api", tags=["capture"])


class OrganizeRequest(BaseModel):
    input: dict[str, Any] = Field(default_factory=dict)
    model: str | None = None


class CreateTaskRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    input: dict[str, Any] = Field(default_factory=dict)
    tasks_db_id: str | None = Field(default=None, alias="tasksDbId")


class CreateNoteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    input: dict[str, Any] = Field(default_factory=dict)
    notes_db_id: str | None = Field(default=None, alias="notesDbId")


class CaptureRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    input: dict[str, Any] = Field(default_factory=dict)
    organize: bool | None = None
    model: str | None = None
    database_id: str | None = Field(default=None, alias="databaseId")


def _draft(settings: Settings, data: dict[str, Any], *, mode: str | None = None) -> CaptureDraft:
    source = dict(data)
    if mode:
        source["mode"] = mode
    draft = draft_from_payload(
        source,
        default_priority=settings.default_task_priority,
        default_task_now=settings.default_task_now,
    )
    if not draft.title.strip() and not draft.body.strip():
        raise InvalidDraftError("Capture needs a title or body.")
    return draft


def _carries_classification(data: dict[str, Any]) -> bool:
    return isinstance(data.get("assignments"), dict) or "noteStatus" in data or "statusName" in data


def _property_targets(settings: Settings, kind: str, data: dict[str, Any]) -> PropertyTargets:
    override = data.get("assignmentPropertyTargets")
    if isinstance(override, dict):
        return PropertyTargets.from_mapping(override)
    return property_targets_for(settings, kind)


def _write(
    request: Request,
    record: CaptureDraft,
    collection_id: str,
    targets: PropertyTargets,
    *,
    include: bool | None,
) -> dict[str, Any]:
    settings = request.app.state.settings
    with NotionClient.from_settings(settings) as notion:
        writer = CaptureWriter(notion, request.app.state.schema_cache, timezone=settings.timezone)
        created = writer.write_capture(record, collection_id, targets, include_assignments=include)
    return {"ok": True, "id": created.id, "url": created.url}


@router.post("/ai/organize", response_model=None)
def organize(request: Request, payload: OrganizeRequest) -> Any:
    settings = request.app.state.settings
    draft = _draft(settings, payload.input)
    result = classify_capture(settings, draft, model=payload.model)
    return {"ok": True, **result.to_payload()}


@router.post("/notion/create-task", response_model=None)
def create_task(request: Request, payload: CreateTaskRequest) -> Any:
    settings = request.app.state.settings
    draft = _draft(settings, payload.input, mode="task")
    collection_id = resolve_collection_id(settings, "task", payload.tasks_db_id)
    targets = _property_targets(settings, "task", payload.input)
    include = _carries_classification(payload.input)
    return _write(request, draft, collection_id, targets, include=include)


@router.post("/notion/create-note", response_model=None)
def create_note(request: Request, payload: CreateNoteRequest) -> Any:
    settings = request.app.state.settings
    mode = payload.input.get("mode")
    draft = _draft(settings, payload.input, mode=mode if mode in ("brainDump", "inbox") else "brainDump")
    collection_id = resolve_collection_id(settings, "note", payload.notes_db_id)
    targets = _property_targets(settings, "note", payload.input)
    include = _carries_classification(payload.input)
    return _write(request, draft, collection_id, targets, include=include)


@router.post("/capture", response_model=None)
def capture(request: Request, payload: CaptureRequest) -> Any:
    settings = request.app.state.settings
    draft = _draft(settings, payload.input)

    if payload.organize is None:
        should_organize = settings.auto_organize and organizer_enabled(settings)
    else:
        should_organize = payload.organize
    record: CaptureDraft = draft
    if should_organize:
        record = classify_capture(settings, draft, model=payload.model)

    kind = "task" if record.mode == "task" else "note"
    collection_id = resolve_collection_id(settings, kind, payload.database_id)
    targets = _property_targets(settings, kind, payload.input)
    include = None if isinstance(record, OrganizeResult) else _carries_classification(payload.input)
    written = _write(request, record, collection_id, targets, include=include)
    return {
        **written,
        "organized": isinstance(record, OrganizeResult),
        "capture": record.to_payload(),
    }
