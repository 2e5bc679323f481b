from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from turbobar.api import routes_capture
from turbobar.core.config import Settings
from turbobar.core.errors import ClassificationTransportError, WriteFailure
from turbobar.core.models import CaptureAssignments, OrganizeResult
from turbobar.main import create_app


class FakeNotionClient:
    instances: list["FakeNotionClient"] = []
    properties: dict = {}
    fail_status: int | None = None

    def __init__(self) -> None:
        self.retrieved: list[str] = []
        self.pages: list[dict] = []
        self.closed = False
        FakeNotionClient.instances.append(self)

    @classmethod
    def from_settings(cls, settings, *, transport=None) -> "FakeNotionClient":
        return cls()

    def __enter__(self) -> "FakeNotionClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.closed = True

    def retrieve_database(self, database_id: str) -> dict:
        self.retrieved.append(database_id)
        return {"properties": {name: {"type": kind} for name, kind in self.properties.items()}}

    def create_page(self, payload: dict) -> dict:
        if self.fail_status is not None:
            raise WriteFailure(self.fail_status, "rejected")
        self.pages.append(payload)
        return {"id": f"page-{len(self.pages)}", "url": "https://www.notion.so/created"}


def _build_client(monkeypatch: pytest.MonkeyPatch, **overrides) -> TestClient:
    values = {
        "NOTION_TOKEN": "notion-secret",
        "GEMINI_API_KEY": "gemini-secret",
        "TASKS_DB_ID": "2fa414cc837781f5bd6afca8633835cc",
        "NOTES_DB_ID": "be1414cc837782e2a106815f50487374",
        "TURBOBAR_TIMEZONE": "UTC",
    }
    values.update(overrides)
    FakeNotionClient.instances = []
    FakeNotionClient.properties = {}
    FakeNotionClient.fail_status = None
    monkeypatch.setattr(routes_capture, "NotionClient", FakeNotionClient)

    app = create_app()
    app.state.settings = Settings(**values)
    return TestClient(app)


def _organized(**overrides) -> OrganizeResult:
    values = {
        "mode": "task",
        "title": "Renew passport",
        "body": "Book appointment\n\nSuggested subtasks:\n- [ ] Fill form",
        "due_preset": "none",
        "assignments": CaptureAssignments(project="Travel", intent="action", project_status="active"),
        "summary": "Admin errand.",
    }
    values.update(overrides)
    return OrganizeResult(**values)


def _page(client: TestClient) -> dict:
    return FakeNotionClient.instances[-1].pages[-1]


def test_health(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client(monkeypatch)
    res = client.get("/api/health")
    assert res.status_code == 200
    body = res.json()
    assert body["ok"] is True
    assert body["timestamp"].endswith("+00:00")


def test_organize_returns_classified_record(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client(monkeypatch)
    calls: list = []

    def fake_classify(settings, draft, *, model=None, **kwargs):
        calls.append((draft, model))
        return _organized()

    monkeypatch.setattr(routes_capture, "classify_capture", fake_classify)
    res = client.post("/api/ai/organize", json={"input": {"title": "passport"}, "model": "gemini-x"})

    assert res.status_code == 200
    body = res.json()
    assert body["ok"] is True
    assert body["mode"] == "task"
    assert body["assignments"]["projectStatus"] == "active"
    assert body["summary"] == "Admin errand."
    assert calls[0][0].title == "passport"
    assert calls[0][1] == "gemini-x"


def test_organize_without_key_is_a_client_error(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client(monkeypatch, GEMINI_API_KEY="")
    res = client.post("/api/ai/organize", json={"input": {"title": "anything"}})
    assert res.status_code == 400
    body = res.json()
    assert body["ok"] is False
    assert body["error"] == "Failed to organize capture."
    assert "GEMINI_API_KEY" in body["details"]


def test_organize_upstream_failure_is_bad_gateway(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client(monkeypatch)

    def fake_classify(settings, draft, **kwargs):
        raise ClassificationTransportError(500, "internal")

    monkeypatch.setattr(routes_capture, "classify_capture", fake_classify)
    res = client.post("/api/ai/organize", json={"input": {"body": "some text"}})
    assert res.status_code == 502
    assert "500" in res.json()["details"]


def test_empty_draft_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client(monkeypatch)
    res = client.post("/api/notion/create-task", json={"input": {"title": "  ", "body": ""}})
    assert res.status_code == 400
    assert res.json() == {
        "ok": False,
        "error": "Failed to create task.",
        "details": "Capture needs a title or body.",
    }
    assert FakeNotionClient.instances == []


def test_create_task_with_url_override(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client(monkeypatch)
    res = client.post(
        "/api/notion/create-task",
        json={
            "input": {"title": "Call the bank", "taskNow": True, "duePreset": "today"},
            "tasksDbId": "https://www.notion.so/Other-0123456789abcdef0123456789abcdef?v=1",
        },
    )

    assert res.status_code == 200
    assert res.json() == {"ok": True, "id": "page-1", "url": "https://www.notion.so/created"}
    page = _page(client)
    assert page["parent"] == {"database_id": "01234567-89ab-cdef-0123-456789abcdef"}
    assert page["properties"]["NOW"] == {"checkbox": True}
    assert "Due" in page["properties"]
    assert FakeNotionClient.instances[-1].retrieved == []
    assert FakeNotionClient.instances[-1].closed is True


def test_create_task_with_assignments_maps_properties(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client(monkeypatch)
    FakeNotionClient.properties = {"Initiative": "select"}
    res = client.post(
        "/api/notion/create-task",
        json={
            "input": {
                "title": "Draft roadmap",
                "assignments": {"project": "Q3 Planning"},
                "assignmentPropertyTargets": {"project": "Initiative"},
            }
        },
    )

    assert res.status_code == 200
    page = _page(client)
    assert page["properties"]["Initiative"] == {"select": {"name": "Q3 Planning"}}
    assert page["parent"] == {"database_id": "2fa414cc-8377-81f5-bd6a-fca8633835cc"}


def test_create_note_defaults_to_brain_dump(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client(monkeypatch)
    res = client.post("/api/notion/create-note", json={"input": {"body": "An idea\nwith two lines", "tags": ["x"]}})

    assert res.status_code == 200
    page = _page(client)
    assert page["parent"] == {"database_id": "be1414cc-8377-82e2-a106-815f50487374"}
    assert page["properties"]["Status"] == {"select": {"name": "Brain Dump"}}
    assert page["properties"]["Note"]["title"][0]["text"]["content"] == "An idea"
    assert page["properties"]["Tags"] == {"multi_select": [{"name": "x"}]}


def test_capture_organizes_then_writes(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client(monkeypatch)
    FakeNotionClient.properties = {"Project": "select"}
    monkeypatch.setattr(routes_capture, "classify_capture", lambda settings, draft, **kwargs: _organized())

    res = client.post("/api/capture", json={"input": {"body": "renew passport before summer"}})

    assert res.status_code == 200
    body = res.json()
    assert body["ok"] is True
    assert body["organized"] is True
    assert body["capture"]["title"] == "Renew passport"
    page = _page(client)
    assert page["parent"] == {"database_id": "2fa414cc-8377-81f5-bd6a-fca8633835cc"}
    assert page["properties"]["Project"] == {"select": {"name": "Travel"}}
    contents = [block["paragraph"]["rich_text"][0]["text"]["content"] for block in page["children"]]
    assert "AI Assignments:" in contents


def test_capture_routes_organized_notes_to_notes_collection(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client(monkeypatch)
    monkeypatch.setattr(
        routes_capture,
        "classify_capture",
        lambda settings, draft, **kwargs: _organized(mode="inbox", body="later", note_status="Inbox"),
    )

    res = client.post("/api/capture", json={"input": {"title": "read this article"}})

    assert res.status_code == 200
    page = _page(client)
    assert page["parent"] == {"database_id": "be1414cc-8377-82e2-a106-815f50487374"}
    assert page["properties"]["Status"] == {"select": {"name": "Inbox"}}


def test_capture_skips_organizer_when_disabled(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client(monkeypatch, GEMINI_API_KEY="")

    def fail_classify(*args, **kwargs):
        raise AssertionError("organizer should not run")

    monkeypatch.setattr(routes_capture, "classify_capture", fail_classify)
    res = client.post("/api/capture", json={"input": {"mode": "inbox", "title": "Look into this"}})

    assert res.status_code == 200
    body = res.json()
    assert body["organized"] is False
    assert body["capture"]["mode"] == "inbox"
    assert FakeNotionClient.instances[-1].retrieved == []


def test_capture_respects_explicit_organize_false(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client(monkeypatch)

    def fail_classify(*args, **kwargs):
        raise AssertionError("organizer should not run")

    monkeypatch.setattr(routes_capture, "classify_capture", fail_classify)
    res = client.post("/api/capture", json={"input": {"title": "Keep raw"}, "organize": False})
    assert res.status_code == 200
    assert res.json()["organized"] is False


def test_write_failure_is_bad_gateway(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client(monkeypatch)
    FakeNotionClient.fail_status = 400
    res = client.post("/api/notion/create-note", json={"input": {"title": "Will fail"}})
    assert res.status_code == 502
    body = res.json()
    assert body == {
        "ok": False,
        "error": "Failed to create note.",
        "details": "Notion page creation failed (400): rejected",
    }


@pytest.mark.parametrize("field", ["noteStatus", "statusName"])
def test_create_note_honors_explicit_status(monkeypatch: pytest.MonkeyPatch, field: str) -> None:
    client = _build_client(monkeypatch)
    res = client.post(
        "/api/notion/create-note",
        json={"input": {"title": "Sort later", "mode": "brainDump", field: "Inbox"}},
    )

    assert res.status_code == 200
    assert _page(client)["properties"]["Status"] == {"select": {"name": "Inbox"}}


def test_create_note_ignores_unknown_status(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client(monkeypatch)
    res = client.post(
        "/api/notion/create-note",
        json={"input": {"title": "Sort later", "mode": "inbox", "noteStatus": "Archived"}},
    )

    assert res.status_code == 200
    assert _page(client)["properties"]["Status"] == {"select": {"name": "Inbox"}}


def test_capture_keeps_classification_sent_back_without_organizing(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client(monkeypatch)
    FakeNotionClient.properties = {"Project": "select"}

    def fail_classify(*args, **kwargs):
        raise AssertionError("organizer should not run")

    monkeypatch.setattr(routes_capture, "classify_capture", fail_classify)
    res = client.post(
        "/api/capture",
        json={
            "input": {
                "mode": "brainDump",
                "title": "Trip ideas",
                "body": "Lisbon in spring",
                "noteStatus": "Inbox",
                "assignments": {"project": "Travel"},
            },
            "organize": False,
        },
    )

    assert res.status_code == 200
    body = res.json()
    assert body["organized"] is False
    assert body["capture"]["noteStatus"] == "Inbox"
    properties = _page(client)["properties"]
    assert properties["Status"] == {"select": {"name": "Inbox"}}
    assert properties["Project"] == {"select": {"name": "Travel"}}
    assert FakeNotionClient.instances[-1].retrieved == ["be1414cc-8377-82e2-a106-815f50487374"]


def test_empty_capture_uses_the_common_error_shape(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _build_client(monkeypatch)
    res = client.post("/api/capture", json={"input": {}})
    assert res.status_code == 400
    assert res.json()["ok"] is False
    assert res.json()["error"] == "Failed to capture."
    assert "detail" not in res.json()
