from __future__ import annotations

import json
import logging
from datetime import date
from typing import Any
from urllib.parse import quote

import httpx

from turbobar.core.errors import (
    ClassificationEnvelopeError,
    ClassificationParseError,
    ClassificationTransportError,
    ConfigurationError,
)
from turbobar.core.models import DEFAULT_SUMMARY, CaptureDraft, OrganizeResult
from turbobar.core.time import local_today
from turbobar.services.normalize import (
    ensure_task_body_subtasks,
    fallback_title_from_input,
    normalize_assignments,
    normalize_bool,
    normalize_due_preset,
    normalize_mode,
    normalize_note_status,
    normalize_priority,
    normalize_tags,
    normalize_title,
)
from turbobar.services.prompts import PromptTemplate, build_organize_instruction, load_organize_prompt
from turbobar.services.schema_validation import organize_response_schema, validate_organize_output


logger = logging.getLogger(__name__)


def organizer_enabled(settings) -> bool:
    return bool((settings.gemini_api_key or "").strip())


def build_organize_request(prompt: PromptTemplate, draft: CaptureDraft, *, today_iso: str) -> dict[str, Any]:
    text = build_organize_instruction(prompt, today_iso=today_iso, draft_payload=draft.to_payload())
    return {
        "contents": [
            {
                "role": "user",
                "parts": [{"text": text}],
            }
        ],
        "generationConfig": {
            "temperature": prompt.temperature,
            "responseMimeType": "application/json",
            "responseSchema": organize_response_schema(),
        },
    }


def extract_response_text(response_json: Any) -> str:
    candidates = response_json.get("candidates") if isinstance(response_json, dict) else None
    if not isinstance(candidates, list) or not candidates:
        raise ClassificationEnvelopeError("Gemini response did not include candidates.")

    first = candidates[0]
    if not isinstance(first, dict):
        raise ClassificationEnvelopeError("Gemini candidate format was invalid.")
    content = first.get("content")
    if not isinstance(content, dict):
        raise ClassificationEnvelopeError("Gemini candidate content was missing.")
    parts = content.get("parts")
    if not isinstance(parts, list):
        raise ClassificationEnvelopeError("Gemini content parts were missing.")

    chunks: list[str] = []
    for part in parts:
        text = part.get("text") if isinstance(part, dict) else None
        if isinstance(text, str):
            chunks.append(text)
    text = "".join(chunks).strip()
    if not text:
        raise ClassificationEnvelopeError("Gemini response text was empty.")
    return text


def parse_organize_output(text: str) -> dict[str, Any]:
    try:
        output = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ClassificationParseError(f"Gemini returned non-JSON content: {exc.msg}") from exc
    if not isinstance(output, dict):
        raise ClassificationParseError("Gemini output must be a JSON object.")
    return output


def repair_organize_output(parsed: dict[str, Any], draft: CaptureDraft) -> OrganizeResult:
    """Rebuild a safe result from an untrusted payload, falling back to the draft field by field."""
    mode = normalize_mode(parsed.get("mode"), normalize_mode(draft.mode, "task"))
    raw_body = parsed.get("body")
    if not isinstance(raw_body, str):
        raw_body = draft.body
    summary = parsed.get("summary")
    summary = summary.strip() if isinstance(summary, str) else ""

    return OrganizeResult(
        mode=mode,
        title=normalize_title(parsed.get("title"), fallback_title_from_input(draft.title, draft.body)),
        body=ensure_task_body_subtasks(mode, raw_body),
        tags=tuple(normalize_tags(parsed.get("tags"), draft.tags)),
        task_now=normalize_bool(parsed.get("taskNow"), bool(draft.task_now)),
        task_priority=normalize_priority(parsed.get("taskPriority"), draft.task_priority),
        due_preset=normalize_due_preset(parsed.get("duePreset"), normalize_due_preset(draft.due_preset, "none")),
        assignments=normalize_assignments(parsed.get("assignments"), mode, draft.assignments),
        note_status=normalize_note_status(parsed.get("noteStatus"), mode),
        summary=summary or DEFAULT_SUMMARY,
    )


def classify_capture(
    settings,
    draft: CaptureDraft,
    *,
    client: httpx.Client | None = None,
    model: str | None = None,
    today: date | None = None,
) -> OrganizeResult:
    if not organizer_enabled(settings):
        raise ConfigurationError("GEMINI_API_KEY is not configured.")

    prompt = load_organize_prompt(settings)
    chosen_model = (model or "").strip() or prompt.model or settings.gemini_model
    today_iso = (today or local_today(settings.timezone)).isoformat()
    payload = build_organize_request(prompt, draft, today_iso=today_iso)
    url = f"{settings.gemini_base_url.rstrip('/')}/models/{quote(chosen_model, safe='')}:generateContent"
    headers = {
        "Content-Type": "application/json",
        "x-goog-api-key": settings.gemini_api_key.strip(),
    }

    owns_client = client is None
    http = client or httpx.Client(timeout=settings.http_timeout_seconds)
    try:
        response = http.post(url, json=payload, headers=headers)
    except httpx.HTTPError as exc:
        logger.error("Gemini request failed before a response: %s", exc.__class__.__name__)
        raise ClassificationTransportError(None, str(exc)) from exc
    finally:
        if owns_client:
            http.close()

    if not response.is_success:
        logger.error("Gemini request failed with status %s", response.status_code)
        raise ClassificationTransportError(response.status_code, response.text)

    try:
        response_json = response.json()
    except ValueError as exc:
        raise ClassificationEnvelopeError("Gemini response body was not JSON.") from exc

    parsed = parse_organize_output(extract_response_text(response_json))
    ok, error = validate_organize_output(parsed)
    if not ok:
        logger.warning("Gemini output violated the response schema, repairing: %s", error)
    result = repair_organize_output(parsed, draft)
    logger.debug("Organized capture as %s: %s", result.mode, result.title)
    return result
