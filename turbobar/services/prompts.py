from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from turbobar.core.errors import ConfigurationError


ORGANIZE_PROMPT_ID = "organize_capture"
ORGANIZE_PROMPT_VERSION = "v1"
DEFAULT_TEMPERATURE = 0.2

_VAR_RE = re.compile(r"\{\{\s*([a-zA-Z0-9_]+)\s*\}\}")

DEFAULT_ORGANIZE_PROMPT_TEXT = """id: organize_capture
version: v1
provider: gemini
params:
  temperature: 0.2
system: |
  You are Turbo Bar's capture organizer.
  Input is a rough brain dump/task capture. Return structured JSON only.

  Rules:
  - Choose mode:
    - "task" when this is an actionable item someone should do.
    - "brainDump" when this is a thought/reference/idea for later.
    - "inbox" when it is a note that still needs review/triage.
  - Clean title: concise and specific (3-8 words, max 60 chars). If title is weak or missing, create a better short one from body/context.
  - Keep body useful but concise; preserve important details and links.
  - For task mode, include a "Suggested subtasks:" section in body with 2-5 checklist lines formatted as "- [ ] ...".
  - Choose tags only for note modes (brainDump/inbox). For task mode, tags can be empty.
  - Always assign:
    - project, goal, area, subArea: short labels (1-4 words). Use "General" when unclear.
    - intent: one of "action", "reference", "idea", "planning", "follow-up".
    - effort: one of "quick", "medium", "deep".
    - energy: one of "low", "medium", "high".
    - horizon: one of "today", "this-week", "this-month", "this-quarter", "someday".
    - projectStatus: one of "planned", "active", "blocked", "on-hold", "complete".
    - nextAction: 3-10 words, concrete and specific.
  - taskPriority must be one of: "P1 🔴", "P2 🟠", "P3 🟡".
  - duePreset must be one of: "none", "today", "tomorrow", relative to {{today_iso}}.
  - noteStatus must be "Brain Dump" or "Inbox".
  - summary should be one short sentence explaining the categorization.
user: |
  Input JSON:
  {{draft_json}}
"""


@dataclass
class PromptTemplate:
    prompt_id: str
    version: str
    provider: str
    system_text: str
    user_text: str
    params: dict[str, Any] = field(default_factory=dict)
    model: str | None = None

    @property
    def temperature(self) -> float:
        try:
            return float(self.params.get("temperature", DEFAULT_TEMPERATURE))
        except (TypeError, ValueError):
            return DEFAULT_TEMPERATURE


def render_template(text: str, variables: dict[str, Any]) -> str:
    def replace(match: re.Match) -> str:
        key = match.group(1)
        value = variables.get(key, "")
        if isinstance(value, (dict, list)):
            return json.dumps(value, ensure_ascii=False, indent=2)
        return str(value)

    return _VAR_RE.sub(replace, text or "")


def parse_prompt_yaml(text: str) -> PromptTemplate:
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Prompt YAML is invalid: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigurationError("Prompt YAML root must be an object")

    prompt_id = str(raw.get("id") or "").strip()
    version = str(raw.get("version") or "").strip()
    provider = str(raw.get("provider") or "").strip()
    system_text = str(raw.get("system") or "")
    user_text = str(raw.get("user") or "")
    params = raw.get("params") or {}
    model = str(raw.get("model") or "").strip() or None

    if not prompt_id:
        raise ConfigurationError("Missing required field: id")
    if not version:
        raise ConfigurationError("Missing required field: version")
    if provider.lower() != "gemini":
        raise ConfigurationError(f"Unsupported provider: {provider or '<empty>'}")
    if not system_text.strip():
        raise ConfigurationError("Missing required field: system")
    if "{{draft_json}}" not in user_text.replace(" ", ""):
        raise ConfigurationError("Prompt user text must include {{draft_json}}")
    if not isinstance(params, dict):
        raise ConfigurationError("params must be an object")

    return PromptTemplate(
        prompt_id=prompt_id,
        version=version,
        provider=provider,
        system_text=system_text,
        user_text=user_text,
        params=params,
        model=model,
    )


def load_organize_prompt(settings) -> PromptTemplate:
    path: Path | None = getattr(settings, "prompt_path", None)
    if path is None:
        return parse_prompt_yaml(DEFAULT_ORGANIZE_PROMPT_TEXT)
    if not path.exists():
        raise ConfigurationError(f"Prompt file not found: {path}")
    return parse_prompt_yaml(path.read_text(encoding="utf-8"))


def build_organize_instruction(prompt: PromptTemplate, *, today_iso: str, draft_payload: dict[str, Any]) -> str:
    variables = {"today_iso": today_iso, "draft_json": draft_payload}
    system_text = render_template(prompt.system_text, variables).strip()
    user_text = render_template(prompt.user_text, variables).strip()
    return f"{system_text}\n\n{user_text}"
