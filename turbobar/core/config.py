import re
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from turbobar.core.models import PropertyTargets


DEFAULT_TASKS_DB_ID = "2fa414cc-8377-81f5-bd6a-fca8633835cc"
DEFAULT_NOTES_DB_ID = "be1414cc-8377-82e2-a106-815f50487374"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    notion_token: str = Field(default="", alias="NOTION_TOKEN")
    notion_base_url: str = Field(default="https://api.notion.com/v1", alias="NOTION_BASE_URL")
    tasks_db_id: str = Field(default=DEFAULT_TASKS_DB_ID, alias="TASKS_DB_ID")
    notes_db_id: str = Field(default=DEFAULT_NOTES_DB_ID, alias="NOTES_DB_ID")

    gemini_api_key: str = Field(default="", alias="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-2.5-flash", alias="GEMINI_MODEL")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        alias="GEMINI_BASE_URL",
    )

    timezone: str = Field(default="UTC", alias="TURBOBAR_TIMEZONE")
    default_task_priority: str = Field(default="P2 🟠", alias="TURBOBAR_DEFAULT_TASK_PRIORITY")
    default_task_now: bool = Field(default=False, alias="TURBOBAR_DEFAULT_TASK_NOW")
    auto_organize: bool = Field(default=True, alias="TURBOBAR_AUTO_ORGANIZE")
    log_level: str = Field(default="INFO", alias="TURBOBAR_LOG_LEVEL")

    schema_cache_ttl_seconds: float = Field(default=300.0, alias="TURBOBAR_SCHEMA_CACHE_TTL_SECONDS")
    http_timeout_seconds: float | None = Field(default=None, alias="TURBOBAR_HTTP_TIMEOUT_SECONDS")
    prompt_path: Path | None = Field(default=None, alias="TURBOBAR_PROMPT_PATH")

    task_property_map: dict[str, str] = Field(default_factory=dict, alias="TURBOBAR_TASK_PROPERTY_MAP")
    note_property_map: dict[str, str] = Field(default_factory=dict, alias="TURBOBAR_NOTE_PROPERTY_MAP")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


_HEX_ID_RE = re.compile(r"([0-9a-fA-F]{32})$")


def normalize_collection_id(value: str | None) -> str:
    """Accept a bare id, a dashed UUID or a Notion URL and return the dashed UUID.

    Returns an empty string when no 32-hex-digit id can be found.
    """
    raw = (value or "").strip()
    if not raw:
        return ""
    path = raw.split("?", 1)[0].split("#", 1)[0]
    match = _HEX_ID_RE.search(path.replace("-", "").rsplit("/", 1)[-1])
    if not match:
        return ""
    hex_id = match.group(1).lower()
    return f"{hex_id[0:8]}-{hex_id[8:12]}-{hex_id[12:16]}-{hex_id[16:20]}-{hex_id[20:32]}"


def resolve_collection_id(settings: Settings, kind: str, override: str | None = None) -> str:
    normalized = normalize_collection_id(override)
    if normalized:
        return normalized
    configured = settings.tasks_db_id if kind == "task" else settings.notes_db_id
    return normalize_collection_id(configured) or configured.strip()


def property_targets_for(settings: Settings, kind: str) -> PropertyTargets:
    mapping = settings.task_property_map if kind == "task" else settings.note_property_map
    return PropertyTargets.from_mapping(mapping)
