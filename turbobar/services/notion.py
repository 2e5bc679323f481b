from __future__ import annotations

import logging
from typing import Any

import httpx

from turbobar.core.errors import ConfigurationError, SchemaRetrievalError, WriteFailure


logger = logging.getLogger(__name__)

NOTION_VERSION = "2022-06-28"


class NotionClient:
    """Thin wrapper over the two Notion endpoints a capture needs."""

    def __init__(
        self,
        token: str,
        *,
        base_url: str = "https://api.notion.com/v1",
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not (token or "").strip():
            raise ConfigurationError("NOTION_TOKEN is not configured.")
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {token.strip()}",
                "Notion-Version": NOTION_VERSION,
                "Content-Type": "application/json",
            },
        )

    @classmethod
    def from_settings(cls, settings, *, transport: httpx.BaseTransport | None = None) -> "NotionClient":
        return cls(
            settings.notion_token,
            base_url=settings.notion_base_url,
            timeout=settings.http_timeout_seconds,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "NotionClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def retrieve_database(self, database_id: str) -> dict[str, Any]:
        try:
            response = self._client.get(f"/databases/{database_id}")
        except httpx.HTTPError as exc:
            logger.error("Notion schema request failed before a response: %s", exc.__class__.__name__)
            raise SchemaRetrievalError(database_id, None, str(exc)) from exc
        if not response.is_success:
            logger.error("Notion schema request for %s failed with status %s", database_id, response.status_code)
            raise SchemaRetrievalError(database_id, response.status_code, response.text)
        try:
            data = response.json()
        except ValueError as exc:
            raise SchemaRetrievalError(database_id, response.status_code, response.text) from exc
        return data if isinstance(data, dict) else {}

    def create_page(self, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            response = self._client.post("/pages", json=payload)
        except httpx.HTTPError as exc:
            logger.error("Notion page request failed before a response: %s", exc.__class__.__name__)
            raise WriteFailure(None, str(exc)) from exc
        if not response.is_success:
            logger.error("Notion page creation failed with status %s", response.status_code)
            raise WriteFailure(response.status_code, response.text)
        try:
            data = response.json()
        except ValueError as exc:
            raise WriteFailure(response.status_code, response.text) from exc
        return data if isinstance(data, dict) else {}
