from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable


logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 5 * 60


@dataclass(frozen=True)
class SchemaEntry:
    property_types: dict[str, str]
    expires_at: float


def extract_property_types(database: Any) -> dict[str, str]:
    """Reduce a retrieved database to ``{property name: property type}``."""
    source = database.get("properties") if isinstance(database, dict) else None
    if not isinstance(source, dict):
        return {}
    property_types: dict[str, str] = {}
    for name, definition in source.items():
        if not isinstance(definition, dict):
            continue
        prop_type = definition.get("type")
        if isinstance(prop_type, str):
            property_types[str(name)] = prop_type
    return property_types


class CollectionSchemaCache:
    """Per-collection property type maps with a fixed time-to-live.

    Concurrent misses for the same collection each fetch; the last store wins.
    Entries are never invalidated explicitly, so a schema edited upstream can
    be misreported for up to one TTL.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, SchemaEntry] = {}

    def get_property_types(
        self,
        collection_id: str,
        retrieve: Callable[[str], dict[str, Any]],
    ) -> dict[str, str]:
        now = self._clock()
        entry = self._entries.get(collection_id)
        if entry is not None and now < entry.expires_at:
            logger.debug("Schema cache hit for %s", collection_id)
            return dict(entry.property_types)

        logger.debug("Schema cache miss for %s", collection_id)
        property_types = extract_property_types(retrieve(collection_id))
        self._entries[collection_id] = SchemaEntry(
            property_types=property_types,
            expires_at=now + self.ttl_seconds,
        )
        return dict(property_types)

    def peek(self, collection_id: str) -> SchemaEntry | None:
        return self._entries.get(collection_id)
