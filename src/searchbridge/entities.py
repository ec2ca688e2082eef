"""Servers, indexes, and the configuration store that resolves them."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional

from pydantic import BaseModel, Field as PydanticField, ValidationError

from searchbridge.exceptions import ConfigError
from searchbridge.items import Field

logger = logging.getLogger(__name__)


class ProcessorSettings(BaseModel):
    """Weight and options for one enabled processor on an index."""

    weight: Optional[int] = None
    options: Dict[str, Any] = PydanticField(default_factory=dict)


class Index(BaseModel):
    """A named collection of items targeting one server."""

    id: str
    server_id: str
    name: Optional[str] = None
    datasource: str = "default"
    fields: Dict[str, Field] = PydanticField(default_factory=dict)
    processors: Dict[str, ProcessorSettings] = PydanticField(default_factory=dict)
    read_only: bool = False
    enabled: bool = True

    def fulltext_fields(self) -> list[str]:
        return [name for name, f in self.fields.items() if f.indexed and f.fulltext]

    def snapshot(self) -> Dict[str, Any]:
        """Return a JSON-compatible copy used as an updateIndex task payload."""
        return self.model_dump(mode="json")


class Server:
    """A configured connection to one backend instance."""

    def __init__(self, id: str, backend: Any, *, enabled: bool = True, name: Optional[str] = None) -> None:
        self.id = id
        self.backend = backend
        self.enabled = enabled
        self.name = name or id

    def __repr__(self) -> str:
        return f"Server(id={self.id!r}, enabled={self.enabled!r})"


class EntityStore(ABC):
    """Configuration store resolving servers and indexes by id."""

    @abstractmethod
    def load_server(self, server_id: str) -> Optional[Server]:
        """Return the server, or None if it no longer exists."""

    @abstractmethod
    def load_index(self, index_id: str) -> Optional[Index]:
        """Return the index, or None if it no longer exists."""


class InMemoryEntityStore(EntityStore):
    """Dictionary-backed entity store."""

    def __init__(self, servers: Iterable[Server] = (), indexes: Iterable[Index] = ()) -> None:
        self.servers: Dict[str, Server] = {s.id: s for s in servers}
        self.indexes: Dict[str, Index] = {i.id: i for i in indexes}

    def load_server(self, server_id: str) -> Optional[Server]:
        return self.servers.get(server_id)

    def load_index(self, index_id: str) -> Optional[Index]:
        return self.indexes.get(index_id)

    def add_server(self, server: Server) -> None:
        self.servers[server.id] = server

    def add_index(self, index: Index) -> None:
        self.indexes[index.id] = index

    def remove_index(self, index_id: str) -> None:
        self.indexes.pop(index_id, None)


def load_entity_file(path: str | Path, backend_factory: Callable[[Dict[str, Any]], Any]) -> InMemoryEntityStore:
    """Build an entity store from a JSON file.

    Expected shape::

        {"servers": [{"id": "main", "enabled": true, "backend": {...}}],
         "indexes": [{"id": "content", "server_id": "main", "fields": {...}}]}

    ``backend_factory`` receives each server's ``backend`` mapping.
    """
    from searchbridge.processors import create_processor

    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Unable to read entity file {path}: {e}") from e

    store = InMemoryEntityStore()
    for s in raw.get("servers") or []:
        store.add_server(
            Server(
                str(s["id"]),
                backend_factory(dict(s.get("backend") or {})),
                enabled=bool(s.get("enabled", True)),
                name=s.get("name"),
            )
        )
    for i in raw.get("indexes") or []:
        # Field names may be given only as keys
        fields = {name: {"name": name, **(spec or {})} for name, spec in (i.get("fields") or {}).items()}
        try:
            index = Index.model_validate({**i, "fields": fields})
        except ValidationError as e:
            raise ConfigError(f"Invalid index definition {i.get('id')!r}: {e}") from e
        for processor_id, settings in index.processors.items():
            processor = create_processor(processor_id, settings)
            if processor.supports_index(index):
                processor.apply_required_fields(index)
        store.add_index(index)
    logger.info("Loaded %d server(s) and %d index(es) from %s", len(store.servers), len(store.indexes), path)
    return store
