"""searchbridge MCP server entrypoint using FastMCP.

Exposes search, indexing and task queue tools.
Run with:
  - searchbridge-mcp
  - or: python -m searchbridge.mcp.server (ensure PYTHONPATH includes ./src)
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import AsyncIterator, Optional

from fastmcp import FastMCP

from searchbridge.backends import create_backend
from searchbridge.config import Settings, load_settings
from searchbridge.entities import InMemoryEntityStore, load_entity_file
from searchbridge.mcp.tools import register_search_tools, register_task_tools
from searchbridge.service import SearchService
from searchbridge.sources.access import SqlAccessControlStore
from searchbridge.storage.database import get_engine, init_db, make_session_factory
from searchbridge.tasks import TaskManager, TaskScheduler

logger = logging.getLogger(__name__)


class AppState:
    """Application state shared by MCP tools."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.entities = InMemoryEntityStore()
        self.tasks: Optional[TaskManager] = None
        self.service: Optional[SearchService] = None
        self.scheduler: Optional[TaskScheduler] = None

    def init_services(self) -> None:
        """Initialize storage, entities and services from configuration."""
        engine = get_engine(self.settings.database.url, echo=self.settings.database.echo)
        init_db(engine)
        factory = make_session_factory(engine)

        if self.settings.app.entities_file:
            self.entities = load_entity_file(
                self.settings.app.entities_file,
                lambda cfg: create_backend(cfg, self.settings.backend),
            )
        self.tasks = TaskManager(factory, self.entities)
        self.service = SearchService(self.entities, self.tasks, access_store=SqlAccessControlStore(factory))

    def init_scheduler(self) -> None:
        assert self.tasks is not None
        self.scheduler = TaskScheduler()
        self.scheduler.schedule_drain(
            self.tasks, interval=timedelta(seconds=self.settings.tasks.drain_interval_seconds)
        )


# Global state and server instance
_state: Optional[AppState] = None


@asynccontextmanager
async def _lifespan(server: FastMCP) -> AsyncIterator[None]:
    # AsyncIOScheduler needs the running event loop
    scheduler = _state.scheduler if _state is not None else None
    if scheduler is not None:
        scheduler.start()
    try:
        yield
    finally:
        if scheduler is not None:
            scheduler.shutdown(wait=False)


mcp = FastMCP("searchbridge MCP Server", lifespan=_lifespan)


# ----- Tools -----

@mcp.tool
def health() -> str:
    """Simple health check tool."""
    return "ok"


# ----- Entrypoint -----

def main() -> None:
    """Initialize state and run the MCP server."""
    global _state
    settings = load_settings()
    logging.basicConfig(
        level=settings.app.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _state = AppState(settings)
    _state.init_services()
    assert _state.tasks is not None
    if settings.tasks.drain_on_startup:
        result = _state.tasks.drain()
        if result.any_failed:
            logger.warning("Startup drain left failing servers: %s", sorted(result.failing_servers))
    _state.init_scheduler()
    # Register tools
    register_search_tools(mcp, get_state=lambda: _state)
    register_task_tools(mcp, get_state=lambda: _state)

    # Choose transport based on configuration: stdio (default), http, or sse
    transport = settings.app.transport
    if transport in ("http", "sse"):
        mcp.run(transport=transport, host=settings.app.host, port=settings.app.port)
    else:
        mcp.run()


if __name__ == "__main__":  # pragma: no cover
    main()
