"""Search service: indexing, searching, and backend state changes.

Index and search requests run the index's processor pipeline around the
backend call. Backend state changes are applied right away when possible and
otherwise recorded as tasks, so configuration changes never depend on the
backend being reachable.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, List, Optional

from searchbridge.entities import EntityStore, Index, Server
from searchbridge.exceptions import BackendError, SearchError
from searchbridge.items import Item
from searchbridge.processors import Pipeline
from searchbridge.query import Query, ResultSet
from searchbridge.sources.base import AccessControlStore, ContentSource, Viewer
from searchbridge.tasks.manager import TaskManager, TaskType

logger = logging.getLogger(__name__)


class SearchService:
    def __init__(
        self,
        entities: EntityStore,
        tasks: TaskManager,
        *,
        access_store: Optional[AccessControlStore] = None,
    ) -> None:
        self.entities = entities
        self.tasks = tasks
        self.access_store = access_store

    def _server(self, index: Index) -> Server:
        server = self.entities.load_server(index.server_id)
        if server is None:
            raise SearchError(f"Server {index.server_id!r} of index {index.id!r} does not exist")
        return server

    def pipeline(self, index: Index) -> Pipeline:
        return Pipeline.from_index(index, access_store=self.access_store)

    # ----- Indexing and searching -----

    def index_items(self, index: Index, items: Iterable[Item]) -> List[str]:
        """Process and index items; return the ids the backend accepted.

        Items removed by a processor are skipped without error.
        """
        if index.read_only or not index.enabled:
            logger.info("Index %s is read-only or disabled; nothing indexed", index.id)
            return []
        server = self._server(index)
        if not server.enabled:
            raise SearchError(f"Server {server.id!r} is disabled")
        items = list(items)
        remaining = self.pipeline(index).preprocess_index_items(index, items)
        skipped = len(items) - len(remaining)
        if skipped:
            logger.debug("%d item(s) skipped by processors for index %s", skipped, index.id)
        return server.backend.index_items(index, remaining.values())

    def index_source(self, index: Index, source: ContentSource, *, batch_size: int = 50) -> List[str]:
        """Load every item of ``source`` in batches and index it."""
        ids = source.item_ids()
        indexed: List[str] = []
        for start in range(0, len(ids), batch_size):
            indexed.extend(self.index_items(index, source.load_items(ids[start : start + batch_size])))
        return indexed

    def search(
        self,
        index: Index,
        keys: Optional[str],
        *,
        limit: int = 10,
        offset: int = 0,
        viewer: Optional[Viewer] = None,
    ) -> ResultSet:
        """Run a search through the pipeline and the index's backend."""
        server = self._server(index)
        if not server.enabled:
            raise SearchError(f"Server {server.id!r} is disabled")
        query = Query(index=index, keys=keys, limit=limit, offset=offset, viewer=viewer)
        pipeline = self.pipeline(index)
        ctx = pipeline.new_context(index)
        pipeline.preprocess_search_query(query, ctx)
        results = server.backend.search(query)
        pipeline.postprocess_search_results(results, query, ctx)
        return results

    # ----- Backend state changes -----

    def _dispatch(
        self,
        server: Server,
        type: TaskType,
        index: Index | str,
        call: Callable[[], Any],
        data: Any = None,
    ) -> bool:
        """Apply a backend change now, or queue it as a task.

        Pending tasks for the server are drained first so the new operation
        does not overtake older ones. Returns True if applied synchronously.
        """
        if server.enabled and self.tasks.count(server):
            self.tasks.drain(server)
        if not server.enabled or self.tasks.count(server):
            self.tasks.enqueue(server, type, index, data)
            return False
        try:
            call()
        except BackendError as e:
            logger.warning("%s on server %s failed, queued for later: %s", type.value, server.id, e)
            self.tasks.enqueue(server, type, index, data)
            return False
        return True

    def add_index(self, index: Index) -> bool:
        server = self._server(index)
        return self._dispatch(server, TaskType.ADD_INDEX, index, lambda: server.backend.add_index(index))

    def update_index(self, index: Index, original: Optional[Index] = None) -> bool:
        server = self._server(index)
        return self._dispatch(
            server,
            TaskType.UPDATE_INDEX,
            index,
            lambda: server.backend.update_index(index, original),
            data=original.snapshot() if original is not None else None,
        )

    def remove_index(self, index: Index) -> bool:
        server = self._server(index)
        return self._dispatch(server, TaskType.REMOVE_INDEX, index.id, lambda: server.backend.remove_index(index))

    def delete_items(self, index: Index, ids: Iterable[str]) -> bool:
        if index.read_only:
            return True
        server = self._server(index)
        ids = [str(i) for i in ids]
        return self._dispatch(
            server, TaskType.DELETE_ITEMS, index, lambda: server.backend.delete_items(index, ids), data=ids
        )

    def delete_all_index_items(self, index: Index) -> bool:
        if index.read_only:
            return True
        server = self._server(index)
        return self._dispatch(
            server, TaskType.DELETE_ALL_INDEX_ITEMS, index, lambda: server.backend.delete_all_index_items(index)
        )
