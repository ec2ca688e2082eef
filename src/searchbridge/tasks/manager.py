"""Durable task queue for backend operations.

Backend-affecting changes that could not be applied right away are stored as
rows in the ``tasks`` table and executed later by `TaskManager.drain()`.

Tasks for one server run strictly in insertion order; if one fails, the
remaining tasks of that server stay queued until the next drain, since later
tasks commonly depend on earlier ones. Servers are independent of each other.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Set, Tuple, Union

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from searchbridge.entities import EntityStore, Index, Server
from searchbridge.exceptions import BackendError, StorageError
from searchbridge.storage.database import session_scope
from searchbridge.storage.models import Task

logger = logging.getLogger(__name__)

ServerRef = Union[Server, str]
IndexRef = Union[Index, str]


class TaskType(str, Enum):
    ADD_INDEX = "addIndex"
    UPDATE_INDEX = "updateIndex"
    REMOVE_INDEX = "removeIndex"
    DELETE_ITEMS = "deleteItems"
    DELETE_ALL_INDEX_ITEMS = "deleteAllIndexItems"


class TaskOutcome(str, Enum):
    EXECUTED = "executed"
    FAILED = "failed"
    # The task removed its index and purged the other tasks of that index.
    PURGED = "purged"


@dataclass(frozen=True)
class DrainResult:
    """Outcome of one drain pass."""

    executed: Tuple[int, ...] = ()
    failing_servers: FrozenSet[str] = frozenset()
    unresolved_servers: FrozenSet[str] = frozenset()
    skipped_servers: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def any_failed(self) -> bool:
        """True when at least one server had a failing task."""
        return bool(self.failing_servers)

    @property
    def ok(self) -> bool:
        return not self.failing_servers

    def to_dict(self) -> Dict[str, Any]:
        return {
            "any_failed": self.any_failed,
            "failing_servers": sorted(self.failing_servers),
            "unresolved_servers": sorted(self.unresolved_servers),
            "skipped_servers": sorted(self.skipped_servers),
            "executed": list(self.executed),
        }


def _server_id(server: ServerRef) -> str:
    return server.id if isinstance(server, Server) else str(server)


def _index_id(index: Optional[IndexRef]) -> Optional[str]:
    if index is None:
        return None
    return index.id if isinstance(index, Index) else str(index)


class TaskManager:
    """Stores and executes server tasks."""

    def __init__(self, session_factory: sessionmaker[Session], entities: EntityStore) -> None:
        self._factory = session_factory
        self._entities = entities

    # ----- Task log -----

    def enqueue(
        self,
        server: ServerRef,
        type: TaskType | str,
        index: Optional[IndexRef] = None,
        data: Any = None,
    ) -> Task:
        """Append a task for ``server``. ``data`` must be JSON-serializable."""
        task = Task(
            server_id=_server_id(server),
            type=TaskType(type).value,
            index_id=_index_id(index),
            data=data,
        )
        try:
            with session_scope(self._factory) as session:
                session.add(task)
                session.flush()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to store {task!r}: {e}") from e
        logger.debug("Queued %r", task)
        return task

    def delete(
        self,
        ids: Optional[List[int]] = None,
        server: Optional[ServerRef] = None,
        index: Optional[IndexRef] = None,
    ) -> int:
        """Delete tasks matching every given filter; return the number deleted.

        With no filters at all, every task is deleted.
        """
        stmt = delete(Task)
        if ids is not None:
            if not ids:
                return 0
            stmt = stmt.where(Task.id.in_(ids))
        if server is not None:
            stmt = stmt.where(Task.server_id == _server_id(server))
        if index is not None:
            stmt = stmt.where(Task.index_id == _index_id(index))
        try:
            with session_scope(self._factory) as session:
                return session.execute(stmt).rowcount or 0
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to delete tasks: {e}") from e

    def pending(self, server: Optional[ServerRef] = None) -> List[Task]:
        """Return queued tasks ordered by server, then insertion order."""
        stmt = select(Task).order_by(Task.server_id, Task.id)
        if server is not None:
            stmt = stmt.where(Task.server_id == _server_id(server))
        with session_scope(self._factory) as session:
            return list(session.scalars(stmt).all())

    def count(self, server: Optional[ServerRef] = None) -> int:
        stmt = select(func.count(Task.id))
        if server is not None:
            stmt = stmt.where(Task.server_id == _server_id(server))
        with session_scope(self._factory) as session:
            return int(session.scalar(stmt) or 0)

    # ----- Execution -----

    def drain(self, server: Optional[ServerRef] = None) -> DrainResult:
        """Execute queued tasks, optionally only those of one server.

        A backend error marks the task's server as failing: its later tasks
        are left untouched for the next drain, other servers continue.
        Tasks of disabled or unresolvable servers stay queued. Executed tasks
        are deleted in one batch at the end.
        """
        if server is not None:
            if isinstance(server, str):
                resolved = self._entities.load_server(server)
                if resolved is None:
                    logger.warning("Cannot drain tasks of unknown server %s", server)
                    return DrainResult(unresolved_servers=frozenset({server}))
                server = resolved
            if not server.enabled:
                return DrainResult(skipped_servers=frozenset({server.id}))

        tasks = self.pending(server)
        executed: List[int] = []
        failing: Set[str] = set()
        unresolved: Set[str] = set()
        skipped: Set[str] = set()
        purged: Set[Tuple[str, Optional[str]]] = set()
        servers: Dict[str, Optional[Server]] = {}

        for task in tasks:
            if task.server_id in failing or task.server_id in unresolved or task.server_id in skipped:
                continue
            if (task.server_id, task.index_id) in purged:
                continue
            if task.server_id not in servers:
                servers[task.server_id] = self._entities.load_server(task.server_id)
            current = servers[task.server_id]
            if current is None:
                logger.warning("Server %s no longer exists; leaving its tasks queued", task.server_id)
                unresolved.add(task.server_id)
                continue
            if not current.enabled:
                skipped.add(task.server_id)
                continue

            outcome = self._execute(task, current)
            if outcome is TaskOutcome.FAILED:
                failing.add(task.server_id)
            else:
                if outcome is TaskOutcome.PURGED:
                    purged.add((task.server_id, task.index_id))
                executed.append(task.id)

        if executed:
            self.delete(executed)
        if failing:
            logger.warning("Tasks failed for server(s): %s", ", ".join(sorted(failing)))
        return DrainResult(
            executed=tuple(executed),
            failing_servers=frozenset(failing),
            unresolved_servers=frozenset(unresolved),
            skipped_servers=frozenset(skipped),
        )

    def _execute(self, task: Task, server: Server) -> TaskOutcome:
        index = self._entities.load_index(task.index_id) if task.index_id else None
        backend = server.backend
        try:
            if task.type == TaskType.ADD_INDEX:
                if index is not None:
                    backend.add_index(index)
            elif task.type == TaskType.UPDATE_INDEX:
                if index is not None:
                    original = Index.model_validate(task.data) if task.data else None
                    backend.update_index(index, original)
            elif task.type == TaskType.REMOVE_INDEX:
                if task.index_id:
                    backend.remove_index(index if index is not None else task.index_id)
                    self.delete(server=server, index=task.index_id)
                    return TaskOutcome.PURGED
            elif task.type == TaskType.DELETE_ITEMS:
                if index is not None and not index.read_only:
                    backend.delete_items(index, list(task.data or []))
            elif task.type == TaskType.DELETE_ALL_INDEX_ITEMS:
                if index is not None and not index.read_only:
                    backend.delete_all_index_items(index)
            else:
                logger.error("Unknown task type %r for %r; dropping it", task.type, task)
        except BackendError:
            logger.exception("Task %r failed on server %s", task, server.id)
            return TaskOutcome.FAILED
        if task.index_id and index is None:
            logger.debug("Index %s no longer exists; %r completed without effect", task.index_id, task)
        return TaskOutcome.EXECUTED
