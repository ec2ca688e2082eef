"""Abstract backend interface for indexing and querying items.

Defines the surface the task queue and search service rely on, enabling
extensibility and testability via a common contract. Every state-changing
operation must be safely repeatable, since queued tasks may be delivered more
than once.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Iterable, List, Optional, Union

if TYPE_CHECKING:
    from searchbridge.entities import Index
    from searchbridge.items import Item
    from searchbridge.query import Query, ResultSet


class BaseBackend(ABC):
    """Abstract interface for search backend implementations.

    Implementations raise `searchbridge.exceptions.BackendError` on failure.
    """

    @abstractmethod
    def add_index(self, index: "Index") -> None:
        """Register an index with the backend. No-op if already registered."""

    @abstractmethod
    def update_index(self, index: "Index", original: Optional["Index"] = None) -> None:
        """Reconcile backend schema/config for ``index``.

        ``original`` is the index state before the change, when known.
        """

    @abstractmethod
    def remove_index(self, index: Union["Index", str]) -> None:
        """Unregister an index (object or raw id). No-op if unknown."""

    @abstractmethod
    def index_items(self, index: "Index", items: Iterable["Item"]) -> List[str]:
        """Index or reindex a batch of processed items; return the indexed ids."""

    @abstractmethod
    def delete_items(self, index: "Index", ids: Iterable[str]) -> None:
        """Remove items from the index by their ids."""

    @abstractmethod
    def delete_all_index_items(self, index: "Index") -> None:
        """Remove every item of the index."""

    @abstractmethod
    def search(self, query: "Query") -> "ResultSet":
        """Execute a preprocessed query and return raw results."""
        raise NotImplementedError
