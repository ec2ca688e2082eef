"""Base source abstractions used by the pipeline and the search service.

A `ContentSource` presents a stable interface for loading items, and an
`AccessControlStore` answers view permission questions for those items.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, FrozenSet, Iterable, List, Tuple

if TYPE_CHECKING:
    from searchbridge.items import Item


@dataclass(frozen=True, slots=True)
class Viewer:
    """An account viewing content.

    ``grants`` are the (realm, gid) pairs the account holds. Id 0 is the
    anonymous viewer.
    """

    id: int = 0
    grants: FrozenSet[Tuple[str, str]] = field(default_factory=frozenset)
    bypass_access: bool = False

    @property
    def is_anonymous(self) -> bool:
        return self.id == 0


class ContentSource(ABC):
    """Abstract content source enumerating and loading items."""

    @abstractmethod
    def item_ids(self) -> List[str]:
        """Return ids of all items the source can provide."""
        raise NotImplementedError

    @abstractmethod
    def load_items(self, ids: Iterable[str]) -> List["Item"]:
        """Load items by id, silently omitting ids that no longer exist."""
        raise NotImplementedError


class AccessControlStore(ABC):
    """Abstract access-control lookup for items."""

    @abstractmethod
    def anonymous_viewer(self) -> Viewer:
        """Return the default (anonymous) viewer."""
        raise NotImplementedError

    @abstractmethod
    def can_view(self, item: "Item", viewer: Viewer) -> bool:
        """Return True if ``viewer`` may view ``item``."""
        raise NotImplementedError

    @abstractmethod
    def view_grants(self, item_id: str) -> List[Tuple[str, str]]:
        """Return (realm, gid) pairs granting view access to the item.

        Includes grants stored for the wildcard item id.
        """
        raise NotImplementedError
