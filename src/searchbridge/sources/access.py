"""SQLAlchemy-backed access-control store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, List, Tuple

from sqlalchemy import delete, or_, select
from sqlalchemy.orm import Session, sessionmaker

from searchbridge.sources.base import AccessControlStore, Viewer
from searchbridge.storage.database import session_scope
from searchbridge.storage.models import AccessGrant

if TYPE_CHECKING:
    from searchbridge.items import Item

# Grants stored for this item id apply to every item.
WILDCARD_ITEM_ID = "0"
# Realm and gid held by every viewer, including anonymous ones.
ALL_REALM = ("all", "0")


class SqlAccessControlStore(AccessControlStore):
    """Access store reading view grants from the ``access_grants`` table.

    A viewer may view an item when the item is published (its ``status``
    field is not False) and one of the viewer's grants matches a view grant of
    the item. Every viewer holds the ``all:0`` grant.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._factory = session_factory

    def anonymous_viewer(self) -> Viewer:
        return Viewer(id=0, grants=frozenset({ALL_REALM}))

    def can_view(self, item: "Item", viewer: Viewer) -> bool:
        if viewer.bypass_access:
            return True
        if item.get("status") is False and not (viewer.id and item.get("author") == viewer.id):
            return False
        held = set(viewer.grants) | {ALL_REALM}
        return any(pair in held for pair in self.view_grants(item.id))

    def view_grants(self, item_id: str) -> List[Tuple[str, str]]:
        stmt = (
            select(AccessGrant.realm, AccessGrant.gid)
            .where(or_(AccessGrant.item_id == str(item_id), AccessGrant.item_id == WILDCARD_ITEM_ID))
            .where(AccessGrant.grant_view.is_(True))
            .order_by(AccessGrant.id)
        )
        with session_scope(self._factory) as session:
            return [(realm, gid) for realm, gid in session.execute(stmt).all()]

    def set_grants(self, item_id: str, grants: Iterable[Tuple[str, str]]) -> None:
        """Replace the view grants stored for an item."""
        with session_scope(self._factory) as session:
            session.execute(delete(AccessGrant).where(AccessGrant.item_id == str(item_id)))
            session.add_all(
                AccessGrant(item_id=str(item_id), realm=realm, gid=str(gid), grant_view=True)
                for realm, gid in grants
            )
