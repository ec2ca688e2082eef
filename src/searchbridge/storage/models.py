"""SQLAlchemy models for searchbridge storage.

Defines the durable task log and the item access grant table.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""


class Task(Base):
    """A pending backend operation for one server.

    The autoincrement id doubles as the insertion sequence number. Rows are
    never updated; they are deleted once executed.
    """

    __tablename__ = "tasks"
    __table_args__ = (Index("ix_tasks_server_id_id", "server_id", "id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    server_id: Mapped[str] = mapped_column(String(64))
    type: Mapped[str] = mapped_column(String(64))
    index_id: Mapped[Optional[str]] = mapped_column(String(64), default=None)
    data: Mapped[Optional[Any]] = mapped_column(JSON, default=None)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    def __repr__(self) -> str:
        return f"Task(id={self.id!r}, server_id={self.server_id!r}, type={self.type!r}, index_id={self.index_id!r})"


class AccessGrant(Base):
    """A (realm, gid) pair granting access to an item.

    An ``item_id`` of ``"0"`` applies to every item.
    """

    __tablename__ = "access_grants"
    __table_args__ = (Index("ix_access_grants_item_id", "item_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    item_id: Mapped[str] = mapped_column(String(255))
    realm: Mapped[str] = mapped_column(String(255))
    gid: Mapped[str] = mapped_column(String(255))

    grant_view: Mapped[bool] = mapped_column(Boolean, default=True)
    grant_update: Mapped[bool] = mapped_column(Boolean, default=False)
    grant_delete: Mapped[bool] = mapped_column(Boolean, default=False)
