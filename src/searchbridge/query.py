"""Search query and result containers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from searchbridge.entities import Index
from searchbridge.sources.base import Viewer


@dataclass(slots=True)
class Condition:
    field: str
    value: Any


@dataclass(slots=True)
class ConditionGroup:
    """Conditions joined by OR. Groups on a query are joined by AND."""

    conditions: List[Condition] = field(default_factory=list)
    tag: Optional[str] = None


@dataclass(slots=True)
class Query:
    """A search request against one index.

    ``keys`` is a plain string; no query grammar is defined beyond what the
    backend's parser accepts.
    """

    index: Index
    keys: Optional[str] = None
    limit: int = 10
    offset: int = 0
    viewer: Optional[Viewer] = None
    conditions: List[ConditionGroup] = field(default_factory=list)

    def add_condition_group(self, group: ConditionGroup) -> None:
        self.conditions.append(group)


@dataclass(slots=True)
class ResultItem:
    id: str
    score: float = 0.0
    fields: Dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ResultSet:
    result_count: int = 0
    items: List[ResultItem] = field(default_factory=list)
    # Search words dropped by processors, reported back to the user
    ignored: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "result_count": self.result_count,
            "items": [{"id": r.id, "score": r.score, "fields": dict(r.fields)} for r in self.items],
            "ignored": list(self.ignored),
            "warnings": list(self.warnings),
        }
