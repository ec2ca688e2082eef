"""Shared test doubles and builders."""

from typing import Any, Dict, Iterable, List, Optional, Set, Tuple, Union

from searchbridge.backends.base_backend import BaseBackend
from searchbridge.entities import Index
from searchbridge.exceptions import BackendError
from searchbridge.items import Field, FieldType, Item
from searchbridge.query import Query, ResultSet


class RecordingBackend(BaseBackend):
    """Backend double recording every call; raises for configured operations."""

    def __init__(self) -> None:
        self.calls: List[Tuple[Any, ...]] = []
        self.fail_on: Set[Union[str, Tuple[str, str]]] = set()
        self.indexed: Dict[str, List[Item]] = {}
        self.queries: List[Query] = []

    def _record(self, name: str, index_id: str, *args: Any) -> None:
        self.calls.append((name, index_id, *args))
        if name in self.fail_on or (name, index_id) in self.fail_on:
            raise BackendError(f"{name} failed for {index_id}")

    def add_index(self, index: Index) -> None:
        self._record("add_index", index.id)

    def update_index(self, index: Index, original: Optional[Index] = None) -> None:
        self._record("update_index", index.id, original)

    def remove_index(self, index: Union[Index, str]) -> None:
        self._record("remove_index", index.id if isinstance(index, Index) else index)

    def index_items(self, index: Index, items: Iterable[Item]) -> List[str]:
        items = list(items)
        self._record("index_items", index.id, [i.id for i in items])
        self.indexed.setdefault(index.id, []).extend(items)
        return [i.id for i in items]

    def delete_items(self, index: Index, ids: Iterable[str]) -> None:
        self._record("delete_items", index.id, list(ids))

    def delete_all_index_items(self, index: Index) -> None:
        self._record("delete_all_index_items", index.id)

    def search(self, query: Query) -> ResultSet:
        self._record("search", query.index.id, query.keys)
        self.queries.append(query)
        return ResultSet()


def make_index(index_id: str, server_id: str = "s1", **kwargs: Any) -> Index:
    fields = kwargs.pop(
        "fields",
        {
            "title": Field(name="title", type=FieldType.TEXT),
            "body": Field(name="body", type=FieldType.TEXT),
            "type": Field(name="type", type=FieldType.STRING),
        },
    )
    return Index(id=index_id, server_id=server_id, fields=fields, **kwargs)

