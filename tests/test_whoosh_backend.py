from pathlib import Path

import pytest

from helpers import make_index
from searchbridge.backends import WhooshBackend, create_backend
from searchbridge.entities import Index
from searchbridge.exceptions import BackendError, ConfigError
from searchbridge.items import ACCESS_GRANTS_FIELD, Field, FieldType, Item
from searchbridge.query import Condition, ConditionGroup, Query


@pytest.fixture(params=["ram", "disk"])
def backend(request: pytest.FixtureRequest, tmp_path: Path) -> WhooshBackend:
    if request.param == "ram":
        return WhooshBackend()
    return WhooshBackend(tmp_path / "indexes")


@pytest.fixture
def index() -> Index:
    return make_index("articles")


def _items():
    return [
        Item("1", {"title": ["quick", "brown", "fox"], "body": "jumps", "type": "article"}),
        Item("2", {"title": "lazy dog", "body": ["sleeps", "all", "day"], "type": "page"}),
        Item("3", {"title": "fox and dog", "body": "friends", "type": "article"}),
    ]


def _ids(backend: WhooshBackend, index: Index, keys=None, **kwargs):
    results = backend.search(Query(index=index, keys=keys, **kwargs))
    return sorted(r.id for r in results.items)


def test_add_index_is_idempotent(backend: WhooshBackend, index: Index) -> None:
    backend.add_index(index)
    backend.index_items(index, _items())
    backend.add_index(index)

    assert _ids(backend, index) == ["1", "2", "3"]


def test_index_and_search(backend: WhooshBackend, index: Index) -> None:
    backend.add_index(index)
    assert backend.index_items(index, _items()) == ["1", "2", "3"]

    assert _ids(backend, index, "fox") == ["1", "3"]
    assert _ids(backend, index, "sleeps") == ["2"]
    results = backend.search(Query(index=index, keys="fox"))
    assert results.result_count == 2
    assert results.items[0].fields["type"] == "article"


def test_reindexing_replaces_documents(backend: WhooshBackend, index: Index) -> None:
    backend.index_items(index, _items())
    backend.index_items(index, [Item("1", {"title": "cat"})])

    assert _ids(backend, index, "fox") == ["3"]
    assert _ids(backend, index, "cat") == ["1"]
    assert backend.search(Query(index=index)).result_count == 3


def test_limit_and_offset(backend: WhooshBackend, index: Index) -> None:
    backend.index_items(index, _items())

    page = backend.search(Query(index=index, limit=2, offset=2))

    assert page.result_count == 3
    assert len(page.items) == 1


def test_delete_items(backend: WhooshBackend, index: Index) -> None:
    backend.index_items(index, _items())

    backend.delete_items(index, ["1", "missing"])
    backend.delete_items(index, [])

    assert _ids(backend, index) == ["2", "3"]


def test_delete_all_index_items(backend: WhooshBackend, index: Index) -> None:
    backend.index_items(index, _items())

    backend.delete_all_index_items(index)
    backend.delete_all_index_items(index)

    assert _ids(backend, index) == []


def test_remove_index(backend: WhooshBackend, index: Index) -> None:
    backend.index_items(index, _items())

    backend.remove_index(index)
    backend.remove_index("articles")

    with pytest.raises(BackendError):
        backend.search(Query(index=index))


def test_operations_on_unknown_index_are_noops(backend: WhooshBackend, index: Index) -> None:
    backend.delete_items(index, ["1"])
    backend.delete_all_index_items(index)
    backend.remove_index(index)

    with pytest.raises(BackendError):
        backend.search(Query(index=index, keys="fox"))


def test_update_index_rebuilds_on_schema_change(backend: WhooshBackend, index: Index) -> None:
    backend.index_items(index, _items())
    original = index.model_copy(deep=True)

    # Unchanged fields keep stored items
    backend.update_index(index, original)
    assert _ids(backend, index) == ["1", "2", "3"]

    index.fields["rank"] = Field(name="rank", type=FieldType.INTEGER)
    backend.update_index(index, original)

    assert _ids(backend, index) == []
    backend.index_items(index, [Item("9", {"title": "fox", "rank": 3})])
    assert backend.search(Query(index=index, keys="fox")).items[0].fields["rank"] == 3


def test_update_index_registers_missing_index(backend: WhooshBackend, index: Index) -> None:
    backend.update_index(index)
    assert _ids(backend, index) == []


def test_access_grant_conditions_filter_results(backend: WhooshBackend, index: Index) -> None:
    items = _items()
    items[0].fields[ACCESS_GRANTS_FIELD] = ["node_access__all"]
    items[1].fields[ACCESS_GRANTS_FIELD] = ["realm1:1"]
    items[2].fields[ACCESS_GRANTS_FIELD] = ["realm2:5"]
    backend.index_items(index, items)

    def visible(*tokens: str):
        group = ConditionGroup([Condition(ACCESS_GRANTS_FIELD, t) for t in tokens])
        return _ids(backend, index, conditions=[group])

    assert visible("node_access__all") == ["1"]
    assert visible("node_access__all", "realm1:1") == ["1", "2"]
    assert visible("realm2:5") == ["3"]


def test_create_backend(tmp_path: Path) -> None:
    backend = create_backend({"type": "whoosh", "path": str(tmp_path)})
    assert isinstance(backend, WhooshBackend)
    assert backend.path == tmp_path

    with pytest.raises(ConfigError):
        create_backend({"type": "solr"})
