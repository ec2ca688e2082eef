"""Whoosh-backed search backend.

Keeps one Whoosh index per search index, either on disk (one directory per
index below ``path``) or in RAM when no path is given. Item values arrive
already processed by the pipeline, so the text analyzer does no stop-word
filtering of its own.
"""

from __future__ import annotations

import logging
import shutil
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from whoosh import scoring
from whoosh.analysis import StemmingAnalyzer
from whoosh.fields import BOOLEAN, DATETIME, ID, KEYWORD, NUMERIC, TEXT, Schema
from whoosh.filedb.filestore import FileStorage, RamStorage, Storage
from whoosh.index import EmptyIndexError, LockError
from whoosh.index import Index as WhooshIndex
from whoosh.qparser import MultifieldParser, OrGroup
from whoosh.query import And, Every, Or, Term
from whoosh.writing import IndexingError

from searchbridge.backends.base_backend import BaseBackend
from searchbridge.entities import Index
from searchbridge.exceptions import BackendError
from searchbridge.items import ACCESS_GRANTS_FIELD, FieldType, Item
from searchbridge.query import Query, ResultItem, ResultSet

logger = logging.getLogger(__name__)

ID_FIELD = "id"


def _make_schema(index: Index) -> Schema:
    analyzer = StemmingAnalyzer(stoplist=None)
    fields: Dict[str, Any] = {
        ID_FIELD: ID(stored=True, unique=True),
        ACCESS_GRANTS_FIELD: KEYWORD(stored=True, scorable=False),
    }
    for name, f in index.fields.items():
        if not f.indexed or name in fields:
            continue
        if f.fulltext:
            fields[name] = TEXT(stored=True, analyzer=analyzer)
        elif f.type is FieldType.INTEGER:
            fields[name] = NUMERIC(stored=True, numtype=int, bits=64, signed=True)
        elif f.type is FieldType.BOOLEAN:
            fields[name] = BOOLEAN(stored=True)
        elif f.type is FieldType.DATE:
            fields[name] = DATETIME(stored=True)
        else:
            fields[name] = ID(stored=True)
    return Schema(**fields)


def _signature(schema: Schema) -> List[Tuple[str, str]]:
    return sorted((name, type(schema[name]).__name__) for name in schema.names())


def _first(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _to_doc(schema: Schema, item: Item) -> Dict[str, Any]:
    doc: Dict[str, Any] = {ID_FIELD: str(item.id)}
    for name in schema.names():
        if name == ID_FIELD or name not in item.fields:
            continue
        value = item.fields[name]
        if value is None or value == []:
            continue
        field = schema[name]
        if isinstance(field, NUMERIC):
            doc[name] = int(_first(value))
        elif isinstance(field, BOOLEAN):
            doc[name] = bool(_first(value))
        elif isinstance(field, DATETIME):
            v = _first(value)
            doc[name] = datetime.fromisoformat(v) if isinstance(v, str) else v
        elif isinstance(value, list):
            doc[name] = " ".join(str(v) for v in value)
        else:
            doc[name] = str(value)
    return doc


class WhooshBackend(BaseBackend):
    """Backend storing each index as a Whoosh index."""

    def __init__(self, path: Optional[Union[str, Path]] = None, *, limitmb: int = 64) -> None:
        self.path = Path(path) if path else None
        self.limitmb = limitmb
        self._ram: Dict[str, RamStorage] = {}

    def __repr__(self) -> str:
        return f"WhooshBackend(path={str(self.path) if self.path else None!r})"

    # ----- Storage helpers -----

    def _dir(self, index_id: str) -> Path:
        assert self.path is not None
        return self.path / index_id

    def _storage(self, index_id: str, *, create: bool) -> Optional[Storage]:
        if self.path is None:
            if index_id not in self._ram and create:
                self._ram[index_id] = RamStorage()
            return self._ram.get(index_id)
        directory = self._dir(index_id)
        if not directory.exists() and not create:
            return None
        return FileStorage(str(directory)).create()

    def _exists(self, index_id: str) -> bool:
        storage = self._storage(index_id, create=False)
        return storage is not None and storage.index_exists()

    def _open(self, index: Index) -> WhooshIndex:
        storage = self._storage(index.id, create=False)
        if storage is None or not storage.index_exists():
            raise BackendError(f"Index {index.id!r} is not registered with this backend")
        return storage.open_index()

    @contextmanager
    def _errors(self, action: str, index_id: str) -> Iterator[None]:
        try:
            yield
        except (OSError, EmptyIndexError, LockError, IndexingError) as e:
            raise BackendError(f"Failed to {action} for index {index_id!r}: {e}") from e

    # ----- Index management -----

    def add_index(self, index: Index) -> None:
        with self._errors("add index", index.id):
            if self._exists(index.id):
                logger.debug("Index %s already registered", index.id)
                return
            storage = self._storage(index.id, create=True)
            assert storage is not None
            storage.create_index(_make_schema(index))
            logger.info("Registered index %s", index.id)

    def update_index(self, index: Index, original: Optional[Index] = None) -> None:
        with self._errors("update index", index.id):
            if not self._exists(index.id):
                self.add_index(index)
                return
            schema = _make_schema(index)
            if original is not None and original.fields == index.fields:
                return
            if _signature(self._open(index).schema) == _signature(schema):
                return
            storage = self._storage(index.id, create=True)
            assert storage is not None
            # Whoosh cannot retype fields in place; items must be reindexed.
            storage.create_index(schema)
            logger.warning("Schema of index %s changed; stored items were cleared", index.id)

    def remove_index(self, index: Union[Index, str]) -> None:
        index_id = index.id if isinstance(index, Index) else str(index)
        with self._errors("remove index", index_id):
            if self.path is None:
                self._ram.pop(index_id, None)
            elif self._dir(index_id).exists():
                shutil.rmtree(self._dir(index_id))
            logger.info("Removed index %s", index_id)

    # ----- Items -----

    def index_items(self, index: Index, items: Iterable[Item]) -> List[str]:
        items = list(items)
        if not items:
            return []
        with self._errors("index items", index.id):
            if not self._exists(index.id):
                self.add_index(index)
            ix = self._open(index)
            with ix.writer(limitmb=self.limitmb) as writer:
                for item in items:
                    writer.update_document(**_to_doc(ix.schema, item))
        return [str(item.id) for item in items]

    def delete_items(self, index: Index, ids: Iterable[str]) -> None:
        ids = [str(i) for i in ids]
        with self._errors("delete items", index.id):
            if not ids or not self._exists(index.id):
                return
            with self._open(index).writer() as writer:
                for item_id in ids:
                    writer.delete_by_term(ID_FIELD, item_id)

    def delete_all_index_items(self, index: Index) -> None:
        with self._errors("delete all items", index.id):
            if not self._exists(index.id):
                return
            schema = self._open(index).schema
            storage = self._storage(index.id, create=True)
            assert storage is not None
            storage.create_index(schema)

    # ----- Search -----

    def _filter(self, query: Query, schema: Schema) -> Optional[Any]:
        groups = []
        for group in query.conditions:
            terms = [Term(c.field, c.value) for c in group.conditions if c.field in schema]
            groups.append(Or(terms))
        return And(groups) if groups else None

    def search(self, query: Query) -> ResultSet:
        with self._errors("search", query.index.id):
            ix = self._open(query.index)
            with ix.searcher(weighting=scoring.BM25F()) as searcher:
                fields = [n for n in query.index.fulltext_fields() if n in ix.schema]
                if query.keys and query.keys.strip() and fields:
                    parser = MultifieldParser(fields, schema=ix.schema, group=OrGroup)
                    q = parser.parse(query.keys)
                else:
                    q = Every()
                limit = max(1, int(query.limit))
                offset = max(0, int(query.offset))
                results = searcher.search(q, limit=offset + limit, filter=self._filter(query, ix.schema))
                out = ResultSet(result_count=len(results))
                for hit in results[offset : offset + limit]:
                    stored = dict(hit.fields())
                    item_id = str(stored.pop(ID_FIELD, ""))
                    out.items.append(ResultItem(id=item_id, score=float(hit.score or 0.0), fields=stored))
        return out
