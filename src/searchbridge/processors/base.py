"""Abstract processor interface and the per-run pipeline context.

A processor declares which pipeline stages it takes part in. The default
hooks walk the selected fields of every item (or the query keys) and hand
each value to `process_field_value()` / `process()`, so simple processors
only need to override `process()`.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar, Dict, FrozenSet, List, Mapping, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, ValidationError

from searchbridge.exceptions import ConfigError
from searchbridge.items import Field, FieldType, Item

if TYPE_CHECKING:
    from searchbridge.entities import Index
    from searchbridge.query import Query, ResultSet
    from searchbridge.sources.base import AccessControlStore


class Stage(str, Enum):
    INDEX = "index"
    PREPROCESS_QUERY = "preprocess_query"
    POSTPROCESS_RESULTS = "postprocess_results"


class ProcessorOptions(BaseModel):
    """Options shared by all processors.

    ``fields`` restricts processing to the named index fields. When omitted,
    all fulltext fields are processed.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    fields: Optional[List[str]] = None


class RunContext:
    """State owned by a single pipeline run.

    Processors keep anything they compute once per run here (stop-word sets,
    the anonymous viewer, ignored words) instead of on themselves, so nothing
    leaks into the next run.
    """

    def __init__(self, index: "Index", *, access_store: Optional["AccessControlStore"] = None) -> None:
        self.index = index
        self.access_store = access_store
        self._state: Dict[str, Dict[str, Any]] = {}

    def state(self, processor_id: str) -> Dict[str, Any]:
        return self._state.setdefault(processor_id, {})


class Processor:
    """Base class for pipeline processors."""

    id: ClassVar[str]
    label: ClassVar[str] = ""
    default_weight: ClassVar[int] = 0
    stages: ClassVar[FrozenSet[Stage]] = frozenset()
    options_model: ClassVar[Type[ProcessorOptions]] = ProcessorOptions
    # Fields the index must mark as indexed while this processor is enabled.
    required_fields: ClassVar[Mapping[str, FieldType]] = {}
    requires_access_store: ClassVar[bool] = False

    def __init__(self, options: Optional[Mapping[str, Any]] = None, *, weight: Optional[int] = None) -> None:
        try:
            self.options = self.options_model.model_validate(dict(options or {}))
        except ValidationError as e:
            raise ConfigError(f"Invalid options for processor {self.id!r}: {e}") from e
        self.weight = self.default_weight if weight is None else int(weight)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(weight={self.weight})"

    @classmethod
    def supports_index(cls, index: "Index") -> bool:
        return True

    def validate(self) -> None:
        """Run checks that need external resources.

        Called before the processor is enabled on an index. Implementations
        raise `ConfigError` (or `ResourceError`) on failure.
        """

    def sort_key(self) -> Tuple[int, str]:
        return (self.weight, self.id)

    def apply_required_fields(self, index: "Index") -> None:
        """Declare the fields this processor depends on as indexed on ``index``."""
        for name, field_type in self.required_fields.items():
            existing = index.fields.get(name)
            if existing is None or not existing.indexed or existing.type is not field_type:
                index.fields[name] = Field(name=name, type=field_type, indexed=True)

    # ----- Hooks -----

    def preprocess_index_items(self, items: Dict[str, Item], ctx: RunContext) -> None:
        names = self.target_fields(ctx.index)
        for item in items.values():
            for name in names:
                if name in item.fields:
                    self.process_field(item, name, ctx)

    def preprocess_search_query(self, query: "Query", ctx: RunContext) -> None:
        if isinstance(query.keys, str):
            query.keys = self.process(query.keys, ctx)

    def postprocess_search_results(self, results: "ResultSet", query: "Query", ctx: RunContext) -> None:
        pass

    # ----- Field processing -----

    def target_fields(self, index: "Index") -> List[str]:
        if self.options.fields is not None:
            return [name for name in self.options.fields if name in index.fields]
        return index.fulltext_fields()

    def process_field(self, item: Item, name: str, ctx: RunContext) -> None:
        field = ctx.index.fields[name]
        value = item.fields[name]
        if not field.fulltext:
            if isinstance(value, list):
                item.fields[name] = [self.process(v, ctx) for v in value]
            else:
                item.fields[name] = self.process(value, ctx)
            return

        out: List[Any] = []
        for v in value if isinstance(value, list) else [value]:
            processed = self.process_field_value(v, ctx)
            out.extend(processed if isinstance(processed, list) else [processed])
        out = [v for v in out if v != ""]
        if isinstance(value, list):
            item.fields[name] = out
        elif len(out) == 1:
            item.fields[name] = out[0]
        else:
            item.fields[name] = out or ""

    def process_field_value(self, value: Any, ctx: RunContext) -> Any:
        """Process one value of a fulltext field; may return a list of tokens."""
        return self.process(value, ctx)

    def process(self, value: Any, ctx: RunContext) -> Any:
        """Process a single scalar value. Values of other types pass through."""
        return value
