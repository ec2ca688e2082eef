"""Processor pipeline.

Orders enabled processors by weight (ties broken by id) and invokes the hook
belonging to each stage: index build, query preprocessing, and result
postprocessing. Every stage walks processors in the same order.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, Iterable, List, Mapping, Optional

from searchbridge.exceptions import ConfigError
from searchbridge.items import Item
from searchbridge.processors.base import Processor, RunContext, Stage

if TYPE_CHECKING:
    from searchbridge.entities import Index
    from searchbridge.query import Query, ResultSet
    from searchbridge.sources.base import AccessControlStore

logger = logging.getLogger(__name__)


class Pipeline:
    """An ordered set of processors for one index."""

    def __init__(
        self,
        processors: Iterable[Processor],
        *,
        access_store: Optional["AccessControlStore"] = None,
    ) -> None:
        self.processors: List[Processor] = sorted(processors, key=lambda p: p.sort_key())
        self.access_store = access_store
        for p in self.processors:
            if p.requires_access_store and access_store is None:
                raise ConfigError(f"Processor {p.id!r} requires an access control store")

    @classmethod
    def from_index(cls, index: "Index", *, access_store: Optional["AccessControlStore"] = None) -> "Pipeline":
        """Build the pipeline for the processors enabled on ``index``.

        Fields the processors depend on are declared on ``index`` if missing.
        """
        from searchbridge.processors import create_processor

        processors: List[Processor] = []
        for processor_id, settings in index.processors.items():
            processor = create_processor(processor_id, settings)
            if not processor.supports_index(index):
                logger.warning("Processor %s does not support index %s; skipping", processor_id, index.id)
                continue
            processor.apply_required_fields(index)
            processors.append(processor)
        return cls(processors, access_store=access_store)

    def for_stage(self, stage: Stage) -> List[Processor]:
        return [p for p in self.processors if stage in p.stages]

    def new_context(self, index: "Index") -> RunContext:
        return RunContext(index, access_store=self.access_store)

    def preprocess_index_items(
        self, index: "Index", items: Mapping[str, Item] | Iterable[Item], ctx: Optional[RunContext] = None
    ) -> Dict[str, Item]:
        """Run the index stage and return the items left to index.

        Processors may drop items from the working set; dropped items are
        skipped cleanly and never reach later processors.
        """
        ctx = ctx or self.new_context(index)
        working: Dict[str, Item] = dict(items) if isinstance(items, Mapping) else {i.id: i for i in items}
        for processor in self.for_stage(Stage.INDEX):
            if not working:
                break
            processor.preprocess_index_items(working, ctx)
        return working

    def preprocess_search_query(self, query: "Query", ctx: RunContext) -> None:
        for processor in self.for_stage(Stage.PREPROCESS_QUERY):
            processor.preprocess_search_query(query, ctx)

    def postprocess_search_results(self, results: "ResultSet", query: "Query", ctx: RunContext) -> None:
        for processor in self.for_stage(Stage.POSTPROCESS_RESULTS):
            processor.postprocess_search_results(results, query, ctx)
