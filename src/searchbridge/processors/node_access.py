"""Node access processor.

Attaches access grant tokens to node items so the backend can filter results
by viewer without re-checking permissions per query.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, ClassVar, Dict, List

from searchbridge.exceptions import ConfigError
from searchbridge.items import ACCESS_GRANTS_FIELD, FieldType, Item
from searchbridge.processors.base import Processor, RunContext, Stage
from searchbridge.query import Condition, ConditionGroup, Query

if TYPE_CHECKING:
    from searchbridge.entities import Index

logger = logging.getLogger(__name__)

# Grant attached to items every viewer may see.
ALL_GRANT = "node_access__all"


def grant_token(realm: str, gid: str) -> str:
    return f"{realm}:{gid}"


class NodeAccess(Processor):
    """Adds node access information to node indexes."""

    id: ClassVar[str] = "search_api_node_access"
    label: ClassVar[str] = "Node access"
    default_weight: ClassVar[int] = 0
    stages = frozenset({Stage.INDEX, Stage.PREPROCESS_QUERY})
    required_fields = {"status": FieldType.BOOLEAN, "author": FieldType.INTEGER}
    requires_access_store: ClassVar[bool] = True

    @classmethod
    def supports_index(cls, index: "Index") -> bool:
        return index.datasource == "node"

    def preprocess_index_items(self, items: Dict[str, Item], ctx: RunContext) -> None:
        store = ctx.access_store
        if store is None:
            raise ConfigError(f"Processor {self.id!r} requires an access control store")
        state = ctx.state(self.id)
        if "viewer" not in state:
            state["viewer"] = store.anonymous_viewer()
        anonymous = state["viewer"]

        for item in items.values():
            if store.can_view(item, anonymous):
                item.fields[ACCESS_GRANTS_FIELD] = [ALL_GRANT]
                continue
            tokens = [grant_token(realm, gid) for realm, gid in store.view_grants(item.id)]
            item.fields[ACCESS_GRANTS_FIELD] = list(dict.fromkeys(tokens))
            if not tokens:
                logger.debug("Item %s has no view grants; it will not match any viewer", item.id)

    def preprocess_search_query(self, query: Query, ctx: RunContext) -> None:
        viewer = query.viewer
        if viewer is None or viewer.bypass_access:
            return
        tokens: List[str] = [ALL_GRANT] + [grant_token(r, g) for r, g in sorted(viewer.grants)]
        query.add_condition_group(
            ConditionGroup([Condition(ACCESS_GRANTS_FIELD, t) for t in tokens], tag="node_access")
        )
        if "status" in query.index.fields:
            published = [Condition("status", True)]
            if not viewer.is_anonymous and "author" in query.index.fields:
                published.append(Condition("author", viewer.id))
            query.add_condition_group(ConditionGroup(published, tag="node_access_status"))
