"""Search and indexing tools for FastMCP.

Run queries and index items through an index's processor pipeline.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError

from searchbridge.entities import Index
from searchbridge.exceptions import SearchBridgeError
from searchbridge.items import Item
from searchbridge.sources.base import Viewer


def _index(state: Any, index_id: str) -> Index:
    index = state.entities.load_index(index_id)
    if index is None:
        raise ToolError(f"Unknown index: {index_id}")
    return index


def register_search_tools(mcp: FastMCP, get_state: Callable[[], Any]) -> None:
    """Register search tools on the given FastMCP instance.

    Uses state.entities to resolve indexes and state.service to run them.
    """

    @mcp.tool
    def list_indexes() -> List[Dict[str, Any]]:
        """List configured indexes with their server and enabled processors."""
        state = get_state()
        return [
            {
                "id": i.id,
                "server_id": i.server_id,
                "datasource": i.datasource,
                "read_only": i.read_only,
                "processors": sorted(i.processors),
            }
            for i in state.entities.indexes.values()
        ]

    @mcp.tool
    def search(
        index_id: str,
        keys: str,
        limit: Optional[int] = 10,
        offset: Optional[int] = 0,
        viewer_id: Optional[int] = None,
        viewer_grants: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """Search an index.

        Parameters
        ----------
        index_id: str
            Index to search.
        keys: str
            Search keys.
        viewer_id: int | None
            When given, results are restricted to what this account may view.
        viewer_grants: list[str] | None
            The viewer's grants as "realm:gid" strings.

        The result carries ``ignored``: search words dropped by processors.
        """
        state = get_state()
        index = _index(state, index_id)
        viewer = None
        if viewer_id is not None:
            pairs = (g.split(":", 1) for g in viewer_grants or [] if ":" in g)
            viewer = Viewer(id=int(viewer_id), grants=frozenset((r, g) for r, g in pairs))
        try:
            results = state.service.search(
                index, keys, limit=int(limit or 10), offset=int(offset or 0), viewer=viewer
            )
        except SearchBridgeError as e:
            raise ToolError(str(e)) from e
        return results.to_dict()

    @mcp.tool
    def index_items(index_id: str, items: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Index items given as {"id": ..., "fields": {...}} objects."""
        state = get_state()
        index = _index(state, index_id)
        batch = [Item(id=str(i["id"]), fields=dict(i.get("fields") or {})) for i in items]
        try:
            indexed = state.service.index_items(index, batch)
        except SearchBridgeError as e:
            raise ToolError(str(e)) from e
        return {"indexed": indexed, "skipped": len(batch) - len(indexed)}
