"""Task queue tools for FastMCP."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from fastmcp import FastMCP


def register_task_tools(mcp: FastMCP, get_state: Callable[[], Any]) -> None:
    """Register task queue tools using state.tasks."""

    @mcp.tool
    def drain_tasks(server_id: Optional[str] = None) -> Dict[str, Any]:
        """Execute queued backend tasks, optionally for one server only.

        ``any_failed`` is true when at least one server still has failing tasks.
        """
        return get_state().tasks.drain(server_id).to_dict()

    @mcp.tool
    def pending_tasks(server_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """List queued tasks in execution order."""
        return [
            {
                "id": t.id,
                "server_id": t.server_id,
                "type": t.type,
                "index_id": t.index_id,
                "created_at": t.created_at.isoformat() if t.created_at else None,
            }
            for t in get_state().tasks.pending(server_id)
        ]
