"""Tool registration modules for the searchbridge MCP server."""

from .search import register_search_tools
from .tasks import register_task_tools

__all__ = [
    "register_search_tools",
    "register_task_tools",
]
