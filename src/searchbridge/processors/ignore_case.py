"""Case-insensitive search processor."""

from __future__ import annotations

from typing import Any, ClassVar

from searchbridge.processors.base import Processor, RunContext, Stage


class IgnoreCase(Processor):
    """Lowercases indexed text and search keys so searches ignore case."""

    id: ClassVar[str] = "search_api_ignorecase"
    label: ClassVar[str] = "Ignore case"
    default_weight: ClassVar[int] = 0
    stages = frozenset({Stage.INDEX, Stage.PREPROCESS_QUERY})

    def process(self, value: Any, ctx: RunContext) -> Any:
        if isinstance(value, str):
            return value.lower()
        return value
