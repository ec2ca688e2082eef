"""HTML filter processor.

Strips markup from fulltext values before they are tokenized. Optionally
keeps the text of ``alt`` and ``title`` attributes.
"""

from __future__ import annotations

from typing import Any, ClassVar, List

from bs4 import BeautifulSoup  # type: ignore[import-untyped]

from searchbridge.processors.base import Processor, ProcessorOptions, RunContext, Stage


class HtmlFilterOptions(ProcessorOptions):
    alt: bool = True
    title: bool = False


class HtmlFilter(Processor):
    id: ClassVar[str] = "search_api_html_filter"
    label: ClassVar[str] = "HTML filter"
    default_weight: ClassVar[int] = 10
    stages = frozenset({Stage.INDEX, Stage.PREPROCESS_QUERY})
    options_model = HtmlFilterOptions

    def process(self, value: Any, ctx: RunContext) -> Any:
        if not isinstance(value, str) or "<" not in value:
            return value
        soup = BeautifulSoup(value, "html.parser")
        extra: List[str] = []
        for tag in soup.find_all(True):
            if self.options.alt and tag.get("alt"):
                extra.append(str(tag["alt"]))
            if self.options.title and tag.get("title"):
                extra.append(str(tag["title"]))
        text = soup.get_text(" ", strip=True)
        return " ".join([text, *extra]).strip()
