"""Stop-word processor.

Removes configured words from indexed text and from search keys, and reports
the words dropped from a query back on the result set.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, ClassVar, FrozenSet, List, Optional
from urllib.parse import unquote, urlparse

import httpx
from pydantic import model_validator

from searchbridge.exceptions import ResourceError
from searchbridge.processors.base import Processor, ProcessorOptions, RunContext, Stage
from searchbridge.query import Query, ResultSet

logger = logging.getLogger(__name__)


def read_uri(uri: str, *, timeout: float = 10.0) -> str:
    """Read a word list from a local path, a file:// URI, or an http(s) URL."""
    parsed = urlparse(uri)
    try:
        if parsed.scheme in ("http", "https"):
            resp = httpx.get(uri, timeout=timeout, follow_redirects=True)
            resp.raise_for_status()
            return resp.text
        path = Path(unquote(parsed.path)) if parsed.scheme == "file" else Path(uri)
        return path.read_text(encoding="utf-8")
    except (OSError, httpx.HTTPError) as e:
        raise ResourceError(f"The file {uri} is not readable or does not exist: {e}") from e


class StopWordsOptions(ProcessorOptions):
    stopwords: str = "but\ndid\nthe this that those\netc"
    file: Optional[str] = None

    @model_validator(mode="after")
    def _require_source(self) -> "StopWordsOptions":
        if not self.stopwords.strip() and not self.file:
            raise ValueError("a stop-words file or a list of words is required")
        return self


class StopWords(Processor):
    """Prevents certain words from being indexed and removes them from search keys.

    For best results it should run after the tokenizer.
    """

    id: ClassVar[str] = "search_api_stopwords"
    label: ClassVar[str] = "Stopwords"
    default_weight: ClassVar[int] = 30
    stages = frozenset({Stage.INDEX, Stage.PREPROCESS_QUERY, Stage.POSTPROCESS_RESULTS})
    options_model = StopWordsOptions

    def validate(self) -> None:
        if self.options.file:
            if not read_uri(self.options.file).strip():
                raise ResourceError(f"The file {self.options.file} is empty.")

    def stopwords(self, ctx: RunContext) -> FrozenSet[str]:
        """Return the effective stop-word set, read once per run."""
        state = ctx.state(self.id)
        if "stopwords" not in state:
            words: List[str] = []
            if self.options.file:
                try:
                    words.extend(read_uri(self.options.file).split())
                except ResourceError as e:
                    logger.warning("Ignoring stop-words file for index %s: %s", ctx.index.id, e)
            words.extend(self.options.stopwords.split())
            state["stopwords"] = frozenset(words)
            logger.debug("Loaded %d stop word(s) for index %s", len(state["stopwords"]), ctx.index.id)
        return state["stopwords"]

    def ignored(self, ctx: RunContext) -> List[str]:
        return ctx.state(self.id).setdefault("ignored", [])

    def process(self, value: Any, ctx: RunContext) -> Any:
        if not isinstance(value, str):
            return value
        stopwords = self.stopwords(ctx)
        if not stopwords:
            return value
        ignored = self.ignored(ctx)
        kept: List[str] = []
        for word in value.split():
            if word in stopwords:
                ignored.append(word)
            else:
                kept.append(word)
        return " ".join(kept)

    def preprocess_search_query(self, query: Query, ctx: RunContext) -> None:
        ctx.state(self.id)["ignored"] = []
        super().preprocess_search_query(query, ctx)

    def postprocess_search_results(self, results: ResultSet, query: Query, ctx: RunContext) -> None:
        ignored = self.ignored(ctx)
        if ignored:
            results.ignored.extend(ignored)
