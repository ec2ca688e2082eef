"""Tokenizer processor.

Removes ignorable characters and splits fulltext on configurable whitespace
characters. Both character sets are regular expression fragments (usually a
character class); POSIX bracket classes such as ``[:alnum:]`` are accepted and
translated to equivalent ``re`` patterns.
"""

from __future__ import annotations

import re
from typing import Any, ClassVar, List, Optional

from pydantic import field_validator

from searchbridge.processors.base import Processor, ProcessorOptions, RunContext, Stage

# Standalone patterns for POSIX classes. Letter, digit and space classes
# follow Unicode; case and control classes are ASCII only.
POSIX_CLASSES = {
    "alnum": r"[^\W_]",
    "alpha": r"[^\W\d_]",
    "blank": r"[ \t]",
    "cntrl": r"[\x00-\x1f\x7f]",
    "digit": r"\d",
    "graph": r"[^\s\x00-\x1f\x7f]",
    "lower": r"[a-z]",
    "print": r"[^\x00-\x1f\x7f]",
    "punct": r"[^\w\s]|_",
    "space": r"\s",
    "upper": r"[A-Z]",
    "word": r"\w",
    "xdigit": r"[0-9A-Fa-f]",
}

_POSIX_RE = re.compile(r"\[:(\w+):\]")
_BRACKET_RE = re.compile(r"\[(\^?)((?:\[:\w+:\]|\\.|[^\]\\])+)\]")


def _translate_bracket(m: re.Match[str]) -> str:
    negate, body = m.group(1), m.group(2)
    names = _POSIX_RE.findall(body)
    if not names:
        return m.group(0)
    alternatives = []
    for name in names:
        if name not in POSIX_CLASSES:
            raise ValueError(f"unknown POSIX character class [:{name}:]")
        alternatives.append(POSIX_CLASSES[name])
    rest = _POSIX_RE.sub("", body)
    if rest:
        alternatives.append(f"[{rest}]")
    union = "|".join(alternatives)
    if negate:
        return rf"(?:(?!{union})[\s\S])"
    return f"(?:{union})"


def translate_pattern(fragment: str) -> str:
    """Rewrite bracket expressions holding POSIX classes into ``re`` syntax."""
    return _BRACKET_RE.sub(_translate_bracket, fragment)


def compile_runs(fragment: str) -> Optional[re.Pattern[str]]:
    """Compile a pattern matching maximal runs of ``fragment``; None if empty."""
    if not fragment:
        return None
    try:
        return re.compile(f"(?:{translate_pattern(fragment)})+")
    except re.error as e:
        raise ValueError(f"{fragment!r} is not a valid regular expression: {e}") from e


class TokenizerOptions(ProcessorOptions):
    spaces: str = "[^[:alnum:]]"
    ignorable: str = "[']"

    @field_validator("spaces", "ignorable")
    @classmethod
    def _check_pattern(cls, v: str) -> str:
        pattern = compile_runs(v)
        if pattern is not None:
            # Trial match, mirroring how the pattern is used later
            pattern.search("")
        return v


class Tokenizer(Processor):
    """Tokenizes fulltext data by splitting on whitespace characters."""

    id: ClassVar[str] = "search_api_tokenizer"
    label: ClassVar[str] = "Tokenizer"
    default_weight: ClassVar[int] = 20
    stages = frozenset({Stage.INDEX, Stage.PREPROCESS_QUERY})
    options_model = TokenizerOptions

    def __init__(self, options: Any = None, *, weight: Optional[int] = None) -> None:
        super().__init__(options, weight=weight)
        self._spaces = compile_runs(self.options.spaces)
        self._ignorable = compile_runs(self.options.ignorable)

    def _strip(self, value: str) -> str:
        if self._ignorable is not None:
            value = self._ignorable.sub("", value)
        return value

    def process_field_value(self, value: Any, ctx: RunContext) -> Any:
        if not isinstance(value, str):
            return value
        value = self._strip(value)
        if self._spaces is None:
            return value
        tokens: List[str] = [t for t in self._spaces.split(value) if t]
        if len(tokens) == 1:
            return tokens[0]
        return tokens or ""

    def process(self, value: Any, ctx: RunContext) -> Any:
        # Integers, dates, None and the like are left alone
        if not isinstance(value, str):
            return value
        value = self._strip(value)
        if self._spaces is not None:
            value = self._spaces.sub(" ", value).strip()
        return value
