"""Processor registry and activation helpers."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Type

from searchbridge.entities import Index, ProcessorSettings
from searchbridge.exceptions import ConfigError

from .base import Processor, ProcessorOptions, RunContext, Stage
from .html_filter import HtmlFilter
from .ignore_case import IgnoreCase
from .node_access import ALL_GRANT, NodeAccess
from .pipeline import Pipeline
from .stopwords import StopWords
from .tokenizer import Tokenizer

PROCESSORS: Dict[str, Type[Processor]] = {
    cls.id: cls for cls in (IgnoreCase, HtmlFilter, Tokenizer, StopWords, NodeAccess)
}


def create_processor(processor_id: str, settings: Optional[ProcessorSettings] = None) -> Processor:
    """Instantiate a registered processor from its settings."""
    try:
        cls = PROCESSORS[processor_id]
    except KeyError:
        raise ConfigError(f"Unknown processor {processor_id!r}") from None
    settings = settings or ProcessorSettings()
    return cls(settings.options, weight=settings.weight)


def enable_processor(
    index: Index,
    processor_id: str,
    *,
    options: Optional[Mapping[str, Any]] = None,
    weight: Optional[int] = None,
) -> Processor:
    """Validate and enable a processor on ``index``.

    Raises `ConfigError` if the options are invalid, a referenced resource is
    unreadable, or the processor does not support the index.
    """
    settings = ProcessorSettings(weight=weight, options=dict(options or {}))
    processor = create_processor(processor_id, settings)
    if not processor.supports_index(index):
        raise ConfigError(f"Processor {processor_id!r} does not support index {index.id!r}")
    processor.validate()

    processor.apply_required_fields(index)
    index.processors[processor_id] = settings
    return processor


def disable_processor(index: Index, processor_id: str) -> None:
    index.processors.pop(processor_id, None)


__all__ = [
    "ALL_GRANT",
    "PROCESSORS",
    "HtmlFilter",
    "IgnoreCase",
    "NodeAccess",
    "Pipeline",
    "Processor",
    "ProcessorOptions",
    "RunContext",
    "Stage",
    "StopWords",
    "Tokenizer",
    "create_processor",
    "disable_processor",
    "enable_processor",
]
