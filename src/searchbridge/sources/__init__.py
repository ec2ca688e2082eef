"""Content and access-control sources consumed by the pipeline.

A source presents a stable interface for the core to load items and
access information regardless of where the content lives.
"""

from .access import SqlAccessControlStore
from .base import AccessControlStore, ContentSource, Viewer

__all__ = ["AccessControlStore", "ContentSource", "SqlAccessControlStore", "Viewer"]
