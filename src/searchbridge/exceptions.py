"""Custom exception hierarchy for searchbridge.

These exceptions allow callers to discriminate error categories
and handle them appropriately while preserving the original context.
"""

from __future__ import annotations


class SearchBridgeError(Exception):
    """Base class for all searchbridge exceptions."""


class ConfigError(SearchBridgeError):
    """Raised when configuration loading or processor option validation fails."""


class ResourceError(ConfigError):
    """Raised when an external resource referenced by configuration cannot be read."""


class StorageError(SearchBridgeError):
    """Raised when the task log storage encounters an error."""


class SearchError(SearchBridgeError):
    """Raised for search indexing/query issues."""


class BackendError(SearchError):
    """Raised by a backend when an operation against the search engine fails."""
