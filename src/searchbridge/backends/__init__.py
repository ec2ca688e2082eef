"""Search backends."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from searchbridge.config import BackendConfig
from searchbridge.exceptions import ConfigError

from .base_backend import BaseBackend
from .whoosh_backend import WhooshBackend


def create_backend(config: Mapping[str, Any], defaults: Optional[BackendConfig] = None) -> BaseBackend:
    """Build a backend from a server's ``backend`` mapping.

    Only ``{"type": "whoosh"}`` is known. Missing keys fall back to ``defaults``.
    """
    defaults = defaults or BackendConfig()
    kind = config.get("type", "whoosh")
    if kind != "whoosh":
        raise ConfigError(f"Unknown backend type {kind!r}")
    path = config.get("path", defaults.path)
    return WhooshBackend(path, limitmb=int(config.get("limitmb", defaults.limitmb)))


__all__ = ["BaseBackend", "WhooshBackend", "create_backend"]
