"""Index content into pluggable search backends and query them."""

__version__ = "0.1.0"
