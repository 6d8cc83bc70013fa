"""Content store adapters."""

from .base import ContentStore, Filters, StoreError
from .memory import MemoryStore
from .rest import RestStore

__all__ = ["ContentStore", "Filters", "MemoryStore", "RestStore", "StoreError"]
