"""Storage port implementations."""

from identity_cache.storage.in_memory import InMemoryStorageManager

__all__ = ["InMemoryStorageManager"]
