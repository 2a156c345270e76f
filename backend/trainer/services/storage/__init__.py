"""
Storage - Key-value capability implementations.
"""
from trainer.services.storage.base import KeyValueStore, InMemoryKeyValueStore
from trainer.services.storage.sql import SqlKeyValueStore

__all__ = [
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "SqlKeyValueStore",
]
