"""
Key-value capability - the byte-level persistence primitive.

Everything above this layer stores UTF-8 JSON payloads under string keys.
"""
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional


class KeyValueStore(ABC):
    """
    Abstract byte-level key-value store.
    
    Implementations must complete or fail outright; there is no partial
    progress within a single call.
    """
    
    @abstractmethod
    async def get(self, key: str) -> Optional[bytes]:
        """Get the payload under a key, or None if absent."""
        pass
    
    @abstractmethod
    async def set(self, key: str, value: bytes) -> None:
        """Store a payload, replacing any existing one."""
        pass
    
    @abstractmethod
    async def remove(self, key: str) -> None:
        """Delete a key. Deleting a missing key is not an error."""
        pass
    
    @abstractmethod
    async def list_keys_with_prefix(self, prefix: str) -> List[str]:
        """List all keys starting with a prefix."""
        pass
    
    @abstractmethod
    async def get_many(self, keys: Iterable[str]) -> Dict[str, bytes]:
        """
        Fetch several keys in one round trip.
        
        Returns:
            Mapping of key to payload for the keys that exist, in request order
        """
        pass
    
    @abstractmethod
    async def clear(self) -> None:
        """Delete every key."""
        pass


class InMemoryKeyValueStore(KeyValueStore):
    """Dict-backed store for tests and ephemeral sessions."""
    
    def __init__(self, initial: Optional[Dict[str, bytes]] = None):
        self._items: Dict[str, bytes] = dict(initial or {})
    
    async def get(self, key: str) -> Optional[bytes]:
        return self._items.get(key)
    
    async def set(self, key: str, value: bytes) -> None:
        self._items[key] = bytes(value)
    
    async def remove(self, key: str) -> None:
        self._items.pop(key, None)
    
    async def list_keys_with_prefix(self, prefix: str) -> List[str]:
        return sorted(k for k in self._items if k.startswith(prefix))
    
    async def get_many(self, keys: Iterable[str]) -> Dict[str, bytes]:
        return {k: self._items[k] for k in keys if k in self._items}
    
    async def clear(self) -> None:
        self._items.clear()
    
    def snapshot(self) -> Dict[str, bytes]:
        """Copy of the raw contents, for inspection."""
        return dict(self._items)
