"""
SQL Key-Value Store - key-value capability backed by SQLAlchemy.
"""
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select, delete
from sqlalchemy.exc import OperationalError, InterfaceError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from trainer.core.exceptions import StoreUnavailableError
from trainer.core.logging import get_logger, StorageOperationLogger
from trainer.models.kv import KeyValueItem
from trainer.services.storage.base import KeyValueStore

logger = get_logger(__name__)


def _escape_like(prefix: str) -> str:
    return prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SqlKeyValueStore(KeyValueStore):
    """
    Key-value store over the key_value_items table.
    
    Each call runs in its own session and commits before returning.
    Connection-level failures are reported as StoreUnavailableError.
    """
    
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
        self.op_logger = StorageOperationLogger(logger)
    
    async def get(self, key: str) -> Optional[bytes]:
        async with self.op_logger.track("get", key=key):
            try:
                async with self.session_factory() as session:
                    item = await session.get(KeyValueItem, key)
                    return item.value if item else None
            except (OperationalError, InterfaceError) as e:
                raise StoreUnavailableError(f"Key-value store unavailable: {e}") from e
    
    async def set(self, key: str, value: bytes) -> None:
        async with self.op_logger.track("set", key=key, size=len(value)):
            try:
                async with self.session_factory() as session:
                    item = await session.get(KeyValueItem, key)
                    if item:
                        item.value = value
                    else:
                        session.add(KeyValueItem(key=key, value=value))
                    await session.commit()
            except (OperationalError, InterfaceError) as e:
                raise StoreUnavailableError(f"Key-value store unavailable: {e}") from e
    
    async def remove(self, key: str) -> None:
        async with self.op_logger.track("remove", key=key):
            try:
                async with self.session_factory() as session:
                    await session.execute(
                        delete(KeyValueItem).where(KeyValueItem.key == key)
                    )
                    await session.commit()
            except (OperationalError, InterfaceError) as e:
                raise StoreUnavailableError(f"Key-value store unavailable: {e}") from e
    
    async def list_keys_with_prefix(self, prefix: str) -> List[str]:
        async with self.op_logger.track("list_keys_with_prefix", key=prefix):
            try:
                async with self.session_factory() as session:
                    result = await session.execute(
                        select(KeyValueItem.key)
                        .where(KeyValueItem.key.like(f"{_escape_like(prefix)}%", escape="\\"))
                        .order_by(KeyValueItem.key)
                    )
                    # SQLite LIKE ignores ASCII case
                    return [k for k in result.scalars().all() if k.startswith(prefix)]
            except (OperationalError, InterfaceError) as e:
                raise StoreUnavailableError(f"Key-value store unavailable: {e}") from e
    
    async def get_many(self, keys: Iterable[str]) -> Dict[str, bytes]:
        keys = list(keys)
        if not keys:
            return {}
        
        async with self.op_logger.track("get_many", key_count=len(keys)):
            try:
                async with self.session_factory() as session:
                    result = await session.execute(
                        select(KeyValueItem).where(KeyValueItem.key.in_(keys))
                    )
                    found = {item.key: item.value for item in result.scalars().all()}
            except (OperationalError, InterfaceError) as e:
                raise StoreUnavailableError(f"Key-value store unavailable: {e}") from e
        
        return {k: found[k] for k in keys if k in found}
    
    async def clear(self) -> None:
        async with self.op_logger.track("clear"):
            try:
                async with self.session_factory() as session:
                    await session.execute(delete(KeyValueItem))
                    await session.commit()
            except (OperationalError, InterfaceError) as e:
                raise StoreUnavailableError(f"Key-value store unavailable: {e}") from e
        
        logger.info("Key-value store cleared")
