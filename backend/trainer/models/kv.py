"""
Key-value item database model.
Each row holds one UTF-8 JSON payload under a string key.
"""
from datetime import datetime
from sqlalchemy import String, DateTime, LargeBinary
from sqlalchemy.orm import Mapped, mapped_column

from trainer.core.database import Base


class KeyValueItem(Base):
    """Raw payload stored under a key."""
    
    __tablename__ = "key_value_items"
    
    key: Mapped[str] = mapped_column(
        String(255),
        primary_key=True
    )
    value: Mapped[bytes] = mapped_column(
        LargeBinary,
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow
    )
