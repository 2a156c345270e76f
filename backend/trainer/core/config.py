"""
Application configuration.
All values can be overridden from environment variables or a .env file.
"""
from typing import List
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""
    
    # Database backing the key-value capability
    DATABASE_URL: str = "sqlite+aiosqlite:///./trainer.db"
    
    # Activity storage layout: weekly (partitioned by ISO week) or flat (legacy)
    STORAGE_LAYOUT: str = "weekly"
    
    # Raise NotFoundError on update/delete of a missing activity instead of a no-op
    STRICT_NOT_FOUND: bool = False
    
    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]
    
    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # json or console
    
    # Storage Debug Logging - times every key-value operation
    STORAGE_DEBUG_LOG: bool = False
    
    # Indentation of exported JSON documents (0 = compact)
    EXPORT_INDENT: int = 2
    
    @property
    def is_weekly_layout(self) -> bool:
        """Whether activities are partitioned into week buckets."""
        return self.STORAGE_LAYOUT.lower() != "flat"
    
    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
