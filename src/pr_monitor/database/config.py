"""Database configuration module.

Provides type-safe configuration of the SQLite event log with environment
variable support.
"""

from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseConfig(BaseSettings):
    """Database configuration with environment variable support.

    Environment variables:
    - DATABASE_URL: Full SQLAlchemy URL (default: derived from the DB path)
    - DATABASE_ECHO_SQL: Log every SQL statement (default: false)
    - DATABASE_BUSY_TIMEOUT: Milliseconds SQLite waits on a locked database
    """

    database_url: str | None = Field(
        default=None,
        description="Complete database URL",
        validation_alias="DATABASE_URL",
    )
    echo_sql: bool = Field(default=False, description="Enable SQL query logging")
    busy_timeout: int = Field(
        default=5000, description="SQLite busy timeout in milliseconds"
    )

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def validate_database_url(cls, v: Any) -> Any:
        """Only SQLite URLs with the async driver are supported."""
        if v and not str(v).startswith("sqlite+aiosqlite://"):
            raise ValueError("Database URL must use the sqlite+aiosqlite driver")
        return v

    @classmethod
    def for_path(cls, db_path: Path, **kwargs: Any) -> "DatabaseConfig":
        """Build configuration for a database file."""
        return cls(database_url=f"sqlite+aiosqlite:///{db_path}", **kwargs)

    def get_sqlalchemy_url(self) -> str:
        """Get SQLAlchemy-compatible database URL."""
        if not self.database_url:
            raise ValueError("No database URL available")
        return self.database_url

    @property
    def database_path(self) -> Path | None:
        """Filesystem path of the database, None for in-memory databases."""
        url = self.get_sqlalchemy_url()
        path = url.split(":///", 1)[1] if ":///" in url else ""
        if not path or path == ":memory:":
            return None
        return Path(path)
