"""Database configuration and connection management."""

from .config import DatabaseConfig
from .connection import DatabaseConnectionManager

__all__ = ["DatabaseConfig", "DatabaseConnectionManager"]
