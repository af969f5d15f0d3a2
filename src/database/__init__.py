"""Database package for connection and session management."""

from src.database.database import (
    DatabaseConfig,
    dispose_engine,
    get_db,
    get_engine,
    get_session_factory,
)

__all__ = [
    "DatabaseConfig",
    "dispose_engine",
    "get_db",
    "get_engine",
    "get_session_factory",
]
