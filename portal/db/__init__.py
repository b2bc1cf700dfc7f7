"""Database package exports."""

from portal.db.base import Base, TimestampMixin
from portal.db.session import (
    build_engine,
    dispose_engine,
    get_db_session,
    get_engine,
    get_session_factory,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "build_engine",
    "dispose_engine",
    "get_db_session",
    "get_engine",
    "get_session_factory",
]
