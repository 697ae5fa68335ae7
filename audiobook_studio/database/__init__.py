"""SQLAlchemy database layer for Audiobook Studio.

Provides the shared engine, session factory, and declarative base
used by all repositories.
"""

from .base import Base
from .engine import configure_engine, dispose_engine, get_db_session, get_engine, init_db

__all__ = [
    "Base",
    "configure_engine",
    "dispose_engine",
    "get_db_session",
    "get_engine",
    "init_db",
]
