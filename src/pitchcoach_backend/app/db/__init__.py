# src/pitchcoach_backend/app/db/__init__.py

"""
Lightweight DB package init.

Models are not re-exported here to avoid circular imports.
Other modules should import models directly from app.db.models.
"""

from .session import Base, get_db, get_engine, get_sessionmaker, test_connection

__all__ = ["Base", "get_db", "get_engine", "get_sessionmaker", "test_connection"]
