"""Database utilities."""

from .session import (
    Base,
    SessionLocal,
    atomic,
    build_engine,
    create_tables,
    drop_tables,
    get_db,
)

__all__ = [
    "Base",
    "SessionLocal",
    "atomic",
    "build_engine",
    "create_tables",
    "drop_tables",
    "get_db",
]
