"""Database layer - engine, base classes, and column types."""

from oceanre_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from oceanre_kernel.db.engine import (
    build_engine,
    create_tables,
    get_engine,
    get_session,
    session_scope,
)
from oceanre_kernel.db.types import Amount, LongText, ShortCode

__all__ = [
    "build_engine",
    "create_tables",
    "get_engine",
    "get_session",
    "session_scope",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "Amount",
    "LongText",
    "ShortCode",
]
