"""Database layer - engine, declarative base, and session scope."""

from payroll_kernel.db.base import Base, UUIDString
from payroll_kernel.db.engine import (
    build_engine,
    build_session_factory,
    create_tables,
    get_engine,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    session_scope,
)

__all__ = [
    "Base",
    "UUIDString",
    "build_engine",
    "build_session_factory",
    "create_tables",
    "get_engine",
    "get_session_factory",
    "init_engine_from_url",
    "reset_engine",
    "session_scope",
]
