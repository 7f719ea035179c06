"""
Database module for the switchboard quoting engine.

Provides async database connections, session management,
and the declarative base.
"""

from switchboard_quoting.database.base import Base, utcnow
from switchboard_quoting.database.session import (
    get_engine,
    get_session_factory,
    create_session_factory,
    get_db_session,
    run_in_transaction,
    translate_storage_error,
    init_db,
    close_db,
)

__all__ = [
    "Base",
    "utcnow",
    "get_engine",
    "get_session_factory",
    "create_session_factory",
    "get_db_session",
    "run_in_transaction",
    "translate_storage_error",
    "init_db",
    "close_db",
]
