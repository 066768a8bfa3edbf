"""Database layer: ORM models, engine/session management and the snapshot store."""

from inventory_kernel.db.base import Base, UTCDateTime
from inventory_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from inventory_kernel.db.store import SqlLedgerStore

__all__ = [
    "Base",
    "UTCDateTime",
    "init_engine_from_url",
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "drop_tables",
    "reset_engine",
    "SqlLedgerStore",
]
