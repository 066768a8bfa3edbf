"""
Module: inventory_kernel.db.base
Responsibility: Declarative base and shared column types for the ORM models
    that persist ledger snapshots.
Architecture position: Kernel > DB.  Lowest-level import target within the
    db package; MUST NOT import from models.py, store.py or outer layers.

Invariants enforced:
    - Timestamps are stored as UTC and always come back timezone-aware,
      including on SQLite, which has no native timezone support.
"""

from datetime import datetime, timezone
from typing import ClassVar

from sqlalchemy import DateTime, Integer
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime column, normalized to UTC.

    Guarantees:
        - process_bind_param: aware datetime -> UTC on INSERT/UPDATE;
          naive datetimes are rejected.
        - process_result_value: returns an aware UTC datetime on SELECT.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("UTCDateTime requires timezone-aware datetimes")
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    """
    Declarative base for all ledger tables.

    Guarantees:
        - datetime annotations map to UTCDateTime.
        - int annotations map to Integer.
    """

    type_annotation_map: ClassVar[dict] = {
        datetime: UTCDateTime(),
        int: Integer,
    }
