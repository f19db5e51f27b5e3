#!/usr/bin/env python3
"""
Shared SQLAlchemy declarative base and time helpers.

Entities declare their own id / created_at / updated_at columns; this module only
provides the declarative Base, the UUID default and UTC helpers.

Notes:
- Every timestamp we write is timezone-aware UTC.
- SQLite hands back naive datetimes; as_utc() treats them as UTC so comparisons work.
"""

from __future__ import annotations

from datetime import datetime, timezone
import uuid

from sqlalchemy.orm import declarative_base

# Declarative base for all models
Base = declarative_base()


def uuid_str() -> str:
    """Return a canonical UUIDv4 string (36 chars, with hyphens)."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from the database."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
