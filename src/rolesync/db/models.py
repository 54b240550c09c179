"""
rolesync.db.models

Persistence schema for desired role intent.

Responsibilities:
- Define `SyncedRole`: one row per (subject, role name) the subject should hold
  wherever that role name is syncable.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from rolesync.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(tz=UTC).replace(tzinfo=None)


class SyncedRole(Base):
    __tablename__ = "synced_roles"

    # Composite primary key: a (subject, role) pair can never be stored twice.
    subject_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    role_name: Mapped[str] = mapped_column(String(100), primary_key=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)


# --- Module Notes -----------------------------------------------------------
# Role names are Discord display names (max 100 chars); ids are snowflakes stored as text.
