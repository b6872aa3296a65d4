"""Durable impersonation audit trail rows."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class ImpersonationAuditRecord(Base):
    """Stores one immutable row per impersonation audit entry.

    The primary key is the entry id generated in memory, so redelivering the
    same entry never creates a duplicate row.
    """

    __tablename__ = "impersonation_audit_log"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    event_type: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    session_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    admin_user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    admin_email: Mapped[str] = mapped_column(String(255), nullable=False)
    target_user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    target_user_email: Mapped[str] = mapped_column(String(255), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    action: Mapped[str | None] = mapped_column(String(128), nullable=True)
    details: Mapped[str | None] = mapped_column(Text, nullable=True)
    route: Mapped[str | None] = mapped_column(String(255), nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(512), nullable=True)
    duration_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    actions_performed: Mapped[int | None] = mapped_column(Integer, nullable=True)
    payload: Mapped[Any] = mapped_column(JSON, nullable=True)
