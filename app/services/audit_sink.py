"""Durable SQL sink for the impersonation audit trail."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models import ImpersonationAuditRecord
from app.schemas.impersonation import AuditEntry, AuditEventType, ClientMetadata
from app.utils.time import as_utc

logger = logging.getLogger(__name__)


class AuditSinkUnavailable(RuntimeError):
    """Raised when the durable audit store cannot be written or read."""


class AuditSink(Protocol):
    def write(self, entry: AuditEntry) -> None: ...

    def load_recent(self, limit: int) -> list[AuditEntry]: ...


def entry_to_record(entry: AuditEntry) -> ImpersonationAuditRecord:
    metadata = entry.client_metadata
    return ImpersonationAuditRecord(
        id=entry.id,
        event_type=entry.type.value,
        session_id=entry.session_id,
        admin_user_id=entry.admin_id,
        admin_email=entry.admin_email,
        target_user_id=entry.target_user_id,
        target_user_email=entry.target_user_email,
        timestamp=entry.timestamp,
        reason=entry.reason,
        action=entry.action,
        details=entry.details,
        route=entry.route,
        ip_address=metadata.ip_address if metadata else None,
        user_agent=metadata.user_agent if metadata else None,
        duration_ms=entry.duration_ms,
        actions_performed=entry.action_count,
        payload=entry.payload,
    )


def record_to_entry(record: ImpersonationAuditRecord) -> AuditEntry:
    metadata = None
    if record.ip_address is not None or record.user_agent is not None:
        metadata = ClientMetadata(
            ip_address=record.ip_address or ClientMetadata().ip_address,
            user_agent=record.user_agent or ClientMetadata().user_agent,
        )
    return AuditEntry(
        id=record.id,
        type=AuditEventType(record.event_type),
        session_id=record.session_id,
        admin_id=record.admin_user_id,
        admin_email=record.admin_email,
        target_user_id=record.target_user_id,
        target_user_email=record.target_user_email,
        timestamp=as_utc(record.timestamp),
        reason=record.reason,
        action=record.action,
        details=record.details,
        route=record.route,
        payload=record.payload,
        client_metadata=metadata,
        duration_ms=record.duration_ms,
        action_count=record.actions_performed,
    )


class SqlAuditSink:
    """Writes audit entries to ``impersonation_audit_log``.

    Delivery is at-least-once from the caller's side; writes are idempotent by
    entry id so a retried entry lands exactly once.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def write(self, entry: AuditEntry) -> None:
        try:
            with self._session_factory() as db:
                if db.get(ImpersonationAuditRecord, entry.id) is not None:
                    logger.debug("[AUDIT] Entry %s already persisted; skipping duplicate delivery.", entry.id)
                    return
                db.add(entry_to_record(entry))
                db.commit()
        except SQLAlchemyError as exc:
            raise AuditSinkUnavailable(f"Failed to persist audit entry {entry.id}") from exc

    def load_recent(self, limit: int) -> list[AuditEntry]:
        try:
            with self._session_factory() as db:
                records = db.scalars(
                    select(ImpersonationAuditRecord)
                    .order_by(ImpersonationAuditRecord.timestamp.desc())
                    .limit(limit)
                ).all()
                return [record_to_entry(record) for record in records]
        except SQLAlchemyError as exc:
            raise AuditSinkUnavailable("Failed to load audit entries") from exc
