"""Admin impersonation ("login as user") session lifecycle.

A :class:`SessionManager` owns at most one live :class:`ImpersonationSession`
for one admin client and turns every transition into an audit entry:

- ``start`` appends a SESSION_START entry,
- ``log_action`` appends a SESSION_ACTION entry for each instrumented action,
- ``end`` appends a SESSION_END entry carrying duration and action count.

The live session is never written anywhere durable; only the audit entries
are. Audit delivery problems are logged and never undo a state transition.
"""

from __future__ import annotations

import copy
import logging
import threading
from collections.abc import Callable
from enum import Enum
from uuid import uuid4

from app.core.config import settings
from app.core.request_context import current_route
from app.schemas.impersonation import (
    ActionRecord,
    AdminIdentity,
    AuditEntry,
    AuditEventType,
    ImpersonationContext,
    ImpersonationSession,
    SessionSummary,
    TargetIdentity,
)
from app.services.audit_store import AuditStore
from app.services.client_metadata import IpLookup, resolve_client_metadata
from app.utils.time import elapsed_ms, utc_now

logger = logging.getLogger(__name__)


class ImpersonationError(Exception):
    """Base class for impersonation lifecycle errors."""


class AlreadyImpersonating(ImpersonationError):
    """A session is already active for this client."""


class NoActiveSession(ImpersonationError):
    """An operation needed a live session but the client is idle."""


class SessionState(str, Enum):
    IDLE = "IDLE"
    IMPERSONATING = "IMPERSONATING"
    ENDING = "ENDING"


TransitionListener = Callable[["SessionManager"], None]


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid4().hex}"


class SessionManager:
    """Single active impersonation session for one admin client."""

    def __init__(
        self,
        audit_store: AuditStore,
        *,
        ip_lookup: IpLookup | None = None,
        clock: Callable = utc_now,
        route_provider: Callable[[], str | None] = current_route,
        default_reason: str | None = None,
    ) -> None:
        self._audit_store = audit_store
        self._ip_lookup = ip_lookup
        self._clock = clock
        self._route_provider = route_provider
        self._default_reason = default_reason or settings.impersonation_default_reason
        self._session: ImpersonationSession | None = None
        self._state = SessionState.IDLE
        self._listeners: list[TransitionListener] = []
        self._lock = threading.RLock()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_impersonating(self) -> bool:
        return self._session is not None

    @property
    def session(self) -> ImpersonationSession | None:
        return self._session

    def add_listener(self, listener: TransitionListener) -> None:
        """Register a callback run after every start and end."""
        self._listeners.append(listener)

    def start(
        self,
        admin: AdminIdentity,
        target: TargetIdentity,
        reason: str | None = None,
        *,
        user_agent: str | None = None,
        ip_lookup: IpLookup | None = None,
    ) -> ImpersonationSession:
        """Assume ``target``'s identity.

        Raises:
            AlreadyImpersonating: a session is already active for this client.
        """
        with self._lock:
            if self._session is not None:
                raise AlreadyImpersonating(
                    f"{self._session.admin.email} is already impersonating {self._session.target.email}"
                )
            metadata = resolve_client_metadata(ip_lookup or self._ip_lookup, user_agent)
            session = ImpersonationSession(
                session_id=new_id("imp"),
                admin=admin,
                target=target,
                start_time=self._clock(),
                reason=(reason or "").strip() or self._default_reason,
                client_metadata=metadata,
            )
            self._session = session
            self._state = SessionState.IMPERSONATING
            self._record(
                self._entry(
                    session,
                    AuditEventType.SESSION_START,
                    session.start_time,
                    reason=session.reason,
                    client_metadata=metadata,
                )
            )

        logger.info(
            "[IMPERSONATION] %s started session %s as %s (reason=%r, ip=%s).",
            admin.email,
            session.session_id,
            target.email,
            session.reason,
            metadata.ip_address,
        )
        self._notify()
        return session

    def log_action(
        self,
        action_type: str,
        details: str | None = None,
        payload=None,
        *,
        route: str | None = None,
    ) -> ActionRecord | None:
        """Record an action taken under borrowed identity; a no-op when idle."""
        with self._lock:
            session = self._session
            if session is None:
                logger.debug("[IMPERSONATION] Ignoring action %r: %s", action_type, NoActiveSession("client is idle"))
                return None
            record = ActionRecord(
                id=new_id("action"),
                timestamp=self._stamp(session),
                action_type=action_type,
                details=details,
                route=route if route is not None else self._current_route(),
                # Appended records never share mutable state with the caller.
                payload=copy.deepcopy(payload),
            )
            self._session = session.with_action(record)
            self._record(
                self._entry(
                    session,
                    AuditEventType.SESSION_ACTION,
                    record.timestamp,
                    action=action_type,
                    details=details,
                    route=record.route,
                    payload=copy.deepcopy(record.payload),
                )
            )
        return record

    def end(self) -> SessionSummary | None:
        """Return to the admin's own identity; ``None`` when there was no session."""
        with self._lock:
            session = self._session
            if session is None:
                logger.debug("[IMPERSONATION] Ignoring end: %s", NoActiveSession("client is idle"))
                return None
            self._state = SessionState.ENDING
            ended_at = self._stamp(session)
            summary = SessionSummary(
                session_id=session.session_id,
                duration_ms=elapsed_ms(session.start_time, ended_at),
                actions_performed=len(session.actions),
            )
            # Clear first: losing the session must never wait on the audit sink.
            self._session = None
            self._state = SessionState.IDLE
            self._record(
                self._entry(
                    session,
                    AuditEventType.SESSION_END,
                    ended_at,
                    duration_ms=summary.duration_ms,
                    action_count=summary.actions_performed,
                )
            )

        logger.info(
            "[IMPERSONATION] %s ended session %s as %s after %sms with %s actions.",
            session.admin.email,
            session.session_id,
            session.target.email,
            summary.duration_ms,
            summary.actions_performed,
        )
        self._notify()
        return summary

    def _stamp(self, session: ImpersonationSession):
        # Timestamps within a session never go backwards, even if the wall clock does.
        now = self._clock()
        last = session.last_timestamp
        return now if now >= last else last

    def _current_route(self) -> str | None:
        try:
            return self._route_provider()
        except Exception:
            logger.exception("[IMPERSONATION] Route provider failed; recording action without route.")
            return None

    def _entry(self, session: ImpersonationSession, event_type: AuditEventType, timestamp, **fields) -> AuditEntry:
        return AuditEntry(
            id=new_id("audit"),
            type=event_type,
            session_id=session.session_id,
            admin_id=session.admin.id,
            admin_email=session.admin.email,
            target_user_id=session.target.id,
            target_user_email=session.target.email,
            timestamp=timestamp,
            **fields,
        )

    def _record(self, entry: AuditEntry) -> None:
        try:
            self._audit_store.append(entry)
        except Exception:
            logger.exception(
                "[AUDIT] Could not record %s for session %s.", entry.type.value, entry.session_id
            )

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("[IMPERSONATION] Identity refresh listener failed.")


def effective_user(manager: SessionManager, admin: AdminIdentity) -> AdminIdentity | TargetIdentity:
    """Return the identity the rest of the application should treat as acting."""
    session = manager.session
    if session is not None:
        return session.target
    return admin


def describe_context(manager: SessionManager, admin: AdminIdentity) -> ImpersonationContext:
    session = manager.session
    return ImpersonationContext(
        is_impersonating=session is not None,
        original_admin=session.admin if session is not None else None,
        target_user=session.target if session is not None else None,
        session=session,
        effective_user=effective_user(manager, admin),
    )


class ImpersonationRegistry:
    """One :class:`SessionManager` per admin client, all sharing one audit store.

    Also caches each client's effective identity; the cache entry is dropped on
    every start and end so it is always re-derived after a transition.
    """

    def __init__(
        self,
        audit_store: AuditStore,
        *,
        clock: Callable = utc_now,
        route_provider: Callable[[], str | None] = current_route,
    ) -> None:
        self.audit_store = audit_store
        self._clock = clock
        self._route_provider = route_provider
        self._managers: dict[int, SessionManager] = {}
        self._effective: dict[int, AdminIdentity | TargetIdentity] = {}
        self._lock = threading.RLock()
        audit_store.set_protected_sessions(self.active_session_ids)

    def manager_for(self, admin_id: int) -> SessionManager:
        with self._lock:
            manager = self._managers.get(admin_id)
            if manager is None:
                manager = SessionManager(
                    self.audit_store,
                    clock=self._clock,
                    route_provider=self._route_provider,
                )
                manager.add_listener(lambda _manager, client_id=admin_id: self.invalidate(client_id))
                self._managers[admin_id] = manager
            return manager

    def effective_user(self, admin: AdminIdentity) -> AdminIdentity | TargetIdentity:
        with self._lock:
            cached = self._effective.get(admin.id)
            if cached is None:
                cached = effective_user(self.manager_for(admin.id), admin)
                self._effective[admin.id] = cached
            return cached

    def invalidate(self, admin_id: int) -> None:
        with self._lock:
            self._effective.pop(admin_id, None)
        logger.debug("[IMPERSONATION] Effective identity cache cleared for admin_id=%s", admin_id)

    def active_sessions(self) -> list[ImpersonationSession]:
        with self._lock:
            managers = list(self._managers.values())
        sessions = [manager.session for manager in managers if manager.session is not None]
        return sorted(sessions, key=lambda session: session.start_time, reverse=True)

    def active_session_ids(self) -> set[str]:
        return {session.session_id for session in self.active_sessions()}
