"""Impersonation session and audit trail schemas."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

UNKNOWN = "Unknown"


class AuditEventType(str, Enum):
    SESSION_START = "SESSION_START"
    SESSION_ACTION = "SESSION_ACTION"
    SESSION_END = "SESSION_END"


class AdminIdentity(BaseModel):
    """Real, authenticated operator behind an impersonation session."""

    id: int
    email: str
    first_name: str = ""
    last_name: str = ""
    role: str = "AGENCY_ADMIN"

    model_config = ConfigDict(frozen=True, from_attributes=True)


class TargetIdentity(BaseModel):
    """User whose identity is assumed for the session."""

    id: int
    email: str
    first_name: str = ""
    last_name: str = ""
    role: str

    model_config = ConfigDict(frozen=True, from_attributes=True)


class ClientMetadata(BaseModel):
    ip_address: str = UNKNOWN
    user_agent: str = UNKNOWN

    model_config = ConfigDict(frozen=True)


class ActionRecord(BaseModel):
    """One action performed under borrowed identity."""

    id: str
    timestamp: datetime
    action_type: str
    details: str | None = None
    route: str | None = None
    payload: Any = None

    model_config = ConfigDict(frozen=True)


class ImpersonationSession(BaseModel):
    """Live session state. Only its audit projections are ever persisted."""

    session_id: str
    admin: AdminIdentity
    target: TargetIdentity
    start_time: datetime
    reason: str
    client_metadata: ClientMetadata
    actions: tuple[ActionRecord, ...] = ()

    model_config = ConfigDict(frozen=True)

    @property
    def last_timestamp(self) -> datetime:
        if self.actions:
            return self.actions[-1].timestamp
        return self.start_time

    def with_action(self, record: ActionRecord) -> ImpersonationSession:
        return self.model_copy(update={"actions": (*self.actions, record)})


class AuditEntry(BaseModel):
    """Immutable, queryable projection of a lifecycle or action event."""

    id: str
    type: AuditEventType
    session_id: str
    admin_id: int
    admin_email: str
    target_user_id: int
    target_user_email: str
    timestamp: datetime
    reason: str | None = None
    action: str | None = None
    details: str | None = None
    route: str | None = None
    payload: Any = None
    client_metadata: ClientMetadata | None = None
    duration_ms: int | None = None
    action_count: int | None = None

    model_config = ConfigDict(frozen=True)


class AuditFilters(BaseModel):
    """Structured audit query filters; unset fields do not constrain."""

    admin_id: int | None = None
    target_user_id: int | None = None
    session_id: str | None = None
    start_date: datetime | date | None = None
    end_date: datetime | date | None = None
    type: AuditEventType | None = None


class SessionSummary(BaseModel):
    session_id: str
    duration_ms: int
    actions_performed: int

    model_config = ConfigDict(frozen=True)


class ImpersonationStartRequest(BaseModel):
    target_user_id: int
    reason: str | None = Field(default=None, max_length=500)


class ImpersonationStartResponse(BaseModel):
    session: ImpersonationSession
    landing_route: str


class ActionLogRequest(BaseModel):
    type: str = Field(min_length=1, max_length=128)
    details: str | None = None
    payload: Any = None
    route: str | None = None


class ActionLogResponse(BaseModel):
    logged: bool
    action_id: str | None = None


class ImpersonationEndResponse(BaseModel):
    ended: bool
    session_id: str | None = None
    duration_ms: int | None = None
    actions_performed: int | None = None
    landing_route: str
    refresh: bool = True


class ImpersonationContext(BaseModel):
    """Read model of who is acting: the target while impersonating, else the admin."""

    is_impersonating: bool
    original_admin: AdminIdentity | None = None
    target_user: TargetIdentity | None = None
    session: ImpersonationSession | None = None
    effective_user: AdminIdentity | TargetIdentity


class DeliveryStatusResponse(BaseModel):
    retained: int
    undelivered: int
