"""Application models package."""

from app.models.audit_log import ImpersonationAuditRecord
from app.models.user import User

__all__ = ["User", "ImpersonationAuditRecord"]
