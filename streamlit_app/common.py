"""Shared DB helpers for Streamlit reporting pages."""

from datetime import datetime

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import settings
from app.db.base import Base
from app.services.audit_sink import SqlAuditSink
from app.services.audit_store import AuditStore

engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False} if settings.database_url.startswith("sqlite") else {},
)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
Base.metadata.create_all(bind=engine)


def get_session() -> Session:
    return SessionLocal()


def load_audit_store() -> AuditStore:
    """Read-only view of the durable audit trail; the page never appends."""
    store = AuditStore.from_settings(SqlAuditSink(get_session))
    store.load()
    store.close()
    return store


def now_string() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M")
