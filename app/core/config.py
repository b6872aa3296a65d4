"""Application configuration."""

from os import getenv

from pydantic import BaseModel


class Settings(BaseModel):
    """Runtime settings for the application."""

    app_name: str = "Clinic Dashboard API"
    app_env: str = getenv("APP_ENV", "dev")
    debug: bool = getenv("DEBUG", "0") == "1"
    database_url: str = getenv("DATABASE_URL", "sqlite:///./clinic_dashboard.db")
    jwt_secret_key: str = getenv("JWT_SECRET_KEY", "dev-only-change-me-to-a-long-random-secret")
    jwt_algorithm: str = getenv("JWT_ALGORITHM", "HS256")
    jwt_expire_minutes: int = int(getenv("JWT_EXPIRE_MINUTES", "60"))
    admin_email: str = getenv("ADMIN_EMAIL", "admin@agency.local")
    admin_password: str = getenv("ADMIN_PASSWORD", "admin123")

    # Impersonation / audit trail
    audit_max_retained: int = int(getenv("AUDIT_MAX_RETAINED", "1000"))
    audit_flush_timeout_seconds: float = float(getenv("AUDIT_FLUSH_TIMEOUT_SECONDS", "5"))
    impersonation_default_reason: str = getenv("IMPERSONATION_DEFAULT_REASON", "Customer support")
    ip_lookup_mode: str = getenv("IP_LOOKUP_MODE", "request")
    ip_lookup_url: str = getenv("IP_LOOKUP_URL", "https://api.ipify.org?format=json")
    ip_lookup_timeout_seconds: float = float(getenv("IP_LOOKUP_TIMEOUT_SECONDS", "3"))


settings: Settings = Settings()
