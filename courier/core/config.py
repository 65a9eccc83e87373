"""
Configuration helpers for the courier backend.

Routers and services read settings through get_settings() instead of
fetching os.environ directly.
"""

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
import os


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    public_base_url: str
    data_dir: Path
    uploads_dir: Path
    database_url: str
    session_ttl_seconds: int
    max_upload_bytes: int
    admin_username: str
    admin_password: str
    log_level: str


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    data_dir = Path(os.getenv("DATA_DIR", "data")).resolve()
    uploads_dir = Path(os.getenv("UPLOADS_DIR", "uploads")).resolve()
    return Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        public_base_url=os.getenv("PUBLIC_BASE_URL", "http://localhost:5000").rstrip("/"),
        data_dir=data_dir,
        uploads_dir=uploads_dir,
        database_url=os.getenv("DATABASE_URL") or f"sqlite:///{data_dir / 'sessions.db'}",
        session_ttl_seconds=max(60, _int(os.getenv("SESSION_TTL_SECONDS", "86400"), 86400)),
        max_upload_bytes=_int(os.getenv("MAX_UPLOAD_BYTES", "5242880"), 5 * 1024 * 1024),
        admin_username=os.getenv("ADMIN_USERNAME", "admin"),
        admin_password=os.getenv("ADMIN_PASSWORD", "admin123"),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )
