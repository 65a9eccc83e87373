"""Session helpers (issue tokens, cookies, validation)."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Request, Response

from courier.core.config import get_settings
from courier.repositories.session_repository import SessionRepository

SESSION_COOKIE_NAME = "session"


@dataclass(frozen=True)
class SessionContext:
    """What the gate knows about the caller; handed to handlers explicitly."""

    token: Optional[str] = None
    user_id: Optional[int] = None
    username: Optional[str] = None
    is_admin: bool = False

    @property
    def authenticated(self) -> bool:
        return self.token is not None and self.user_id is not None


ANONYMOUS = SessionContext()


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    return value.astimezone(timezone.utc) if value.tzinfo else value.replace(tzinfo=timezone.utc)


class SessionService:
    def __init__(self, repository: SessionRepository | None = None) -> None:
        self.repository = repository or SessionRepository()
        self.settings = get_settings()

    def issue(self, user_id: int, username: str) -> str:
        now = datetime.now(timezone.utc)
        self.repository.delete_expired(now)
        expires_at = now + timedelta(seconds=self.settings.session_ttl_seconds)
        return self.repository.create(user_id, username, expires_at, is_admin=True)

    def resolve(self, token: Optional[str]) -> SessionContext:
        if not token:
            return ANONYMOUS
        entity = self.repository.get(token)
        if not entity:
            return ANONYMOUS
        if entity.expires_at and _as_utc(entity.expires_at) < datetime.now(timezone.utc):
            self.repository.delete(token)
            return ANONYMOUS
        return SessionContext(
            token=entity.token,
            user_id=entity.user_id,
            username=entity.username,
            is_admin=bool(entity.is_admin),
        )

    def destroy(self, token: Optional[str]) -> None:
        if not token:
            return
        self.repository.delete(token)


def session_token(request: Request) -> Optional[str]:
    return request.cookies.get(SESSION_COOKIE_NAME)


def set_session_cookie(response: Response, token: str) -> None:
    settings = get_settings()
    secure_cookie = settings.app_env == "prod"
    response.set_cookie(
        SESSION_COOKIE_NAME,
        token,
        httponly=True,
        secure=secure_cookie,
        samesite="lax",
        max_age=settings.session_ttl_seconds,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE_NAME, path="/")
