"""Admin session persistence backed by SQLAlchemy."""
from __future__ import annotations

import secrets
from datetime import datetime
from typing import Optional

from sqlalchemy import delete

from courier.db.models import AdminSession
from courier.db.session import get_session


class SessionRepository:
    """CRUD helpers for server-held admin sessions."""

    def create(self, user_id: int, username: str, expires_at: datetime, *, is_admin: bool = True) -> str:
        token = secrets.token_urlsafe(32)
        entity = AdminSession(
            token=token,
            user_id=user_id,
            username=username,
            is_admin=is_admin,
            expires_at=expires_at,
        )
        with get_session() as session:
            session.add(entity)
            session.commit()
        return token

    def get(self, token: str) -> Optional[AdminSession]:
        with get_session() as session:
            return session.get(AdminSession, token)

    def delete(self, token: str) -> None:
        with get_session() as session:
            session.execute(delete(AdminSession).where(AdminSession.token == token))
            session.commit()

    def delete_expired(self, now: datetime) -> int:
        with get_session() as session:
            result = session.execute(delete(AdminSession).where(AdminSession.expires_at < now))
            session.commit()
            return result.rowcount or 0
