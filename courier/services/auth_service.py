"""
Admin login / logout use cases.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import logging

from courier.core.security import hash_password, is_hashed, verify_password
from courier.repositories.entities import UserRepository
from courier.services.session_service import SessionService

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Base class for authentication-related exceptions."""


class InvalidCredentialsError(AuthError):
    pass


@dataclass
class LoginSuccess:
    user_id: int
    username: str
    session_token: str


class AuthService:
    """Checks credentials against the users collection and manages sessions."""

    def __init__(self, users: UserRepository, sessions: SessionService) -> None:
        self.users = users
        self.sessions = sessions

    def login(self, username: str, password: str) -> LoginSuccess:
        user = self.users.get_by_username(username)
        if not user or not verify_password(password, user.password):
            logger.info("Rejected admin login for %r", username)
            raise InvalidCredentialsError("Invalid credentials")
        if not is_hashed(user.password):
            self.users.update_password(user.id, hash_password(password))
            logger.info("Upgraded stored credential for user %s", user.id)
        token = self.sessions.issue(user.id, user.username)
        logger.info("Admin %r logged in", user.username)
        return LoginSuccess(user_id=user.id, username=user.username, session_token=token)

    def logout(self, session_token: Optional[str]) -> None:
        self.sessions.destroy(session_token)
