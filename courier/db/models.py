"""SQLAlchemy models for server-held admin sessions."""
from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Integer, String, func

from .session import Base


class AdminSession(Base):
    __tablename__ = "admin_sessions"

    token = Column(String(128), primary_key=True)
    user_id = Column(Integer, nullable=False)
    username = Column(String(255), nullable=False)
    is_admin = Column(Boolean, default=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
