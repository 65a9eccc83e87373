"""Shared FastAPI dependencies: services from app.state, the session gate, body parsing."""
from __future__ import annotations

import json

from fastapi import Depends, HTTPException, Request

from courier.repositories.entities import Repositories
from courier.services.auth_service import AuthService
from courier.services.package_service import PackageService
from courier.services.session_service import ANONYMOUS, SessionContext, SessionService, session_token
from courier.services.upload_service import UploadService


def _state(request: Request, name: str):
    value = getattr(getattr(request.app, "state", None), name, None)
    if value is None:
        raise RuntimeError(f"{name} is not configured")
    return value


def get_repositories(request: Request) -> Repositories:
    return _state(request, "repositories")


def get_package_service(request: Request) -> PackageService:
    return _state(request, "package_service")


def get_upload_service(request: Request) -> UploadService:
    return _state(request, "upload_service")


def get_session_service(request: Request) -> SessionService:
    return _state(request, "session_service")


def get_auth_service(request: Request) -> AuthService:
    return _state(request, "auth_service")


def get_session_context(request: Request, sessions: SessionService = Depends(get_session_service)) -> SessionContext:
    token = session_token(request)
    if not token:
        return ANONYMOUS
    return sessions.resolve(token)


def require_admin(ctx: SessionContext = Depends(get_session_context)) -> SessionContext:
    if not ctx.is_admin:
        raise HTTPException(401, "Admin authentication required")
    return ctx


async def read_payload(request: Request, error_message: str) -> dict:
    """Accept JSON or form bodies; anything unreadable is a 400 with ``error_message``."""
    content_type = (request.headers.get("content-type") or "").lower()
    try:
        if content_type.startswith("application/json"):
            data = await request.json()
        else:
            form = await request.form()
            data = {key: value for key, value in form.items() if isinstance(value, str)}
    except (ValueError, json.JSONDecodeError):
        raise HTTPException(400, error_message)
    if not isinstance(data, dict):
        raise HTTPException(400, error_message)
    return data


def payload_body(error_message: str):
    """Dependency that reads the body on the event loop so the handler itself can stay sync."""

    async def dependency(request: Request) -> dict:
        return await read_payload(request, error_message)

    return dependency
