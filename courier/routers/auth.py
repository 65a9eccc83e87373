from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from courier.domain.validation import Invalid, validate
from courier.routers.deps import get_auth_service, get_session_context, payload_body
from courier.schemas import LoginRequest
from courier.services.auth_service import AuthService, InvalidCredentialsError
from courier.services.session_service import (
    SessionContext,
    clear_session_cookie,
    session_token,
    set_session_cookie,
)

router = APIRouter(prefix="/api/admin", tags=["auth"])
logger = logging.getLogger(__name__)

CREDENTIALS_REQUIRED = "Username and password required"


@router.post("/login")
def login(
    request: Request,
    data: dict = Depends(payload_body(CREDENTIALS_REQUIRED)),
    auth: AuthService = Depends(get_auth_service),
):
    result = validate(LoginRequest, data)
    if isinstance(result, Invalid):
        raise HTTPException(400, CREDENTIALS_REQUIRED)
    try:
        outcome = auth.login(result.value.username, result.value.password)
    except InvalidCredentialsError:
        raise HTTPException(401, "Invalid credentials")
    # drop whatever session the browser was carrying before
    auth.logout(session_token(request))
    resp = JSONResponse(
        {"message": "Login successful", "user": {"id": outcome.user_id, "username": outcome.username}}
    )
    set_session_cookie(resp, outcome.session_token)
    return resp


@router.post("/logout")
def logout(request: Request, auth: AuthService = Depends(get_auth_service)):
    try:
        auth.logout(session_token(request))
    except SQLAlchemyError:
        logger.exception("Session teardown failed")
        return JSONResponse({"message": "Logout failed"}, status_code=500)
    resp = JSONResponse({"message": "Logout successful"})
    clear_session_cookie(resp)
    return resp


@router.get("/session")
def session_status(ctx: SessionContext = Depends(get_session_context)):
    if ctx.is_admin:
        return {"isAdmin": True}
    return JSONResponse({"isAdmin": False}, status_code=401)
