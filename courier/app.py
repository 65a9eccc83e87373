import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from courier.core.config import Settings, get_settings
from courier.core.log import configure_logging
from courier.db.session import create_all
from courier.repositories.entities import build_repositories, default_seeds
from courier.repositories.json_storage import CONTACTS, PACKAGES, USERS, JsonFileStore
from courier.routers import admin as admin_router
from courier.routers import auth as auth_router
from courier.routers import public as public_router
from courier.services.auth_service import AuthService
from courier.services.package_service import PackageService
from courier.services.session_service import SessionService
from courier.services.upload_service import UploadService

logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Inject baseline security headers (anti clickjacking, sniffing, referrer policy)."""

    def __init__(self, app, *, enforce_hsts: bool) -> None:
        super().__init__(app)
        self._enforce_hsts = enforce_hsts

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer-when-downgrade")
        if self._enforce_hsts:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response


def _allowed_origins(settings: Settings) -> list[str]:
    allowed_cors = {settings.public_base_url}
    if settings.app_env != "prod":
        allowed_cors.update(
            {
                "http://localhost:5000",
                "http://127.0.0.1:5000",
                "http://localhost:5173",
                "http://127.0.0.1:5173",
            }
        )
    return sorted(origin for origin in allowed_cors if origin)


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse({"message": exc.detail}, status_code=exc.status_code, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def request_error(request: Request, exc: RequestValidationError):
        return JSONResponse({"message": "Invalid request"}, status_code=400)

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse({"message": "Internal server error"}, status_code=500)


def create_app() -> FastAPI:
    """Factory compatible with uvicorn/gunicorn (``--factory``) and the tests."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Courier Tracking API")

    store = JsonFileStore(settings.data_dir, default_seeds(settings.admin_username, settings.admin_password))
    for collection in (USERS, PACKAGES, CONTACTS):
        store.read(collection)
    repositories = build_repositories(store)
    uploads = UploadService(settings.uploads_dir, settings.max_upload_bytes)
    sessions = SessionService()
    create_all()

    app.state.settings = settings
    app.state.repositories = repositories
    app.state.upload_service = uploads
    app.state.package_service = PackageService(repositories.packages, uploads)
    app.state.session_service = sessions
    app.state.auth_service = AuthService(repositories.users, sessions)

    settings.uploads_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=str(settings.uploads_dir)), name="uploads")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_allowed_origins(settings),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware, enforce_hsts=settings.app_env == "prod")
    _install_error_handlers(app)

    app.include_router(public_router.router)
    app.include_router(auth_router.router)
    app.include_router(admin_router.router)

    logger.info("Courier API ready (data=%s, uploads=%s)", settings.data_dir, settings.uploads_dir)
    return app
