"""ASGI entry point: ``uvicorn courier.app_factory:app``."""
from courier.app import create_app

app = create_app()

__all__ = ["app", "create_app"]
