from __future__ import annotations

import io
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

# Make the courier package importable when running tests from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from fastapi.testclient import TestClient  # noqa: E402
from PIL import Image  # noqa: E402

from courier.core import config as core_config  # noqa: E402
from courier.db import session as db_session  # noqa: E402


def _reset_caches() -> None:
    core_config.get_settings.cache_clear()
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]


@pytest.fixture()
def env(tmp_path, monkeypatch):
    """Point data, uploads and the session database at a temporary directory."""
    data_dir = tmp_path / "data"
    uploads_dir = tmp_path / "uploads"
    monkeypatch.setenv("DATA_DIR", str(data_dir))
    monkeypatch.setenv("UPLOADS_DIR", str(uploads_dir))
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'sessions.db'}")
    monkeypatch.setenv("ADMIN_USERNAME", "admin")
    monkeypatch.setenv("ADMIN_PASSWORD", "admin123")
    monkeypatch.setenv("APP_ENV", "dev")
    monkeypatch.delenv("SESSION_TTL_SECONDS", raising=False)
    monkeypatch.delenv("MAX_UPLOAD_BYTES", raising=False)
    _reset_caches()

    yield SimpleNamespace(data_dir=data_dir, uploads_dir=uploads_dir)

    try:
        db_session.get_engine().dispose()
    except Exception:
        pass
    _reset_caches()


@pytest.fixture()
def app(env):
    from courier.app import create_app

    return create_app()


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def admin_client(client):
    resp = client.post("/api/admin/login", json={"username": "admin", "password": "admin123"})
    assert resp.status_code == 200
    return client


@pytest.fixture()
def png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), (200, 120, 40)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture()
def package_form() -> dict:
    return {
        "status": "On Hold",
        "sender[name]": "Alice",
        "sender[address]": "1 Main St",
        "receiver[name]": "Bob",
        "receiver[address]": "2 Oak Ave",
        "currentLocationAddress": "Central Depot",
        "currentLocationLat": "40.7128",
        "currentLocationLng": "-74.0060",
        "packageType": "Box",
        "packageWeight": "2kg",
        "packageHeight": "30cm",
        "packageColor": "Brown",
        "adminNotes": "",
    }
