"""
Shared fixtures: in-memory database, fake media host, signed tokens and the HTTP client.
"""

import io
import os
import sys
import time
from pathlib import Path
from typing import Dict, List, Mapping, Sequence

import pytest
from jose import jwt
from PIL import Image
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("GRADIO_ANALYTICS_ENABLED", "False")

project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from src import db  # noqa: E402
from src.media_storage import HostedObject  # noqa: E402

ADMIN_EMAIL = "admin@example.com"
SESSION_SECRET = "test-session-secret"


class FakeMediaHost:
    def __init__(self) -> None:
        self.calls: List[Dict[str, object]] = []

    def upload(
        self,
        data: bytes,
        object_name: str,
        *,
        content_type: str,
        transformations: Sequence[Mapping[str, str]],
    ) -> HostedObject:
        self.calls.append(
            {
                "data": data,
                "object_name": object_name,
                "content_type": content_type,
                "transformations": [dict(step) for step in transformations],
            }
        )
        return HostedObject(url=f"https://media.test/{object_name}", public_id=object_name)


class FailingMediaHost(FakeMediaHost):
    def upload(self, data, object_name, *, content_type, transformations):
        super().upload(data, object_name, content_type=content_type, transformations=transformations)
        raise ConnectionError("upstream unavailable")


@pytest.fixture(autouse=True)
def auth_env(monkeypatch):
    monkeypatch.setenv("ADMIN_EMAIL", ADMIN_EMAIL)
    monkeypatch.setenv("SESSION_SECRET", SESSION_SECRET)


@pytest.fixture(autouse=True)
def test_db_engine(monkeypatch):
    """Fresh in-memory SQLite database per test, patched into src.db."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    db.attach_sql_timing(engine)
    monkeypatch.setattr(db, "_ENGINE", engine)
    monkeypatch.setattr(db, "_SessionLocal", sessionmaker(bind=engine, autoflush=False, future=True))
    yield engine
    engine.dispose()


@pytest.fixture
def row_count(test_db_engine):
    def _count() -> int:
        with test_db_engine.connect() as connection:
            exists = connection.execute(
                text("SELECT COUNT(*) FROM sqlite_master WHERE type = 'table' AND name = 'portfolio'")
            ).scalar()
            if not exists:
                return 0
            return connection.execute(text("SELECT COUNT(*) FROM portfolio")).scalar()

    return _count


def make_token(email: str = ADMIN_EMAIL, *, expires_in: int = 3600, secret: str = SESSION_SECRET) -> str:
    now = int(time.time())
    return jwt.encode({"email": email, "iat": now, "exp": now + expires_in}, secret, algorithm="HS256")


@pytest.fixture
def admin_header() -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token()}"}


def image_bytes(fmt: str = "PNG", size=(64, 48), noise: bool = False) -> bytes:
    if noise:
        image = Image.frombytes("RGB", size, os.urandom(size[0] * size[1] * 3))
    else:
        image = Image.new("RGB", size, color=(20, 120, 200))
    buffer = io.BytesIO()
    image.save(buffer, format=fmt, **({"quality": 95} if fmt == "JPEG" else {}))
    return buffer.getvalue()


@pytest.fixture
def media_host() -> FakeMediaHost:
    return FakeMediaHost()


@pytest.fixture
def client(media_host):
    from fastapi.testclient import TestClient

    from app import app, get_media_host

    app.dependency_overrides[get_media_host] = lambda: media_host
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
