"""
Pytest configuration and shared fixtures for sushflix-api.
"""
import asyncio
import io
import os
import tempfile
import uuid

# Settings are validated at import time, so the environment must be in place first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("STORAGE_PROJECT_ID", "test-project")
os.environ.setdefault("STORAGE_BUCKET_NAME", "test-bucket")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")
os.environ.setdefault("STORAGE_BACKEND", "local")
os.environ.setdefault("LOCAL_STORAGE_PATH", tempfile.mkdtemp(prefix="sushflix-media-"))
os.environ.setdefault("ENV", "test")

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from src.sushflix.db.init_db import create_tables
from src.sushflix.db.session import get_db
from src.sushflix.main import create_app
from src.sushflix.models import User
from src.sushflix.schemas.enums import Role
from src.sushflix.services.auth_service import AuthService
from src.sushflix.services.storage_service import MediaStorageGateway
from src.sushflix.utils.storage import LocalObjectStore

_USE_LENGTH = object()


class FakeUpload:
    """In-memory stand-in for starlette's UploadFile."""

    def __init__(
        self,
        data: bytes = b"\xff\xd8\xff\xe0 fake jpeg",
        content_type: str = "image/jpeg",
        filename: str = "photo.jpg",
        size=_USE_LENGTH,
        fail_after_reads: int | None = None,
        read_delay: float = 0.0,
    ):
        self._buffer = io.BytesIO(data)
        self.filename = filename
        self.content_type = content_type
        self.size = len(data) if size is _USE_LENGTH else size
        self.fail_after_reads = fail_after_reads
        self.read_delay = read_delay
        self.reads = 0

    async def read(self, size: int = -1) -> bytes:
        if self.read_delay:
            await asyncio.sleep(self.read_delay)
        if self.fail_after_reads is not None and self.reads >= self.fail_after_reads:
            raise ConnectionResetError("client went away")
        self.reads += 1
        return self._buffer.read(size)


@pytest.fixture
def fake_upload():
    return FakeUpload


@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_tables(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def storage_dir(tmp_path):
    path = tmp_path / "media"
    path.mkdir()
    return path


@pytest.fixture
def object_store(storage_dir):
    return LocalObjectStore(str(storage_dir))


@pytest.fixture
def gateway(object_store):
    return MediaStorageGateway(object_store, upload_timeout=5.0)


@pytest.fixture
async def creator(db):
    user = User(id=uuid.uuid4(), username="alice", display_name="Alice", role=Role.CREATOR.value)
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def fan(db):
    user = User(id=uuid.uuid4(), username="bob", display_name="Bob", role=Role.USER.value)
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def other_creator(db):
    user = User(id=uuid.uuid4(), username="carol", role=Role.CREATOR.value)
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
def auth_service():
    return AuthService()


@pytest.fixture
def auth_headers(auth_service):
    """Build bearer headers for a user id and role."""
    def _headers(user_id, role: Role = Role.USER) -> dict:
        token = auth_service.create_access_token(user_id, role)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def app(session_factory, gateway):
    app = create_app(storage_gateway=gateway)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
