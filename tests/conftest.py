"""Shared fixtures.

Environment defaults are set before the application package is imported so
that settings load without a .env file.
"""

import os
import tempfile

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-interviews-media")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("STORAGE_ROOT", tempfile.mkdtemp(prefix="interviews-media-"))
os.environ.setdefault("LOG_JSON", "false")

from pathlib import Path  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from interviews_media.core.database import Base  # noqa: E402
from interviews_media.core.storage import LocalStorage  # noqa: E402
from interviews_media.modules.auth.schemas import Principal  # noqa: E402
import interviews_media.modules.video.models  # noqa: E402,F401


@pytest.fixture
async def session():
    """AsyncSession on a fresh in-memory database."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with maker() as db_session:
        yield db_session

    await engine.dispose()


@pytest.fixture
def storage(tmp_path: Path) -> LocalStorage:
    """Storage root under a temporary directory."""
    local_storage = LocalStorage(tmp_path / "storage")
    local_storage.ensure_layout()
    return local_storage


@pytest.fixture
def owner() -> Principal:
    return Principal(id=7, role="user")


@pytest.fixture
def stranger() -> Principal:
    return Principal(id=9, role="user")


@pytest.fixture
def admin() -> Principal:
    return Principal(id=1, role="admin")


@pytest.fixture
def write_file(storage: LocalStorage):
    """Create a file under the storage root."""

    def _write(relative_path: str, content: bytes) -> Path:
        full_path = storage.resolve(relative_path)
        full_path.parent.mkdir(parents=True, exist_ok=True)
        full_path.write_bytes(content)
        return full_path

    return _write
