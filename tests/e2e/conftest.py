"""Fixtures for end-to-end API tests.

The real application runs with its database and storage dependencies pointed
at a temporary SQLite file and storage root.
"""

import asyncio
from dataclasses import dataclass
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from interviews_media.core.database import Base, get_db
from interviews_media.core.storage import LocalStorage, get_storage
from interviews_media.main import app


@dataclass
class ApiContext:
    client: TestClient
    storage: LocalStorage
    db_url: str

    def seed(self, *rows) -> None:
        async def _seed() -> None:
            engine = create_async_engine(self.db_url, poolclass=NullPool)
            maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
            async with maker() as session:
                for row in rows:
                    session.add(row)
                    await session.flush()
                await session.commit()
            await engine.dispose()

        asyncio.run(_seed())

    def write(self, relative_path: str, content: bytes) -> Path:
        full_path = self.storage.resolve(relative_path)
        full_path.parent.mkdir(parents=True, exist_ok=True)
        full_path.write_bytes(content)
        return full_path


async def _create_schema(db_url: str) -> None:
    engine = create_async_engine(db_url, poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()


@pytest.fixture
def api(tmp_path):
    storage = LocalStorage(tmp_path / "storage")
    storage.ensure_layout()

    db_url = f"sqlite+aiosqlite:///{tmp_path / 'api.db'}"
    asyncio.run(_create_schema(db_url))

    engine = create_async_engine(db_url, poolclass=NullPool)
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage

    with TestClient(app) as client:
        yield ApiContext(client=client, storage=storage, db_url=db_url)

    app.dependency_overrides.clear()


