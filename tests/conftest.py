import asyncio
import os
import tempfile
from datetime import datetime, timedelta, timezone

import bcrypt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

# Settings are read at import time: point them at throwaway values first
ADMIN_PASSWORD = "correct horse battery staple"
_scratch = tempfile.mkdtemp(prefix="sitecms-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_scratch}/import.db"
os.environ["ADMIN_PASSWORD_HASH"] = bcrypt.hashpw(ADMIN_PASSWORD.encode(), bcrypt.gensalt(rounds=4)).decode()
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["DEV_ACCESS_KEY"] = "preview-key"
os.environ["CLOUDINARY_CLOUD_NAME"] = ""

from sitecms import database as db_module  # noqa: E402
from sitecms.database import Base  # noqa: E402
from sitecms.main import app  # noqa: E402
from sitecms.models import GalleryImage  # noqa: E402
from sitecms.site_settings import SiteFlags  # noqa: E402
from sitecms.utils.jwt_auth import create_access_token  # noqa: E402
from sitecms.utils.rate_limit import limiter  # noqa: E402

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_image(id, group_id=None, is_cover=False, order=0, category="Events",
               published=True, title=None, seconds=0, url=None):
    """Transient GalleryImage for tests that never touch the database."""
    return GalleryImage(
        id=str(id),
        title=title or f"Image {id}",
        description="",
        category=category,
        image_url=url or f"https://res.cloudinary.com/demo/image/upload/v1/gallery/{id}.webp",
        published=published,
        order=order,
        group_id=group_id,
        is_cover=is_cover,
        created_at=BASE_TIME + timedelta(seconds=seconds),
    )


def _engine_for(path):
    return create_async_engine(f"sqlite+aiosqlite:///{path}", poolclass=NullPool)


async def _create_schema(engine):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture
async def session(tmp_path):
    """AsyncSession on a fresh SQLite file, for coroutine tests."""
    engine = _engine_for(tmp_path / "unit.db")
    await _create_schema(engine)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with factory() as s:
        yield s
    await engine.dispose()


@pytest.fixture
def session_factory(tmp_path, monkeypatch):
    """Route tests: every request session (and the maintenance gate) uses a fresh SQLite file."""
    engine = _engine_for(tmp_path / "api.db")
    asyncio.run(_create_schema(engine))
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    monkeypatch.setattr(db_module, "AsyncSessionLocal", factory)
    return factory


@pytest.fixture
def seed(session_factory):
    """Insert rows synchronously: seed(dict(...), dict(...))."""
    def _seed(*rows):
        async def _insert():
            async with session_factory() as s:
                s.add_all([GalleryImage(**row) for row in rows])
                await s.commit()
        asyncio.run(_insert())
    return _seed


@pytest.fixture(autouse=True)
def fresh_app_state():
    app.state.site_flags = SiteFlags(max_age=0)
    limiter.enabled = False
    yield
    limiter.enabled = True


@pytest.fixture
def client(session_factory):
    return TestClient(app)


@pytest.fixture
def admin_headers():
    token = create_access_token({"sub": "cms_admin", "role": "admin"})
    return {"Authorization": f"Bearer {token}"}
