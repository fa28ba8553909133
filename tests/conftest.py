import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("GEMINI_API_KEY", "test-key")

import httpx
import pytest
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from carmarket.auth import AuthIdentity, create_token
from carmarket.db.database import Base, get_db
from carmarket.db.models import User
from carmarket.services.storage import ObjectStorage, get_storage
from tests.factories import FakeS3Client


@pytest.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def s3_client():
    return FakeS3Client()


@pytest.fixture
def storage(s3_client):
    return ObjectStorage("car-images", "https://cdn.test/storage/v1/object/public", client=s3_client)


@pytest.fixture
def admin_identity():
    return AuthIdentity(sub="user_admin", email="admin@example.com", first_name="Ada", last_name="Admin")


@pytest.fixture
def user_identity():
    return AuthIdentity(sub="user_regular", email="joe@example.com", first_name="Joe", last_name="Buyer")


@pytest.fixture
async def admin_user(db, admin_identity):
    user = User(clerk_user_id=admin_identity.sub, email=admin_identity.email, name="Ada Admin", role="ADMIN")
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def regular_user(db, user_identity):
    user = User(clerk_user_id=user_identity.sub, email=user_identity.email, name="Joe Buyer", role="USER")
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
def auth_headers():
    def _headers(identity: AuthIdentity) -> dict:
        return {"Authorization": f"Bearer {create_token(identity)}"}
    return _headers


@pytest.fixture
async def client(session_factory, storage):
    from carmarket.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
