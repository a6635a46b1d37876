"""Shared test fixtures with in-memory SQLite."""
import os

# Sessions and the change feed fall back to process memory in tests
os.environ["REDIS_ENABLED"] = "false"

import json
import sqlite3
import uuid

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.pool import StaticPool

from app.models.base import Base
from app.models.organization import Organization
from app.models.user import AppUser, UserRole
from app.main import app
from app.dependencies import get_db, get_storage
from app.services.auth_service import create_access_token, create_session, hash_password
from app.services.permission_service import Actor
from app.services.storage_service import ObjectStorage

TEST_PASSWORD = "Testpass123"

# --- SQLite compatibility: compile PostgreSQL types for SQLite ---

@compiles(JSONB, "sqlite")
def _compile_jsonb_sqlite(type_, compiler, **kw):
    return "JSON"


@compiles(UUID, "sqlite")
def _compile_uuid_sqlite(type_, compiler, **kw):
    return "VARCHAR(36)"


@compiles(ARRAY, "sqlite")
def _compile_array_sqlite(type_, compiler, **kw):
    return "JSON"


sqlite3.register_adapter(list, lambda val: json.dumps(val))
sqlite3.register_converter("JSON", lambda val: json.loads(val))

# In-memory SQLite for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
test_session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@event.listens_for(test_engine.sync_engine, "connect")
def _set_sqlite_pragma(dbapi_connection, _connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture(autouse=True)
async def setup_db():
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def _override_get_db():
    async with test_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = _override_get_db


@pytest.fixture
def storage(tmp_path) -> ObjectStorage:
    return ObjectStorage(tmp_path / "storage", "http://test/storage")


@pytest.fixture(autouse=True)
def _override_storage(storage: ObjectStorage):
    app.dependency_overrides[get_storage] = lambda: storage
    yield
    app.dependency_overrides.pop(get_storage, None)


@pytest.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def db_session():
    async with test_session_factory() as session:
        yield session


async def _create_organization(
    db: AsyncSession, name: str | None = None, archived: bool = False,
) -> Organization:
    org = Organization(
        id=uuid.uuid4(),
        name=name or f"Youth Club {uuid.uuid4().hex[:6]}",
        contact_email="info@hopeyouth.org",
        archived=archived,
    )
    db.add(org)
    await db.commit()
    await db.refresh(org)
    return org


async def _create_test_user(
    db: AsyncSession,
    role: UserRole = UserRole.ADMIN,
    organization: Organization | None = None,
    email: str | None = None,
    archived: bool = False,
) -> tuple[AppUser, str]:
    """Create a test user with an open session and return (user, access_token)."""
    user = AppUser(
        id=uuid.uuid4(),
        email=email or f"{role.value}_{uuid.uuid4().hex[:8]}@hopeyouth.org",
        password_hash=hash_password(TEST_PASSWORD),
        full_name=f"Test {role.value.title()}",
        role=role,
        organization_id=organization.id if organization else None,
        archived=archived,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    sid = await create_session(str(user.id))
    return user, create_access_token(user, sid)


def _headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def _actor(user: AppUser) -> Actor:
    return Actor.from_user(user)


@pytest.fixture
async def admin_auth(db_session: AsyncSession) -> tuple[AppUser, dict]:
    """Return (admin_user, auth_headers)."""
    user, token = await _create_test_user(db_session, UserRole.ADMIN)
    return user, _headers(token)


@pytest.fixture
async def org_a(db_session: AsyncSession) -> Organization:
    return await _create_organization(db_session, "Hope Youth Center")


@pytest.fixture
async def org_b(db_session: AsyncSession) -> Organization:
    return await _create_organization(db_session, "Riverside Scouts")


@pytest.fixture
async def org_a_auth(db_session: AsyncSession, org_a: Organization) -> tuple[AppUser, dict]:
    user, token = await _create_test_user(db_session, UserRole.ORGANIZATION, org_a)
    return user, _headers(token)


@pytest.fixture
async def org_b_auth(db_session: AsyncSession, org_b: Organization) -> tuple[AppUser, dict]:
    user, token = await _create_test_user(db_session, UserRole.ORGANIZATION, org_b)
    return user, _headers(token)
