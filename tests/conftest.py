import asyncio
import os
import tempfile

_STARTUP_DIR = tempfile.mkdtemp(prefix="ledgerline-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_STARTUP_DIR}/startup.db"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ.pop("OWNER_EMAIL", None)
os.environ.pop("OWNER_PASSWORD", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import NullPool

from app.config import settings
from app.core.database import get_db, init_db
from app.core.security import SessionIdentity, hash_password, issue_token
from app.main import app
from app.models.user import User

API = settings.API_PREFIX
PASSWORD = "s3cret-pass"


@pytest.fixture
def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/test.db", poolclass=NullPool)
    asyncio.run(init_db(engine))
    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    yield factory
    asyncio.run(engine.dispose())


@pytest.fixture
def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session_factory):
    """Insert a user directly with the given role and return its session identity."""

    def _make(name: str, role: str = "USER", email: str | None = None) -> SessionIdentity:
        email = email or f"{name.lower()}@example.com"

        async def _insert():
            async with session_factory() as db:
                user = User(name=name, email=email, password=hash_password(PASSWORD), role=role)
                db.add(user)
                await db.commit()
                await db.refresh(user)
                return SessionIdentity(id=user.id, name=user.name, email=user.email, role=user.role)

        return asyncio.run(_insert())

    return _make


def act_as(client: TestClient, identity: SessionIdentity) -> TestClient:
    client.cookies.clear()
    client.cookies.set(settings.SESSION_COOKIE_NAME, issue_token(identity))
    return client


def new_transaction(client: TestClient, **overrides) -> dict:
    body = {"amount": 100, "type": "INCOME", "category": "Restaurant", "description": "lunch service"}
    body.update(overrides)
    res = client.post(f"{API}/transactions", json=body)
    assert res.status_code == 201, res.text
    return res.json()
