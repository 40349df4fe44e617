"""Shared fixtures: a fresh app over a temporary SQLite database per test."""

import os

# Settings are read at import time, so the environment is fixed before app imports
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("CACHE_ENABLED", "false")
os.environ.setdefault("RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_FORMAT", "console")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")

import uuid  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from app.config import Settings  # noqa: E402
from app.core.security import get_password_hash  # noqa: E402
from app.main import create_app  # noqa: E402
from app.models.user import User  # noqa: E402
from app.services.file_storage import FileStorage, get_storage  # noqa: E402

PASSWORD = "Passw0rdOK"


@pytest.fixture
async def app(tmp_path):
    settings = Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        DATABASE_AUTO_CREATE=True,
        CACHE_ENABLED=False,
    )
    application = create_app(settings)
    application.dependency_overrides[get_storage] = lambda: FileStorage(str(tmp_path / "uploads"))
    async with application.router.lifespan_context(application):
        yield application


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def register(client, email, role="student", class_code=None, **extra):
    body = {
        "email": email,
        "password": PASSWORD,
        "first_name": extra.pop("first_name", "Test"),
        "last_name": extra.pop("last_name", "User"),
        "role": role,
    }
    if class_code is not None:
        body["class_code"] = class_code
    body.update(extra)
    return await client.post("/api/v1/auth/register", json=body)


async def make_admin(app, email="admin@school.edu") -> None:
    async with app.state.db.session() as session:
        session.add(
            User(
                email=email,
                password_hash=get_password_hash(PASSWORD),
                role="admin",
                first_name="Ada",
                last_name="Admin",
            )
        )
        await session.commit()


async def login(client, email) -> str:
    response = await client.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD})
    assert response.status_code == 200, response.text
    return response.json()["token"]


@pytest.fixture
async def teacher(client):
    """(token, class_code) for a teacher who owns one class."""
    response = await register(client, "teacher@school.edu", role="teacher", first_name="Tara")
    assert response.status_code == 201, response.text
    token = response.json()["token"]

    created = await client.post("/api/v1/classes", json={"name": "Algebra I"}, headers=auth_header(token))
    assert created.status_code == 201, created.text
    return token, created.json()["class"]["class_code"]


async def new_student(client, class_code, email=None):
    """(token, profile_id) for a freshly registered student."""
    email = email or f"student-{uuid.uuid4().hex[:8]}@school.edu"
    response = await register(client, email, class_code=class_code, first_name="Sam", last_name="Student")
    assert response.status_code == 201, response.text
    token = response.json()["token"]

    me = await client.get("/api/v1/auth/me", headers=auth_header(token))
    return token, me.json()["profile"]["id"]


@pytest.fixture
async def student(client, teacher):
    return await new_student(client, teacher[1], email="sam@school.edu")


@pytest.fixture
async def admin_token(app, client):
    await make_admin(app)
    return await login(client, "admin@school.edu")
