import os
import tempfile
import uuid

# settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["UPLOAD_DIR"] = os.path.join(tempfile.gettempdir(), "campus-portal-test-uploads")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# FORCE model registration
import campus_portal.models  # noqa

from campus_portal.core.realtime import RecordingBroadcaster
from campus_portal.core.types import UserRole
from campus_portal.db.base import Base
from campus_portal.db.session import get_db
from campus_portal.main import create_app
from campus_portal.models.user import User
from campus_portal.services.auth_service import issue_token

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


class FakeStorage:
    """Image storage double: records uploads, returns deterministic URLs."""

    def __init__(self):
        self.saved = []
        self.fail = False

    async def save(self, upload):
        if self.fail:
            raise OSError("storage offline")
        data = await upload.read()
        self.saved.append((upload.filename, data))
        return f"https://cdn.test/{upload.filename}"


@pytest.fixture(scope="function")
def db():
    Base.metadata.create_all(engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def client(db, broadcaster, storage):
    app = create_app(broadcaster=broadcaster, storage=storage)

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user(db):
    def _make(name="Student", email=None, role=UserRole.user, **extra):
        u = User(
            name=name,
            email=email or f"{uuid.uuid4().hex[:10]}@campus.test",
            password_hash="!",
            role=role.value,
            **extra,
        )
        db.add(u)
        db.commit()
        db.refresh(u)
        return u

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user) -> dict:
        return {"Authorization": f"Bearer {issue_token(user)}"}

    return _headers
