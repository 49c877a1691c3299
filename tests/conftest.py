import os

# Settings are read at import time; point them at SQLite before skateguide loads
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret")

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from skateguide.config import settings
from skateguide.db.database import build_engine, init_db
from skateguide.db.models import Credentials, Skatepark, User
from skateguide.dependencies import get_db, get_media_storage
from skateguide.main import app
from skateguide.schemas.schemas import Actor, Role
from skateguide.services.media_service import LocalMediaStorage
from skateguide.services.security_service import security_service

DEFAULT_PASSWORD = "secret123"


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def media(tmp_path):
    return LocalMediaStorage(str(tmp_path / "media"))


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(role: str = "User", name: str = None, email: str = None,
                   password: str = DEFAULT_PASSWORD, photo_name: str = None):
        counter["n"] += 1
        user = User(
            name=name or f"{role.lower()}{counter['n']}",
            role=role,
            is_active=False,
            photo_name=photo_name
        )
        user.credentials = Credentials(
            email=email or f"{role.lower()}{counter['n']}@example.com",
            password_hash=security_service.hash_password(password)
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_park(db):
    counter = {"n": 0}
    base_time = datetime(2024, 1, 1, 12, 0, 0)

    def _make_park(owner=None, **overrides):
        counter["n"] += 1
        n = counter["n"]
        values = dict(
            title=f"Park {n}",
            description="A place to skate",
            tags=["Rail"],
            size="Medium",
            levels=["Beginner"],
            is_park=True,
            latitude=-23.5 + n * 0.01,
            longitude=-46.6 + n * 0.01,
            photo_names=[settings.DEFAULT_PARK_PHOTO],
            avg_rating=0,
            favorites_count=0,
            is_approved=False,
            created_by=owner.id if owner is not None else None,
            created_at=base_time + timedelta(minutes=n)
        )
        values.update(overrides)
        park = Skatepark(**values)
        db.add(park)
        db.commit()
        db.refresh(park)
        return park

    return _make_park


def actor_for(user) -> Actor:
    return Actor(id=user.id, role=Role(user.role))


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {security_service.create_access_token(user.id)}"}


@pytest.fixture
def client(session_factory, media):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_media_storage] = lambda: media
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
