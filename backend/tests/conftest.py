import os

# Must be set before finpro.database builds the engine
os.environ["DATABASE_URL"] = "sqlite://"

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from finpro.database import Base, SessionLocal, engine
from finpro.deps import get_now
from finpro.main import app
from finpro.models.user import User
from finpro.services.db_service import seed_default_categories

NOW = datetime(2024, 6, 10, 9, 0)


@pytest.fixture
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    seed_default_categories(session)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(first_name="Ana", last_name="Diaz", created_at=None):
        counter["n"] += 1
        n = counter["n"]
        user = User(
            username=f"user{n}",
            first_name=first_name,
            last_name=last_name,
            email=f"user{n}@example.com",
            created_at=created_at or NOW,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def clock():
    """Mutable request clock; tests move it with clock['now'] = ..."""
    return {"now": NOW}


@pytest.fixture
def client(db, clock):
    app.dependency_overrides[get_now] = lambda: clock["now"]
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
