from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.config import ImportSettings
from app.db.deps import Actor
from app.db.repository import create_project
from app.main import create_app


@pytest.fixture()
def settings() -> ImportSettings:
    return ImportSettings()


@pytest.fixture()
def app(tmp_path, settings):
    db_path = tmp_path / "test.db"
    return create_app(database_url=f"sqlite:///{db_path}", settings=settings)


@pytest.fixture()
def client(app):
    return TestClient(app)


@pytest.fixture()
def db(app):
    session = app.state.db.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def project_id(db) -> str:
    return create_project(db, name="Triangle Sites")


@pytest.fixture()
def actor() -> Actor:
    return Actor(user_id="user-1", email="importer@example.com", permissions=frozenset({"import:run"}))
