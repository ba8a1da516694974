"""
Shared test fixtures — file-backed SQLite database, test client, sample settings.
"""

import copy
import os
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Set DATABASE_URL before importing app modules
os.environ["DATABASE_URL"] = "sqlite:///./test.db"

from takeoff import models
from takeoff.database import Base, get_db
from takeoff.main import app
from takeoff.rates import DEFAULT_COMPANY_SETTINGS


TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    """FastAPI test client."""
    return TestClient(app)


@pytest.fixture
def db():
    """Direct database session for test setup/assertions."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def project(db):
    """A saved project row."""
    row = models.Project(name="Warehouse Mezzanine", client_name="Acme Builders")
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@pytest.fixture
def company_settings():
    """Default company rate tables (A992 $1.05/lb, Welder $55/hr, Galvanizing $0.15/lb...)."""
    return copy.deepcopy(DEFAULT_COMPANY_SETTINGS)
