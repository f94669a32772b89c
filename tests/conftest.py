import os
import tempfile

# Settings are read at import time, so point them at scratch locations first
_scratch_dir = tempfile.mkdtemp(prefix="lead-manager-tests-")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_DIR", os.path.join(_scratch_dir, "logs"))
os.environ.setdefault("UPLOAD_DIR", os.path.join(_scratch_dir, "uploads"))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from app.main import app
from app.core.database import Base, get_db, configure_sqlite
from app.models.lead import Lead
from app.models.import_report import ImportReport, ImportReportError

# One shared in-memory database for the whole test run
engine = configure_sqlite(create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
))
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create tables
Base.metadata.create_all(bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Provide the session used by both the test and the API, cleaned after each test."""
    session = TestingSessionLocal()

    def override_get_db():
        yield session

    app.dependency_overrides[get_db] = override_get_db

    yield session

    # Delete in correct order to respect foreign keys
    session.rollback()
    session.query(Lead).delete()
    session.query(ImportReportError).delete()
    session.query(ImportReport).delete()
    session.commit()
    session.close()
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture(scope="function")
def client(db_session):
    """Create a test client that uses the test database session."""
    return TestClient(app)


@pytest.fixture
def db_helpers(db_session):
    """Provide database helper utilities for tests."""
    from tests.helpers import DatabaseHelpers
    return DatabaseHelpers(db_session)
