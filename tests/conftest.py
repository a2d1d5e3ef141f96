"""
Shared pytest fixtures
"""

import os
import tempfile

# Settings are read at import time
os.environ["USE_FIREBASE"] = "false"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="dining-events-uploads-"))

import pytest
from datetime import datetime
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.db import Base
from app.schemas import MenuCourseCreate
from app.services.event_cache import EventCache
from app.services.event_store import EventStore
from app.services.lifecycle_service import EventLifecycleService
from app.services.repositories import SqlRepository
from app.services.storage_service import LocalObjectStorage
import app.models  # noqa: F401  (registers tables on Base)

# Test database setup
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

EVENT_DATE = datetime(2030, 5, 17, 19, 30)

@pytest.fixture
def db_session():
    """Create test database session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)

@pytest.fixture
def repo(db_session):
    repo = SqlRepository(db_session)
    repo.create_user("u1", "organizer@example.com", "Olivia")
    repo.create_user("u2", "guest@example.com", "Gabriel")
    repo.create_user("u3", "outsider@example.com", "Oscar")
    return repo

@pytest.fixture
def object_storage(tmp_path):
    return LocalObjectStorage(root=str(tmp_path / "objects"), base_url="http://testserver/uploads")

@pytest.fixture
def store(repo, object_storage):
    return EventStore(repo, cache=EventCache(), object_storage=object_storage)

@pytest.fixture
def lifecycle(store):
    return EventLifecycleService(store)

@pytest.fixture
def dinner(store):
    """Upcoming event organized by u1 with a two-course menu"""
    return store.create_event(
        organizer_id="u1",
        title="Dinner",
        date=EVENT_DATE,
        location="Loc",
        menu=[
            MenuCourseCreate(type="first", name="Soup"),
            MenuCourseCreate(type="main", name="Roast", description="With potatoes"),
        ],
    )
