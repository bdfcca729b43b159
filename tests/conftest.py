import os

# must be set before taskboard.config is imported
os.environ["DATABASE_URL"] = "sqlite:///./test_taskboard.db"
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-unit-tests-only")

import pytest
from fastapi.testclient import TestClient
from taskboard.main import app
from taskboard.database import SessionLocal, Base, engine
from taskboard.models.task import TaskStatus
from taskboard.models.user import User
from taskboard.services.lanes import LaneEngine
from taskboard.services.projects import ProjectService
from taskboard.services.task_store import TaskStore
from taskboard.utils.auth import hash_password, token_for

PASSWORD = "Pass123!"
_hashes = {}


def _password_hash():
    # bcrypt is slow; one hash serves every fixture user
    if PASSWORD not in _hashes:
        _hashes[PASSWORD] = hash_password(PASSWORD)
    return _hashes[PASSWORD]


# Recreate all tables for each test
@pytest.fixture(autouse=True)
def setup_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_user(db):
    def _make(name, email=None):
        user = User(email=email or f"{name.lower()}@example.com", name=name, password=_password_hash())
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def owner(make_user):
    return make_user("Olivia")


@pytest.fixture
def member(make_user):
    return make_user("Marcus")


@pytest.fixture
def outsider(make_user):
    return make_user("Oscar")


@pytest.fixture
def project(db, owner, member):
    service = ProjectService(db)
    p = service.create(owner.id, "Apollo", "moon shot")
    service.add_member(owner.id, p.id, member.email)
    return p


@pytest.fixture
def lanes(db):
    return LaneEngine(db)


@pytest.fixture
def seed(lanes, owner, project):
    """Append tasks to a lane of the default project; returns their ids in order."""
    def _seed(status, *titles):
        return [lanes.insert_at(owner.id, project.id, title, status=status).id for title in titles]
    return _seed


@pytest.fixture
def snapshot(db, project):
    """Current lanes of a project as ``{lane: [(task_id, position), ...]}`` in position order."""
    def _snapshot(project_id=None):
        db.expire_all()
        store = TaskStore(db)
        return {
            status.value: [(t.id, t.position) for t in store.list_by_lane(project_id or project.id, status)]
            for status in TaskStatus
        }
    return _snapshot


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {token_for(user)}"}
    return _headers
