from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from app.core.database import get_repository
from app.core.repository import MemoryRepository
from app.core.security import get_password_hash
from app.main import app
from app.schemas.auth import Actor, Role
from app.services.notifications import NotificationDispatcher, Notifier, get_notifier

NOW = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)

USERS = [
    # created_at order matters for faculty assignment
    {"id": "fac-bob", "name": "Bob Kumar", "email": "bob@college.edu", "role": "faculty",
     "department": "CSE", "created_at": "2025-01-01T08:00:00+00:00"},
    {"id": "fac-carol", "name": "Carol Iyer", "email": "carol@college.edu", "role": "faculty",
     "department": "CSE", "created_at": "2025-02-01T08:00:00+00:00"},
    {"id": "fac-dave", "name": "Dave Rao", "email": "dave@college.edu", "role": "faculty",
     "department": "ECE", "created_at": "2025-01-15T08:00:00+00:00"},
    {"id": "stu-alice", "name": "Alice Shah", "email": "alice@college.edu", "role": "student",
     "department": "CSE", "student_id": "CSE-001", "created_at": "2025-03-01T08:00:00+00:00"},
    {"id": "stu-erin", "name": "Erin Das", "email": "erin@college.edu", "role": "student",
     "department": "ECE", "student_id": "ECE-007", "created_at": "2025-03-02T08:00:00+00:00"},
    {"id": "stu-frank", "name": "Frank Pillai", "email": "frank@college.edu", "role": "student",
     "department": "MECH", "student_id": "ME-010", "created_at": "2025-03-03T08:00:00+00:00"},
    {"id": "adm-grace", "name": "Grace Admin", "email": "grace@college.edu", "role": "admin",
     "department": "Office", "created_at": "2024-12-01T08:00:00+00:00"},
]

PASSWORD = "secret123"


class RecordingNotifier(Notifier):
    def __init__(self):
        self.sent = []

    async def notify(self, to_email, kind, payload):
        self.sent.append((to_email, kind, payload))


class RecordingDispatcher(NotificationDispatcher):
    """Collects scheduled deliveries instead of running them."""

    def __init__(self, notifier=None):
        self.scheduled = []
        super().__init__(notifier or RecordingNotifier(), self._record)

    def _record(self, func, to_email, kind, payload):
        self.scheduled.append((to_email, kind, payload))


@pytest.fixture(scope="session")
def password_hash():
    return get_password_hash(PASSWORD)


@pytest.fixture
def repo(password_hash):
    repo = MemoryRepository()
    for user in USERS:
        repo.insert_user({**user, "is_active": True, "password_hash": password_hash})
    return repo


def actor(repo, user_id) -> Actor:
    row = repo.get_user(user_id)
    return Actor(
        id=row["id"],
        email=row["email"],
        name=row["name"],
        role=Role(row["role"]),
        department=row.get("department"),
        student_id=row.get("student_id"),
    )


@pytest.fixture
def alice(repo):
    return actor(repo, "stu-alice")


@pytest.fixture
def frank(repo):
    return actor(repo, "stu-frank")


@pytest.fixture
def bob(repo):
    return actor(repo, "fac-bob")


@pytest.fixture
def carol(repo):
    return actor(repo, "fac-carol")


@pytest.fixture
def grace(repo):
    return actor(repo, "adm-grace")


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def client(repo, notifier):
    app.dependency_overrides[get_repository] = lambda: repo
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth(email: str) -> dict:
    return {"Authorization": f"Bearer mock-{email}"}
