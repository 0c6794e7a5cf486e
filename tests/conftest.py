import os

import fakeredis
import pytest
import redis
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Settings are read at import time, so the environment comes first
os.environ["TESTING"] = "1"
os.environ["TEST_DATABASE_URL"] = "sqlite:///./test.db"
os.environ.setdefault("JWT_SECRET", "test-secret-key")
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_REQUESTS"] = "1000"

from mediconnect.main import app
from mediconnect.api.deps import get_session_factory
from mediconnect.core.database import Base, get_db, get_redis
from mediconnect.core.security import TokenService
from mediconnect.core.token_cache import RedisTokenCache
from mediconnect.services.email_service import EmailSender, get_email_sender

TEST_SECRET = os.environ["JWT_SECRET"]

SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

class RecordingEmailSender(EmailSender):
    """Keeps every batch instead of delivering it."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, recipients, subject, html):
        if self.fail:
            return False
        self.sent.append({"recipients": list(recipients), "subject": subject, "html": html})
        return True

class UnreachableRedis:
    """Redis client whose server is down."""

    def _down(self, *args, **kwargs):
        raise redis.ConnectionError("down")

    get = setex = incr = expire = _down

@pytest.fixture
def fake_redis():
    return fakeredis.FakeRedis(decode_responses=True)

@pytest.fixture
def email_sender():
    return RecordingEmailSender()

@pytest.fixture
def test_db():
    # Create tables
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def db_session(test_db):
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

@pytest.fixture
def client(test_db, fake_redis, email_sender):
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = lambda: fake_redis
    app.dependency_overrides[get_email_sender] = lambda: email_sender
    app.dependency_overrides[get_session_factory] = lambda: TestingSessionLocal
    app.state.token_service = TokenService(
        secret=TEST_SECRET,
        cache=RedisTokenCache(fake_redis, ttl_seconds=60),
    )

    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client

    app.dependency_overrides.clear()

def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}

def register(client, email, role, name="Test User", password="TestPassword123", **extra):
    payload = {"email": email, "password": password, "name": name, "role": role}
    payload.update(extra)
    response = client.post("/api/v1/auth/register", json=payload)
    assert response.status_code == 200, response.text
    return response.json()

@pytest.fixture
def doctor(client):
    data = register(client, "doctor@example.com", "DOCTOR", name="Gregory House", speciality="Diagnostics")
    return {"token": data["token"], "user": data["user"], "id": data["user"]["doctor"]["id"]}

@pytest.fixture
def patient(client):
    data = register(client, "patient@example.com", "PATIENT", name="Jane Roe", phone="555-0100")
    return {"token": data["token"], "user": data["user"], "id": data["user"]["patient"]["id"]}

@pytest.fixture
def other_patient(client):
    data = register(client, "other.patient@example.com", "PATIENT", name="John Doe")
    return {"token": data["token"], "user": data["user"], "id": data["user"]["patient"]["id"]}

@pytest.fixture
def online_doctor(client, doctor):
    response = client.put(
        "/api/v1/doctors/status",
        json={"is_online": True},
        headers=auth_headers(doctor["token"]),
    )
    assert response.status_code == 200
    return doctor
