"""Shared fixtures: in-memory database, fake transient store, captured emails.

Environment overrides must be in place before ``app`` is imported because
settings are read at import time.
"""
import json
import os
import tempfile
from urllib.parse import parse_qs, urlparse

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_FILE"] = os.path.join(tempfile.mkdtemp(prefix="noteit-logs-"), "logs.txt")
os.environ["BASE_URL"] = "http://testserver"
os.environ["EMAIL_DELIVERY_REQUIRED"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.dependencies import get_cache, get_db
from app.db.base import Base
from app.main import app
from app.services import registration_service
from app.services.password_service import get_password_hash
from app.services.user_service import create_user

API = "/api/auth"


class FakeCache:
    """Dict-backed stand-in for RedisCache.

    TTLs are recorded, not enforced; ``expire`` simulates Redis dropping a
    key. With ``available=False`` it behaves like a RedisCache whose
    connection failed.
    """

    def __init__(self, available: bool = True):
        self.available = available
        self.data = {}
        self.ttls = {}

    @property
    def is_available(self) -> bool:
        return self.available

    async def connect(self) -> bool:
        return self.available

    async def disconnect(self) -> None:
        self.available = False

    async def ping(self) -> bool:
        return self.available

    async def set(self, key, value, ttl=3600):
        if not self.available:
            return
        self.data[key] = json.loads(json.dumps(value, default=str))
        self.ttls[key] = ttl

    async def get(self, key):
        if not self.available:
            return None
        return self.data.get(key)

    async def delete(self, key):
        if not self.available:
            return
        self.data.pop(key, None)
        self.ttls.pop(key, None)

    def expire(self, key):
        self.data.pop(key, None)
        self.ttls.pop(key, None)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def cache():
    return FakeCache()


@pytest.fixture
def outbox(monkeypatch):
    """Captures verification emails instead of talking to SMTP."""
    sent = []

    def fake_send(to, username, verification_link):
        sent.append({"to": to, "username": username, "link": verification_link})

    monkeypatch.setattr(registration_service, "send_verification_email", fake_send)
    return sent


@pytest.fixture
def client(session_factory, cache, outbox):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: cache
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


# ── helpers ───────────────────────────────────────────────────────────────────

ADA = {"username": "ada", "email": "ada@x.com", "password": "secret123"}


def token_from_link(link: str) -> str:
    return parse_qs(urlparse(link).query)["token"][0]


def make_user(db, username="grace", email="grace@x.com", password="hopper123", is_verified=True):
    return create_user(db, username, email, get_password_hash(password), is_verified)


def register_and_verify(client, outbox, payload=None):
    payload = payload or ADA
    res = client.post(f"{API}/register", json=payload)
    assert res.status_code == 201, res.text
    token = token_from_link(outbox[-1]["link"])
    res = client.get(f"{API}/verify-email", params={"token": token})
    assert res.status_code == 200, res.text
    return res.json()["user"]


def login(client, email="ada@x.com", password="secret123"):
    return client.post(f"{API}/login", json={"email": email, "password": password})
