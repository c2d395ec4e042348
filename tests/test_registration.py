from app.core.config import settings
from app.errors.exceptions import EmailDeliveryError
from app.models.user import User
from app.services import registration_service
from app.services.password_service import verify_password
from tests.conftest import ADA, API, make_user, token_from_link


def test_register_parks_a_pending_registration(client, cache, outbox, db):
    res = client.post(f"{API}/register", json=ADA)

    assert res.status_code == 201
    body = res.json()
    assert body["user"] == {"username": "ada", "email": "ada@x.com"}
    assert "check your mail" in body["message"]

    # nothing durable yet
    assert db.query(User).count() == 0

    token = token_from_link(outbox[0]["link"])
    assert outbox[0]["to"] == "ada@x.com"
    assert outbox[0]["link"].startswith("http://testserver/api/auth/verify-email?token=")
    assert set(cache.data) == {f"pending_registration:{token}", "pending_email:ada@x.com"}
    assert set(cache.ttls.values()) == {3600}

    pending = cache.data[f"pending_registration:{token}"]
    assert pending["username"] == "ada"
    assert pending["email"] == "ada@x.com"
    assert pending["password_hash"] != "secret123"
    assert verify_password("secret123", pending["password_hash"])
    assert pending["created_at"]
    assert cache.data["pending_email:ada@x.com"] == {"verification_token": token}


def test_second_registration_for_pending_email_conflicts(client, cache, outbox):
    assert client.post(f"{API}/register", json=ADA).status_code == 201

    res = client.post(f"{API}/register", json={**ADA, "username": "ada2"})

    assert res.status_code == 409
    assert res.json()["detail"] == "Email already in use"
    assert len(outbox) == 1
    assert len(cache.data) == 2


def test_registration_for_existing_user_conflicts(client, cache, db):
    make_user(db, username="someone", email="ada@x.com")

    res = client.post(f"{API}/register", json=ADA)

    assert res.status_code == 409
    assert cache.data == {}


def test_taken_username_conflicts(client, cache, db):
    make_user(db, username="ada", email="other@x.com")

    res = client.post(f"{API}/register", json=ADA)

    assert res.status_code == 409
    assert res.json()["detail"] == "Username already taken"


def test_expired_pending_registration_frees_the_email(client, cache, outbox):
    assert client.post(f"{API}/register", json=ADA).status_code == 201
    for key in list(cache.data):
        cache.expire(key)

    assert client.post(f"{API}/register", json=ADA).status_code == 201
    assert len(outbox) == 2


def test_missing_fields_are_rejected(client, cache):
    for field in ("username", "email", "password"):
        payload = {k: v for k, v in ADA.items() if k != field}
        res = client.post(f"{API}/register", json=payload)
        assert res.status_code == 400, field
        assert res.json()["detail"] == "Validation error"
    assert cache.data == {}


def test_malformed_fields_are_rejected(client):
    assert client.post(f"{API}/register", json={**ADA, "email": "not-an-email"}).status_code == 400
    assert client.post(f"{API}/register", json={**ADA, "password": "12345"}).status_code == 400
    assert client.post(f"{API}/register", json={**ADA, "username": "  a "}).status_code == 400


def test_email_failure_is_best_effort(client, cache, monkeypatch):
    def broken_send(to, username, link):
        raise EmailDeliveryError("SMTP down")

    monkeypatch.setattr(registration_service, "send_verification_email", broken_send)

    res = client.post(f"{API}/register", json=ADA)

    assert res.status_code == 201
    assert "could not be sent" in res.json()["message"]
    assert len(cache.data) == 2


def test_strict_email_policy_rolls_back_pending_state(client, cache, monkeypatch):
    def broken_send(to, username, link):
        raise EmailDeliveryError("SMTP down")

    monkeypatch.setattr(registration_service, "send_verification_email", broken_send)
    monkeypatch.setattr(settings, "EMAIL_DELIVERY_REQUIRED", True)

    res = client.post(f"{API}/register", json=ADA)

    assert res.status_code == 500
    assert res.json()["detail"] == "Failed to send verification email"
    assert cache.data == {}


def test_register_with_transient_store_down(client, cache, outbox, db):
    cache.available = False

    res = client.post(f"{API}/register", json=ADA)

    assert res.status_code == 201
    assert cache.data == {}
    assert db.query(User).count() == 0
    assert outbox == []
    assert "cannot be sent right now" in res.json()["message"]
    assert "check your mail" not in res.json()["message"]


def test_durable_duplicate_check_still_runs_with_store_down(client, cache, db):
    cache.available = False
    make_user(db, username="someone", email="ada@x.com")

    assert client.post(f"{API}/register", json=ADA).status_code == 409
