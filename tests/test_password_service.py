from app.services.password_service import get_password_hash, pwd_context, verify_password


def test_hash_verifies_original_password():
    digest = get_password_hash("secret123")
    assert digest != "secret123"
    assert verify_password("secret123", digest)


def test_other_password_does_not_verify():
    digest = get_password_hash("secret123")
    assert not verify_password("secret124", digest)
    assert not verify_password("", digest)


def test_hashes_are_salted():
    assert get_password_hash("secret123") != get_password_hash("secret123")


def test_cost_factor_is_at_least_ten():
    digest = get_password_hash("secret123")
    assert pwd_context.identify(digest) == "bcrypt"
    rounds = int(digest.split("$")[2])
    assert rounds >= 10


def test_missing_or_malformed_digest_never_verifies():
    assert not verify_password("secret123", None)
    assert not verify_password("secret123", "")
    assert not verify_password("secret123", "plaintext-not-a-hash")
