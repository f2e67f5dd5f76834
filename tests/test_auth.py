"""Tests for password hashing and token signing."""

from datetime import datetime, timedelta, timezone

from jose import jwt

from order_api.auth import create_token, decode_token, hash_password, verify_password


def test_hash_is_salted_bcrypt_cost_10():
    a = hash_password("Abcdef!1")
    b = hash_password("Abcdef!1")

    assert a != b
    assert a.startswith("$2b$10$")
    assert verify_password("Abcdef!1", a)
    assert not verify_password("abcdef!1", a)


def test_verify_rejects_non_hash():
    assert not verify_password("Abcdef!1", "Abcdef!1")


def test_token_carries_user_and_expires_in_an_hour(settings):
    token = create_token(settings, "user-1", "maria@empresa.com.br")

    claims = decode_token(settings, token)

    assert claims["sub"] == "user-1"
    assert claims["userId"] == "user-1"
    assert claims["email"] == "maria@empresa.com.br"
    remaining = claims["exp"] - datetime.now(timezone.utc).timestamp()
    assert 59 * 60 < remaining <= 60 * 60


def test_token_signed_with_other_secret_is_rejected(settings):
    token = create_token(settings, "user-1", "maria@empresa.com.br")
    other = settings.model_copy(update={"jwt_secret": "another-secret"})

    assert decode_token(other, token) is None


def test_expired_token_is_rejected(settings):
    token = jwt.encode(
        {"sub": "user-1", "exp": datetime.now(timezone.utc) - timedelta(seconds=5)},
        settings.jwt_secret,
        algorithm=settings.jwt_alg,
    )
    assert decode_token(settings, token) is None


def test_garbage_token_is_rejected(settings):
    assert decode_token(settings, "not.a.token") is None
