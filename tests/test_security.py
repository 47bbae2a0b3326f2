"""Password and token helpers."""

from datetime import timedelta

import pytest
from fastapi import HTTPException
from jose import jwt

from user_admin.core.config import settings
from user_admin.core.security import (
    create_access_token,
    decode_token,
    generate_secure_password,
    hash_password,
    is_password_strong,
    verify_password,
)


def test_hash_and_verify():
    hashed = hash_password("Str0ng!Pass")
    assert hashed != "Str0ng!Pass"
    assert verify_password("Str0ng!Pass", hashed)
    assert not verify_password("wrong", hashed)


def test_verify_rejects_empty_and_malformed():
    assert not verify_password("", hash_password("Str0ng!Pass"))
    assert not verify_password("Str0ng!Pass", "")
    assert not verify_password("Str0ng!Pass", "not-a-bcrypt-hash")


@pytest.mark.parametrize("password,expected", [
    ("Str0ng!Pass", True),
    ("short1!A", True),
    ("Sh0rt!", False),
    ("alllower1!", False),
    ("ALLUPPER1!", False),
    ("NoDigits!!", False),
    ("NoSpecial12", False),
    ("", False),
    (None, False),
])
def test_password_strength(password, expected):
    assert is_password_strong(password) is expected


def test_generated_passwords_are_strong():
    for length in (8, 12, 32):
        password = generate_secure_password(length)
        assert len(password) == length
        assert is_password_strong(password)


def test_generate_password_too_short():
    with pytest.raises(ValueError):
        generate_secure_password(7)


def test_token_carries_issuer_and_audience():
    token = create_access_token({"sub": "7", "roles": ["User"]})
    payload = decode_token(token)
    assert payload["sub"] == "7"
    assert payload["roles"] == ["User"]
    assert payload["iss"] == settings.JWT_ISSUER
    assert payload["aud"] == settings.JWT_AUDIENCE


def test_expired_token_rejected():
    token = create_access_token({"sub": "7"}, expires_delta=timedelta(seconds=-1))
    with pytest.raises(HTTPException) as exc:
        decode_token(token)
    assert exc.value.status_code == 401


def test_wrong_audience_rejected():
    token = jwt.encode(
        {"sub": "7", "iss": settings.JWT_ISSUER, "aud": "someone-else"},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )
    with pytest.raises(HTTPException) as exc:
        decode_token(token)
    assert exc.value.status_code == 401


def test_wrong_secret_rejected():
    token = jwt.encode(
        {"sub": "7", "iss": settings.JWT_ISSUER, "aud": settings.JWT_AUDIENCE},
        "not-the-secret",
        algorithm=settings.JWT_ALGORITHM,
    )
    with pytest.raises(HTTPException):
        decode_token(token)
