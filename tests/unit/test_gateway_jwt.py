"""Unit tests for access-token verification."""

from datetime import UTC, datetime, timedelta

import pytest
from jose import jwt

from config.settings import settings
from src.mk_common.errors import InvalidCredentialsError
from src.mk_gateway.auth.jwt_handler import decode_access_token


def _token(secret: str | None = None, **claims) -> str:
    payload = {"sub": "user-123", "exp": datetime.now(UTC) + timedelta(minutes=5), **claims}
    return jwt.encode(payload, secret or settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def test_decode_valid_access_token() -> None:
    payload = decode_access_token(_token(type="access", user_account_id="acct-1"))
    assert payload["sub"] == "user-123"
    assert payload["user_account_id"] == "acct-1"


def test_missing_type_counts_as_access() -> None:
    assert decode_access_token(_token())["sub"] == "user-123"


def test_refresh_token_rejected() -> None:
    with pytest.raises(InvalidCredentialsError):
        decode_access_token(_token(type="refresh"))


def test_wrong_secret_rejected() -> None:
    with pytest.raises(InvalidCredentialsError):
        decode_access_token(_token(secret="not-the-secret"))


def test_expired_token_rejected() -> None:
    with pytest.raises(InvalidCredentialsError):
        decode_access_token(_token(exp=datetime.now(UTC) - timedelta(seconds=1)))


def test_garbage_rejected() -> None:
    with pytest.raises(InvalidCredentialsError):
        decode_access_token("not.a.jwt")

