"""Unit tests for bearer token decoding."""

import pytest
from jose import JWTError, jwt
from libs.auth.dependencies import decode_access_token, settings
from libs.auth.models import Role
from pydantic import ValidationError


def _token(claims, secret=None):
    return jwt.encode(
        claims, secret or settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM
    )


@pytest.mark.unit
def test_decode_access_token_builds_principal():
    user = decode_access_token(
        _token({"sub": "seller-1", "email": "seller@example.com", "role": "seller"})
    )

    assert user.user_id == "seller-1"
    assert user.role == Role.SELLER


@pytest.mark.unit
def test_role_defaults_to_buyer():
    assert decode_access_token(_token({"sub": "buyer-1"})).role == Role.BUYER


@pytest.mark.unit
def test_wrong_signature_is_rejected():
    with pytest.raises(JWTError):
        decode_access_token(_token({"sub": "x"}, secret="not-the-secret"))


@pytest.mark.unit
def test_unknown_role_is_rejected():
    with pytest.raises(ValidationError):
        decode_access_token(_token({"sub": "x", "role": "superuser"}))


@pytest.mark.unit
def test_principal_is_immutable():
    user = decode_access_token(_token({"sub": "buyer-1"}))
    with pytest.raises(ValidationError):
        user.role = Role.ADMIN
