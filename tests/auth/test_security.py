"""Tests for password hashing and access tokens."""

from datetime import timedelta
from uuid import uuid4

import pytest
from jose import jwt

from learntrack.auth.security import (
    InvalidTokenError,
    hash_password,
    issue_access_token,
    read_access_token,
    verify_password,
)
from learntrack.config import get_settings


class TestPasswordHashing:
    def test_hash_is_salted_argon2id(self) -> None:
        password = "SecureP@ssword123"
        first, second = hash_password(password), hash_password(password)

        assert first.startswith("$argon2id$")
        assert first != second
        assert password not in first

    def test_verify_correct(self) -> None:
        check = verify_password("SecureP@ssword123", hash_password("SecureP@ssword123"))
        assert check.valid is True
        assert check.rehash is None

    def test_verify_incorrect(self) -> None:
        valid, rehash = verify_password("wrong", hash_password("SecureP@ssword123"))
        assert valid is False
        assert rehash is None

    def test_verify_garbage_hash(self) -> None:
        assert verify_password("anything", "not-a-hash").valid is False

    def test_weak_hash_is_upgraded(self) -> None:
        from argon2 import PasswordHasher

        weak = PasswordHasher(time_cost=1, memory_cost=8192).hash("pw123456")
        check = verify_password("pw123456", weak)

        assert check.valid is True
        assert check.rehash is not None
        assert verify_password("pw123456", check.rehash) == (True, None)


class TestAccessToken:
    def test_round_trip(self) -> None:
        user_id = uuid4()
        token = issue_access_token(user_id, "ana@example.com", "instructor", name="Ana")

        claims = read_access_token(token)

        assert claims.user_id == user_id
        assert claims.email == "ana@example.com"
        assert claims.role == "instructor"
        assert claims.name == "Ana"

    def test_expired(self) -> None:
        token = issue_access_token(
            uuid4(), "a@b.com", "student", ttl=timedelta(seconds=-1)
        )
        with pytest.raises(InvalidTokenError):
            read_access_token(token)

    def test_garbage(self) -> None:
        with pytest.raises(InvalidTokenError):
            read_access_token("invalid.token.here")

    def _forge(self, **claims) -> str:
        settings = get_settings()
        return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)

    def test_missing_role_rejected(self) -> None:
        token = self._forge(sub=str(uuid4()), email="a@b.com", type="access")
        with pytest.raises(InvalidTokenError, match="role"):
            read_access_token(token)

    def test_wrong_type_rejected(self) -> None:
        token = self._forge(
            sub=str(uuid4()), email="a@b.com", role="student", type="refresh"
        )
        with pytest.raises(InvalidTokenError, match="not an access token"):
            read_access_token(token)

    def test_subject_must_be_uuid(self) -> None:
        token = self._forge(sub="42", email="a@b.com", role="student", type="access")
        with pytest.raises(InvalidTokenError):
            read_access_token(token)

    def test_other_secret_rejected(self) -> None:
        token = jwt.encode(
            {"sub": str(uuid4()), "email": "a@b.com", "role": "student", "type": "access"},
            "x" * 40,
            algorithm="HS256",
        )
        with pytest.raises(InvalidTokenError):
            read_access_token(token)
