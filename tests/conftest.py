"""Shared fixtures."""

import os
from datetime import UTC, datetime
from unittest.mock import AsyncMock, Mock
from uuid import UUID, uuid4

import pytest
from cassandra.cluster import Session
from fastapi.testclient import TestClient


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from learntrack.auth.permissions import UserRole  # noqa: E402
from learntrack.auth.schemas import UserResponse  # noqa: E402
from learntrack.auth.security import issue_access_token  # noqa: E402


# ==============================================================================
# Users and tokens
# ==============================================================================


@pytest.fixture
def user_factory():
    """Factory to create UserResponse objects."""

    def _create_user(
        role: UserRole = UserRole.STUDENT,
        user_id: UUID | None = None,
        name: str | None = None,
    ) -> UserResponse:
        user_id = user_id or uuid4()
        return UserResponse(
            id=user_id,
            email=f"{role.value}_{user_id.hex[:8]}@test.com",
            name=name or f"Test {role.value.title()}",
            role=role.value,
            is_active=True,
            created_at=datetime.now(UTC),
        )

    return _create_user


@pytest.fixture
def student(user_factory) -> UserResponse:
    return user_factory(UserRole.STUDENT)


@pytest.fixture
def instructor(user_factory) -> UserResponse:
    return user_factory(UserRole.INSTRUCTOR)


@pytest.fixture
def admin(user_factory) -> UserResponse:
    return user_factory(UserRole.ADMIN)


def token_for(user: UserResponse) -> str:
    return issue_access_token(user.id, user.email, user.role, name=user.name)


def auth_headers(user: UserResponse) -> dict[str, str]:
    return {"Authorization": f"Bearer {token_for(user)}"}


# ==============================================================================
# Cassandra
# ==============================================================================


@pytest.fixture
def mock_session():
    """Mock Cassandra session (cassandra-asyncio-driver)."""
    session = Mock(spec=Session)
    session.prepare = Mock(return_value=Mock())
    session.aexecute = AsyncMock(return_value=Mock())
    return session


def result_with(row) -> Mock:
    """An aexecute result whose ``one()`` returns ``row``."""
    result = Mock()
    result.one = Mock(return_value=row)
    return result


# ==============================================================================
# Application
# ==============================================================================


@pytest.fixture
def client() -> TestClient:
    """Test client without lifespan (no database connections)."""
    from learntrack.main import app

    return TestClient(app)


@pytest.fixture
def headers_for():
    """Build Authorization headers for a user."""
    return auth_headers


@pytest.fixture
def make_result():
    """Build an aexecute result whose ``one()`` returns the given row."""
    return result_with
