"""Tests for AuthService."""

from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest

from learntrack.auth.models import DEFAULT_LEARNING_GOALS, User
from learntrack.auth.permissions import UserRole
from learntrack.auth.schemas import RegisterRequest
from learntrack.auth.security import hash_password
from learntrack.auth.service import (
    AuthService,
    InvalidCredentialsError,
    UserExistsError,
    UserInactiveError,
    UserNotFoundError,
)


def user_row(**overrides) -> SimpleNamespace:
    data = {
        "id": uuid4(),
        "email": "ana@example.com",
        "name": "Ana",
        "password_hash": hash_password("secret123"),
        "role": "student",
        "is_active": True,
        "learning_goals": None,
        "total_learning_hours": 0.0,
        "current_streak": 0,
        "longest_streak": 0,
        "last_learning_date": None,
        "created_at": datetime(2024, 1, 1, tzinfo=UTC),
        "updated_at": None,
    }
    data.update(overrides)
    return SimpleNamespace(**data)


@pytest.fixture
def auth_service(mock_session):
    return AuthService(session=mock_session, keyspace="test_keyspace")


class TestUserModel:
    """Tests for the User entity."""

    def test_email_is_normalized(self) -> None:
        user = User(email="  Ana@Example.COM ")
        assert user.email == "ana@example.com"

    def test_goals_default(self) -> None:
        user = User(learning_goals={"daily": 10})
        assert user.learning_goals == {**DEFAULT_LEARNING_GOALS, "daily": 10}

    def test_from_row(self) -> None:
        row = user_row(learning_goals={"weekly": 100}, current_streak=None)
        user = User.from_row(row)
        assert user.id == row.id
        assert user.learning_goals["weekly"] == 100
        assert user.current_streak == 0
        assert user.created_at.tzinfo is not None


class TestRegistration:
    """Tests for register_user."""

    @pytest.mark.asyncio
    async def test_register_creates_user(
        self, auth_service, mock_session, make_result
    ) -> None:
        mock_session.aexecute = AsyncMock(return_value=make_result(None))
        data = RegisterRequest(
            name=" Ana Lima ", email="ana@example.com", password="secret123"
        )

        user = await auth_service.register_user(data)

        assert user.name == "Ana Lima"
        assert user.role == UserRole.STUDENT.value
        assert user.password_hash != "secret123"
        assert user.learning_goals == DEFAULT_LEARNING_GOALS
        assert mock_session.aexecute.await_count == 2

    @pytest.mark.asyncio
    async def test_register_duplicate_email(
        self, auth_service, mock_session, make_result
    ) -> None:
        mock_session.aexecute = AsyncMock(return_value=make_result(user_row()))
        data = RegisterRequest(
            name="Ana", email="ana@example.com", password="secret123"
        )

        with pytest.raises(UserExistsError):
            await auth_service.register_user(data)


class TestAuthenticate:
    """Tests for authenticate_user."""

    @pytest.mark.asyncio
    async def test_valid_credentials(
        self, auth_service, mock_session, make_result
    ) -> None:
        row = user_row()
        mock_session.aexecute = AsyncMock(return_value=make_result(row))

        user = await auth_service.authenticate_user("ana@example.com", "secret123")

        assert user.id == row.id

    @pytest.mark.asyncio
    async def test_unknown_email(self, auth_service, mock_session, make_result) -> None:
        mock_session.aexecute = AsyncMock(return_value=make_result(None))
        with pytest.raises(InvalidCredentialsError):
            await auth_service.authenticate_user("nobody@example.com", "secret123")

    @pytest.mark.asyncio
    async def test_wrong_password(
        self, auth_service, mock_session, make_result
    ) -> None:
        mock_session.aexecute = AsyncMock(return_value=make_result(user_row()))
        with pytest.raises(InvalidCredentialsError):
            await auth_service.authenticate_user("ana@example.com", "wrong-pass")

    @pytest.mark.asyncio
    async def test_inactive_account(
        self, auth_service, mock_session, make_result
    ) -> None:
        mock_session.aexecute = AsyncMock(
            return_value=make_result(user_row(is_active=False))
        )
        with pytest.raises(UserInactiveError):
            await auth_service.authenticate_user("ana@example.com", "secret123")

    def test_issue_token(self, auth_service) -> None:
        token = auth_service.issue_token(User(email="ana@example.com", name="Ana"))
        assert token.token_type == "bearer"
        assert token.expires_in > 0
        assert token.user.email == "ana@example.com"


class TestGoalsAndStreaks:
    """Tests for learning goals and streak persistence."""

    @pytest.mark.asyncio
    async def test_missing_user(self, auth_service, mock_session, make_result) -> None:
        mock_session.aexecute = AsyncMock(return_value=make_result(None))
        with pytest.raises(UserNotFoundError):
            await auth_service.update_learning_goals(uuid4(), daily=15)

    @pytest.mark.asyncio
    async def test_omitted_goals_reset_to_defaults(
        self, auth_service, mock_session, make_result
    ) -> None:
        mock_session.aexecute = AsyncMock(
            return_value=make_result(user_row(learning_goals={"weekly": 999}))
        )

        goals = await auth_service.update_learning_goals(uuid4(), daily=15)

        assert goals == {
            "daily": 15,
            "weekly": DEFAULT_LEARNING_GOALS["weekly"],
            "monthly": DEFAULT_LEARNING_GOALS["monthly"],
        }

    @pytest.mark.asyncio
    async def test_save_streaks_keeps_longest(self, auth_service) -> None:
        user = User(email="ana@example.com", longest_streak=10)

        await auth_service.save_streaks(user, 4, None)
        assert user.current_streak == 4
        assert user.longest_streak == 10

        await auth_service.save_streaks(user, 12, None)
        assert user.longest_streak == 12

    @pytest.mark.asyncio
    async def test_add_learning_minutes(
        self, auth_service, mock_session, make_result
    ) -> None:
        row = user_row(total_learning_hours=1.0)
        mock_session.aexecute = AsyncMock(return_value=make_result(row))

        await auth_service.add_learning_minutes(row.id, 30)

        args = mock_session.aexecute.await_args.args[1]
        assert args[0] == 1.5

    @pytest.mark.asyncio
    async def test_add_zero_minutes_is_noop(self, auth_service, mock_session) -> None:
        mock_session.aexecute = AsyncMock()
        await auth_service.add_learning_minutes(uuid4(), 0)
        mock_session.aexecute.assert_not_awaited()


def test_service_prepares_statements(mock_session) -> None:
    AuthService(session=mock_session, keyspace="ks")
    assert isinstance(mock_session.prepare, Mock)
    assert mock_session.prepare.call_count > 0
