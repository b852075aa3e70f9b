"""Tests for auth endpoints."""

from unittest.mock import AsyncMock, Mock

import pytest

from learntrack.auth.dependencies import get_auth_service
from learntrack.auth.models import User
from learntrack.auth.schemas import UserResponse
from learntrack.auth.service import InvalidCredentialsError, UserExistsError
from learntrack.main import app


@pytest.fixture
def auth_service():
    service = Mock()
    service.register_user = AsyncMock()
    service.authenticate_user = AsyncMock()
    service.require_user = AsyncMock()
    service.update_learning_goals = AsyncMock()
    service.list_users = AsyncMock(return_value=[])
    service.to_response = Mock(side_effect=UserResponse.from_user)
    app.dependency_overrides[get_auth_service] = lambda: service
    yield service
    app.dependency_overrides.pop(get_auth_service, None)


class TestRegisterLogin:
    def test_register_never_creates_admin(self, client, auth_service) -> None:
        user = User(email="ana@example.com", name="Ana")
        auth_service.register_user.return_value = user
        auth_service.issue_token = Mock(return_value={
            "access_token": "t",
            "expires_in": 60,
            "user": UserResponse.from_user(user).model_dump(mode="json"),
        })

        response = client.post(
            "/v1/auth/register",
            json={
                "name": "Ana",
                "email": "ana@example.com",
                "password": "secret123",
                "role": "admin",
            },
        )

        assert response.status_code == 201
        sent = auth_service.register_user.await_args.args[0]
        assert sent.role.value == "student"

    def test_register_duplicate(self, client, auth_service) -> None:
        auth_service.register_user.side_effect = UserExistsError(
            "User already exists with this email"
        )
        response = client.post(
            "/v1/auth/register",
            json={"name": "Ana", "email": "ana@example.com", "password": "secret123"},
        )
        assert response.status_code == 409

    def test_login_invalid(self, client, auth_service) -> None:
        auth_service.authenticate_user.side_effect = InvalidCredentialsError()
        response = client.post(
            "/v1/auth/login",
            json={"email": "ana@example.com", "password": "nope"},
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"

    def test_register_short_password(self, client, auth_service) -> None:
        response = client.post(
            "/v1/auth/register",
            json={"name": "Ana", "email": "ana@example.com", "password": "123"},
        )
        assert response.status_code == 422


class TestProfile:
    def test_me_requires_token(self, client, auth_service) -> None:
        response = client.get("/v1/auth/me")
        assert response.status_code == 401

    def test_me_rejects_bad_token(self, client, auth_service) -> None:
        response = client.get(
            "/v1/auth/me", headers={"Authorization": "Bearer not-a-token"}
        )
        assert response.status_code == 401

    def test_me(self, client, auth_service, student, headers_for) -> None:
        auth_service.require_user.return_value = User(
            id=student.id, email=student.email, name="Ana"
        )
        response = client.get("/v1/auth/me", headers=headers_for(student))
        assert response.status_code == 200
        assert response.json()["email"] == student.email

    def test_update_goals(self, client, auth_service, student, headers_for) -> None:
        auth_service.require_user.return_value = User(
            id=student.id,
            email=student.email,
            learning_goals={"daily": 45, "weekly": 300, "monthly": 1200},
        )
        response = client.put(
            "/v1/auth/me/goals", json={"daily": 45}, headers=headers_for(student)
        )
        assert response.status_code == 200
        assert response.json()["learning_goals"]["daily"] == 45
        auth_service.update_learning_goals.assert_awaited_once()

    def test_list_users_admin_only(
        self, client, auth_service, student, admin, headers_for
    ) -> None:
        assert client.get("/v1/auth/users", headers=headers_for(student)).status_code == 403
        response = client.get("/v1/auth/users", headers=headers_for(admin))
        assert response.status_code == 200
        assert response.json() == {"items": [], "total": 0}
