"""Pydantic schemas for authentication and user profiles."""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from learntrack.auth.models import DEFAULT_LEARNING_GOALS
from learntrack.auth.permissions import UserRole


if TYPE_CHECKING:
    from learntrack.auth.models import User


# ==============================================================================
# Request Schemas
# ==============================================================================


class RegisterRequest(BaseModel):
    """User registration request."""

    name: str = Field(..., min_length=2, max_length=100, description="Full name")
    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., min_length=6, description="Password")
    role: UserRole = Field(default=UserRole.STUDENT, description="Requested role")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()


class LoginRequest(BaseModel):
    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., description="Password")


class UpdateProfileRequest(BaseModel):
    name: str | None = Field(None, min_length=2, max_length=100)


class LearningGoals(BaseModel):
    """Target study minutes per period."""

    daily: int = Field(default=DEFAULT_LEARNING_GOALS["daily"], ge=0)
    weekly: int = Field(default=DEFAULT_LEARNING_GOALS["weekly"], ge=0)
    monthly: int = Field(default=DEFAULT_LEARNING_GOALS["monthly"], ge=0)


class UpdateGoalsRequest(BaseModel):
    """Partial goals update; omitted values fall back to the defaults."""

    daily: int | None = Field(None, ge=0)
    weekly: int | None = Field(None, ge=0)
    monthly: int | None = Field(None, ge=0)


# ==============================================================================
# Response Schemas
# ==============================================================================


class UserResponse(BaseModel):
    """Public user representation."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    name: str | None = None
    role: str
    is_active: bool = True
    learning_goals: LearningGoals | None = None
    total_learning_hours: float = 0.0
    current_streak: int = 0
    longest_streak: int = 0
    created_at: datetime | None = None

    @classmethod
    def from_user(cls, user: "User") -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            role=user.role,
            is_active=user.is_active,
            learning_goals=LearningGoals(**user.learning_goals),
            total_learning_hours=user.total_learning_hours,
            current_streak=user.current_streak,
            longest_streak=user.longest_streak,
            created_at=user.created_at,
        )


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Lifetime in seconds")
    user: UserResponse


class UserListResponse(BaseModel):
    items: list[UserResponse]
    total: int


class MessageResponse(BaseModel):
    message: str
