"""Authentication service layer.

Business logic for:
- User registration and login
- Access token issuance
- Profile, learning goals and streak persistence
"""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from learntrack.auth.models import DEFAULT_LEARNING_GOALS, User
from learntrack.auth.permissions import UserRole
from learntrack.auth.schemas import RegisterRequest, TokenResponse, UserResponse
from learntrack.auth.security import hash_password, issue_access_token, verify_password
from learntrack.config.settings import get_settings
from learntrack.core.database.columns import utc_now


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class AuthError(Exception):
    """Base authentication error."""

    def __init__(self, message: str, code: str = "auth_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class InvalidCredentialsError(AuthError):
    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message, "invalid_credentials")


class UserExistsError(AuthError):
    def __init__(self, message: str = "User already exists"):
        super().__init__(message, "user_exists")


class UserNotFoundError(AuthError):
    def __init__(self, message: str = "User not found"):
        super().__init__(message, "user_not_found")


class UserInactiveError(AuthError):
    def __init__(self, message: str = "Account is inactive"):
        super().__init__(message, "user_inactive")


# ==============================================================================
# Auth Service
# ==============================================================================


class AuthService:
    """User management and token operations."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._get_user_by_id = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users WHERE id = ?"
        )
        self._get_user_by_email = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users WHERE email = ?"
        )
        self._get_users_by_role = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users WHERE role = ?"
        )
        self._insert_user = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.users
            (id, email, name, password_hash, role, is_active, learning_goals,
             total_learning_hours, current_streak, longest_streak,
             last_learning_date, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._update_name = self.session.prepare(f"""
            UPDATE {self.keyspace}.users SET name = ?, updated_at = ? WHERE id = ?
        """)
        self._update_password_hash = self.session.prepare(f"""
            UPDATE {self.keyspace}.users
            SET password_hash = ?, updated_at = ? WHERE id = ?
        """)
        self._update_goals = self.session.prepare(f"""
            UPDATE {self.keyspace}.users
            SET learning_goals = ?, updated_at = ? WHERE id = ?
        """)
        self._update_streaks = self.session.prepare(f"""
            UPDATE {self.keyspace}.users
            SET current_streak = ?, longest_streak = ?, last_learning_date = ?,
                updated_at = ?
            WHERE id = ?
        """)
        self._update_learning_hours = self.session.prepare(f"""
            UPDATE {self.keyspace}.users
            SET total_learning_hours = ?, updated_at = ? WHERE id = ?
        """)

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get_user_by_id(self, user_id: UUID) -> User | None:
        result = await self.session.aexecute(self._get_user_by_id, [user_id])
        row = result.one()
        return User.from_row(row) if row else None

    async def get_user_by_email(self, email: str) -> User | None:
        result = await self.session.aexecute(
            self._get_user_by_email, [email.lower().strip()]
        )
        row = result.one()
        return User.from_row(row) if row else None

    async def require_user(self, user_id: UUID) -> User:
        user = await self.get_user_by_id(user_id)
        if user is None:
            raise UserNotFoundError
        return user

    async def list_users(self, role: UserRole | None = None) -> list[User]:
        if role is not None:
            rows = await self.session.aexecute(self._get_users_by_role, [role.value])
        else:
            rows = await self.session.aexecute(
                f"SELECT * FROM {self.keyspace}.users"
            )
        users = [User.from_row(row) for row in rows]
        return sorted(users, key=lambda u: u.created_at, reverse=True)

    # ==========================================================================
    # Registration / Login
    # ==========================================================================

    async def register_user(self, data: RegisterRequest) -> User:
        """Create a new account.

        Raises:
            UserExistsError: If the email is already registered
        """
        if await self.get_user_by_email(data.email):
            raise UserExistsError("User already exists with this email")

        now = utc_now()
        user = User(
            email=data.email,
            name=data.name,
            password_hash=hash_password(data.password),
            role=data.role.value,
            learning_goals=dict(DEFAULT_LEARNING_GOALS),
            created_at=now,
            updated_at=now,
        )
        await self.session.aexecute(
            self._insert_user,
            [
                user.id,
                user.email,
                user.name,
                user.password_hash,
                user.role,
                user.is_active,
                user.learning_goals,
                user.total_learning_hours,
                user.current_streak,
                user.longest_streak,
                user.last_learning_date,
                user.created_at,
                user.updated_at,
            ],
        )
        logger.info("user_registered", user_id=str(user.id), role=user.role)
        return user

    async def authenticate_user(self, email: str, password: str) -> User:
        """Validate credentials, transparently upgrading stale hashes.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password
            UserInactiveError: Account disabled
        """
        user = await self.get_user_by_email(email)
        if user is None:
            raise InvalidCredentialsError

        check = verify_password(password, user.password_hash)
        if not check.valid:
            logger.warning("login_failed", user_id=str(user.id))
            raise InvalidCredentialsError
        if not user.is_active:
            raise UserInactiveError

        if check.rehash:
            await self.session.aexecute(
                self._update_password_hash, [check.rehash, utc_now(), user.id]
            )
            user.password_hash = check.rehash

        logger.info("user_logged_in", user_id=str(user.id))
        return user

    def issue_token(self, user: User) -> TokenResponse:
        settings = get_settings()
        token = issue_access_token(user.id, user.email, user.role, name=user.name)
        return TokenResponse(
            access_token=token,
            expires_in=settings.jwt_ttl_minutes * 60,
            user=self.to_response(user),
        )

    # ==========================================================================
    # Profile
    # ==========================================================================

    async def update_profile(self, user_id: UUID, name: str | None) -> User:
        user = await self.require_user(user_id)
        if name is not None:
            user.name = name.strip()
            user.updated_at = utc_now()
            await self.session.aexecute(
                self._update_name, [user.name, user.updated_at, user.id]
            )
        return user

    async def update_learning_goals(
        self,
        user_id: UUID,
        daily: int | None = None,
        weekly: int | None = None,
        monthly: int | None = None,
    ) -> dict[str, int]:
        """Replace the user's goals; omitted periods reset to the defaults."""
        user = await self.require_user(user_id)
        goals = {
            "daily": daily if daily is not None else DEFAULT_LEARNING_GOALS["daily"],
            "weekly": weekly
            if weekly is not None
            else DEFAULT_LEARNING_GOALS["weekly"],
            "monthly": monthly
            if monthly is not None
            else DEFAULT_LEARNING_GOALS["monthly"],
        }
        await self.session.aexecute(self._update_goals, [goals, utc_now(), user.id])
        logger.info("learning_goals_updated", user_id=str(user.id), **goals)
        return goals

    async def save_streaks(
        self,
        user: User,
        current_streak: int,
        last_learning_date: datetime | None,
    ) -> User:
        """Persist the current streak, raising the longest streak if beaten."""
        user.current_streak = current_streak
        user.longest_streak = max(user.longest_streak, current_streak)
        user.last_learning_date = last_learning_date
        await self.session.aexecute(
            self._update_streaks,
            [
                user.current_streak,
                user.longest_streak,
                user.last_learning_date,
                utc_now(),
                user.id,
            ],
        )
        return user

    async def add_learning_minutes(self, user_id: UUID, minutes: int) -> None:
        if minutes <= 0:
            return
        user = await self.get_user_by_id(user_id)
        if user is None:
            return
        total = round(user.total_learning_hours + minutes / 60, 2)
        await self.session.aexecute(
            self._update_learning_hours, [total, utc_now(), user.id]
        )

    def to_response(self, user: User) -> UserResponse:
        return UserResponse.from_user(user)
