"""Database models for users.

Cassandra table definitions for the users table. Learning goals are kept
in a ``map<text, int>`` (minutes per day/week/month) and streak counters
live directly on the user row.
"""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from learntrack.auth.permissions import UserRole
from learntrack.core.database.columns import ensure_utc_aware, utc_now


DEFAULT_LEARNING_GOALS: dict[str, int] = {
    "daily": 30,
    "weekly": 300,
    "monthly": 1200,
}


USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users (
    id UUID PRIMARY KEY,
    email TEXT,
    name TEXT,
    password_hash TEXT,
    role TEXT,
    is_active BOOLEAN,
    learning_goals MAP<TEXT, INT>,
    total_learning_hours DOUBLE,
    current_streak INT,
    longest_streak INT,
    last_learning_date TIMESTAMP,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

USER_EMAIL_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS users_email_idx ON {keyspace}.users (email)
"""

USER_ROLE_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS users_role_idx ON {keyspace}.users (role)
"""

AUTH_TABLES_CQL = [
    USER_TABLE_CQL,
    USER_EMAIL_INDEX_CQL,
    USER_ROLE_INDEX_CQL,
]


class User:
    """A learner, instructor or administrator.

    Attributes:
        id: Unique identifier
        email: Unique email address (lower-cased)
        name: Display name
        password_hash: Argon2id hash
        role: One of student, instructor, admin
        is_active: Account status
        learning_goals: Target minutes per day/week/month
        total_learning_hours: Accumulated study time in hours
        current_streak: Consecutive active days up to today
        longest_streak: Best streak ever recorded
        last_learning_date: Last day with learning activity
    """

    def __init__(
        self,
        id: UUID | None = None,
        email: str = "",
        name: str = "",
        password_hash: str = "",
        role: str = UserRole.STUDENT.value,
        is_active: bool = True,
        learning_goals: dict[str, int] | None = None,
        total_learning_hours: float = 0.0,
        current_streak: int = 0,
        longest_streak: int = 0,
        last_learning_date: datetime | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.email = email.lower().strip()
        self.name = name
        self.password_hash = password_hash
        self.role = role
        self.is_active = is_active
        self.learning_goals = {**DEFAULT_LEARNING_GOALS, **(learning_goals or {})}
        self.total_learning_hours = total_learning_hours or 0.0
        self.current_streak = current_streak or 0
        self.longest_streak = longest_streak or 0
        self.last_learning_date = ensure_utc_aware(last_learning_date)
        self.created_at = ensure_utc_aware(created_at) or utc_now()
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "User":
        """Create User instance from Cassandra row."""
        return cls(
            id=row.id,
            email=row.email,
            name=row.name,
            password_hash=row.password_hash,
            role=row.role,
            is_active=row.is_active,
            learning_goals=dict(row.learning_goals or {}),
            total_learning_hours=row.total_learning_hours,
            current_streak=row.current_streak,
            longest_streak=row.longest_streak,
            last_learning_date=row.last_learning_date,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self, include_password: bool = False) -> dict[str, Any]:
        data = {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "is_active": self.is_active,
            "learning_goals": self.learning_goals,
            "total_learning_hours": self.total_learning_hours,
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "last_learning_date": self.last_learning_date,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if include_password:
            data["password_hash"] = self.password_hash
        return data

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"
