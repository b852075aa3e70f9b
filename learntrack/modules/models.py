"""Database models for course modules.

Cassandra table definitions for:
- Modules: Module documents with their content items (JSON text)
- ModulesByCourse: Ordered lookup keyed by (course_id, module_number); the
  clustering key also enforces unique module numbers per course
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from learntrack.core.database.columns import (
    ensure_utc_aware,
    from_json_column,
    parse_datetime,
    utc_now,
)


class ContentType(str, Enum):
    VIDEO = "video"
    TEXT = "text"
    QUIZ = "quiz"
    ASSIGNMENT = "assignment"
    INTERACTIVE = "interactive"
    DISCUSSION = "discussion"
    RESOURCE = "resource"


class ModuleStatus(str, Enum):
    """Editorial workflow status."""

    DRAFT = "draft"
    REVIEW = "review"
    APPROVED = "approved"
    PUBLISHED = "published"
    ARCHIVED = "archived"


DEFAULT_ASSESSMENT: dict[str, Any] = {
    "is_required": False,
    "type": "quiz",
    "passing_score": 70,
    "weight_in_course": 0,
}

DEFAULT_MODULE_SETTINGS: dict[str, Any] = {
    "is_active": True,
    "allow_skip": False,
    "sequential_access": True,
    "max_attempts": 3,
    "available_from": None,
    "available_until": None,
}

DEFAULT_PREREQUISITES: dict[str, list] = {"modules": [], "skills": [], "courses": []}


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

MODULE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.modules (
    id UUID PRIMARY KEY,
    course_id UUID,
    module_number INT,
    title TEXT,
    description TEXT,
    learning_objectives LIST<TEXT>,
    difficulty TEXT,
    estimated_duration INT,
    contents TEXT,
    prerequisites TEXT,
    assessment TEXT,
    settings TEXT,
    tags LIST<TEXT>,
    status TEXT,
    created_by UUID,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

MODULES_BY_COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.modules_by_course (
    course_id UUID,
    module_number INT,
    module_id UUID,
    title TEXT,
    PRIMARY KEY (course_id, module_number)
) WITH CLUSTERING ORDER BY (module_number ASC)
"""

MODULES_TABLES_CQL = [
    MODULE_TABLE_CQL,
    MODULES_BY_COURSE_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


def total_content_duration(contents: list[dict[str, Any]]) -> int:
    """Sum of content durations in minutes."""
    return sum(int(item.get("duration") or 0) for item in contents)


class Module:
    """A unit of content inside a course.

    ``contents`` is an ordered list of dicts::

        {content_id, type, title, description, duration, order, is_required,
         content_data, complexity, access_control}

    ``estimated_duration`` is always derived from the content durations.
    """

    def __init__(
        self,
        id: UUID | None = None,
        course_id: UUID | None = None,
        module_number: int = 1,
        title: str = "",
        description: str = "",
        learning_objectives: list[str] | None = None,
        difficulty: str = "Beginner",
        contents: list[dict[str, Any]] | None = None,
        prerequisites: dict[str, list] | None = None,
        assessment: dict[str, Any] | None = None,
        settings: dict[str, Any] | None = None,
        tags: list[str] | None = None,
        status: str = ModuleStatus.DRAFT.value,
        created_by: UUID | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.course_id = course_id
        self.module_number = module_number
        self.title = title
        self.description = description
        self.learning_objectives = list(learning_objectives or [])
        self.difficulty = difficulty
        self.contents = sorted(contents or [], key=lambda c: c.get("order", 0))
        self.prerequisites = {**DEFAULT_PREREQUISITES, **(prerequisites or {})}
        self.assessment = {**DEFAULT_ASSESSMENT, **(assessment or {})}
        self.settings = {**DEFAULT_MODULE_SETTINGS, **(settings or {})}
        self.tags = list(tags or [])
        self.status = status
        self.created_by = created_by
        self.created_at = ensure_utc_aware(created_at) or utc_now()
        self.updated_at = ensure_utc_aware(updated_at)

    @property
    def estimated_duration(self) -> int:
        return total_content_duration(self.contents)

    @property
    def is_active(self) -> bool:
        return bool(self.settings.get("is_active", True))

    @property
    def prerequisite_module_ids(self) -> list[str]:
        return [str(m) for m in self.prerequisites.get("modules", [])]

    def get_content(self, content_id: str) -> dict[str, Any] | None:
        for item in self.contents:
            if item.get("content_id") == content_id:
                return item
        return None

    def is_within_availability(self, now: datetime | None = None) -> bool:
        now = now or utc_now()
        available_from = parse_datetime(self.settings.get("available_from"))
        available_until = parse_datetime(self.settings.get("available_until"))
        if available_from and now < available_from:
            return False
        return not (available_until and now > available_until)

    @classmethod
    def from_row(cls, row: Any) -> "Module":
        """Create Module instance from Cassandra row."""
        return cls(
            id=row.id,
            course_id=row.course_id,
            module_number=row.module_number,
            title=row.title,
            description=row.description,
            learning_objectives=row.learning_objectives,
            difficulty=row.difficulty,
            contents=from_json_column(row.contents, []),
            prerequisites=from_json_column(row.prerequisites, {}),
            assessment=from_json_column(row.assessment, {}),
            settings=from_json_column(row.settings, {}),
            tags=row.tags,
            status=row.status,
            created_by=row.created_by,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def __repr__(self) -> str:
        return f"<Module {self.module_number}: {self.title!r}>"
