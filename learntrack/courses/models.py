"""Database models for the course catalog.

Cassandra table definitions for:
- Courses: Main course table (syllabus stored as JSON text)
- CoursesByInstructor: Lookup for "courses taught by X"
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from learntrack.core.database.columns import (
    ensure_utc_aware,
    from_json_column,
    utc_now,
)


class CourseCategory(str, Enum):
    PROGRAMMING = "Programming"
    DESIGN = "Design"
    BUSINESS = "Business"
    MARKETING = "Marketing"
    DATA_SCIENCE = "Data Science"
    DEVOPS = "DevOps"
    MOBILE_DEVELOPMENT = "Mobile Development"
    WEB_DEVELOPMENT = "Web Development"
    OTHER = "Other"


class CourseDifficulty(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class ModuleSequencing(str, Enum):
    """How learners may move through a course's modules."""

    SEQUENTIAL = "sequential"
    FLEXIBLE = "flexible"
    ADAPTIVE = "adaptive"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    id UUID PRIMARY KEY,
    title TEXT,
    description TEXT,
    category TEXT,
    difficulty TEXT,
    instructor_id UUID,
    instructor_name TEXT,
    instructor_email TEXT,
    duration_weeks INT,
    duration_hours_per_week INT,
    estimated_completion_time INT,
    prerequisites LIST<TEXT>,
    learning_objectives LIST<TEXT>,
    syllabus TEXT,
    has_modules BOOLEAN,
    module_sequencing TEXT,
    allow_module_skipping BOOLEAN,
    module_completion_required BOOLEAN,
    is_active BOOLEAN,
    enrollment_count INT,
    rating DOUBLE,
    rating_count INT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

COURSES_BY_INSTRUCTOR_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses_by_instructor (
    instructor_id UUID,
    course_id UUID,
    created_at TIMESTAMP,
    PRIMARY KEY (instructor_id, course_id)
)
"""

COURSES_TABLES_CQL = [
    COURSE_TABLE_CQL,
    COURSES_BY_INSTRUCTOR_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Course:
    """Course catalog entry.

    The syllabus is a list of dicts ``{module_title, topics, estimated_hours,
    module_id}``; ``module_id`` is filled in once a Module document is
    created for the entry. Course completion is measured against the number
    of syllabus entries.
    """

    def __init__(
        self,
        id: UUID | None = None,
        title: str = "",
        description: str = "",
        category: str = CourseCategory.OTHER.value,
        difficulty: str = CourseDifficulty.BEGINNER.value,
        instructor_id: UUID | None = None,
        instructor_name: str = "",
        instructor_email: str = "",
        duration_weeks: int = 0,
        duration_hours_per_week: int = 0,
        estimated_completion_time: int | None = None,
        prerequisites: list[str] | None = None,
        learning_objectives: list[str] | None = None,
        syllabus: list[dict[str, Any]] | None = None,
        has_modules: bool = False,
        module_sequencing: str = ModuleSequencing.SEQUENTIAL.value,
        allow_module_skipping: bool = False,
        module_completion_required: bool = True,
        is_active: bool = True,
        enrollment_count: int = 0,
        rating: float = 0.0,
        rating_count: int = 0,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.title = title
        self.description = description
        self.category = category
        self.difficulty = difficulty
        self.instructor_id = instructor_id
        self.instructor_name = instructor_name
        self.instructor_email = instructor_email
        self.duration_weeks = duration_weeks or 0
        self.duration_hours_per_week = duration_hours_per_week or 0
        self.estimated_completion_time = estimated_completion_time
        self.prerequisites = list(prerequisites or [])
        self.learning_objectives = list(learning_objectives or [])
        self.syllabus = list(syllabus or [])
        self.has_modules = has_modules
        self.module_sequencing = module_sequencing
        self.allow_module_skipping = allow_module_skipping
        self.module_completion_required = module_completion_required
        self.is_active = is_active
        self.enrollment_count = enrollment_count or 0
        self.rating = rating or 0.0
        self.rating_count = rating_count or 0
        self.created_at = ensure_utc_aware(created_at) or utc_now()
        self.updated_at = ensure_utc_aware(updated_at)

    @property
    def total_modules(self) -> int:
        return len(self.syllabus)

    @property
    def syllabus_module_ids(self) -> list[str | None]:
        return [
            str(entry["module_id"]) if entry.get("module_id") else None
            for entry in self.syllabus
        ]

    def module_index(self, module_id: UUID | str) -> int:
        """Position of ``module_id`` in the syllabus, or -1."""
        target = str(module_id)
        for index, entry in enumerate(self.syllabus):
            if str(entry.get("module_id")) == target:
                return index
        return -1

    def is_owned_by(self, user_id: UUID | str) -> bool:
        return self.instructor_id is not None and str(self.instructor_id) == str(
            user_id
        )

    @classmethod
    def from_row(cls, row: Any) -> "Course":
        """Create Course instance from Cassandra row."""
        return cls(
            id=row.id,
            title=row.title,
            description=row.description,
            category=row.category,
            difficulty=row.difficulty,
            instructor_id=row.instructor_id,
            instructor_name=row.instructor_name,
            instructor_email=row.instructor_email,
            duration_weeks=row.duration_weeks,
            duration_hours_per_week=row.duration_hours_per_week,
            estimated_completion_time=row.estimated_completion_time,
            prerequisites=row.prerequisites,
            learning_objectives=row.learning_objectives,
            syllabus=from_json_column(row.syllabus, []),
            has_modules=row.has_modules,
            module_sequencing=row.module_sequencing,
            allow_module_skipping=row.allow_module_skipping,
            module_completion_required=row.module_completion_required,
            is_active=row.is_active,
            enrollment_count=row.enrollment_count,
            rating=row.rating,
            rating_count=row.rating_count,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "difficulty": self.difficulty,
            "instructor_id": self.instructor_id,
            "syllabus": self.syllabus,
            "is_active": self.is_active,
            "enrollment_count": self.enrollment_count,
            "created_at": self.created_at,
        }

    def __repr__(self) -> str:
        return f"<Course {self.title!r} ({self.category})>"
