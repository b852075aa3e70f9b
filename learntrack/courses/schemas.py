"""Pydantic schemas for the course catalog."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from learntrack.courses.models import (
    Course,
    CourseCategory,
    CourseDifficulty,
    ModuleSequencing,
)


# ==============================================================================
# Nested documents
# ==============================================================================


class CourseDuration(BaseModel):
    weeks: int = Field(..., ge=1)
    hours_per_week: int = Field(..., ge=1)


class SyllabusEntry(BaseModel):
    module_title: str = Field(..., min_length=1, max_length=200)
    topics: list[str] = Field(default_factory=list)
    estimated_hours: float = Field(default=0, ge=0)
    module_id: UUID | None = None


class InstructorInfo(BaseModel):
    id: UUID | None = None
    name: str = ""
    email: str = ""


# ==============================================================================
# Requests
# ==============================================================================


class CreateCourseRequest(BaseModel):
    """Course creation request."""

    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=1000)
    category: CourseCategory
    difficulty: CourseDifficulty
    duration: CourseDuration
    estimated_completion_time: int | None = Field(None, ge=0, description="Hours")
    prerequisites: list[str] = Field(default_factory=list)
    learning_objectives: list[str] = Field(default_factory=list)
    syllabus: list[SyllabusEntry] = Field(default_factory=list)
    has_modules: bool = False
    module_sequencing: ModuleSequencing = ModuleSequencing.SEQUENTIAL
    allow_module_skipping: bool = False
    module_completion_required: bool = True
    instructor_id: UUID | None = Field(
        None, description="Admin only: assign another instructor"
    )


class UpdateCourseRequest(BaseModel):
    """Partial course update."""

    title: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, min_length=1, max_length=1000)
    category: CourseCategory | None = None
    difficulty: CourseDifficulty | None = None
    duration: CourseDuration | None = None
    estimated_completion_time: int | None = Field(None, ge=0)
    prerequisites: list[str] | None = None
    learning_objectives: list[str] | None = None
    syllabus: list[SyllabusEntry] | None = None
    has_modules: bool | None = None
    module_sequencing: ModuleSequencing | None = None
    allow_module_skipping: bool | None = None
    module_completion_required: bool | None = None
    is_active: bool | None = None
    instructor_id: UUID | None = None


class CourseListParams(BaseModel):
    """Query parameters for the catalog listing."""

    category: CourseCategory | None = None
    difficulty: CourseDifficulty | None = None
    search: str | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    sort_by: Literal["created_at", "title", "rating", "enrollment_count"] = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"


class EnrollStudentRequest(BaseModel):
    student_id: UUID


# ==============================================================================
# Responses
# ==============================================================================


class CourseResponse(BaseModel):
    """Course response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str
    category: str
    difficulty: str
    instructor: InstructorInfo
    duration: CourseDuration | None = None
    estimated_completion_time: int | None = None
    prerequisites: list[str] = Field(default_factory=list)
    learning_objectives: list[str] = Field(default_factory=list)
    syllabus: list[SyllabusEntry] = Field(default_factory=list)
    total_modules: int = 0
    has_modules: bool = False
    module_sequencing: str = ModuleSequencing.SEQUENTIAL.value
    allow_module_skipping: bool = False
    module_completion_required: bool = True
    is_active: bool = True
    enrollment_count: int = 0
    rating: float = 0.0
    rating_count: int = 0
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, course: Course) -> "CourseResponse":
        duration = None
        if course.duration_weeks and course.duration_hours_per_week:
            duration = CourseDuration(
                weeks=course.duration_weeks,
                hours_per_week=course.duration_hours_per_week,
            )
        return cls(
            id=course.id,
            title=course.title,
            description=course.description,
            category=course.category,
            difficulty=course.difficulty,
            instructor=InstructorInfo(
                id=course.instructor_id,
                name=course.instructor_name,
                email=course.instructor_email,
            ),
            duration=duration,
            estimated_completion_time=course.estimated_completion_time,
            prerequisites=course.prerequisites,
            learning_objectives=course.learning_objectives,
            syllabus=[SyllabusEntry(**entry) for entry in course.syllabus],
            total_modules=course.total_modules,
            has_modules=course.has_modules,
            module_sequencing=course.module_sequencing,
            allow_module_skipping=course.allow_module_skipping,
            module_completion_required=course.module_completion_required,
            is_active=course.is_active,
            enrollment_count=course.enrollment_count,
            rating=course.rating,
            rating_count=course.rating_count,
            created_at=course.created_at,
            updated_at=course.updated_at,
        )


class CourseListResponse(BaseModel):
    courses: list[CourseResponse]
    total_pages: int
    current_page: int
    total: int


class MessageResponse(BaseModel):
    message: str
