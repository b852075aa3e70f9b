"""Pydantic schemas for learner progress."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from learntrack.auth.schemas import LearningGoals
from learntrack.courses.schemas import CourseResponse
from learntrack.progress.models import (
    LearningProgress,
    ModuleProgress,
    ModuleProgressStatus,
)


# ==============================================================================
# Requests
# ==============================================================================


class ModuleCompletionRequest(BaseModel):
    course_id: UUID
    module_id: UUID
    time_spent: int = Field(default=0, ge=0, description="Minutes")


class StartModuleRequest(BaseModel):
    course_id: UUID
    module_id: UUID


class ContentProgressRequest(BaseModel):
    course_id: UUID
    module_id: UUID
    content_id: str = Field(..., min_length=1)
    status: ModuleProgressStatus | None = None
    time_spent: int | None = Field(None, ge=0, description="Minutes to add")
    score: float | None = Field(None, ge=0, le=100)


class UpdateNotesRequest(BaseModel):
    notes: str = Field(..., max_length=10000)


# ==============================================================================
# Responses
# ==============================================================================


class AchievementResponse(BaseModel):
    type: str
    unlocked_at: datetime | None = None
    description: str = ""


class LearningProgressResponse(BaseModel):
    user_id: UUID
    course_id: UUID
    enrollment_date: datetime
    completion_percentage: int
    current_module: int
    modules_completed: list[dict[str, Any]] = Field(default_factory=list)
    total_time_spent: int
    last_access_date: datetime
    is_completed: bool
    completion_date: datetime | None = None
    grade: float | None = None
    certificate_issued: bool = False
    certificate_id: str | None = None
    notes: str = ""
    achievements: list[AchievementResponse] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, progress: LearningProgress) -> "LearningProgressResponse":
        return cls(
            user_id=progress.user_id,
            course_id=progress.course_id,
            enrollment_date=progress.enrollment_date,
            completion_percentage=progress.completion_percentage,
            current_module=progress.current_module,
            modules_completed=progress.modules_completed,
            total_time_spent=progress.total_time_spent,
            last_access_date=progress.last_access_date,
            is_completed=progress.is_completed,
            completion_date=progress.completion_date,
            grade=progress.grade,
            certificate_issued=progress.certificate_issued,
            certificate_id=progress.certificate_id,
            notes=progress.notes,
            achievements=[AchievementResponse(**a) for a in progress.achievements],
        )


class ModuleProgressResponse(BaseModel):
    user_id: UUID
    course_id: UUID
    module_id: UUID
    status: str
    started_at: datetime | None = None
    completed_at: datetime | None = None
    last_accessed_at: datetime | None = None
    total_time_spent: int = 0
    completion_percentage: int = 0
    content_completion_count: int = 0
    total_content_count: int = 0
    required_content_completion_count: int = 0
    total_required_content_count: int = 0
    content_progress: list[dict[str, Any]] = Field(default_factory=list)
    module_assessment: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_entity(cls, progress: ModuleProgress) -> "ModuleProgressResponse":
        return cls(
            user_id=progress.user_id,
            course_id=progress.course_id,
            module_id=progress.module_id,
            status=progress.status,
            started_at=progress.started_at,
            completed_at=progress.completed_at,
            last_accessed_at=progress.last_accessed_at,
            total_time_spent=progress.total_time_spent,
            completion_percentage=progress.completion_percentage,
            content_completion_count=progress.content_completion_count,
            total_content_count=progress.total_content_count,
            required_content_completion_count=progress.required_content_completion_count,
            total_required_content_count=progress.total_required_content_count,
            content_progress=progress.content_progress,
            module_assessment=progress.module_assessment,
        )


class StartModuleResponse(BaseModel):
    already_started: bool
    progress: ModuleProgressResponse


class EnrolledCourseResponse(BaseModel):
    course: CourseResponse
    progress: LearningProgressResponse


class EnrollmentResponse(BaseModel):
    message: str
    progress: LearningProgressResponse


class LearningAnalyticsResponse(BaseModel):
    total_courses: int
    completed_courses: int
    in_progress_courses: int
    total_hours: int
    achievements_count: int
    recent_activity: int
    average_score: int
    best_subject: str
    recent_progress: list[LearningProgressResponse]


class LearningStreaksResponse(BaseModel):
    current_streak: int
    longest_streak: int
    last_active_date: datetime | None = None
    weekly_active_days: int
    learning_goals: LearningGoals


class GoalsResponse(BaseModel):
    message: str
    learning_goals: LearningGoals


class CertificateResponse(BaseModel):
    certificate_id: str
    course_id: UUID
    issued: bool = True


class SyncResultResponse(BaseModel):
    success: bool
    message: str
    updated_records: int


class CourseProgressReport(BaseModel):
    course_id: UUID
    course_title: str
    completion_percentage: int
    enrollment_date: datetime
    last_accessed: datetime
    modules_completed: int
    total_modules: int
    is_completed: bool


class ProgressReportResponse(BaseModel):
    user_id: UUID
    courses: list[CourseProgressReport]
