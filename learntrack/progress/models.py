"""Database models for learner progress.

Cassandra table definitions for:
- LearningProgress: One record per (user, course) enrollment
- LearningProgressByCourse: Reverse lookup of the learners of a course
- ModuleProgress: Per-module content tracking, partitioned by (user, course)
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from learntrack.core.database.columns import (
    ensure_utc_aware,
    from_json_column,
    utc_now,
)


class ModuleProgressStatus(str, Enum):
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"
    EXPIRED = "expired"


STUDY_WARRIOR = "study_warrior"
QUIZ_MASTER = "quiz_master"

ACHIEVEMENT_DESCRIPTIONS = {
    STUDY_WARRIOR: "Spent 10+ hours learning",
    QUIZ_MASTER: "Passed the final course quiz",
    "milestone_25": "Completed 25% of the course",
    "milestone_50": "Completed 50% of the course",
    "milestone_75": "Completed 75% of the course",
}

# Course progress stays one point short of completion until the final quiz
# has been passed.
PRE_QUIZ_CAP = 99


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

LEARNING_PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.learning_progress (
    user_id UUID,
    course_id UUID,
    enrollment_date TIMESTAMP,
    completion_percentage INT,
    current_module INT,
    modules_completed TEXT,
    total_time_spent INT,
    last_access_date TIMESTAMP,
    is_completed BOOLEAN,
    completion_date TIMESTAMP,
    grade DOUBLE,
    certificate_issued BOOLEAN,
    certificate_id TEXT,
    notes TEXT,
    achievements TEXT,
    updated_at TIMESTAMP,
    PRIMARY KEY (user_id, course_id)
)
"""

LEARNING_PROGRESS_BY_COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.learning_progress_by_course (
    course_id UUID,
    user_id UUID,
    enrollment_date TIMESTAMP,
    PRIMARY KEY (course_id, user_id)
)
"""

MODULE_PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.module_progress (
    user_id UUID,
    course_id UUID,
    module_id UUID,
    status TEXT,
    started_at TIMESTAMP,
    completed_at TIMESTAMP,
    last_accessed_at TIMESTAMP,
    total_time_spent INT,
    completion_percentage INT,
    content_completion_count INT,
    total_content_count INT,
    required_content_completion_count INT,
    total_required_content_count INT,
    content_progress TEXT,
    module_assessment TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY ((user_id, course_id), module_id)
)
"""

PROGRESS_TABLES_CQL = [
    LEARNING_PROGRESS_TABLE_CQL,
    LEARNING_PROGRESS_BY_COURSE_TABLE_CQL,
    MODULE_PROGRESS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


def achievement(kind: str, description: str | None = None) -> dict[str, Any]:
    return {
        "type": kind,
        "unlocked_at": utc_now().isoformat(),
        "description": description or ACHIEVEMENT_DESCRIPTIONS.get(kind, kind),
    }


class LearningProgress:
    """A learner's enrollment in a course.

    ``modules_completed`` entries are dicts::

        {module_index, module_id, completed_at, time_spent, score, attempts}

    ``achievements`` entries are ``{type, unlocked_at, description}``.
    """

    def __init__(
        self,
        user_id: UUID,
        course_id: UUID,
        enrollment_date: datetime | None = None,
        completion_percentage: int = 0,
        current_module: int = 0,
        modules_completed: list[dict[str, Any]] | None = None,
        total_time_spent: int = 0,
        last_access_date: datetime | None = None,
        is_completed: bool = False,
        completion_date: datetime | None = None,
        grade: float | None = None,
        certificate_issued: bool = False,
        certificate_id: str | None = None,
        notes: str = "",
        achievements: list[dict[str, Any]] | None = None,
        updated_at: datetime | None = None,
    ):
        now = utc_now()
        self.user_id = user_id
        self.course_id = course_id
        self.enrollment_date = ensure_utc_aware(enrollment_date) or now
        self.completion_percentage = completion_percentage or 0
        self.current_module = current_module or 0
        self.modules_completed = list(modules_completed or [])
        self.total_time_spent = total_time_spent or 0
        self.last_access_date = ensure_utc_aware(last_access_date) or now
        self.is_completed = bool(is_completed)
        self.completion_date = ensure_utc_aware(completion_date)
        self.grade = grade
        self.certificate_issued = bool(certificate_issued)
        self.certificate_id = certificate_id
        self.notes = notes or ""
        self.achievements = list(achievements or [])
        self.updated_at = ensure_utc_aware(updated_at)

    def has_achievement(self, kind: str) -> bool:
        return any(a.get("type") == kind for a in self.achievements)

    def add_achievement(self, kind: str, description: str | None = None) -> bool:
        """Add an achievement once; returns True when it was new."""
        if self.has_achievement(kind):
            return False
        self.achievements.append(achievement(kind, description))
        return True

    def find_completed_module(
        self, module_index: int, module_id: Any = None
    ) -> dict[str, Any] | None:
        """Completion entry for a module.

        Entries that carry a ``module_id`` match on it alone; indexes shift
        when a module is removed from the syllabus. Entries without one fall
        back to their recorded index.
        """
        target = str(module_id) if module_id is not None else None
        for entry in self.modules_completed:
            entry_id = entry.get("module_id")
            if entry_id and target is not None:
                if str(entry_id) == target:
                    return entry
            elif entry.get("module_index") == module_index:
                return entry
        return None

    def completed_module_ids(self) -> set[str]:
        return {
            str(entry["module_id"])
            for entry in self.modules_completed
            if entry.get("module_id")
        }

    def completed_syllabus_count(self, syllabus_ids: list[str | None]) -> int:
        """Distinct syllabus modules completed.

        ``syllabus_ids`` lists the course's module ids in order, ``None`` for
        entries not linked to a module. Completions of modules no longer in
        the syllabus are ignored.
        """
        positions: set[int] = set()
        for entry in self.modules_completed:
            entry_id = entry.get("module_id")
            if entry_id:
                if str(entry_id) in syllabus_ids:
                    positions.add(syllabus_ids.index(str(entry_id)))
                continue
            index = entry.get("module_index")
            if isinstance(index, int) and 0 <= index < len(syllabus_ids):
                positions.add(index)
        return len(positions)

    @classmethod
    def from_row(cls, row: Any) -> "LearningProgress":
        """Create LearningProgress instance from Cassandra row."""
        return cls(
            user_id=row.user_id,
            course_id=row.course_id,
            enrollment_date=row.enrollment_date,
            completion_percentage=row.completion_percentage,
            current_module=row.current_module,
            modules_completed=from_json_column(row.modules_completed, []),
            total_time_spent=row.total_time_spent,
            last_access_date=row.last_access_date,
            is_completed=row.is_completed,
            completion_date=row.completion_date,
            grade=row.grade,
            certificate_issued=row.certificate_issued,
            certificate_id=row.certificate_id,
            notes=row.notes,
            achievements=from_json_column(row.achievements, []),
            updated_at=row.updated_at,
        )

    def __repr__(self) -> str:
        return (
            f"<LearningProgress user={self.user_id} course={self.course_id} "
            f"{self.completion_percentage}%>"
        )


def content_progress_entry(
    content: dict[str, Any],
    max_attempts: int = 3,
    status: ModuleProgressStatus = ModuleProgressStatus.NOT_STARTED,
) -> dict[str, Any]:
    """Fresh tracking entry for a module content item."""
    now = utc_now().isoformat()
    return {
        "content_id": content.get("content_id"),
        "content_type": content.get("type"),
        "status": status.value,
        "time_spent": 0,
        "attempts": 0,
        "max_attempts": max_attempts,
        "scores": [],
        "best_score": 0,
        "is_completed": False,
        "is_mandatory": content.get("is_required", True) is not False,
        "started_at": now if status is not ModuleProgressStatus.NOT_STARTED else None,
        "completed_at": None,
        "last_accessed_at": now,
    }


DEFAULT_MODULE_ASSESSMENT: dict[str, Any] = {
    "attempts": 0,
    "best_score": 0,
    "best_score_percentage": 0,
    "passing_score": 70,
    "has_passed": False,
    "scores": [],
}


class ModuleProgress:
    """Per-module progress of a learner.

    Counters, percentage, status and time are derived from
    ``content_progress`` by ``recalculate()``, which runs before every save.
    """

    def __init__(
        self,
        user_id: UUID,
        course_id: UUID,
        module_id: UUID,
        status: str = ModuleProgressStatus.NOT_STARTED.value,
        started_at: datetime | None = None,
        completed_at: datetime | None = None,
        last_accessed_at: datetime | None = None,
        total_time_spent: int = 0,
        completion_percentage: int = 0,
        content_completion_count: int = 0,
        total_content_count: int = 0,
        required_content_completion_count: int = 0,
        total_required_content_count: int = 0,
        content_progress: list[dict[str, Any]] | None = None,
        module_assessment: dict[str, Any] | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.user_id = user_id
        self.course_id = course_id
        self.module_id = module_id
        self.status = status
        self.started_at = ensure_utc_aware(started_at)
        self.completed_at = ensure_utc_aware(completed_at)
        self.last_accessed_at = ensure_utc_aware(last_accessed_at) or utc_now()
        self.total_time_spent = total_time_spent or 0
        self.completion_percentage = completion_percentage or 0
        self.content_completion_count = content_completion_count or 0
        self.total_content_count = total_content_count or 0
        self.required_content_completion_count = required_content_completion_count or 0
        self.total_required_content_count = total_required_content_count or 0
        self.content_progress = list(content_progress or [])
        self.module_assessment = {**DEFAULT_MODULE_ASSESSMENT, **(module_assessment or {})}
        self.created_at = ensure_utc_aware(created_at) or utc_now()
        self.updated_at = ensure_utc_aware(updated_at)

    @property
    def is_completed(self) -> bool:
        return self.status == ModuleProgressStatus.COMPLETED.value

    def get_content(self, content_id: str) -> dict[str, Any] | None:
        for entry in self.content_progress:
            if entry.get("content_id") == content_id:
                return entry
        return None

    def recalculate(self) -> None:
        entries = self.content_progress
        self.total_content_count = len(entries)
        self.content_completion_count = sum(1 for e in entries if e.get("is_completed"))
        mandatory = [e for e in entries if e.get("is_mandatory", True)]
        self.total_required_content_count = len(mandatory)
        self.required_content_completion_count = sum(
            1 for e in mandatory if e.get("is_completed")
        )

        if self.total_required_content_count > 0:
            self.completion_percentage = round(
                self.required_content_completion_count
                / self.total_required_content_count
                * 100
            )

        now = utc_now()
        if self.completion_percentage >= 100:
            if self.status != ModuleProgressStatus.COMPLETED.value:
                self.status = ModuleProgressStatus.COMPLETED.value
                self.completed_at = now
        elif (
            self.completion_percentage > 0
            and self.status == ModuleProgressStatus.NOT_STARTED.value
        ):
            self.status = ModuleProgressStatus.IN_PROGRESS.value
            self.started_at = self.started_at or now

        self.total_time_spent = sum(int(e.get("time_spent") or 0) for e in entries)
        self.last_accessed_at = now

    @classmethod
    def from_row(cls, row: Any) -> "ModuleProgress":
        """Create ModuleProgress instance from Cassandra row."""
        return cls(
            user_id=row.user_id,
            course_id=row.course_id,
            module_id=row.module_id,
            status=row.status,
            started_at=row.started_at,
            completed_at=row.completed_at,
            last_accessed_at=row.last_accessed_at,
            total_time_spent=row.total_time_spent,
            completion_percentage=row.completion_percentage,
            content_completion_count=row.content_completion_count,
            total_content_count=row.total_content_count,
            required_content_completion_count=row.required_content_completion_count,
            total_required_content_count=row.total_required_content_count,
            content_progress=from_json_column(row.content_progress, []),
            module_assessment=from_json_column(row.module_assessment, {}),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def __repr__(self) -> str:
        return f"<ModuleProgress module={self.module_id} {self.status}>"
