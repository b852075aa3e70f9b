"""Learner progress service layer.

Business logic for:
- Enrollment (self-service and on behalf of a student)
- Course-level completion from completed modules
- Module and content level tracking
- Achievements, streaks and learning analytics
- Notes and completion certificates
"""

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

import structlog

from learntrack.auth.permissions import (
    UserRole,
    is_admin,
    is_at_least_instructor,
)
from learntrack.auth.schemas import LearningGoals, UserResponse
from learntrack.config import get_settings
from learntrack.core.database.columns import to_json_column, utc_now
from learntrack.core.redis import (
    analytics_cache_key,
    cache_delete,
    cache_get_json,
    cache_set_json,
    streaks_cache_key,
)
from learntrack.courses.models import Course
from learntrack.courses.service import CourseNotFoundError
from learntrack.modules.service import can_user_access
from learntrack.patterns.observer import EventLogObserver, LearningProgressTracker
from learntrack.progress.models import (
    PRE_QUIZ_CAP,
    QUIZ_MASTER,
    STUDY_WARRIOR,
    LearningProgress,
    ModuleProgress,
    ModuleProgressStatus,
    content_progress_entry,
)
from learntrack.progress.schemas import (
    LearningAnalyticsResponse,
    LearningProgressResponse,
    LearningStreaksResponse,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session
    from redis.asyncio import Redis

    from learntrack.auth.service import AuthService
    from learntrack.courses.service import CourseService
    from learntrack.modules.service import ModuleService

logger = structlog.get_logger(__name__)

STREAK_LOOKBACK_DAYS = 365
RECENT_ACTIVITY_DAYS = 7


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class ProgressError(Exception):
    """Base progress error."""

    def __init__(self, message: str, code: str = "progress_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class ProgressNotFoundError(ProgressError):
    def __init__(self, message: str = "Progress record not found"):
        super().__init__(message, "progress_not_found")


class ProgressCourseNotFoundError(ProgressError):
    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "course_not_found")


class ProgressModuleNotFoundError(ProgressError):
    def __init__(self, message: str = "Module not found"):
        super().__init__(message, "module_not_found")


class ModuleNotInCourseError(ProgressError):
    def __init__(self, message: str = "Module not found in course"):
        super().__init__(message, "module_not_in_course")


class ModuleProgressNotFoundError(ProgressError):
    def __init__(self, message: str = "Module progress not found"):
        super().__init__(message, "module_progress_not_found")


class NotEnrolledError(ProgressError):
    def __init__(self, message: str = "You are not enrolled in this course"):
        super().__init__(message, "not_enrolled")


class AlreadyEnrolledError(ProgressError):
    def __init__(self, message: str = "Already enrolled in this course"):
        super().__init__(message, "already_enrolled")


class EnrollmentMissingError(ProgressError):
    """Unenrolling from a course the user is not enrolled in."""

    def __init__(self, message: str = "Not enrolled in this course"):
        super().__init__(message, "enrollment_missing")


class PrerequisitesNotMetError(ProgressError):
    def __init__(self, message: str):
        super().__init__(message, "prerequisites_not_met")


class EnrollmentPermissionError(ProgressError):
    def __init__(self, message: str = "Not authorized to enroll students in this course"):
        super().__init__(message, "permission_denied")


class StudentNotFoundError(ProgressError):
    def __init__(self, message: str = "Student not found"):
        super().__init__(message, "student_not_found")


class InvalidStudentError(ProgressError):
    def __init__(self, message: str = "Selected user is not a student"):
        super().__init__(message, "invalid_student")


class CourseNotCompletedError(ProgressError):
    def __init__(
        self, message: str = "Certificate is only available for completed courses"
    ):
        super().__init__(message, "course_not_completed")


# ==============================================================================
# Helpers
# ==============================================================================


def module_completion_percentage(
    completed: int, total: int, course_completed: bool = False
) -> int:
    """Course percentage from completed modules.

    Finishing every module yields ``PRE_QUIZ_CAP``; only a passed final quiz
    (``course_completed``) brings a course to 100.
    """
    if course_completed:
        return 100
    if total <= 0:
        return 0
    if completed >= total:
        return PRE_QUIZ_CAP
    return round(completed / total * 100)


def current_streak(access_dates: list[datetime], today: Any) -> int:
    """Consecutive UTC days, ending today, with at least one access."""
    days = {d.date() for d in access_dates if d}
    streak = 0
    check = today
    while streak < STREAK_LOOKBACK_DAYS and check in days:
        streak += 1
        check -= timedelta(days=1)
    return streak


# ==============================================================================
# Progress Service
# ==============================================================================


class ProgressService:
    """Service for learner progress."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        course_service: "CourseService",
        module_service: "ModuleService",
        auth_service: "AuthService",
        redis: "Redis | None" = None,
    ):
        self.session = session
        self.keyspace = keyspace
        self.course_service = course_service
        self.module_service = module_service
        self.auth_service = auth_service
        self.redis = redis
        self.settings = get_settings()
        self.tracker = LearningProgressTracker()
        self.tracker.subscribe(EventLogObserver())
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        # Learning progress
        self._get_progress = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.learning_progress
            WHERE user_id = ? AND course_id = ?
        """)
        self._get_user_progress = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.learning_progress WHERE user_id = ?
        """)
        self._upsert_progress = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.learning_progress
            (user_id, course_id, enrollment_date, completion_percentage,
             current_module, modules_completed, total_time_spent, last_access_date,
             is_completed, completion_date, grade, certificate_issued,
             certificate_id, notes, achievements, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._delete_progress = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.learning_progress
            WHERE user_id = ? AND course_id = ?
        """)

        # Reverse lookup
        self._get_course_learners = self.session.prepare(f"""
            SELECT user_id FROM {self.keyspace}.learning_progress_by_course
            WHERE course_id = ?
        """)
        self._insert_course_learner = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.learning_progress_by_course
            (course_id, user_id, enrollment_date) VALUES (?, ?, ?)
        """)
        self._delete_course_learner = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.learning_progress_by_course
            WHERE course_id = ? AND user_id = ?
        """)

        # Module progress
        self._get_module_progress = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.module_progress
            WHERE user_id = ? AND course_id = ? AND module_id = ?
        """)
        self._get_course_module_progress = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.module_progress
            WHERE user_id = ? AND course_id = ?
        """)
        self._upsert_module_progress = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.module_progress
            (user_id, course_id, module_id, status, started_at, completed_at,
             last_accessed_at, total_time_spent, completion_percentage,
             content_completion_count, total_content_count,
             required_content_completion_count, total_required_content_count,
             content_progress, module_assessment, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._delete_course_module_progress = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.module_progress
            WHERE user_id = ? AND course_id = ?
        """)

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get_progress(
        self, user_id: UUID, course_id: UUID
    ) -> LearningProgress | None:
        result = await self.session.aexecute(self._get_progress, [user_id, course_id])
        row = result.one()
        return LearningProgress.from_row(row) if row else None

    async def get_course_progress(
        self, user_id: UUID, course_id: UUID
    ) -> LearningProgress:
        progress = await self.get_progress(user_id, course_id)
        if progress is None:
            raise ProgressNotFoundError("Progress not found")
        return progress

    async def get_user_progress(self, user_id: UUID) -> list[LearningProgress]:
        """All progress records of a user, most recently accessed first."""
        rows = await self.session.aexecute(self._get_user_progress, [user_id])
        records = [LearningProgress.from_row(row) for row in rows]
        return sorted(records, key=lambda p: p.last_access_date, reverse=True)

    async def list_course_learners(self, course_id: UUID) -> list[LearningProgress]:
        rows = await self.session.aexecute(self._get_course_learners, [course_id])
        records = []
        for row in rows:
            progress = await self.get_progress(row.user_id, course_id)
            if progress:
                records.append(progress)
        return records

    async def is_enrolled(self, user_id: UUID, course_id: UUID) -> bool:
        return await self.get_progress(user_id, course_id) is not None

    async def list_module_progress(
        self, user_id: UUID, course_id: UUID
    ) -> list[ModuleProgress]:
        rows = await self.session.aexecute(
            self._get_course_module_progress, [user_id, course_id]
        )
        return [ModuleProgress.from_row(row) for row in rows]

    async def get_module_progress(
        self, user_id: UUID, course_id: UUID, module_id: UUID
    ) -> ModuleProgress | None:
        result = await self.session.aexecute(
            self._get_module_progress, [user_id, course_id, module_id]
        )
        row = result.one()
        return ModuleProgress.from_row(row) if row else None

    async def _require_course(self, course_id: UUID) -> Course:
        try:
            return await self.course_service.require_course(course_id)
        except CourseNotFoundError as e:
            raise ProgressCourseNotFoundError from e

    # ==========================================================================
    # Enrollment
    # ==========================================================================

    async def enroll(self, course_id: UUID, user_id: UUID) -> LearningProgress:
        """Enroll a user in a course.

        Raises:
            ProgressCourseNotFoundError: Course does not exist
            AlreadyEnrolledError: A progress record already exists
        """
        course = await self._require_course(course_id)
        if await self.is_enrolled(user_id, course_id):
            raise AlreadyEnrolledError

        progress = LearningProgress(user_id=user_id, course_id=course_id)
        await self.save_progress(progress)
        await self.session.aexecute(
            self._insert_course_learner,
            [course_id, user_id, progress.enrollment_date],
        )
        await self.course_service.adjust_enrollment_count(course, 1)
        self.tracker.enroll_user(user_id, course_id)

        logger.info("user_enrolled", user_id=str(user_id), course_id=str(course_id))
        return progress

    async def unenroll(self, course_id: UUID, user_id: UUID) -> None:
        course = await self._require_course(course_id)
        if not await self.is_enrolled(user_id, course_id):
            raise EnrollmentMissingError

        await self.session.aexecute(self._delete_progress, [user_id, course_id])
        await self.session.aexecute(self._delete_course_learner, [course_id, user_id])
        await self.session.aexecute(
            self._delete_course_module_progress, [user_id, course_id]
        )
        if course.enrollment_count > 0:
            await self.course_service.adjust_enrollment_count(course, -1)
        await self._invalidate_cache(user_id)

        logger.info("user_unenrolled", user_id=str(user_id), course_id=str(course_id))

    async def enroll_student(
        self, course_id: UUID, student_id: UUID, actor: UserResponse
    ) -> LearningProgress:
        """Enroll ``student_id`` on behalf of an instructor or admin.

        Instructors may only enroll into courses they teach.
        """
        if not is_at_least_instructor(actor.role):
            raise EnrollmentPermissionError
        course = await self._require_course(course_id)
        if not is_admin(actor.role) and not course.is_owned_by(actor.id):
            raise EnrollmentPermissionError

        student = await self.auth_service.get_user_by_id(student_id)
        if student is None:
            raise StudentNotFoundError
        if student.role != UserRole.STUDENT.value:
            raise InvalidStudentError

        progress = await self.enroll(course_id, student.id)
        logger.info(
            "student_enrolled_by_staff",
            student_id=str(student.id),
            course_id=str(course_id),
            actor_id=str(actor.id),
        )
        return progress

    async def enrolled_courses(
        self, user_id: UUID
    ) -> list[tuple[Course, LearningProgress]]:
        """Courses the user is enrolled in, newest enrollment first."""
        records = await self.get_user_progress(user_id)
        pairs = []
        for progress in records:
            course = await self.course_service.get_course(progress.course_id)
            if course:
                pairs.append((course, progress))
        pairs.sort(key=lambda pair: pair[1].enrollment_date, reverse=True)
        return pairs

    # ==========================================================================
    # Course-level progress
    # ==========================================================================

    def apply_completion_percentage(
        self, progress: LearningProgress, percentage: int
    ) -> list[int]:
        """Set the percentage, publish the change, award milestone achievements."""
        previous = progress.completion_percentage
        progress.completion_percentage = percentage
        milestones = self.tracker.update_progress(
            progress.user_id, progress.course_id, percentage, previous=previous
        )
        for milestone in milestones:
            if milestone < 100:
                progress.add_achievement(f"milestone_{milestone}")
        return milestones

    async def update_module_completion(
        self,
        user_id: UUID,
        course_id: UUID,
        module_id: UUID,
        time_spent: int = 0,
    ) -> LearningProgress:
        """Mark a syllabus module as completed for the user.

        Raises:
            ProgressNotFoundError: User is not enrolled
            ProgressCourseNotFoundError: Course does not exist
            ModuleNotInCourseError: Module is not part of the syllabus
        """
        progress = await self.get_progress(user_id, course_id)
        if progress is None:
            raise ProgressNotFoundError
        course = await self._require_course(course_id)

        module_index = course.module_index(module_id)
        if module_index == -1:
            raise ModuleNotInCourseError

        existing = progress.find_completed_module(module_index, module_id)
        if existing is None:
            progress.modules_completed.append(
                {
                    "module_index": module_index,
                    "module_id": str(module_id),
                    "completed_at": utc_now().isoformat(),
                    "time_spent": time_spent,
                    "score": None,
                    "attempts": 1,
                }
            )
        else:
            existing["time_spent"] = int(existing.get("time_spent") or 0) + time_spent

        self.apply_completion_percentage(
            progress,
            module_completion_percentage(
                progress.completed_syllabus_count(course.syllabus_module_ids),
                course.total_modules,
                course_completed=progress.is_completed,
            ),
        )
        progress.total_time_spent += time_spent
        progress.last_access_date = utc_now()
        progress.current_module = max(progress.current_module, module_index + 1)

        if progress.total_time_spent >= self.settings.progress_study_warrior_minutes:
            progress.add_achievement(STUDY_WARRIOR)

        await self.save_progress(progress)
        await self.auth_service.add_learning_minutes(user_id, time_spent)

        logger.info(
            "module_completed",
            user_id=str(user_id),
            course_id=str(course_id),
            module_id=str(module_id),
            completion_percentage=progress.completion_percentage,
        )
        return progress

    async def complete_course(
        self, user_id: UUID, course_id: UUID, grade: float
    ) -> LearningProgress | None:
        """Complete a course after its final quiz was passed.

        Returns ``None`` when the user has no progress record for the course.
        """
        progress = await self.get_progress(user_id, course_id)
        if progress is None:
            return None

        self.apply_completion_percentage(progress, 100)
        now = utc_now()
        progress.is_completed = True
        progress.completion_date = progress.completion_date or now
        progress.grade = grade
        progress.last_access_date = now
        progress.add_achievement(QUIZ_MASTER)
        await self.save_progress(progress)

        logger.info(
            "course_completed",
            user_id=str(user_id),
            course_id=str(course_id),
            grade=grade,
        )
        return progress

    async def update_notes(
        self, user_id: UUID, course_id: UUID, notes: str
    ) -> LearningProgress:
        progress = await self.get_course_progress(user_id, course_id)
        progress.notes = notes
        progress.last_access_date = utc_now()
        await self.save_progress(progress)
        return progress

    async def issue_certificate(self, user_id: UUID, course_id: UUID) -> str:
        """Issue a completion certificate; repeated calls return the same id."""
        progress = await self.get_course_progress(user_id, course_id)
        if not progress.is_completed:
            raise CourseNotCompletedError
        if progress.certificate_issued and progress.certificate_id:
            return progress.certificate_id

        progress.certificate_issued = True
        progress.certificate_id = f"CERT-{uuid4().hex[:12].upper()}"
        await self.save_progress(progress)
        logger.info(
            "certificate_issued",
            user_id=str(user_id),
            course_id=str(course_id),
            certificate_id=progress.certificate_id,
        )
        return progress.certificate_id

    # ==========================================================================
    # Module-level progress
    # ==========================================================================

    async def start_module(
        self, user_id: UUID, course_id: UUID, module_id: UUID
    ) -> tuple[ModuleProgress, bool]:
        """Start tracking a module. Returns the record and ``already_started``.

        Raises:
            NotEnrolledError: User is not enrolled in the course
            ProgressModuleNotFoundError: Module does not exist
            PrerequisitesNotMetError: A prerequisite module is not completed
        """
        enrollment = await self.get_progress(user_id, course_id)
        if enrollment is None:
            raise NotEnrolledError

        existing = await self.get_module_progress(user_id, course_id, module_id)
        if existing is not None:
            existing.last_accessed_at = utc_now()
            await self.save_module_progress(existing, recalculate=False)
            return existing, True

        module = await self.module_service.get_module(module_id)
        if module is None:
            raise ProgressModuleNotFoundError

        completed = {
            str(mp.module_id)
            for mp in await self.list_module_progress(user_id, course_id)
            if mp.is_completed
        } | enrollment.completed_module_ids()
        for prerequisite_id in module.prerequisite_module_ids:
            if prerequisite_id not in completed:
                prerequisite = await self.module_service.get_module(
                    UUID(prerequisite_id)
                )
                name = prerequisite.title if prerequisite else prerequisite_id
                raise PrerequisitesNotMetError(
                    f"Prerequisite module not completed: {name}"
                )

        max_attempts = int(
            module.settings.get("max_attempts")
            or self.settings.module_default_max_attempts
        )
        now = utc_now()
        record = ModuleProgress(
            user_id=user_id,
            course_id=course_id,
            module_id=module_id,
            status=ModuleProgressStatus.IN_PROGRESS.value,
            started_at=now,
            last_accessed_at=now,
            content_progress=[
                content_progress_entry(content, max_attempts)
                for content in module.contents
            ],
            created_at=now,
        )
        await self.save_module_progress(record)

        logger.info(
            "module_started",
            user_id=str(user_id),
            course_id=str(course_id),
            module_id=str(module_id),
            contents=record.total_content_count,
        )
        return record, False

    async def update_content_progress(
        self,
        user_id: UUID,
        course_id: UUID,
        module_id: UUID,
        content_id: str,
        status: ModuleProgressStatus | None = None,
        time_spent: int | None = None,
        score: float | None = None,
    ) -> ModuleProgress:
        """Record progress on one content item of a started module.

        When this completes the module, course-level completion is updated
        with the module's total time.
        """
        record = await self.get_module_progress(user_id, course_id, module_id)
        if record is None:
            raise ModuleProgressNotFoundError

        now = utc_now().isoformat()
        entry = record.get_content(content_id)
        if entry is None:
            entry = content_progress_entry(
                {"content_id": content_id},
                self.settings.module_default_max_attempts,
            )
            record.content_progress.append(entry)

        if time_spent:
            entry["time_spent"] = int(entry.get("time_spent") or 0) + time_spent
        if score is not None:
            entry["scores"] = [*entry.get("scores", []), score]
            entry["best_score"] = max(entry.get("best_score") or 0, score)
            entry["attempts"] = int(entry.get("attempts") or 0) + 1
        if status is not None:
            entry["status"] = status.value
            if status is ModuleProgressStatus.COMPLETED:
                entry["is_completed"] = True
                entry["completed_at"] = entry.get("completed_at") or now
            if status is not ModuleProgressStatus.NOT_STARTED and not entry.get(
                "started_at"
            ):
                entry["started_at"] = now
        entry["last_accessed_at"] = now

        was_completed = record.is_completed
        await self.save_module_progress(record)

        if record.is_completed and not was_completed:
            try:
                await self.update_module_completion(
                    user_id, course_id, module_id, record.total_time_spent
                )
            except ModuleNotInCourseError:
                logger.warning(
                    "completed_module_not_in_syllabus",
                    course_id=str(course_id),
                    module_id=str(module_id),
                )
        return record

    async def module_access(
        self, user: UserResponse, module_id: UUID
    ) -> dict[str, Any]:
        """Access decision for ``user`` on a module, using their progress."""
        module = await self.module_service.get_module(module_id)
        if module is None:
            raise ProgressModuleNotFoundError
        completed: set[str] = set()
        progress = await self.get_progress(user.id, module.course_id)
        if progress:
            completed = progress.completed_module_ids()
        completed |= {
            str(mp.module_id)
            for mp in await self.list_module_progress(user.id, module.course_id)
            if mp.is_completed
        }
        return can_user_access(module, user, completed)

    # ==========================================================================
    # Analytics
    # ==========================================================================

    async def learning_analytics(self, user_id: UUID) -> LearningAnalyticsResponse:
        cache_key = analytics_cache_key(user_id)
        cached = await cache_get_json(self.redis, cache_key)
        if cached:
            return LearningAnalyticsResponse.model_validate(cached)

        records = await self.get_user_progress(user_id)
        week_ago = utc_now() - timedelta(days=RECENT_ACTIVITY_DAYS)

        graded = [p for p in records if p.grade and p.grade > 0]
        average_score = (
            round(sum(p.grade for p in graded) / len(graded)) if graded else 0
        )

        category_grades: dict[str, list[float]] = {}
        for progress in graded:
            course = await self.course_service.get_course(progress.course_id)
            if course:
                category_grades.setdefault(course.category, []).append(progress.grade)
        best_subject = "Not available"
        best_average = 0.0
        for category, grades in category_grades.items():
            average = sum(grades) / len(grades)
            if average > best_average:
                best_average = average
                best_subject = category

        analytics = LearningAnalyticsResponse(
            total_courses=len(records),
            completed_courses=sum(1 for p in records if p.completion_percentage == 100),
            in_progress_courses=sum(
                1 for p in records if 0 < p.completion_percentage < 100
            ),
            total_hours=round(sum(p.total_time_spent for p in records) / 60),
            achievements_count=sum(len(p.achievements) for p in records),
            recent_activity=sum(1 for p in records if p.last_access_date >= week_ago),
            average_score=average_score,
            best_subject=best_subject,
            recent_progress=[
                LearningProgressResponse.from_entity(p) for p in records[:10]
            ],
        )
        await cache_set_json(
            self.redis,
            cache_key,
            analytics.model_dump(mode="json"),
            self.settings.analytics_cache_ttl_seconds,
        )
        return analytics

    async def learning_streaks(self, user_id: UUID) -> LearningStreaksResponse:
        """Compute the day streak from access dates and persist it on the user."""
        user = await self.auth_service.get_user_by_id(user_id)
        if user is None:
            raise ProgressNotFoundError("User not found")

        records = await self.get_user_progress(user_id)
        now = utc_now()
        access_dates = [p.last_access_date for p in records]
        streak = current_streak(access_dates, now.date())
        last_active = max(access_dates) if access_dates else user.last_learning_date
        user = await self.auth_service.save_streaks(user, streak, last_active)

        week_ago = now - timedelta(days=RECENT_ACTIVITY_DAYS)
        return LearningStreaksResponse(
            current_streak=user.current_streak,
            longest_streak=user.longest_streak,
            last_active_date=user.last_learning_date,
            weekly_active_days=sum(1 for d in access_dates if d >= week_ago),
            learning_goals=LearningGoals(**user.learning_goals),
        )

    async def update_goals(
        self,
        user_id: UUID,
        daily: int | None = None,
        weekly: int | None = None,
        monthly: int | None = None,
    ) -> LearningGoals:
        goals = await self.auth_service.update_learning_goals(
            user_id, daily=daily, weekly=weekly, monthly=monthly
        )
        await cache_delete(self.redis, streaks_cache_key(user_id))
        return LearningGoals(**goals)

    # ==========================================================================
    # Persistence
    # ==========================================================================

    async def save_progress(self, progress: LearningProgress) -> None:
        progress.updated_at = utc_now()
        await self.session.aexecute(
            self._upsert_progress,
            [
                progress.user_id,
                progress.course_id,
                progress.enrollment_date,
                progress.completion_percentage,
                progress.current_module,
                to_json_column(progress.modules_completed),
                progress.total_time_spent,
                progress.last_access_date,
                progress.is_completed,
                progress.completion_date,
                progress.grade,
                progress.certificate_issued,
                progress.certificate_id,
                progress.notes,
                to_json_column(progress.achievements),
                progress.updated_at,
            ],
        )
        await self._invalidate_cache(progress.user_id)

    async def save_module_progress(
        self, record: ModuleProgress, recalculate: bool = True
    ) -> None:
        if recalculate:
            record.recalculate()
        record.updated_at = utc_now()
        await self.session.aexecute(
            self._upsert_module_progress,
            [
                record.user_id,
                record.course_id,
                record.module_id,
                record.status,
                record.started_at,
                record.completed_at,
                record.last_accessed_at,
                record.total_time_spent,
                record.completion_percentage,
                record.content_completion_count,
                record.total_content_count,
                record.required_content_completion_count,
                record.total_required_content_count,
                to_json_column(record.content_progress),
                to_json_column(record.module_assessment),
                record.created_at,
                record.updated_at,
            ],
        )

    async def _invalidate_cache(self, user_id: UUID) -> None:
        await cache_delete(
            self.redis, analytics_cache_key(user_id), streaks_cache_key(user_id)
        )
