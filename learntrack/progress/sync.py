"""Progress synchronization.

Reconciles module-level completion (``module_progress``) with the
course-level ``learning_progress`` records, and builds per-course reports.
"""

from uuid import UUID

import structlog

from learntrack.auth.permissions import is_admin, is_at_least_instructor
from learntrack.auth.schemas import UserResponse
from learntrack.core.database.columns import utc_now
from learntrack.courses.models import Course
from learntrack.progress.models import PRE_QUIZ_CAP, LearningProgress, ModuleProgress
from learntrack.progress.schemas import (
    CourseProgressReport,
    ProgressReportResponse,
    SyncResultResponse,
)
from learntrack.progress.service import (
    EnrollmentPermissionError,
    ProgressService,
)


logger = structlog.get_logger(__name__)


def fold_module_progress(
    progress: LearningProgress,
    course: Course,
    module_records: list[ModuleProgress],
) -> bool:
    """Merge completed module records into ``progress``.

    Returns True when the record changed and needs saving.
    """
    changed = False
    for record in module_records:
        if not record.is_completed:
            continue
        module_index = course.module_index(record.module_id)
        if progress.find_completed_module(module_index, record.module_id):
            continue
        completed_at = record.completed_at or utc_now()
        progress.modules_completed.append(
            {
                "module_index": module_index,
                "module_id": str(record.module_id),
                "completed_at": completed_at.isoformat(),
                "time_spent": record.total_time_spent,
                "score": record.module_assessment.get("best_score") or None,
                "attempts": 1,
            }
        )
        changed = True

    total = course.total_modules
    if total > 0:
        done = progress.completed_syllabus_count(course.syllabus_module_ids)
        percentage = round(done / total * 100)
        if progress.is_completed:
            percentage = 100
        else:
            percentage = min(percentage, PRE_QUIZ_CAP)
        if percentage != progress.completion_percentage:
            progress.completion_percentage = percentage
            changed = True
    return changed


class ProgressSyncService:
    """Recomputes course progress from module progress records."""

    def __init__(self, progress_service: ProgressService):
        self.progress_service = progress_service
        self.course_service = progress_service.course_service

    async def _sync_record(self, progress: LearningProgress) -> bool:
        course = await self.course_service.get_course(progress.course_id)
        if course is None:
            logger.warning(
                "sync_course_missing",
                user_id=str(progress.user_id),
                course_id=str(progress.course_id),
            )
            return False
        module_records = await self.progress_service.list_module_progress(
            progress.user_id, progress.course_id
        )
        if not fold_module_progress(progress, course, module_records):
            return False
        await self.progress_service.save_progress(progress)
        return True

    async def sync_user_progress(self, user_id: UUID) -> SyncResultResponse:
        records = await self.progress_service.get_user_progress(user_id)
        updated = 0
        for progress in records:
            if await self._sync_record(progress):
                updated += 1

        logger.info("user_progress_synced", user_id=str(user_id), updated=updated)
        return SyncResultResponse(
            success=True,
            message=f"Synchronized {updated} of {len(records)} progress records",
            updated_records=updated,
        )

    async def sync_course_progress(
        self, course_id: UUID, actor: UserResponse
    ) -> SyncResultResponse:
        """Sync every learner of a course. Course owner or admin only."""
        course = await self.progress_service._require_course(course_id)
        if not is_at_least_instructor(actor.role):
            raise EnrollmentPermissionError("Not authorized to sync this course")
        if not is_admin(actor.role) and not course.is_owned_by(actor.id):
            raise EnrollmentPermissionError("Not authorized to sync this course")

        records = await self.progress_service.list_course_learners(course_id)
        updated = 0
        for progress in records:
            if await self._sync_record(progress):
                updated += 1

        logger.info(
            "course_progress_synced",
            course_id=str(course_id),
            learners=len(records),
            updated=updated,
        )
        return SyncResultResponse(
            success=True,
            message=f"Synchronized {updated} of {len(records)} learners",
            updated_records=updated,
        )

    async def detailed_progress_report(self, user_id: UUID) -> ProgressReportResponse:
        records = await self.progress_service.get_user_progress(user_id)
        courses = []
        for progress in records:
            course = await self.course_service.get_course(progress.course_id)
            if course is None:
                continue
            courses.append(
                CourseProgressReport(
                    course_id=course.id,
                    course_title=course.title,
                    completion_percentage=progress.completion_percentage,
                    enrollment_date=progress.enrollment_date,
                    last_accessed=progress.last_access_date,
                    modules_completed=progress.completed_syllabus_count(
                        course.syllabus_module_ids
                    ),
                    total_modules=course.total_modules,
                    is_completed=progress.is_completed,
                )
            )
        return ProgressReportResponse(user_id=user_id, courses=courses)
