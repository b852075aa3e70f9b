"""Learner progress API endpoints.

Provides routes for:
- Course and module progress
- Learning analytics, streaks and goals
- Notes and certificates
- Progress synchronization and reports
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from learntrack.auth.dependencies import CurrentUser, InstructorUser
from learntrack.auth.schemas import UpdateGoalsRequest
from learntrack.progress.dependencies import ProgressServiceDep, SyncServiceDep
from learntrack.progress.schemas import (
    CertificateResponse,
    ContentProgressRequest,
    GoalsResponse,
    LearningAnalyticsResponse,
    LearningProgressResponse,
    LearningStreaksResponse,
    ModuleCompletionRequest,
    ModuleProgressResponse,
    ProgressReportResponse,
    StartModuleRequest,
    StartModuleResponse,
    SyncResultResponse,
    UpdateNotesRequest,
)
from learntrack.progress.service import ProgressError


router = APIRouter(prefix="/v1/progress", tags=["progress"])


def handle_progress_error(error: ProgressError) -> HTTPException:
    """Convert ProgressError to HTTPException."""
    status_map = {
        "progress_not_found": status.HTTP_404_NOT_FOUND,
        "course_not_found": status.HTTP_404_NOT_FOUND,
        "module_not_found": status.HTTP_404_NOT_FOUND,
        "module_progress_not_found": status.HTTP_404_NOT_FOUND,
        "student_not_found": status.HTTP_404_NOT_FOUND,
        "not_enrolled": status.HTTP_403_FORBIDDEN,
        "prerequisites_not_met": status.HTTP_403_FORBIDDEN,
        "permission_denied": status.HTTP_403_FORBIDDEN,
        "module_not_in_course": status.HTTP_400_BAD_REQUEST,
        "already_enrolled": status.HTTP_400_BAD_REQUEST,
        "enrollment_missing": status.HTTP_400_BAD_REQUEST,
        "invalid_student": status.HTTP_400_BAD_REQUEST,
        "course_not_completed": status.HTTP_400_BAD_REQUEST,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )


# ==============================================================================
# Overview
# ==============================================================================


@router.get(
    "",
    response_model=list[LearningProgressResponse],
    summary="All progress records of the current user",
)
async def get_user_progress(
    user: CurrentUser, progress_service: ProgressServiceDep
) -> list[LearningProgressResponse]:
    records = await progress_service.get_user_progress(user.id)
    return [LearningProgressResponse.from_entity(p) for p in records]


@router.get(
    "/analytics",
    response_model=LearningAnalyticsResponse,
    summary="Learning analytics",
)
async def get_analytics(
    user: CurrentUser, progress_service: ProgressServiceDep
) -> LearningAnalyticsResponse:
    return await progress_service.learning_analytics(user.id)


@router.get(
    "/streaks",
    response_model=LearningStreaksResponse,
    summary="Learning streaks and goals",
)
async def get_streaks(
    user: CurrentUser, progress_service: ProgressServiceDep
) -> LearningStreaksResponse:
    try:
        return await progress_service.learning_streaks(user.id)
    except ProgressError as e:
        raise handle_progress_error(e) from e


@router.put("/goals", response_model=GoalsResponse, summary="Update learning goals")
async def update_goals(
    data: UpdateGoalsRequest,
    user: CurrentUser,
    progress_service: ProgressServiceDep,
) -> GoalsResponse:
    goals = await progress_service.update_goals(
        user.id, daily=data.daily, weekly=data.weekly, monthly=data.monthly
    )
    return GoalsResponse(message="Learning goals updated", learning_goals=goals)


# ==============================================================================
# Module completion and tracking
# ==============================================================================


@router.post(
    "/module-completion",
    response_model=LearningProgressResponse,
    summary="Mark a course module as completed",
)
async def complete_module(
    data: ModuleCompletionRequest,
    user: CurrentUser,
    progress_service: ProgressServiceDep,
) -> LearningProgressResponse:
    try:
        progress = await progress_service.update_module_completion(
            user.id, data.course_id, data.module_id, data.time_spent
        )
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return LearningProgressResponse.from_entity(progress)


@router.post(
    "/modules/start",
    response_model=StartModuleResponse,
    summary="Start tracking a module",
)
async def start_module(
    data: StartModuleRequest,
    user: CurrentUser,
    progress_service: ProgressServiceDep,
) -> StartModuleResponse:
    try:
        record, already_started = await progress_service.start_module(
            user.id, data.course_id, data.module_id
        )
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return StartModuleResponse(
        already_started=already_started,
        progress=ModuleProgressResponse.from_entity(record),
    )


@router.put(
    "/modules/content",
    response_model=ModuleProgressResponse,
    summary="Update progress on a module content item",
)
async def update_content_progress(
    data: ContentProgressRequest,
    user: CurrentUser,
    progress_service: ProgressServiceDep,
) -> ModuleProgressResponse:
    try:
        record = await progress_service.update_content_progress(
            user.id,
            data.course_id,
            data.module_id,
            data.content_id,
            status=data.status,
            time_spent=data.time_spent,
            score=data.score,
        )
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return ModuleProgressResponse.from_entity(record)


@router.get(
    "/modules/{course_id}/{module_id}",
    response_model=ModuleProgressResponse,
    summary="Progress on one module",
)
async def get_module_progress(
    course_id: UUID,
    module_id: UUID,
    user: CurrentUser,
    progress_service: ProgressServiceDep,
) -> ModuleProgressResponse:
    record = await progress_service.get_module_progress(user.id, course_id, module_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Module progress not found",
        )
    return ModuleProgressResponse.from_entity(record)


# ==============================================================================
# Synchronization
# ==============================================================================


@router.post("/sync", response_model=SyncResultResponse, summary="Sync my progress")
async def sync_my_progress(
    user: CurrentUser, sync_service: SyncServiceDep
) -> SyncResultResponse:
    return await sync_service.sync_user_progress(user.id)


@router.post(
    "/sync/course/{course_id}",
    response_model=SyncResultResponse,
    summary="Sync progress of every learner in a course",
)
async def sync_course_progress(
    course_id: UUID, user: InstructorUser, sync_service: SyncServiceDep
) -> SyncResultResponse:
    try:
        return await sync_service.sync_course_progress(course_id, user)
    except ProgressError as e:
        raise handle_progress_error(e) from e


@router.get(
    "/report",
    response_model=ProgressReportResponse,
    summary="Detailed progress report",
)
async def progress_report(
    user: CurrentUser, sync_service: SyncServiceDep
) -> ProgressReportResponse:
    return await sync_service.detailed_progress_report(user.id)


# ==============================================================================
# Per course
# ==============================================================================


@router.get(
    "/{course_id}",
    response_model=LearningProgressResponse,
    summary="Progress in a course",
)
async def get_course_progress(
    course_id: UUID, user: CurrentUser, progress_service: ProgressServiceDep
) -> LearningProgressResponse:
    try:
        progress = await progress_service.get_course_progress(user.id, course_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return LearningProgressResponse.from_entity(progress)


@router.put(
    "/{course_id}/notes",
    response_model=LearningProgressResponse,
    summary="Update course notes",
)
async def update_notes(
    course_id: UUID,
    data: UpdateNotesRequest,
    user: CurrentUser,
    progress_service: ProgressServiceDep,
) -> LearningProgressResponse:
    try:
        progress = await progress_service.update_notes(user.id, course_id, data.notes)
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return LearningProgressResponse.from_entity(progress)


@router.post(
    "/{course_id}/certificate",
    response_model=CertificateResponse,
    summary="Issue a completion certificate",
)
async def issue_certificate(
    course_id: UUID, user: CurrentUser, progress_service: ProgressServiceDep
) -> CertificateResponse:
    try:
        certificate_id = await progress_service.issue_certificate(user.id, course_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return CertificateResponse(certificate_id=certificate_id, course_id=course_id)
