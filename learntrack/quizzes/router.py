"""Quiz API endpoints.

Three routers share the quiz service:
- ``router``: students taking quizzes (``/v1/quizzes``)
- ``admin_router``: quiz authoring for administrators (``/v1/admin/quizzes``)
- ``instructor_router``: quiz authoring limited to owned courses
  (``/v1/instructor/quizzes``)
"""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, HTTPException, Response, status

from learntrack.auth.dependencies import AdminUser, CurrentUser, InstructorUser
from learntrack.quizzes.dependencies import QuizServiceDep
from learntrack.quizzes.schemas import (
    AttemptResponse,
    CourseQuizResponse,
    CreateQuizRequest,
    ManagedQuizResponse,
    MessageResponse,
    QuizResponse,
    QuizResultsResponse,
    QuizStats,
    SaveAttemptProgressRequest,
    StartAttemptResponse,
    SubmitQuizRequest,
    SubmitResponse,
    UpdateQuizRequest,
)
from learntrack.quizzes.service import QuizError, student_quiz_view


router = APIRouter(prefix="/v1/quizzes", tags=["quizzes"])


def handle_quiz_error(error: QuizError) -> HTTPException:
    """Convert QuizError to HTTPException."""
    status_map = {
        "quiz_not_found": status.HTTP_404_NOT_FOUND,
        "course_not_found": status.HTTP_404_NOT_FOUND,
        "attempt_not_found": status.HTTP_404_NOT_FOUND,
        "quiz_unavailable": status.HTTP_403_FORBIDDEN,
        "not_enrolled": status.HTTP_403_FORBIDDEN,
        "modules_incomplete": status.HTTP_403_FORBIDDEN,
        "attempt_inactive": status.HTTP_403_FORBIDDEN,
        "results_unavailable": status.HTTP_403_FORBIDDEN,
        "permission_denied": status.HTTP_403_FORBIDDEN,
        "quiz_has_attempts": status.HTTP_403_FORBIDDEN,
        "validation_error": status.HTTP_400_BAD_REQUEST,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )


# ==============================================================================
# Student routes
# ==============================================================================


@router.get(
    "/course/{course_id}",
    response_model=list[CourseQuizResponse],
    summary="Published quizzes of a course with my stats",
)
async def course_quizzes(
    course_id: UUID, user: CurrentUser, quiz_service: QuizServiceDep
) -> list[CourseQuizResponse]:
    try:
        items = await quiz_service.course_quizzes(course_id, user.id)
    except QuizError as e:
        raise handle_quiz_error(e) from e
    return [
        CourseQuizResponse(quiz=student_quiz_view(quiz), user_stats=stats)
        for quiz, stats in items
    ]


@router.get("/{quiz_id}", response_model=QuizResponse, summary="Get a quiz")
async def get_quiz(
    quiz_id: UUID, user: CurrentUser, quiz_service: QuizServiceDep
) -> QuizResponse:
    try:
        quiz = await quiz_service.get_quiz_for_student(quiz_id, user.id)
    except QuizError as e:
        raise handle_quiz_error(e) from e
    return student_quiz_view(quiz)


@router.post(
    "/{quiz_id}/start",
    response_model=StartAttemptResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start or resume an attempt",
    responses={200: {"description": "Resuming existing attempt"}},
)
async def start_attempt(
    quiz_id: UUID,
    response: Response,
    user: CurrentUser,
    quiz_service: QuizServiceDep,
) -> StartAttemptResponse:
    try:
        attempt, quiz, resumed = await quiz_service.start_attempt(quiz_id, user.id)
    except QuizError as e:
        raise handle_quiz_error(e) from e
    if resumed:
        response.status_code = status.HTTP_200_OK
    return StartAttemptResponse(
        message="Resuming existing attempt" if resumed else "Quiz attempt started",
        attempt=AttemptResponse.from_entity(attempt, hide_grading=True),
        quiz=student_quiz_view(quiz),
    )


@router.get(
    "/{quiz_id}/attempts",
    response_model=list[AttemptResponse],
    summary="My attempts on a quiz",
)
async def my_attempts(
    quiz_id: UUID, user: CurrentUser, quiz_service: QuizServiceDep
) -> list[AttemptResponse]:
    try:
        attempts = await quiz_service.my_attempts(quiz_id, user.id)
    except QuizError as e:
        raise handle_quiz_error(e) from e
    return [AttemptResponse.from_entity(a, hide_grading=a.is_active) for a in attempts]


@router.put(
    "/attempts/{attempt_id}",
    response_model=AttemptResponse,
    summary="Save attempt progress",
)
async def save_attempt_progress(
    attempt_id: UUID,
    data: SaveAttemptProgressRequest,
    user: CurrentUser,
    quiz_service: QuizServiceDep,
) -> AttemptResponse:
    try:
        attempt = await quiz_service.save_attempt_progress(attempt_id, user.id, data)
    except QuizError as e:
        raise handle_quiz_error(e) from e
    return AttemptResponse.from_entity(attempt, hide_grading=True)


@router.post(
    "/attempts/{attempt_id}/submit",
    response_model=SubmitResponse,
    summary="Submit an attempt for grading",
)
async def submit_attempt(
    attempt_id: UUID,
    data: SubmitQuizRequest,
    user: CurrentUser,
    quiz_service: QuizServiceDep,
) -> SubmitResponse:
    try:
        attempt, course_completed = await quiz_service.submit(
            attempt_id, user.id, data.answers, auto_submit=data.auto_submit
        )
    except QuizError as e:
        raise handle_quiz_error(e) from e
    return SubmitResponse(
        message="Quiz submitted successfully",
        attempt=AttemptResponse.from_entity(attempt),
        course_completed=course_completed,
    )


@router.get(
    "/attempts/{attempt_id}/results",
    response_model=QuizResultsResponse,
    summary="Results of a completed attempt",
)
async def attempt_results(
    attempt_id: UUID, user: CurrentUser, quiz_service: QuizServiceDep
) -> QuizResultsResponse:
    try:
        return await quiz_service.results(attempt_id, user.id)
    except QuizError as e:
        raise handle_quiz_error(e) from e


# ==============================================================================
# Authoring routes
# ==============================================================================


def build_management_router(prefix: str, tag: str, actor_dep: Any) -> APIRouter:
    """Quiz authoring routes guarded by ``actor_dep``.

    Ownership rules live in the service: admins manage every quiz,
    instructors only those of their own courses.
    """
    management = APIRouter(prefix=prefix, tags=[tag])

    @management.get(
        "", response_model=list[ManagedQuizResponse], summary="List quizzes"
    )
    async def list_quizzes(
        actor: actor_dep, quiz_service: QuizServiceDep
    ) -> list[ManagedQuizResponse]:
        try:
            items = await quiz_service.list_managed_quizzes(actor)
        except QuizError as e:
            raise handle_quiz_error(e) from e
        return [
            ManagedQuizResponse(
                quiz=QuizResponse.from_entity(quiz),
                stats=QuizStats(total_attempts=total, completed_attempts=completed),
            )
            for quiz, total, completed in items
        ]

    @management.get("/{quiz_id}", response_model=QuizResponse, summary="Get a quiz")
    async def get_managed_quiz(
        quiz_id: UUID, actor: actor_dep, quiz_service: QuizServiceDep
    ) -> QuizResponse:
        try:
            quiz = await quiz_service.get_managed_quiz(quiz_id, actor)
        except QuizError as e:
            raise handle_quiz_error(e) from e
        return QuizResponse.from_entity(quiz)

    @management.post(
        "",
        response_model=QuizResponse,
        status_code=status.HTTP_201_CREATED,
        summary="Create a quiz",
    )
    async def create_quiz(
        data: CreateQuizRequest, actor: actor_dep, quiz_service: QuizServiceDep
    ) -> QuizResponse:
        try:
            quiz = await quiz_service.create_quiz(data, actor)
        except QuizError as e:
            raise handle_quiz_error(e) from e
        return QuizResponse.from_entity(quiz)

    @management.put("/{quiz_id}", response_model=QuizResponse, summary="Update a quiz")
    async def update_quiz(
        quiz_id: UUID,
        data: UpdateQuizRequest,
        actor: actor_dep,
        quiz_service: QuizServiceDep,
    ) -> QuizResponse:
        try:
            quiz = await quiz_service.update_quiz(quiz_id, data, actor)
        except QuizError as e:
            raise handle_quiz_error(e) from e
        return QuizResponse.from_entity(quiz)

    @management.delete(
        "/{quiz_id}", response_model=MessageResponse, summary="Delete a quiz"
    )
    async def delete_quiz(
        quiz_id: UUID, actor: actor_dep, quiz_service: QuizServiceDep
    ) -> MessageResponse:
        try:
            await quiz_service.delete_quiz(quiz_id, actor)
        except QuizError as e:
            raise handle_quiz_error(e) from e
        return MessageResponse(message="Quiz deleted successfully")

    @management.get(
        "/{quiz_id}/attempts",
        response_model=list[AttemptResponse],
        summary="Attempts on a quiz",
    )
    async def quiz_attempts(
        quiz_id: UUID, actor: actor_dep, quiz_service: QuizServiceDep
    ) -> list[AttemptResponse]:
        try:
            attempts = await quiz_service.managed_quiz_attempts(quiz_id, actor)
        except QuizError as e:
            raise handle_quiz_error(e) from e
        return [AttemptResponse.from_entity(a) for a in attempts]

    return management


admin_router = build_management_router("/v1/admin/quizzes", "admin-quizzes", AdminUser)
instructor_router = build_management_router(
    "/v1/instructor/quizzes", "instructor-quizzes", InstructorUser
)
