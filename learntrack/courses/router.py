"""Course catalog API endpoints.

Provides routes for:
- Catalog listing and course CRUD
- Self-service enrollment
- Enrolling students on their behalf (instructors and admins)
"""

from typing import Literal
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from learntrack.auth.dependencies import AdminUser, CurrentUser, InstructorUser
from learntrack.courses.dependencies import CourseServiceDep
from learntrack.courses.models import CourseCategory, CourseDifficulty
from learntrack.courses.schemas import (
    CourseListParams,
    CourseListResponse,
    CourseResponse,
    CreateCourseRequest,
    EnrollStudentRequest,
    MessageResponse,
    UpdateCourseRequest,
)
from learntrack.courses.service import CourseError, total_pages
from learntrack.progress.dependencies import ProgressServiceDep
from learntrack.progress.router import handle_progress_error
from learntrack.progress.schemas import (
    EnrolledCourseResponse,
    EnrollmentResponse,
    LearningProgressResponse,
)
from learntrack.progress.service import ProgressError


router = APIRouter(prefix="/v1/courses", tags=["courses"])


def handle_course_error(error: CourseError) -> HTTPException:
    """Convert CourseError to HTTPException."""
    status_map = {
        "course_not_found": status.HTTP_404_NOT_FOUND,
        "instructor_not_found": status.HTTP_404_NOT_FOUND,
        "permission_denied": status.HTTP_403_FORBIDDEN,
        "invalid_instructor": status.HTTP_400_BAD_REQUEST,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )


# ==============================================================================
# Catalog
# ==============================================================================


@router.get("", response_model=CourseListResponse, summary="List courses")
async def list_courses(
    user: CurrentUser,
    course_service: CourseServiceDep,
    category: CourseCategory | None = Query(None),
    difficulty: CourseDifficulty | None = Query(None),
    search: str | None = Query(None, description="Match title or description"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_by: Literal["created_at", "title", "rating", "enrollment_count"] = Query(
        "created_at"
    ),
    sort_order: Literal["asc", "desc"] = Query("desc"),
) -> CourseListResponse:
    """List active courses.

    Students only see courses they are enrolled in.
    """
    params = CourseListParams(
        category=category,
        difficulty=difficulty,
        search=search,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    courses, total = await course_service.list_courses(user, params)
    return CourseListResponse(
        courses=[CourseResponse.from_entity(c) for c in courses],
        total_pages=total_pages(total, params.limit),
        current_page=params.page,
        total=total,
    )


@router.get(
    "/enrolled",
    response_model=list[EnrolledCourseResponse],
    summary="Courses the current user is enrolled in",
)
async def enrolled_courses(
    user: CurrentUser, progress_service: ProgressServiceDep
) -> list[EnrolledCourseResponse]:
    pairs = await progress_service.enrolled_courses(user.id)
    return [
        EnrolledCourseResponse(
            course=CourseResponse.from_entity(course),
            progress=LearningProgressResponse.from_entity(progress),
        )
        for course, progress in pairs
    ]


@router.get("/{course_id}", response_model=CourseResponse, summary="Get a course")
async def get_course(
    course_id: UUID, user: CurrentUser, course_service: CourseServiceDep
) -> CourseResponse:
    try:
        course = await course_service.require_course(course_id)
    except CourseError as e:
        raise handle_course_error(e) from e
    return CourseResponse.from_entity(course)


@router.post(
    "",
    response_model=CourseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a course",
)
async def create_course(
    data: CreateCourseRequest,
    user: InstructorUser,
    course_service: CourseServiceDep,
) -> CourseResponse:
    try:
        course = await course_service.create_course(data, user)
    except CourseError as e:
        raise handle_course_error(e) from e
    return CourseResponse.from_entity(course)


@router.put("/{course_id}", response_model=CourseResponse, summary="Update a course")
async def update_course(
    course_id: UUID,
    data: UpdateCourseRequest,
    user: InstructorUser,
    course_service: CourseServiceDep,
) -> CourseResponse:
    try:
        course = await course_service.update_course(course_id, data, user)
    except CourseError as e:
        raise handle_course_error(e) from e
    return CourseResponse.from_entity(course)


@router.delete(
    "/{course_id}", response_model=MessageResponse, summary="Delete a course (admin)"
)
async def delete_course(
    course_id: UUID, admin: AdminUser, course_service: CourseServiceDep
) -> MessageResponse:
    try:
        await course_service.delete_course(course_id, admin)
    except CourseError as e:
        raise handle_course_error(e) from e
    return MessageResponse(message="Course deleted successfully")


# ==============================================================================
# Enrollment
# ==============================================================================


@router.post(
    "/{course_id}/enroll",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll in a course",
    responses={400: {"description": "Already enrolled"}},
)
async def enroll(
    course_id: UUID, user: CurrentUser, progress_service: ProgressServiceDep
) -> EnrollmentResponse:
    try:
        progress = await progress_service.enroll(course_id, user.id)
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return EnrollmentResponse(
        message="Successfully enrolled in course",
        progress=LearningProgressResponse.from_entity(progress),
    )


@router.delete(
    "/{course_id}/enroll",
    response_model=MessageResponse,
    summary="Unenroll from a course",
)
async def unenroll(
    course_id: UUID, user: CurrentUser, progress_service: ProgressServiceDep
) -> MessageResponse:
    try:
        await progress_service.unenroll(course_id, user.id)
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return MessageResponse(message="Successfully unenrolled from course")


@router.post(
    "/{course_id}/enroll-student",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll a student (instructor or admin)",
)
async def enroll_student(
    course_id: UUID,
    data: EnrollStudentRequest,
    user: InstructorUser,
    progress_service: ProgressServiceDep,
) -> EnrollmentResponse:
    try:
        progress = await progress_service.enroll_student(
            course_id, data.student_id, user
        )
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return EnrollmentResponse(
        message="Student enrolled successfully",
        progress=LearningProgressResponse.from_entity(progress),
    )
