"""Course catalog service layer.

Business logic for:
- Course CRUD with ownership rules
- Catalog listing with filters, search, sorting and pagination
- Syllabus maintenance (linking Module documents)
- Enrollment counters
"""

import math
from typing import TYPE_CHECKING, Any
from uuid import UUID

import structlog

from learntrack.auth.permissions import UserRole, is_admin, is_at_least_instructor
from learntrack.auth.schemas import UserResponse
from learntrack.core.database.columns import to_json_column, utc_now
from learntrack.courses.models import Course
from learntrack.courses.schemas import (
    CourseListParams,
    CreateCourseRequest,
    UpdateCourseRequest,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from learntrack.auth.models import User
    from learntrack.auth.service import AuthService

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CourseError(Exception):
    """Base course error."""

    def __init__(self, message: str, code: str = "course_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class CourseNotFoundError(CourseError):
    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "course_not_found")


class CoursePermissionError(CourseError):
    def __init__(self, message: str = "Not authorized to modify this course"):
        super().__init__(message, "permission_denied")


class InstructorNotFoundError(CourseError):
    def __init__(self, message: str = "Instructor not found"):
        super().__init__(message, "instructor_not_found")


class InvalidInstructorError(CourseError):
    def __init__(
        self, message: str = "Selected user is not an instructor or admin"
    ):
        super().__init__(message, "invalid_instructor")


# ==============================================================================
# Course Service
# ==============================================================================


class CourseService:
    """Service for the course catalog."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        auth_service: "AuthService | None" = None,
    ):
        self.session = session
        self.keyspace = keyspace
        self.auth_service = auth_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._get_course = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.courses WHERE id = ?"
        )
        self._insert_course = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses
            (id, title, description, category, difficulty, instructor_id,
             instructor_name, instructor_email, duration_weeks,
             duration_hours_per_week, estimated_completion_time, prerequisites,
             learning_objectives, syllabus, has_modules, module_sequencing,
             allow_module_skipping, module_completion_required, is_active,
             enrollment_count, rating, rating_count, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?,
                    ?, ?, ?, ?)
        """)
        self._update_enrollment_count = self.session.prepare(f"""
            UPDATE {self.keyspace}.courses
            SET enrollment_count = ?, updated_at = ? WHERE id = ?
        """)
        self._update_syllabus = self.session.prepare(f"""
            UPDATE {self.keyspace}.courses
            SET syllabus = ?, has_modules = ?, updated_at = ? WHERE id = ?
        """)
        self._delete_course = self.session.prepare(
            f"DELETE FROM {self.keyspace}.courses WHERE id = ?"
        )

        self._insert_course_by_instructor = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses_by_instructor
            (instructor_id, course_id, created_at) VALUES (?, ?, ?)
        """)
        self._delete_course_by_instructor = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.courses_by_instructor
            WHERE instructor_id = ? AND course_id = ?
        """)
        self._get_courses_by_instructor = self.session.prepare(f"""
            SELECT course_id FROM {self.keyspace}.courses_by_instructor
            WHERE instructor_id = ?
        """)

        # Enrollment lookup (learning_progress is partitioned by user_id)
        self._get_enrolled_course_ids = self.session.prepare(f"""
            SELECT course_id FROM {self.keyspace}.learning_progress
            WHERE user_id = ?
        """)

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get_course(self, course_id: UUID) -> Course | None:
        result = await self.session.aexecute(self._get_course, [course_id])
        row = result.one()
        return Course.from_row(row) if row else None

    async def require_course(self, course_id: UUID) -> Course:
        course = await self.get_course(course_id)
        if course is None:
            raise CourseNotFoundError
        return course

    async def list_all_courses(self) -> list[Course]:
        rows = await self.session.aexecute(f"SELECT * FROM {self.keyspace}.courses")
        return [Course.from_row(row) for row in rows]

    async def list_instructor_courses(self, instructor_id: UUID) -> list[Course]:
        rows = await self.session.aexecute(
            self._get_courses_by_instructor, [instructor_id]
        )
        courses = []
        for row in rows:
            course = await self.get_course(row.course_id)
            if course:
                courses.append(course)
        return courses

    async def get_enrolled_course_ids(self, user_id: UUID) -> set[UUID]:
        rows = await self.session.aexecute(self._get_enrolled_course_ids, [user_id])
        return {row.course_id for row in rows}

    async def list_courses(
        self,
        user: UserResponse,
        params: CourseListParams,
    ) -> tuple[list[Course], int]:
        """List active courses visible to ``user``.

        Students only see courses they are enrolled in. Returns the page of
        courses and the total number of matches.
        """
        courses = [c for c in await self.list_all_courses() if c.is_active]

        if user.role == UserRole.STUDENT.value:
            enrolled = await self.get_enrolled_course_ids(UUID(str(user.id)))
            courses = [c for c in courses if c.id in enrolled]

        courses = filter_courses(
            courses,
            category=params.category.value if params.category else None,
            difficulty=params.difficulty.value if params.difficulty else None,
            search=params.search,
        )
        courses = sort_courses(courses, params.sort_by, params.sort_order)

        total = len(courses)
        start = (params.page - 1) * params.limit
        return courses[start : start + params.limit], total

    # ==========================================================================
    # Mutations
    # ==========================================================================

    async def _resolve_instructor(self, instructor_id: UUID) -> "User":
        if self.auth_service is None:
            raise InstructorNotFoundError
        instructor = await self.auth_service.get_user_by_id(instructor_id)
        if instructor is None:
            raise InstructorNotFoundError
        if not is_at_least_instructor(instructor.role):
            raise InvalidInstructorError
        return instructor

    async def create_course(
        self, data: CreateCourseRequest, actor: UserResponse
    ) -> Course:
        """Create a course owned by ``actor`` (or by ``instructor_id`` for admins).

        Raises:
            CoursePermissionError: Caller is a student
            InstructorNotFoundError / InvalidInstructorError: Bad instructor_id
        """
        if not is_at_least_instructor(actor.role):
            raise CoursePermissionError("Only instructors can create courses")

        instructor_id = UUID(str(actor.id))
        instructor_name = actor.name or ""
        instructor_email = actor.email
        if data.instructor_id and is_admin(actor.role):
            instructor = await self._resolve_instructor(data.instructor_id)
            instructor_id = instructor.id
            instructor_name = instructor.name
            instructor_email = instructor.email

        now = utc_now()
        course = Course(
            title=data.title,
            description=data.description,
            category=data.category.value,
            difficulty=data.difficulty.value,
            instructor_id=instructor_id,
            instructor_name=instructor_name,
            instructor_email=instructor_email,
            duration_weeks=data.duration.weeks,
            duration_hours_per_week=data.duration.hours_per_week,
            estimated_completion_time=data.estimated_completion_time,
            prerequisites=data.prerequisites,
            learning_objectives=data.learning_objectives,
            syllabus=[entry.model_dump(mode="json") for entry in data.syllabus],
            has_modules=data.has_modules,
            module_sequencing=data.module_sequencing.value,
            allow_module_skipping=data.allow_module_skipping,
            module_completion_required=data.module_completion_required,
            created_at=now,
            updated_at=now,
        )
        await self._save(course)
        await self.session.aexecute(
            self._insert_course_by_instructor,
            [course.instructor_id, course.id, course.created_at],
        )

        logger.info(
            "course_created",
            course_id=str(course.id),
            instructor_id=str(course.instructor_id),
            modules=course.total_modules,
        )
        return course

    async def update_course(
        self,
        course_id: UUID,
        data: UpdateCourseRequest,
        actor: UserResponse,
    ) -> Course:
        """Update a course. Only its instructor or an admin may do so."""
        course = await self.require_course(course_id)
        if not (course.is_owned_by(actor.id) or is_admin(actor.role)):
            raise CoursePermissionError

        updates = data.model_dump(exclude_unset=True, exclude={"instructor_id"})
        duration = updates.pop("duration", None)
        if duration:
            course.duration_weeks = duration["weeks"]
            course.duration_hours_per_week = duration["hours_per_week"]
        if "syllabus" in updates:
            updates["syllabus"] = [
                entry.model_dump(mode="json") for entry in data.syllabus or []
            ]
        for field, value in updates.items():
            setattr(course, field, value.value if hasattr(value, "value") else value)

        previous_instructor = course.instructor_id
        if data.instructor_id and is_admin(actor.role):
            instructor = await self._resolve_instructor(data.instructor_id)
            course.instructor_id = instructor.id
            course.instructor_name = instructor.name
            course.instructor_email = instructor.email

        course.updated_at = utc_now()
        await self._save(course)

        if previous_instructor != course.instructor_id:
            if previous_instructor:
                await self.session.aexecute(
                    self._delete_course_by_instructor, [previous_instructor, course.id]
                )
            await self.session.aexecute(
                self._insert_course_by_instructor,
                [course.instructor_id, course.id, course.created_at],
            )

        logger.info("course_updated", course_id=str(course.id), fields=list(updates))
        return course

    async def delete_course(self, course_id: UUID, actor: UserResponse) -> None:
        """Delete a course (admin only)."""
        course = await self.require_course(course_id)
        if not is_admin(actor.role):
            raise CoursePermissionError("Only administrators can delete courses")

        await self.session.aexecute(self._delete_course, [course.id])
        if course.instructor_id:
            await self.session.aexecute(
                self._delete_course_by_instructor, [course.instructor_id, course.id]
            )
        logger.info("course_deleted", course_id=str(course.id))

    async def adjust_enrollment_count(self, course: Course, delta: int) -> Course:
        """Increment/decrement the enrollment counter, never going below zero."""
        course.enrollment_count = max(0, course.enrollment_count + delta)
        await self.session.aexecute(
            self._update_enrollment_count,
            [course.enrollment_count, utc_now(), course.id],
        )
        return course

    async def link_syllabus_module(
        self,
        course: Course,
        module_id: UUID,
        title: str,
        estimated_hours: float = 0,
        topics: list[str] | None = None,
    ) -> Course:
        """Attach a module document to the syllabus.

        An existing entry with the same title and no module yet is reused;
        otherwise a new entry is appended.
        """
        for entry in course.syllabus:
            if entry.get("module_title") == title and not entry.get("module_id"):
                entry["module_id"] = str(module_id)
                break
        else:
            course.syllabus.append(
                {
                    "module_title": title,
                    "topics": topics or [],
                    "estimated_hours": estimated_hours,
                    "module_id": str(module_id),
                }
            )
        course.has_modules = True
        await self._save_syllabus(course)
        return course

    async def unlink_syllabus_module(self, course: Course, module_id: UUID) -> Course:
        """Remove the syllabus entry pointing at ``module_id``."""
        course.syllabus = [
            entry
            for entry in course.syllabus
            if str(entry.get("module_id")) != str(module_id)
        ]
        course.has_modules = any(entry.get("module_id") for entry in course.syllabus)
        await self._save_syllabus(course)
        return course

    async def _save_syllabus(self, course: Course) -> None:
        course.updated_at = utc_now()
        await self.session.aexecute(
            self._update_syllabus,
            [
                to_json_column(course.syllabus),
                course.has_modules,
                course.updated_at,
                course.id,
            ],
        )

    async def _save(self, course: Course) -> None:
        await self.session.aexecute(
            self._insert_course,
            [
                course.id,
                course.title,
                course.description,
                course.category,
                course.difficulty,
                course.instructor_id,
                course.instructor_name,
                course.instructor_email,
                course.duration_weeks,
                course.duration_hours_per_week,
                course.estimated_completion_time,
                course.prerequisites,
                course.learning_objectives,
                to_json_column(course.syllabus),
                course.has_modules,
                course.module_sequencing,
                course.allow_module_skipping,
                course.module_completion_required,
                course.is_active,
                course.enrollment_count,
                course.rating,
                course.rating_count,
                course.created_at,
                course.updated_at,
            ],
        )


# ==============================================================================
# Listing helpers
# ==============================================================================


def filter_courses(
    courses: list[Course],
    category: str | None = None,
    difficulty: str | None = None,
    search: str | None = None,
) -> list[Course]:
    """Apply catalog filters; ``search`` matches title or description."""
    needle = search.strip().lower() if search else None
    result = []
    for course in courses:
        if category and course.category != category:
            continue
        if difficulty and course.difficulty != difficulty:
            continue
        if needle and not (
            needle in course.title.lower() or needle in course.description.lower()
        ):
            continue
        result.append(course)
    return result


def sort_courses(courses: list[Course], sort_by: str, sort_order: str) -> list[Course]:
    def key(course: Course) -> Any:
        value = getattr(course, sort_by)
        return value.lower() if isinstance(value, str) else value

    return sorted(courses, key=key, reverse=sort_order == "desc")


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0
