"""Tests for the course catalog service."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest

from learntrack.auth.models import User
from learntrack.auth.permissions import UserRole
from learntrack.courses.models import Course, CourseCategory, CourseDifficulty
from learntrack.courses.schemas import (
    CourseListParams,
    CreateCourseRequest,
    UpdateCourseRequest,
)
from learntrack.courses.service import (
    CoursePermissionError,
    CourseService,
    InvalidInstructorError,
    filter_courses,
    sort_courses,
    total_pages,
)


def make_course(**kwargs) -> Course:
    defaults = {
        "title": "Python Basics",
        "description": "Learn Python from scratch",
        "category": CourseCategory.PROGRAMMING.value,
        "difficulty": CourseDifficulty.BEGINNER.value,
    }
    defaults.update(kwargs)
    return Course(**defaults)


def create_request(**kwargs) -> CreateCourseRequest:
    data = {
        "title": "Python Basics",
        "description": "Learn Python from scratch",
        "category": "Programming",
        "difficulty": "Beginner",
        "duration": {"weeks": 4, "hours_per_week": 5},
        "syllabus": [
            {"module_title": "Intro", "topics": ["syntax"], "estimated_hours": 2},
            {"module_title": "Functions"},
        ],
    }
    data.update(kwargs)
    return CreateCourseRequest(**data)


@pytest.fixture
def auth_service():
    service = Mock()
    service.get_user_by_id = AsyncMock()
    return service


@pytest.fixture
def course_service(mock_session, auth_service):
    return CourseService(
        session=mock_session, keyspace="test_keyspace", auth_service=auth_service
    )


class TestListingHelpers:
    """Tests for filter/sort/pagination helpers."""

    def test_filter_by_category_and_difficulty(self) -> None:
        courses = [
            make_course(),
            make_course(category=CourseCategory.DESIGN.value),
            make_course(difficulty=CourseDifficulty.ADVANCED.value),
        ]
        result = filter_courses(courses, category="Programming", difficulty="Beginner")
        assert result == [courses[0]]

    def test_search_matches_title_or_description(self) -> None:
        by_title = make_course(title="Advanced SQL", description="Queries")
        by_description = make_course(title="Data", description="Deep dive into sql")
        other = make_course(title="Design", description="Colors")

        result = filter_courses([by_title, by_description, other], search="  SQL ")

        assert result == [by_title, by_description]

    def test_sort_title_case_insensitive(self) -> None:
        courses = [make_course(title="beta"), make_course(title="Alpha")]
        result = sort_courses(courses, "title", "asc")
        assert [c.title for c in result] == ["Alpha", "beta"]

    def test_sort_desc(self) -> None:
        courses = [make_course(rating=2.0), make_course(rating=4.5)]
        assert sort_courses(courses, "rating", "desc")[0].rating == 4.5

    @pytest.mark.parametrize(
        "total,limit,expected", [(0, 10, 0), (10, 10, 1), (11, 10, 2), (5, 0, 0)]
    )
    def test_total_pages(self, total: int, limit: int, expected: int) -> None:
        assert total_pages(total, limit) == expected


class TestCourseModel:
    def test_module_index(self) -> None:
        module_id = uuid4()
        course = make_course(
            syllabus=[
                {"module_title": "A", "module_id": str(uuid4())},
                {"module_title": "B", "module_id": str(module_id)},
            ]
        )
        assert course.total_modules == 2
        assert course.module_index(module_id) == 1
        assert course.module_index(uuid4()) == -1

    def test_from_row_parses_syllabus(self) -> None:
        row = SimpleNamespace(
            **{**make_course().__dict__, "syllabus": '[{"module_title":"A"}]'}
        )
        course = Course.from_row(row)
        assert course.syllabus == [{"module_title": "A"}]


class TestListCourses:
    """Tests for catalog listing visibility."""

    @pytest.mark.asyncio
    async def test_students_only_see_enrolled(
        self, course_service, user_factory
    ) -> None:
        enrolled, other = make_course(), make_course()
        inactive = make_course(is_active=False)
        course_service.list_all_courses = AsyncMock(
            return_value=[enrolled, other, inactive]
        )
        course_service.get_enrolled_course_ids = AsyncMock(
            return_value={enrolled.id, inactive.id}
        )

        courses, total = await course_service.list_courses(
            user_factory(UserRole.STUDENT), CourseListParams()
        )

        assert courses == [enrolled]
        assert total == 1

    @pytest.mark.asyncio
    async def test_instructor_sees_catalog_paginated(
        self, course_service, user_factory
    ) -> None:
        course_service.list_all_courses = AsyncMock(
            return_value=[make_course(title=f"Course {i}") for i in range(5)]
        )

        courses, total = await course_service.list_courses(
            user_factory(UserRole.INSTRUCTOR),
            CourseListParams(page=2, limit=2, sort_by="title", sort_order="asc"),
        )

        assert total == 5
        assert [c.title for c in courses] == ["Course 2", "Course 3"]


class TestCreateCourse:
    """Tests for create_course."""

    @pytest.mark.asyncio
    async def test_instructor_owns_course(self, course_service, instructor) -> None:
        course = await course_service.create_course(create_request(), instructor)

        assert course.instructor_id == instructor.id
        assert course.instructor_email == instructor.email
        assert course.total_modules == 2
        assert course.duration_weeks == 4
        assert course.syllabus[0]["module_id"] is None

    @pytest.mark.asyncio
    async def test_student_cannot_create(self, course_service, student) -> None:
        with pytest.raises(CoursePermissionError):
            await course_service.create_course(create_request(), student)

    @pytest.mark.asyncio
    async def test_admin_assigns_instructor(
        self, course_service, auth_service, admin
    ) -> None:
        teacher = User(email="t@example.com", name="Teacher", role="instructor")
        auth_service.get_user_by_id.return_value = teacher

        course = await course_service.create_course(
            create_request(instructor_id=str(teacher.id)), admin
        )

        assert course.instructor_id == teacher.id
        assert course.instructor_name == "Teacher"

    @pytest.mark.asyncio
    async def test_admin_assigns_student_rejected(
        self, course_service, auth_service, admin
    ) -> None:
        auth_service.get_user_by_id.return_value = User(
            email="s@example.com", role="student"
        )
        with pytest.raises(InvalidInstructorError):
            await course_service.create_course(
                create_request(instructor_id=str(uuid4())), admin
            )


class TestUpdateDelete:
    """Tests for ownership rules on update and delete."""

    @pytest.mark.asyncio
    async def test_other_instructor_cannot_update(
        self, course_service, user_factory
    ) -> None:
        course = make_course(instructor_id=uuid4())
        course_service.require_course = AsyncMock(return_value=course)

        with pytest.raises(CoursePermissionError):
            await course_service.update_course(
                course.id,
                UpdateCourseRequest(title="New"),
                user_factory(UserRole.INSTRUCTOR),
            )

    @pytest.mark.asyncio
    async def test_owner_updates_fields(self, course_service, instructor) -> None:
        course = make_course(instructor_id=instructor.id)
        course_service.require_course = AsyncMock(return_value=course)

        updated = await course_service.update_course(
            course.id,
            UpdateCourseRequest(
                title="New", difficulty="Advanced", duration={"weeks": 2, "hours_per_week": 3}
            ),
            instructor,
        )

        assert updated.title == "New"
        assert updated.difficulty == "Advanced"
        assert updated.duration_weeks == 2
        assert updated.updated_at is not None

    @pytest.mark.asyncio
    async def test_only_admin_deletes(self, course_service, instructor, admin) -> None:
        course = make_course(instructor_id=instructor.id)
        course_service.require_course = AsyncMock(return_value=course)

        with pytest.raises(CoursePermissionError):
            await course_service.delete_course(course.id, instructor)

        await course_service.delete_course(course.id, admin)


class TestSyllabusAndCounters:
    @pytest.mark.asyncio
    async def test_enrollment_count_never_negative(self, course_service) -> None:
        course = make_course(enrollment_count=0)
        await course_service.adjust_enrollment_count(course, -1)
        assert course.enrollment_count == 0

    @pytest.mark.asyncio
    async def test_link_reuses_unlinked_entry(self, course_service) -> None:
        course = make_course(syllabus=[{"module_title": "Intro", "topics": []}])
        module_id = uuid4()

        await course_service.link_syllabus_module(course, module_id, "Intro")

        assert course.total_modules == 1
        assert course.syllabus[0]["module_id"] == str(module_id)
        assert course.has_modules is True

    @pytest.mark.asyncio
    async def test_link_appends_and_unlink_removes(self, course_service) -> None:
        course = make_course()
        module_id = uuid4()

        await course_service.link_syllabus_module(course, module_id, "Extra", 3)
        assert course.total_modules == 1

        await course_service.unlink_syllabus_module(course, module_id)
        assert course.total_modules == 0
        assert course.has_modules is False
