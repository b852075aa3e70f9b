"""Tests for course endpoints."""

from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest

from learntrack.courses.dependencies import get_course_service
from learntrack.courses.models import Course
from learntrack.courses.service import CourseNotFoundError
from learntrack.main import app
from learntrack.progress.dependencies import get_progress_service
from learntrack.progress.models import LearningProgress
from learntrack.progress.service import AlreadyEnrolledError, EnrollmentMissingError


@pytest.fixture
def course_service():
    service = Mock()
    service.list_courses = AsyncMock(return_value=([], 0))
    service.require_course = AsyncMock()
    service.create_course = AsyncMock()
    service.delete_course = AsyncMock()
    app.dependency_overrides[get_course_service] = lambda: service
    yield service
    app.dependency_overrides.pop(get_course_service, None)


@pytest.fixture
def progress_service():
    service = Mock()
    service.enroll = AsyncMock()
    service.unenroll = AsyncMock()
    service.enroll_student = AsyncMock()
    service.enrolled_courses = AsyncMock(return_value=[])
    app.dependency_overrides[get_progress_service] = lambda: service
    yield service
    app.dependency_overrides.pop(get_progress_service, None)


class TestCatalog:
    def test_list_requires_auth(self, client, course_service) -> None:
        assert client.get("/v1/courses").status_code == 401

    def test_list_courses(self, client, course_service, student, headers_for) -> None:
        course_service.list_courses.return_value = ([Course(title="Python")], 1)

        response = client.get(
            "/v1/courses?search=py&page=1&limit=5", headers=headers_for(student)
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["total_pages"] == 1
        assert data["courses"][0]["title"] == "Python"
        params = course_service.list_courses.await_args.args[1]
        assert params.search == "py"
        assert params.limit == 5

    def test_invalid_sort_rejected(
        self, client, course_service, student, headers_for
    ) -> None:
        response = client.get(
            "/v1/courses?sort_by=price", headers=headers_for(student)
        )
        assert response.status_code == 422

    def test_get_missing_course(
        self, client, course_service, student, headers_for
    ) -> None:
        course_service.require_course.side_effect = CourseNotFoundError()
        response = client.get(f"/v1/courses/{uuid4()}", headers=headers_for(student))
        assert response.status_code == 404
        assert response.json()["message"] == "Course not found"

    def test_student_cannot_create(
        self, client, course_service, student, headers_for
    ) -> None:
        response = client.post(
            "/v1/courses",
            json={
                "title": "T",
                "description": "D",
                "category": "Programming",
                "difficulty": "Beginner",
                "duration": {"weeks": 1, "hours_per_week": 1},
            },
            headers=headers_for(student),
        )
        assert response.status_code == 403
        course_service.create_course.assert_not_awaited()

    def test_instructor_cannot_delete(
        self, client, course_service, instructor, headers_for
    ) -> None:
        response = client.delete(
            f"/v1/courses/{uuid4()}", headers=headers_for(instructor)
        )
        assert response.status_code == 403

    def test_admin_deletes(self, client, course_service, admin, headers_for) -> None:
        response = client.delete(f"/v1/courses/{uuid4()}", headers=headers_for(admin))
        assert response.status_code == 200
        assert response.json() == {"message": "Course deleted successfully"}


class TestEnrollment:
    def test_enroll(self, client, progress_service, student, headers_for) -> None:
        course_id = uuid4()
        progress_service.enroll.return_value = LearningProgress(
            user_id=student.id, course_id=course_id
        )

        response = client.post(
            f"/v1/courses/{course_id}/enroll", headers=headers_for(student)
        )

        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Successfully enrolled in course"
        assert data["progress"]["completion_percentage"] == 0

    def test_enroll_twice(self, client, progress_service, student, headers_for) -> None:
        progress_service.enroll.side_effect = AlreadyEnrolledError()
        response = client.post(
            f"/v1/courses/{uuid4()}/enroll", headers=headers_for(student)
        )
        assert response.status_code == 400

    def test_unenroll_not_enrolled(
        self, client, progress_service, student, headers_for
    ) -> None:
        progress_service.unenroll.side_effect = EnrollmentMissingError()
        response = client.delete(
            f"/v1/courses/{uuid4()}/enroll", headers=headers_for(student)
        )
        assert response.status_code == 400

    def test_enroll_student_requires_instructor(
        self, client, progress_service, student, headers_for
    ) -> None:
        response = client.post(
            f"/v1/courses/{uuid4()}/enroll-student",
            json={"student_id": str(uuid4())},
            headers=headers_for(student),
        )
        assert response.status_code == 403

    def test_enrolled_courses(
        self, client, progress_service, student, headers_for
    ) -> None:
        course = Course(title="Python")
        progress_service.enrolled_courses.return_value = [
            (course, LearningProgress(user_id=student.id, course_id=course.id))
        ]

        response = client.get("/v1/courses/enrolled", headers=headers_for(student))

        assert response.status_code == 200
        assert response.json()[0]["course"]["title"] == "Python"
