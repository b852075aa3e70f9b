"""Tests for module endpoints."""

from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest

from learntrack.main import app
from learntrack.modules.dependencies import get_module_service
from learntrack.modules.models import Module
from learntrack.modules.service import (
    CourseModuleNotFoundError,
    DuplicateModuleNumberError,
    ModuleValidationError,
)
from learntrack.progress.dependencies import get_progress_service


@pytest.fixture
def module_service():
    service = Mock()
    for name in (
        "list_course_modules",
        "create_module",
        "require_module",
        "next_module",
        "grade_module",
    ):
        setattr(service, name, AsyncMock())
    app.dependency_overrides[get_module_service] = lambda: service
    yield service
    app.dependency_overrides.pop(get_module_service, None)


@pytest.fixture
def progress_service():
    service = Mock()
    service.module_access = AsyncMock()
    app.dependency_overrides[get_progress_service] = lambda: service
    yield service
    app.dependency_overrides.pop(get_progress_service, None)


class TestModuleRoutes:
    def test_list(self, client, module_service, student, headers_for) -> None:
        course_id = uuid4()
        module_service.list_course_modules.return_value = [
            Module(course_id=course_id, module_number=1, title="Intro")
        ]

        response = client.get(
            f"/v1/modules/course/{course_id}", headers=headers_for(student)
        )

        assert response.status_code == 200
        assert response.json()["total"] == 1
        assert response.json()["modules"][0]["title"] == "Intro"

    def test_create_requires_instructor(
        self, client, module_service, student, headers_for
    ) -> None:
        response = client.post(
            f"/v1/modules/course/{uuid4()}",
            json={"module_number": 1, "title": "Intro"},
            headers=headers_for(student),
        )
        assert response.status_code == 403

    def test_create_duplicate_number(
        self, client, module_service, instructor, headers_for
    ) -> None:
        module_service.create_module.side_effect = DuplicateModuleNumberError(1)
        response = client.post(
            f"/v1/modules/course/{uuid4()}",
            json={"module_number": 1, "title": "Intro"},
            headers=headers_for(instructor),
        )
        assert response.status_code == 409

    def test_create(self, client, module_service, instructor, headers_for) -> None:
        course_id = uuid4()
        module_service.create_module.return_value = Module(
            course_id=course_id, module_number=1, title="Intro"
        )
        response = client.post(
            f"/v1/modules/course/{course_id}",
            json={
                "module_number": 1,
                "title": "Intro",
                "contents": [{"type": "video", "title": "Welcome", "duration": 5}],
            },
            headers=headers_for(instructor),
        )
        assert response.status_code == 201

    def test_get_missing(self, client, module_service, student, headers_for) -> None:
        module_service.require_module.side_effect = CourseModuleNotFoundError()
        response = client.get(f"/v1/modules/{uuid4()}", headers=headers_for(student))
        assert response.status_code == 404

    def test_next_none(self, client, module_service, student, headers_for) -> None:
        module_service.next_module.return_value = None
        response = client.get(
            f"/v1/modules/{uuid4()}/next", headers=headers_for(student)
        )
        assert response.status_code == 200
        assert response.json() == {"module": None}

    def test_access(self, client, progress_service, student, headers_for) -> None:
        progress_service.module_access.return_value = {
            "can_access": False,
            "reason": "Prerequisites not completed",
        }
        response = client.get(
            f"/v1/modules/{uuid4()}/access", headers=headers_for(student)
        )
        assert response.status_code == 200
        assert response.json()["can_access"] is False

    def test_grade_invalid(
        self, client, module_service, instructor, headers_for
    ) -> None:
        module_service.grade_module.side_effect = ModuleValidationError(
            "Invalid scores: 'id'"
        )
        response = client.post(
            f"/v1/modules/{uuid4()}/grade",
            json={"strategy": "competency", "scores": {}},
            headers=headers_for(instructor),
        )
        assert response.status_code == 400

    def test_grade(self, client, module_service, instructor, headers_for) -> None:
        module_service.grade_module.return_value = (
            "Pass/Fail (Threshold: 70%)",
            {"final_grade": "PASS"},
        )
        response = client.post(
            f"/v1/modules/{uuid4()}/grade",
            json={"strategy": "pass_fail", "scores": {"quizzes": [90]}},
            headers=headers_for(instructor),
        )
        assert response.status_code == 200
        assert response.json()["result"]["final_grade"] == "PASS"
