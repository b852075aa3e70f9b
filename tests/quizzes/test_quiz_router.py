"""Tests for quiz endpoints."""

from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest

from learntrack.main import app
from learntrack.quizzes.dependencies import get_quiz_service
from learntrack.quizzes.models import Quiz, QuizAttempt
from learntrack.quizzes.service import (
    ModulesIncompleteError,
    QuizHasAttemptsError,
    QuizNotFoundError,
    QuizPermissionError,
    QuizValidationError,
)


QUESTION = {
    "id": "q1",
    "type": "multiple_choice",
    "question": "Pick b",
    "options": [
        {"id": "a", "text": "A", "is_correct": False},
        {"id": "b", "text": "B", "is_correct": True},
    ],
    "correct_answer": "b",
    "points": 1,
}


@pytest.fixture
def quiz_service():
    service = Mock()
    for name in (
        "course_quizzes",
        "get_quiz_for_student",
        "start_attempt",
        "submit",
        "results",
        "list_managed_quizzes",
        "create_quiz",
        "delete_quiz",
        "managed_quiz_attempts",
    ):
        setattr(service, name, AsyncMock())
    app.dependency_overrides[get_quiz_service] = lambda: service
    yield service
    app.dependency_overrides.pop(get_quiz_service, None)


@pytest.fixture
def quiz():
    return Quiz(title="Final", course_id=uuid4(), status="published", questions=[QUESTION])


class TestStudentRoutes:
    def test_get_quiz_hides_answers(
        self, client, quiz_service, quiz, student, headers_for
    ) -> None:
        quiz_service.get_quiz_for_student.return_value = quiz

        response = client.get(f"/v1/quizzes/{quiz.id}", headers=headers_for(student))

        assert response.status_code == 200
        question = response.json()["questions"][0]
        assert "correct_answer" not in question
        assert "is_correct" not in question["options"][0]

    def test_get_missing_quiz(self, client, quiz_service, student, headers_for) -> None:
        quiz_service.get_quiz_for_student.side_effect = QuizNotFoundError()
        response = client.get(f"/v1/quizzes/{uuid4()}", headers=headers_for(student))
        assert response.status_code == 404

    def test_start_attempt(
        self, client, quiz_service, quiz, student, headers_for
    ) -> None:
        attempt = QuizAttempt(quiz.id, student.id, course_id=quiz.course_id)
        quiz_service.start_attempt.return_value = (attempt, quiz, False)

        response = client.post(
            f"/v1/quizzes/{quiz.id}/start", headers=headers_for(student)
        )

        assert response.status_code == 201
        assert response.json()["message"] == "Quiz attempt started"
        assert response.json()["attempt"]["attempt_number"] == 1

    def test_resume_attempt(
        self, client, quiz_service, quiz, student, headers_for
    ) -> None:
        attempt = QuizAttempt(
            quiz.id,
            student.id,
            answers=[{"question_id": "q1", "selected_answer": "b", "is_correct": True}],
        )
        quiz_service.start_attempt.return_value = (attempt, quiz, True)

        response = client.post(
            f"/v1/quizzes/{quiz.id}/start", headers=headers_for(student)
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Resuming existing attempt"
        assert response.json()["attempt"]["answers"] == [
            {"question_id": "q1", "selected_answer": "b"}
        ]

    def test_start_with_incomplete_modules(
        self, client, quiz_service, student, headers_for
    ) -> None:
        quiz_service.start_attempt.side_effect = ModulesIncompleteError(1, 3)

        response = client.post(
            f"/v1/quizzes/{uuid4()}/start", headers=headers_for(student)
        )

        assert response.status_code == 403
        assert "1 out of 3" in response.json()["message"]

    def test_submit(self, client, quiz_service, quiz, student, headers_for) -> None:
        attempt = QuizAttempt(
            quiz.id, student.id, status="submitted", percentage=100, passed=True
        )
        quiz_service.submit.return_value = (attempt, True)

        response = client.post(
            f"/v1/quizzes/attempts/{attempt.id}/submit",
            json={"answers": [{"question_id": "q1", "selected_answer": "b"}]},
            headers=headers_for(student),
        )

        assert response.status_code == 200
        assert response.json()["course_completed"] is True
        assert response.json()["attempt"]["passed"] is True
        args = quiz_service.submit.await_args
        assert args.args[2][0].selected_answer == "b"
        assert args.kwargs["auto_submit"] is False

    def test_requires_auth(self, client, quiz_service) -> None:
        response = client.get(f"/v1/quizzes/course/{uuid4()}")
        assert response.status_code == 401


class TestManagementRoutes:
    def test_student_cannot_use_instructor_routes(
        self, client, quiz_service, student, headers_for
    ) -> None:
        response = client.get("/v1/instructor/quizzes", headers=headers_for(student))
        assert response.status_code == 403
        quiz_service.list_managed_quizzes.assert_not_awaited()

    def test_instructor_cannot_use_admin_routes(
        self, client, quiz_service, instructor, headers_for
    ) -> None:
        response = client.get("/v1/admin/quizzes", headers=headers_for(instructor))
        assert response.status_code == 403

    def test_admin_lists_with_stats(
        self, client, quiz_service, quiz, admin, headers_for
    ) -> None:
        quiz_service.list_managed_quizzes.return_value = [(quiz, 3, 2)]

        response = client.get("/v1/admin/quizzes", headers=headers_for(admin))

        assert response.status_code == 200
        body = response.json()[0]
        assert body["stats"] == {"total_attempts": 3, "completed_attempts": 2}
        assert body["quiz"]["questions"][0]["correct_answer"] == "b"

    def test_instructor_creates_quiz(
        self, client, quiz_service, quiz, instructor, headers_for
    ) -> None:
        quiz_service.create_quiz.return_value = quiz

        response = client.post(
            "/v1/instructor/quizzes",
            json={"title": "Final", "course_id": str(quiz.course_id), "questions": [QUESTION]},
            headers=headers_for(instructor),
        )

        assert response.status_code == 201
        assert response.json()["title"] == "Final"

    def test_create_for_foreign_course(
        self, client, quiz_service, instructor, headers_for
    ) -> None:
        quiz_service.create_quiz.side_effect = QuizPermissionError()
        response = client.post(
            "/v1/instructor/quizzes",
            json={"title": "Final", "course_id": str(uuid4())},
            headers=headers_for(instructor),
        )
        assert response.status_code == 403

    def test_create_too_many_questions(
        self, client, quiz_service, admin, headers_for
    ) -> None:
        quiz_service.create_quiz.side_effect = QuizValidationError(
            "A quiz can have at most 10 questions"
        )
        response = client.post(
            "/v1/admin/quizzes",
            json={"title": "Final", "course_id": str(uuid4())},
            headers=headers_for(admin),
        )
        assert response.status_code == 400

    def test_invalid_passing_score(
        self, client, quiz_service, admin, headers_for
    ) -> None:
        response = client.post(
            "/v1/admin/quizzes",
            json={"title": "Final", "course_id": str(uuid4()), "passing_score": 120},
            headers=headers_for(admin),
        )
        assert response.status_code == 422

    def test_delete_with_attempts(
        self, client, quiz_service, admin, headers_for
    ) -> None:
        quiz_service.delete_quiz.side_effect = QuizHasAttemptsError()
        response = client.delete(
            f"/v1/admin/quizzes/{uuid4()}", headers=headers_for(admin)
        )
        assert response.status_code == 403

    def test_attempts(self, client, quiz_service, quiz, admin, student, headers_for) -> None:
        quiz_service.managed_quiz_attempts.return_value = [
            QuizAttempt(quiz.id, student.id, status="submitted", percentage=80)
        ]
        response = client.get(
            f"/v1/admin/quizzes/{quiz.id}/attempts", headers=headers_for(admin)
        )
        assert response.status_code == 200
        assert response.json()[0]["percentage"] == 80
