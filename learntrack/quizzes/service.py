"""Quiz service layer.

Business logic for:
- Student quiz access (availability, enrollment, module completion gates)
- Attempts: start/resume, autosave, submit and grade, results
- Quiz authoring for admins and course instructors
- Completing the course when the final quiz is passed
"""

import random
from typing import TYPE_CHECKING, Any
from uuid import UUID

import structlog

from learntrack.auth.permissions import is_admin, is_at_least_instructor
from learntrack.auth.schemas import UserResponse
from learntrack.config import get_settings
from learntrack.core.database.columns import to_json_column, utc_now
from learntrack.courses.models import Course
from learntrack.courses.service import CourseNotFoundError
from learntrack.progress.models import LearningProgress
from learntrack.quizzes.grading import detailed_results, grade_answers
from learntrack.quizzes.models import (
    AttemptStatus,
    Quiz,
    QuizAttempt,
    QuizStatus,
    best_score,
)
from learntrack.quizzes.schemas import (
    AnswerSubmission,
    AttemptResponse,
    CreateQuizRequest,
    QuizQuestion,
    QuizResponse,
    QuizResultsResponse,
    SaveAttemptProgressRequest,
    UpdateQuizRequest,
    UserQuizStats,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from learntrack.courses.service import CourseService
    from learntrack.progress.service import ProgressService

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class QuizError(Exception):
    """Base quiz error."""

    def __init__(self, message: str, code: str = "quiz_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class QuizNotFoundError(QuizError):
    def __init__(self, message: str = "Quiz not found"):
        super().__init__(message, "quiz_not_found")


class QuizCourseNotFoundError(QuizError):
    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "course_not_found")


class QuizUnavailableError(QuizError):
    def __init__(self, message: str = "Quiz is not available"):
        super().__init__(message, "quiz_unavailable")


class QuizNotEnrolledError(QuizError):
    def __init__(self, message: str = "You are not enrolled in this course"):
        super().__init__(message, "not_enrolled")


class ModulesIncompleteError(QuizError):
    def __init__(self, completed: int, required: int):
        super().__init__(
            "Quiz is only available after completing all course modules. "
            f"You have completed {completed} out of {required} modules.",
            "modules_incomplete",
        )


class AttemptNotFoundError(QuizError):
    def __init__(self, message: str = "Quiz attempt not found"):
        super().__init__(message, "attempt_not_found")


class AttemptInactiveError(QuizError):
    def __init__(self, message: str = "Quiz attempt is no longer active"):
        super().__init__(message, "attempt_inactive")


class ResultsUnavailableError(QuizError):
    def __init__(self, message: str = "Quiz attempt is not completed yet"):
        super().__init__(message, "results_unavailable")


class QuizPermissionError(QuizError):
    def __init__(self, message: str = "Not authorized to manage quizzes of this course"):
        super().__init__(message, "permission_denied")


class QuizValidationError(QuizError):
    def __init__(self, message: str):
        super().__init__(message, "validation_error")


class QuizHasAttemptsError(QuizError):
    def __init__(self, message: str = "Cannot delete a quiz that has attempts"):
        super().__init__(message, "quiz_has_attempts")


# ==============================================================================
# Helpers
# ==============================================================================


def normalize_questions(questions: list[QuizQuestion]) -> list[dict[str, Any]]:
    """Question documents with ids defaulting to ``q{n}``."""
    normalized = []
    for n, question in enumerate(questions, start=1):
        doc = question.model_dump(mode="json")
        doc["id"] = doc.get("id") or f"q{n}"
        normalized.append(doc)
    return normalized


def module_completion(
    progress: LearningProgress | None, course: Course
) -> tuple[int, int]:
    """Completed and required syllabus modules for a learner."""
    required = course.total_modules
    if progress is None:
        return 0, required
    return progress.completed_syllabus_count(course.syllabus_module_ids), required


def student_quiz_view(quiz: Quiz) -> QuizResponse:
    """Student view: answer keys stripped, order randomized when configured."""
    view = QuizResponse.from_entity(quiz, student_view=True)
    questions = view.questions
    if quiz.randomize_questions:
        questions = random.sample(questions, len(questions))
    if quiz.randomize_options:
        questions = [
            {**q, "options": random.sample(q["options"], len(q["options"]))}
            for q in questions
        ]
    view.questions = questions
    return view


# ==============================================================================
# Quiz Service
# ==============================================================================


class QuizService:
    """Service for quizzes and quiz attempts."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        course_service: "CourseService",
        progress_service: "ProgressService",
    ):
        self.session = session
        self.keyspace = keyspace
        self.course_service = course_service
        self.progress_service = progress_service
        self.settings = get_settings()
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        # Quizzes
        self._get_quiz = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.quizzes WHERE id = ?
        """)
        self._insert_quiz = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.quizzes
            (id, title, description, instructions, course_id, module_id,
             time_limit, passing_score, show_results, show_correct_answers,
             randomize_questions, randomize_options, questions, total_points,
             available_from, available_until, due_date, difficulty, status,
             created_by, last_modified_by, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._delete_quiz = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.quizzes WHERE id = ?
        """)
        self._get_course_quiz_ids = self.session.prepare(f"""
            SELECT quiz_id FROM {self.keyspace}.quizzes_by_course WHERE course_id = ?
        """)
        self._insert_course_quiz = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.quizzes_by_course (course_id, quiz_id)
            VALUES (?, ?)
        """)
        self._delete_course_quiz = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.quizzes_by_course
            WHERE course_id = ? AND quiz_id = ?
        """)

        # Attempts
        self._get_attempt = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.quiz_attempts WHERE id = ?
        """)
        self._upsert_attempt = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.quiz_attempts
            (id, quiz_id, user_id, course_id, attempt_number, status, started_at,
             submitted_at, time_limit, time_remaining, current_question, answers,
             total_points, points_earned, percentage, passed, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._get_user_attempt_ids = self.session.prepare(f"""
            SELECT attempt_id FROM {self.keyspace}.quiz_attempts_by_user_quiz
            WHERE user_id = ? AND quiz_id = ?
        """)
        self._insert_user_attempt = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.quiz_attempts_by_user_quiz
            (user_id, quiz_id, attempt_number, attempt_id) VALUES (?, ?, ?, ?)
        """)
        self._get_quiz_attempt_ids = self.session.prepare(f"""
            SELECT attempt_id FROM {self.keyspace}.quiz_attempts_by_quiz
            WHERE quiz_id = ?
        """)
        self._insert_quiz_attempt = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.quiz_attempts_by_quiz (quiz_id, attempt_id)
            VALUES (?, ?)
        """)

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get_quiz(self, quiz_id: UUID) -> Quiz | None:
        result = await self.session.aexecute(self._get_quiz, [quiz_id])
        row = result.one()
        return Quiz.from_row(row) if row else None

    async def require_quiz(self, quiz_id: UUID) -> Quiz:
        quiz = await self.get_quiz(quiz_id)
        if quiz is None:
            raise QuizNotFoundError
        return quiz

    async def list_all_quizzes(self) -> list[Quiz]:
        rows = await self.session.aexecute(f"SELECT * FROM {self.keyspace}.quizzes")
        quizzes = [Quiz.from_row(row) for row in rows]
        return sorted(quizzes, key=lambda q: q.created_at, reverse=True)

    async def list_course_quizzes(self, course_id: UUID) -> list[Quiz]:
        rows = await self.session.aexecute(self._get_course_quiz_ids, [course_id])
        quizzes = []
        for row in rows:
            quiz = await self.get_quiz(row.quiz_id)
            if quiz:
                quizzes.append(quiz)
        return sorted(quizzes, key=lambda q: q.created_at)

    async def get_attempt(self, attempt_id: UUID) -> QuizAttempt | None:
        result = await self.session.aexecute(self._get_attempt, [attempt_id])
        row = result.one()
        return QuizAttempt.from_row(row) if row else None

    async def user_attempts(self, user_id: UUID, quiz_id: UUID) -> list[QuizAttempt]:
        """Attempts of a user on a quiz, latest first."""
        rows = await self.session.aexecute(
            self._get_user_attempt_ids, [user_id, quiz_id]
        )
        attempts = []
        for row in rows:
            attempt = await self.get_attempt(row.attempt_id)
            if attempt:
                attempts.append(attempt)
        return sorted(attempts, key=lambda a: a.attempt_number, reverse=True)

    async def quiz_attempts(self, quiz_id: UUID) -> list[QuizAttempt]:
        rows = await self.session.aexecute(self._get_quiz_attempt_ids, [quiz_id])
        attempts = []
        for row in rows:
            attempt = await self.get_attempt(row.attempt_id)
            if attempt:
                attempts.append(attempt)
        return sorted(attempts, key=lambda a: a.started_at, reverse=True)

    async def _require_course(self, course_id: UUID | None) -> Course:
        if course_id is None:
            raise QuizCourseNotFoundError
        try:
            return await self.course_service.require_course(course_id)
        except CourseNotFoundError as e:
            raise QuizCourseNotFoundError from e

    async def _require_own_attempt(
        self, attempt_id: UUID, user_id: UUID
    ) -> QuizAttempt:
        attempt = await self.get_attempt(attempt_id)
        if attempt is None or attempt.user_id != user_id:
            raise AttemptNotFoundError
        return attempt

    # ==========================================================================
    # Student access
    # ==========================================================================

    async def _check_access(self, quiz: Quiz, user_id: UUID) -> Course:
        """Gate a quiz for a student.

        Checks availability, then enrollment, then completion of every
        syllabus module.
        """
        if not quiz.is_available():
            raise QuizUnavailableError
        course = await self._require_course(quiz.course_id)
        progress = await self.progress_service.get_progress(user_id, course.id)
        if progress is None:
            raise QuizNotEnrolledError
        completed, required = module_completion(progress, course)
        if completed < required:
            raise ModulesIncompleteError(completed, required)
        return course

    async def course_quizzes(
        self, course_id: UUID, user_id: UUID
    ) -> list[tuple[Quiz, UserQuizStats]]:
        """Published quizzes of a course with the user's stats for each."""
        course = await self._require_course(course_id)
        progress = await self.progress_service.get_progress(user_id, course_id)
        completed, required = module_completion(progress, course)

        result = []
        for quiz in await self.list_course_quizzes(course_id):
            if quiz.status != QuizStatus.PUBLISHED.value:
                continue
            attempts = await self.user_attempts(user_id, quiz.id)
            stats = UserQuizStats(
                latest_attempt=(
                    AttemptResponse.from_entity(attempts[0], hide_grading=True)
                    if attempts
                    else None
                ),
                best_score=best_score(attempts),
                attempts=len(attempts),
                is_available=quiz.is_available(),
                is_overdue=quiz.is_overdue(),
                all_modules_completed=completed >= required,
                required_modules=required,
                completed_modules=completed,
            )
            result.append((quiz, stats))
        return result

    async def get_quiz_for_student(self, quiz_id: UUID, user_id: UUID) -> Quiz:
        quiz = await self.require_quiz(quiz_id)
        await self._check_access(quiz, user_id)
        return quiz

    async def start_attempt(
        self, quiz_id: UUID, user_id: UUID
    ) -> tuple[QuizAttempt, Quiz, bool]:
        """Start a new attempt, or resume the active one.

        Returns the attempt, the quiz and whether it was resumed.
        """
        quiz = await self.require_quiz(quiz_id)
        course = await self._check_access(quiz, user_id)

        attempts = await self.user_attempts(user_id, quiz_id)
        for attempt in attempts:
            if attempt.is_active:
                remaining = attempt.remaining_seconds()
                if remaining is not None:
                    attempt.time_remaining = remaining
                    await self._save_attempt(attempt)
                logger.info(
                    "quiz_attempt_resumed",
                    attempt_id=str(attempt.id),
                    quiz_id=str(quiz_id),
                    user_id=str(user_id),
                )
                return attempt, quiz, True

        now = utc_now()
        attempt = QuizAttempt(
            quiz_id=quiz.id,
            user_id=user_id,
            course_id=course.id,
            attempt_number=len(attempts) + 1,
            started_at=now,
            time_limit=quiz.time_limit,
            time_remaining=quiz.time_limit * 60 if quiz.time_limit else None,
            total_points=quiz.total_points,
        )
        await self._save_attempt(attempt)
        await self.session.aexecute(
            self._insert_user_attempt,
            [user_id, quiz.id, attempt.attempt_number, attempt.id],
        )
        await self.session.aexecute(self._insert_quiz_attempt, [quiz.id, attempt.id])

        logger.info(
            "quiz_attempt_started",
            attempt_id=str(attempt.id),
            quiz_id=str(quiz_id),
            user_id=str(user_id),
            attempt_number=attempt.attempt_number,
        )
        return attempt, quiz, False

    async def save_attempt_progress(
        self,
        attempt_id: UUID,
        user_id: UUID,
        data: SaveAttemptProgressRequest,
    ) -> QuizAttempt:
        attempt = await self._require_own_attempt(attempt_id, user_id)
        if not attempt.is_active:
            raise AttemptInactiveError

        if data.answers is not None:
            attempt.answers = [a.model_dump() for a in data.answers]
        if data.current_question is not None:
            attempt.current_question = data.current_question
        if data.time_remaining is not None:
            attempt.time_remaining = data.time_remaining
        if data.status is not None:
            attempt.status = data.status
        await self._save_attempt(attempt)
        return attempt

    async def submit(
        self,
        attempt_id: UUID,
        user_id: UUID,
        answers: list[AnswerSubmission],
        auto_submit: bool = False,
    ) -> tuple[QuizAttempt, bool]:
        """Grade and close an attempt.

        A passing attempt completes the course. Returns the attempt and
        whether the course was completed by it.
        """
        attempt = await self._require_own_attempt(attempt_id, user_id)
        if not attempt.is_active:
            raise AttemptInactiveError
        quiz = await self.require_quiz(attempt.quiz_id)

        submitted = [a.model_dump() for a in answers] if answers else attempt.answers
        graded = grade_answers(quiz.questions, submitted, quiz.passing_score)
        attempt.answers = graded["answers"]
        attempt.total_points = graded["total_points"]
        attempt.points_earned = graded["points_earned"]
        attempt.percentage = graded["percentage"]
        attempt.passed = graded["passed"]
        attempt.status = (
            AttemptStatus.AUTO_SUBMITTED.value
            if auto_submit
            else AttemptStatus.SUBMITTED.value
        )
        attempt.submitted_at = utc_now()
        attempt.time_remaining = attempt.remaining_seconds()
        await self._save_attempt(attempt)

        course_completed = False
        if attempt.passed and attempt.course_id:
            progress = await self.progress_service.complete_course(
                user_id, attempt.course_id, float(attempt.percentage)
            )
            course_completed = progress is not None

        logger.info(
            "quiz_attempt_submitted",
            attempt_id=str(attempt.id),
            quiz_id=str(quiz.id),
            user_id=str(user_id),
            percentage=attempt.percentage,
            passed=attempt.passed,
            auto_submit=auto_submit,
        )
        return attempt, course_completed

    async def results(self, attempt_id: UUID, user_id: UUID) -> QuizResultsResponse:
        attempt = await self._require_own_attempt(attempt_id, user_id)
        if not attempt.is_completed:
            raise ResultsUnavailableError
        quiz = await self.require_quiz(attempt.quiz_id)

        return QuizResultsResponse(
            attempt_id=attempt.id,
            quiz_id=quiz.id,
            quiz_title=quiz.title,
            attempt_number=attempt.attempt_number,
            status=attempt.status,
            percentage=attempt.percentage,
            points_earned=attempt.points_earned,
            total_points=attempt.total_points,
            passing_score=quiz.passing_score,
            passed=attempt.passed,
            submitted_at=attempt.submitted_at,
            time_spent=attempt.time_spent_minutes(),
            detailed_results=(
                detailed_results(quiz.questions, attempt.answers)
                if quiz.show_correct_answers
                else None
            ),
        )

    async def my_attempts(self, quiz_id: UUID, user_id: UUID) -> list[QuizAttempt]:
        await self.require_quiz(quiz_id)
        return await self.user_attempts(user_id, quiz_id)

    # ==========================================================================
    # Authoring (admins and course instructors)
    # ==========================================================================

    async def _require_manageable_course(
        self, course_id: UUID | None, actor: UserResponse
    ) -> Course:
        if not is_at_least_instructor(actor.role):
            raise QuizPermissionError
        course = await self._require_course(course_id)
        if not is_admin(actor.role) and not course.is_owned_by(actor.id):
            raise QuizPermissionError
        return course

    def _validate_questions(self, questions: list[QuizQuestion]) -> None:
        limit = self.settings.quiz_max_questions
        if len(questions) > limit:
            raise QuizValidationError(f"A quiz can have at most {limit} questions")

    async def list_managed_quizzes(
        self, actor: UserResponse
    ) -> list[tuple[Quiz, int, int]]:
        """Quizzes visible to ``actor`` with total and completed attempt counts.

        Admins see every quiz; instructors the quizzes of courses they own.
        """
        if is_admin(actor.role):
            quizzes = await self.list_all_quizzes()
        elif is_at_least_instructor(actor.role):
            quizzes = []
            for course in await self.course_service.list_instructor_courses(actor.id):
                quizzes.extend(await self.list_course_quizzes(course.id))
        else:
            raise QuizPermissionError

        result = []
        for quiz in quizzes:
            attempts = await self.quiz_attempts(quiz.id)
            completed = sum(1 for a in attempts if a.is_completed)
            result.append((quiz, len(attempts), completed))
        return result

    async def get_managed_quiz(self, quiz_id: UUID, actor: UserResponse) -> Quiz:
        quiz = await self.require_quiz(quiz_id)
        await self._require_manageable_course(quiz.course_id, actor)
        return quiz

    async def create_quiz(self, data: CreateQuizRequest, actor: UserResponse) -> Quiz:
        """Create a quiz for a course the actor may manage.

        Raises:
            QuizCourseNotFoundError: Course does not exist
            QuizPermissionError: Instructor does not own the course
            QuizValidationError: Too many questions
        """
        course = await self._require_manageable_course(data.course_id, actor)
        self._validate_questions(data.questions)

        now = utc_now()
        quiz = Quiz(
            title=data.title,
            description=data.description,
            instructions=data.instructions,
            course_id=course.id,
            module_id=data.module_id,
            time_limit=data.time_limit,
            passing_score=data.passing_score,
            show_results=data.show_results,
            show_correct_answers=data.show_correct_answers,
            randomize_questions=data.randomize_questions,
            randomize_options=data.randomize_options,
            questions=normalize_questions(data.questions),
            available_from=data.available_from,
            available_until=data.available_until,
            due_date=data.due_date,
            difficulty=data.difficulty,
            status=data.status.value,
            created_by=actor.id,
            last_modified_by=actor.id,
            created_at=now,
            updated_at=now,
        )
        await self._save_quiz(quiz)
        await self.session.aexecute(self._insert_course_quiz, [course.id, quiz.id])

        logger.info(
            "quiz_created",
            quiz_id=str(quiz.id),
            course_id=str(course.id),
            questions=len(quiz.questions),
        )
        return quiz

    async def update_quiz(
        self, quiz_id: UUID, data: UpdateQuizRequest, actor: UserResponse
    ) -> Quiz:
        quiz = await self.get_managed_quiz(quiz_id, actor)

        updates = data.model_dump(exclude_unset=True, exclude={"questions"})
        for field, value in updates.items():
            if value is None and field not in ("module_id", "time_limit"):
                continue
            setattr(quiz, field, value.value if hasattr(value, "value") else value)
        if data.questions is not None:
            self._validate_questions(data.questions)
            quiz.questions = normalize_questions(data.questions)

        quiz.last_modified_by = actor.id
        quiz.updated_at = utc_now()
        await self._save_quiz(quiz)

        logger.info("quiz_updated", quiz_id=str(quiz.id), fields=list(updates))
        return quiz

    async def delete_quiz(self, quiz_id: UUID, actor: UserResponse) -> None:
        quiz = await self.get_managed_quiz(quiz_id, actor)
        if await self.quiz_attempts(quiz.id):
            raise QuizHasAttemptsError

        await self.session.aexecute(self._delete_quiz, [quiz.id])
        if quiz.course_id:
            await self.session.aexecute(
                self._delete_course_quiz, [quiz.course_id, quiz.id]
            )
        logger.info("quiz_deleted", quiz_id=str(quiz.id))

    async def managed_quiz_attempts(
        self, quiz_id: UUID, actor: UserResponse
    ) -> list[QuizAttempt]:
        quiz = await self.get_managed_quiz(quiz_id, actor)
        return await self.quiz_attempts(quiz.id)

    # ==========================================================================
    # Persistence
    # ==========================================================================

    async def _save_quiz(self, quiz: Quiz) -> None:
        await self.session.aexecute(
            self._insert_quiz,
            [
                quiz.id,
                quiz.title,
                quiz.description,
                quiz.instructions,
                quiz.course_id,
                quiz.module_id,
                quiz.time_limit,
                quiz.passing_score,
                quiz.show_results,
                quiz.show_correct_answers,
                quiz.randomize_questions,
                quiz.randomize_options,
                to_json_column(quiz.questions),
                quiz.total_points,
                quiz.available_from,
                quiz.available_until,
                quiz.due_date,
                quiz.difficulty,
                quiz.status,
                quiz.created_by,
                quiz.last_modified_by,
                quiz.created_at,
                quiz.updated_at,
            ],
        )

    async def _save_attempt(self, attempt: QuizAttempt) -> None:
        attempt.updated_at = utc_now()
        await self.session.aexecute(
            self._upsert_attempt,
            [
                attempt.id,
                attempt.quiz_id,
                attempt.user_id,
                attempt.course_id,
                attempt.attempt_number,
                attempt.status,
                attempt.started_at,
                attempt.submitted_at,
                attempt.time_limit,
                attempt.time_remaining,
                attempt.current_question,
                to_json_column(attempt.answers),
                attempt.total_points,
                attempt.points_earned,
                attempt.percentage,
                attempt.passed,
                attempt.updated_at,
            ],
        )
