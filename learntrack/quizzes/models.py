"""Database models for quizzes and quiz attempts.

Cassandra table definitions for:
- Quizzes: Quiz documents with their questions (JSON text)
- QuizzesByCourse: Lookup of the quizzes of a course
- QuizAttempts: Attempt documents with the submitted answers (JSON text)
- QuizAttemptsByUserQuiz: Attempts of a user on a quiz, ordered by number
- QuizAttemptsByQuiz: All attempts on a quiz
"""

import math
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from learntrack.core.database.columns import (
    ensure_utc_aware,
    from_json_column,
    utc_now,
)


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    MULTIPLE_SELECT = "multiple_select"
    TRUE_FALSE = "true_false"
    TEXT = "text"


class QuizStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class AttemptStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    COMPLETED = "completed"
    SUBMITTED = "submitted"
    AUTO_SUBMITTED = "auto_submitted"


ACTIVE_ATTEMPT_STATUSES = frozenset(
    {AttemptStatus.IN_PROGRESS.value, AttemptStatus.PAUSED.value}
)
COMPLETED_ATTEMPT_STATUSES = frozenset(
    {
        AttemptStatus.COMPLETED.value,
        AttemptStatus.SUBMITTED.value,
        AttemptStatus.AUTO_SUBMITTED.value,
    }
)


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

QUIZ_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.quizzes (
    id UUID PRIMARY KEY,
    title TEXT,
    description TEXT,
    instructions TEXT,
    course_id UUID,
    module_id UUID,
    time_limit INT,
    passing_score INT,
    show_results BOOLEAN,
    show_correct_answers BOOLEAN,
    randomize_questions BOOLEAN,
    randomize_options BOOLEAN,
    questions TEXT,
    total_points INT,
    available_from TIMESTAMP,
    available_until TIMESTAMP,
    due_date TIMESTAMP,
    difficulty INT,
    status TEXT,
    created_by UUID,
    last_modified_by UUID,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

QUIZZES_BY_COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.quizzes_by_course (
    course_id UUID,
    quiz_id UUID,
    PRIMARY KEY (course_id, quiz_id)
)
"""

QUIZ_ATTEMPT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.quiz_attempts (
    id UUID PRIMARY KEY,
    quiz_id UUID,
    user_id UUID,
    course_id UUID,
    attempt_number INT,
    status TEXT,
    started_at TIMESTAMP,
    submitted_at TIMESTAMP,
    time_limit INT,
    time_remaining INT,
    current_question INT,
    answers TEXT,
    total_points INT,
    points_earned INT,
    percentage INT,
    passed BOOLEAN,
    updated_at TIMESTAMP
)
"""

QUIZ_ATTEMPTS_BY_USER_QUIZ_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.quiz_attempts_by_user_quiz (
    user_id UUID,
    quiz_id UUID,
    attempt_number INT,
    attempt_id UUID,
    PRIMARY KEY ((user_id, quiz_id), attempt_number, attempt_id)
) WITH CLUSTERING ORDER BY (attempt_number DESC, attempt_id ASC)
"""

QUIZ_ATTEMPTS_BY_QUIZ_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.quiz_attempts_by_quiz (
    quiz_id UUID,
    attempt_id UUID,
    PRIMARY KEY (quiz_id, attempt_id)
)
"""

QUIZZES_TABLES_CQL = [
    QUIZ_TABLE_CQL,
    QUIZZES_BY_COURSE_TABLE_CQL,
    QUIZ_ATTEMPT_TABLE_CQL,
    QUIZ_ATTEMPTS_BY_USER_QUIZ_TABLE_CQL,
    QUIZ_ATTEMPTS_BY_QUIZ_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


def total_question_points(questions: list[dict[str, Any]]) -> int:
    return sum(int(q.get("points") or 0) for q in questions)


def student_question_view(question: dict[str, Any]) -> dict[str, Any]:
    """Question without answer keys."""
    view = {
        key: value
        for key, value in question.items()
        if key not in ("correct_answer", "explanation")
    }
    view["options"] = [
        {k: v for k, v in option.items() if k != "is_correct"}
        for option in question.get("options") or []
    ]
    return view


class Quiz:
    """Quiz entity.

    ``questions`` entries are dicts::

        {id, type, question, options[{id, text, is_correct}],
         correct_answer, points, explanation}
    """

    def __init__(
        self,
        id: UUID | None = None,
        title: str = "",
        description: str = "",
        instructions: str = "",
        course_id: UUID | None = None,
        module_id: UUID | None = None,
        time_limit: int | None = None,
        passing_score: int = 70,
        show_results: bool = True,
        show_correct_answers: bool = False,
        randomize_questions: bool = False,
        randomize_options: bool = False,
        questions: list[dict[str, Any]] | None = None,
        available_from: datetime | None = None,
        available_until: datetime | None = None,
        due_date: datetime | None = None,
        difficulty: int = 1,
        status: str = QuizStatus.DRAFT.value,
        created_by: UUID | None = None,
        last_modified_by: UUID | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.title = title
        self.description = description or ""
        self.instructions = instructions or ""
        self.course_id = course_id
        self.module_id = module_id
        self.time_limit = time_limit
        self.passing_score = 70 if passing_score is None else passing_score
        self.show_results = show_results
        self.show_correct_answers = show_correct_answers
        self.randomize_questions = randomize_questions
        self.randomize_options = randomize_options
        self.questions = list(questions or [])
        self.available_from = ensure_utc_aware(available_from)
        self.available_until = ensure_utc_aware(available_until)
        self.due_date = ensure_utc_aware(due_date)
        self.difficulty = difficulty or 1
        self.status = status
        self.created_by = created_by
        self.last_modified_by = last_modified_by
        self.created_at = ensure_utc_aware(created_at) or utc_now()
        self.updated_at = ensure_utc_aware(updated_at)

    @property
    def total_points(self) -> int:
        return total_question_points(self.questions)

    def is_available(self, now: datetime | None = None) -> bool:
        """Published and inside the availability window."""
        if self.status != QuizStatus.PUBLISHED.value:
            return False
        now = now or utc_now()
        if self.available_from and now < self.available_from:
            return False
        return not (self.available_until and now > self.available_until)

    def is_overdue(self, now: datetime | None = None) -> bool:
        return bool(self.due_date and (now or utc_now()) > self.due_date)

    def student_questions(self) -> list[dict[str, Any]]:
        return [student_question_view(q) for q in self.questions]

    @classmethod
    def from_row(cls, row: Any) -> "Quiz":
        """Create Quiz instance from Cassandra row."""
        return cls(
            id=row.id,
            title=row.title,
            description=row.description,
            instructions=row.instructions,
            course_id=row.course_id,
            module_id=row.module_id,
            time_limit=row.time_limit,
            passing_score=row.passing_score,
            show_results=row.show_results,
            show_correct_answers=row.show_correct_answers,
            randomize_questions=row.randomize_questions,
            randomize_options=row.randomize_options,
            questions=from_json_column(row.questions, []),
            available_from=row.available_from,
            available_until=row.available_until,
            due_date=row.due_date,
            difficulty=row.difficulty,
            status=row.status,
            created_by=row.created_by,
            last_modified_by=row.last_modified_by,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def __repr__(self) -> str:
        return f"<Quiz {self.title!r} ({len(self.questions)} questions)>"


class QuizAttempt:
    """One attempt of a user at a quiz.

    ``answers`` entries are ``{question_id, selected_answer, is_correct,
    points_earned}``; ``time_remaining`` is in seconds.
    """

    def __init__(
        self,
        quiz_id: UUID,
        user_id: UUID,
        course_id: UUID | None = None,
        attempt_number: int = 1,
        id: UUID | None = None,
        status: str = AttemptStatus.IN_PROGRESS.value,
        started_at: datetime | None = None,
        submitted_at: datetime | None = None,
        time_limit: int | None = None,
        time_remaining: int | None = None,
        current_question: int = 0,
        answers: list[dict[str, Any]] | None = None,
        total_points: int = 0,
        points_earned: int = 0,
        percentage: int = 0,
        passed: bool = False,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.quiz_id = quiz_id
        self.user_id = user_id
        self.course_id = course_id
        self.attempt_number = attempt_number
        self.status = status
        self.started_at = ensure_utc_aware(started_at) or utc_now()
        self.submitted_at = ensure_utc_aware(submitted_at)
        self.time_limit = time_limit
        self.time_remaining = time_remaining
        self.current_question = current_question or 0
        self.answers = list(answers or [])
        self.total_points = total_points or 0
        self.points_earned = points_earned or 0
        self.percentage = percentage or 0
        self.passed = bool(passed)
        self.updated_at = ensure_utc_aware(updated_at)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_ATTEMPT_STATUSES

    @property
    def is_completed(self) -> bool:
        return self.status in COMPLETED_ATTEMPT_STATUSES

    def remaining_seconds(self, now: datetime | None = None) -> int | None:
        """Seconds left under the time limit, ``None`` when untimed."""
        if not self.time_limit:
            return None
        elapsed = ((now or utc_now()) - self.started_at).total_seconds()
        return max(0, math.floor(self.time_limit * 60 - elapsed))

    def time_spent_minutes(self) -> int:
        end = self.submitted_at or utc_now()
        return round((end - self.started_at).total_seconds() / 60)

    @classmethod
    def from_row(cls, row: Any) -> "QuizAttempt":
        """Create QuizAttempt instance from Cassandra row."""
        return cls(
            id=row.id,
            quiz_id=row.quiz_id,
            user_id=row.user_id,
            course_id=row.course_id,
            attempt_number=row.attempt_number,
            status=row.status,
            started_at=row.started_at,
            submitted_at=row.submitted_at,
            time_limit=row.time_limit,
            time_remaining=row.time_remaining,
            current_question=row.current_question,
            answers=from_json_column(row.answers, []),
            total_points=row.total_points,
            points_earned=row.points_earned,
            percentage=row.percentage,
            passed=row.passed,
            updated_at=row.updated_at,
        )

    def __repr__(self) -> str:
        return (
            f"<QuizAttempt quiz={self.quiz_id} user={self.user_id} "
            f"#{self.attempt_number} {self.status}>"
        )


def best_score(attempts: list[QuizAttempt]) -> int | None:
    """Highest percentage over completed attempts."""
    scores = [a.percentage for a in attempts if a.is_completed]
    return max(scores) if scores else None
