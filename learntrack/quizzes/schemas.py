"""Pydantic schemas for quizzes and quiz attempts."""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from learntrack.quizzes.models import QuestionType, Quiz, QuizAttempt, QuizStatus


# ==============================================================================
# Questions
# ==============================================================================


class QuizOption(BaseModel):
    id: str = Field(..., min_length=1)
    text: str
    is_correct: bool = False


class QuizQuestion(BaseModel):
    """Question as written by the quiz author. ``id`` defaults to ``q{n}``."""

    id: str | None = None
    type: QuestionType = QuestionType.MULTIPLE_CHOICE
    question: str = Field(..., min_length=1)
    options: list[QuizOption] = Field(default_factory=list)
    correct_answer: Any = None
    points: int = Field(default=1, ge=0)
    explanation: str = ""


# ==============================================================================
# Requests
# ==============================================================================


class CreateQuizRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    instructions: str = ""
    course_id: UUID
    module_id: UUID | None = None
    time_limit: int | None = Field(None, ge=1, description="Minutes")
    passing_score: int = Field(default=70, ge=0, le=100)
    show_results: bool = True
    show_correct_answers: bool = False
    randomize_questions: bool = False
    randomize_options: bool = False
    questions: list[QuizQuestion] = Field(default_factory=list)
    available_from: datetime | None = None
    available_until: datetime | None = None
    due_date: datetime | None = None
    difficulty: int = Field(default=1, ge=1, le=5)
    status: QuizStatus = QuizStatus.DRAFT


class UpdateQuizRequest(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    instructions: str | None = None
    module_id: UUID | None = None
    time_limit: int | None = Field(None, ge=1)
    passing_score: int | None = Field(None, ge=0, le=100)
    show_results: bool | None = None
    show_correct_answers: bool | None = None
    randomize_questions: bool | None = None
    randomize_options: bool | None = None
    questions: list[QuizQuestion] | None = None
    available_from: datetime | None = None
    available_until: datetime | None = None
    due_date: datetime | None = None
    difficulty: int | None = Field(None, ge=1, le=5)
    status: QuizStatus | None = None


class AnswerSubmission(BaseModel):
    question_id: str
    selected_answer: Any = None


class SaveAttemptProgressRequest(BaseModel):
    answers: list[AnswerSubmission] | None = None
    current_question: int | None = Field(None, ge=0)
    time_remaining: int | None = Field(None, ge=0, description="Seconds")
    status: Literal["in_progress", "paused"] | None = None


class SubmitQuizRequest(BaseModel):
    answers: list[AnswerSubmission] = Field(default_factory=list)
    auto_submit: bool = False


# ==============================================================================
# Responses
# ==============================================================================


class QuizResponse(BaseModel):
    """Full quiz, including answer keys (authors only)."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str = ""
    instructions: str = ""
    course_id: UUID | None = None
    module_id: UUID | None = None
    time_limit: int | None = None
    passing_score: int
    show_results: bool
    show_correct_answers: bool
    randomize_questions: bool
    randomize_options: bool
    questions: list[dict[str, Any]]
    total_points: int
    available_from: datetime | None = None
    available_until: datetime | None = None
    due_date: datetime | None = None
    difficulty: int
    status: str
    created_by: UUID | None = None
    last_modified_by: UUID | None = None
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, quiz: Quiz, student_view: bool = False) -> "QuizResponse":
        return cls(
            id=quiz.id,
            title=quiz.title,
            description=quiz.description,
            instructions=quiz.instructions,
            course_id=quiz.course_id,
            module_id=quiz.module_id,
            time_limit=quiz.time_limit,
            passing_score=quiz.passing_score,
            show_results=quiz.show_results,
            show_correct_answers=quiz.show_correct_answers,
            randomize_questions=quiz.randomize_questions,
            randomize_options=quiz.randomize_options,
            questions=quiz.student_questions() if student_view else quiz.questions,
            total_points=quiz.total_points,
            available_from=quiz.available_from,
            available_until=quiz.available_until,
            due_date=quiz.due_date,
            difficulty=quiz.difficulty,
            status=quiz.status,
            created_by=quiz.created_by,
            last_modified_by=quiz.last_modified_by,
            created_at=quiz.created_at,
            updated_at=quiz.updated_at,
        )


class AttemptResponse(BaseModel):
    id: UUID
    quiz_id: UUID
    user_id: UUID
    course_id: UUID | None = None
    attempt_number: int
    status: str
    started_at: datetime
    submitted_at: datetime | None = None
    time_limit: int | None = None
    time_remaining: int | None = None
    current_question: int = 0
    answers: list[dict[str, Any]] = Field(default_factory=list)
    total_points: int = 0
    points_earned: int = 0
    percentage: int = 0
    passed: bool = False

    @classmethod
    def from_entity(
        cls, attempt: QuizAttempt, hide_grading: bool = False
    ) -> "AttemptResponse":
        answers = attempt.answers
        if hide_grading:
            answers = [
                {
                    "question_id": a.get("question_id"),
                    "selected_answer": a.get("selected_answer"),
                }
                for a in answers
            ]
        return cls(
            id=attempt.id,
            quiz_id=attempt.quiz_id,
            user_id=attempt.user_id,
            course_id=attempt.course_id,
            attempt_number=attempt.attempt_number,
            status=attempt.status,
            started_at=attempt.started_at,
            submitted_at=attempt.submitted_at,
            time_limit=attempt.time_limit,
            time_remaining=attempt.time_remaining,
            current_question=attempt.current_question,
            answers=answers,
            total_points=attempt.total_points,
            points_earned=attempt.points_earned,
            percentage=attempt.percentage,
            passed=attempt.passed,
        )


class UserQuizStats(BaseModel):
    latest_attempt: AttemptResponse | None = None
    best_score: int | None = None
    attempts: int = 0
    is_available: bool
    is_overdue: bool
    all_modules_completed: bool
    required_modules: int
    completed_modules: int


class CourseQuizResponse(BaseModel):
    quiz: QuizResponse
    user_stats: UserQuizStats


class StartAttemptResponse(BaseModel):
    message: str
    attempt: AttemptResponse
    quiz: QuizResponse


class SubmitResponse(BaseModel):
    message: str
    attempt: AttemptResponse
    course_completed: bool = False


class QuizResultsResponse(BaseModel):
    attempt_id: UUID
    quiz_id: UUID
    quiz_title: str
    attempt_number: int
    status: str
    percentage: int
    points_earned: int
    total_points: int
    passing_score: int
    passed: bool
    submitted_at: datetime | None = None
    time_spent: int = Field(description="Minutes")
    detailed_results: list[dict[str, Any]] | None = None


class QuizStats(BaseModel):
    total_attempts: int
    completed_attempts: int


class ManagedQuizResponse(BaseModel):
    quiz: QuizResponse
    stats: QuizStats


class MessageResponse(BaseModel):
    message: str
