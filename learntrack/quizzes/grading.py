"""Pure quiz grading functions."""

from typing import Any

from learntrack.quizzes.models import QuestionType


def _as_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "t", "yes", "1"):
            return True
        if lowered in ("false", "f", "no", "0"):
            return False
        return None
    if isinstance(value, int | float):
        return bool(value)
    return None


def correct_option_ids(question: dict[str, Any]) -> set[str]:
    return {
        str(option.get("id"))
        for option in question.get("options") or []
        if option.get("is_correct")
    }


def is_answer_correct(question: dict[str, Any], selected: Any) -> bool:
    """Check one answer against its question."""
    if selected is None:
        return False
    question_type = question.get("type", QuestionType.MULTIPLE_CHOICE.value)
    correct_answer = question.get("correct_answer")

    if question_type == QuestionType.MULTIPLE_CHOICE.value:
        correct = correct_option_ids(question)
        if correct:
            return str(selected) in correct
        return correct_answer is not None and str(selected) == str(correct_answer)

    if question_type == QuestionType.MULTIPLE_SELECT.value:
        if not isinstance(selected, list | tuple | set):
            selected = [selected]
        correct = correct_option_ids(question)
        if not correct and isinstance(correct_answer, list):
            correct = {str(c) for c in correct_answer}
        return bool(correct) and {str(s) for s in selected} == correct

    if question_type == QuestionType.TRUE_FALSE.value:
        expected = _as_bool(correct_answer)
        return expected is not None and _as_bool(selected) == expected

    if question_type == QuestionType.TEXT.value:
        if correct_answer is None:
            return False
        return str(selected).strip().lower() == str(correct_answer).strip().lower()

    return False


def score_percentage(earned: int, total: int) -> int:
    if total <= 0:
        return 0
    return round(earned / total * 100)


def grade_answers(
    questions: list[dict[str, Any]],
    answers: list[dict[str, Any]],
    passing_score: int,
) -> dict[str, Any]:
    """Grade submitted answers.

    Answers referencing unknown questions are ignored; a later answer to the
    same question replaces an earlier one.

    Returns ``{answers, total_points, points_earned, percentage, passed}``.
    """
    by_question: dict[str, Any] = {}
    for answer in answers:
        by_question[str(answer.get("question_id"))] = answer.get("selected_answer")

    graded = []
    earned = 0
    total = 0
    for question in questions:
        points = int(question.get("points") or 0)
        total += points
        question_id = str(question.get("id"))
        if question_id not in by_question:
            continue
        selected = by_question[question_id]
        correct = is_answer_correct(question, selected)
        points_earned = points if correct else 0
        earned += points_earned
        graded.append(
            {
                "question_id": question_id,
                "selected_answer": selected,
                "is_correct": correct,
                "points_earned": points_earned,
            }
        )

    percentage = score_percentage(earned, total)
    return {
        "answers": graded,
        "total_points": total,
        "points_earned": earned,
        "percentage": percentage,
        "passed": percentage >= passing_score,
    }


def detailed_results(
    questions: list[dict[str, Any]], answers: list[dict[str, Any]]
) -> list[dict[str, Any]]:
    """Per-question breakdown including the answer keys."""
    by_question = {str(a.get("question_id")): a for a in answers}
    results = []
    for question in questions:
        answer = by_question.get(str(question.get("id")), {})
        results.append(
            {
                "question_id": question.get("id"),
                "question": question.get("question"),
                "type": question.get("type"),
                "selected_answer": answer.get("selected_answer"),
                "is_correct": bool(answer.get("is_correct")),
                "points_earned": answer.get("points_earned", 0),
                "points": question.get("points", 1),
                "correct_answer": question.get("correct_answer"),
                "correct_options": sorted(correct_option_ids(question)),
                "explanation": question.get("explanation", ""),
            }
        )
    return results
