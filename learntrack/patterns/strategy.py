"""Strategy pattern: interchangeable grading, delivery and assessment algorithms.

``GradeCalculator`` backs ``ModuleService.grade_module``; the delivery and
assessment strategies are exercised by the demo.
"""

import math
from abc import ABC, abstractmethod
from typing import Any


def _mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0


# ==============================================================================
# Grading
# ==============================================================================


class GradingStrategy(ABC):
    name: str = ""

    @abstractmethod
    def calculate_grade(self, scores: dict[str, Any]) -> dict[str, Any]:
        """Grade a score sheet."""

    @abstractmethod
    def get_description(self) -> str:
        """Human readable summary of the strategy."""


class WeightedAverageStrategy(GradingStrategy):
    """Weighted mean of assignment, quiz and final exam scores."""

    name = "weighted"

    def __init__(self, weights: dict[str, float] | None = None):
        self.weights = {
            "assignments": 0.4,
            "quizzes": 0.3,
            "final_exam": 0.3,
            **(weights or {}),
        }

    def calculate_grade(self, scores: dict[str, Any]) -> dict[str, Any]:
        avg_assignments = _mean(scores.get("assignments") or [])
        avg_quizzes = _mean(scores.get("quizzes") or [])
        final_exam = scores.get("final_exam") or 0

        weighted = (
            avg_assignments * self.weights["assignments"]
            + avg_quizzes * self.weights["quizzes"]
            + final_exam * self.weights["final_exam"]
        )
        return {
            "final_grade": round(weighted, 2),
            "letter_grade": self.get_letter_grade(weighted),
            "breakdown": {
                "assignments": {
                    "average": avg_assignments,
                    "weight": self.weights["assignments"],
                },
                "quizzes": {"average": avg_quizzes, "weight": self.weights["quizzes"]},
                "final_exam": {
                    "score": final_exam,
                    "weight": self.weights["final_exam"],
                },
            },
        }

    @staticmethod
    def get_letter_grade(score: float) -> str:
        if score >= 90:
            return "A"
        if score >= 80:
            return "B"
        if score >= 70:
            return "C"
        if score >= 60:
            return "D"
        return "F"

    def get_description(self) -> str:
        w = self.weights
        return (
            f"Weighted Average (Assignments: {w['assignments'] * 100:g}%, "
            f"Quizzes: {w['quizzes'] * 100:g}%, Final: {w['final_exam'] * 100:g}%)"
        )


class PassFailStrategy(GradingStrategy):
    """PASS when the mean of the non-zero scores reaches the threshold."""

    name = "pass_fail"

    def __init__(self, passing_threshold: float = 70):
        self.passing_threshold = passing_threshold

    def calculate_grade(self, scores: dict[str, Any]) -> dict[str, Any]:
        all_scores = [
            *(scores.get("assignments") or []),
            *(scores.get("quizzes") or []),
            scores.get("final_exam") or 0,
        ]
        average = _mean([s for s in all_scores if s > 0])
        passed = average >= self.passing_threshold
        return {
            "final_grade": "PASS" if passed else "FAIL",
            "letter_grade": "P" if passed else "F",
            "numeric_score": average,
            "breakdown": {
                "average": average,
                "threshold": self.passing_threshold,
                "status": "PASSED" if passed else "FAILED",
            },
        }

    def get_description(self) -> str:
        return f"Pass/Fail (Threshold: {self.passing_threshold:g}%)"


class CompetencyBasedStrategy(GradingStrategy):
    """Counts competencies whose score reaches their mastery threshold.

    ``competencies`` is a list of ``{id, name, mastery_threshold}``.
    """

    name = "competency"

    def __init__(self, competencies: list[dict[str, Any]] | None = None):
        self.competencies = competencies or []

    def calculate_grade(self, scores: dict[str, Any]) -> dict[str, Any]:
        competency_scores = scores.get("competency_scores") or {}
        results = []
        for competency in self.competencies:
            score = competency_scores.get(competency["id"], 0)
            results.append(
                {
                    "competency": competency["name"],
                    "score": score,
                    "threshold": competency["mastery_threshold"],
                    "mastered": score >= competency["mastery_threshold"],
                }
            )

        mastered = sum(1 for r in results if r["mastered"])
        total = len(results)
        percentage = (mastered / total) * 100 if total else 0
        return {
            "final_grade": f"{mastered}/{total} Competencies",
            "letter_grade": self.get_competency_grade(percentage),
            "mastery_percentage": percentage,
            "breakdown": {
                "mastered_competencies": mastered,
                "total_competencies": total,
                "competency_details": results,
            },
        }

    @staticmethod
    def get_competency_grade(percentage: float) -> str:
        if percentage == 100:
            return "A"
        if percentage >= 80:
            return "B"
        if percentage >= 60:
            return "C"
        if percentage >= 40:
            return "D"
        return "F"

    def get_description(self) -> str:
        return f"Competency-Based ({len(self.competencies)} competencies)"


GRADING_STRATEGIES: dict[str, type[GradingStrategy]] = {
    WeightedAverageStrategy.name: WeightedAverageStrategy,
    PassFailStrategy.name: PassFailStrategy,
    CompetencyBasedStrategy.name: CompetencyBasedStrategy,
}


def get_grading_strategy(name: str, **options: Any) -> GradingStrategy:
    """Instantiate a grading strategy by name.

    Raises:
        ValueError: If the strategy is unknown
    """
    strategy_cls = GRADING_STRATEGIES.get(name)
    if strategy_cls is None:
        raise ValueError(f"Unknown grading strategy: {name}")
    return strategy_cls(**options)


# ==============================================================================
# Content delivery
# ==============================================================================


def _first_pending(items: list[dict[str, Any]]) -> dict[str, Any] | None:
    for item in items:
        if not item.get("completed"):
            return item
    return items[0] if items else None


class ContentDeliveryStrategy(ABC):
    @abstractmethod
    def deliver(
        self, content: list[dict[str, Any]], user_profile: dict[str, Any]
    ) -> dict[str, Any]:
        """Order and annotate ``content`` for ``user_profile``."""

    @abstractmethod
    def get_delivery_method(self) -> str: ...


class SequentialDeliveryStrategy(ContentDeliveryStrategy):
    def deliver(self, content, user_profile):
        ordered = sorted(content, key=lambda item: item.get("order", 0))
        return {
            "method": "sequential",
            "content": ordered,
            "current_item": _first_pending(ordered),
            "progress": {
                "completed": sum(1 for item in ordered if item.get("completed")),
                "total": len(ordered),
            },
        }

    def get_delivery_method(self) -> str:
        return "Sequential - Complete items in order"


class AdaptiveDeliveryStrategy(ContentDeliveryStrategy):
    def deliver(self, content, user_profile):
        learning_style = user_profile.get("learning_style")
        proficiency = user_profile.get("proficiency_level")
        weak_areas = user_profile.get("weak_areas") or []

        prioritized = []
        for item in content:
            priority = item.get("base_priority", 1)
            if item.get("topic") in weak_areas:
                priority += 2
            if item.get("type") == learning_style:
                priority += 1
            if item.get("difficulty") == proficiency:
                priority += 1
            prioritized.append({**item, "adaptive_priority": priority})
        prioritized.sort(key=lambda item: item["adaptive_priority"], reverse=True)

        return {
            "method": "adaptive",
            "content": prioritized,
            "current_item": _first_pending(prioritized),
            "adaptations": {
                "learning_style": learning_style,
                "proficiency_level": proficiency,
                "weak_areas": weak_areas,
                "prioritized_by": "weakness + style + proficiency",
            },
        }

    def get_delivery_method(self) -> str:
        return "Adaptive - Personalized based on user profile"


class GamifiedDeliveryStrategy(ContentDeliveryStrategy):
    BASE_POINTS = {
        "lesson": 10,
        "quiz": 15,
        "assignment": 25,
        "project": 50,
        "challenge": 100,
    }

    def calculate_points(self, item: dict[str, Any]) -> float:
        return self.BASE_POINTS.get(item.get("type", ""), 10) * item.get(
            "difficulty", 1
        )

    def deliver(self, content, user_profile):
        gamification = user_profile.get("gamification") or {}
        level = gamification.get("level", 1)
        points = gamification.get("points", 0)

        items = []
        for item in content:
            required_level = max(1, math.floor(item.get("difficulty", 1) * 2))
            items.append(
                {
                    **item,
                    "points_reward": self.calculate_points(item),
                    "required_level": required_level,
                    "is_unlocked": level >= required_level,
                    "gamification_elements": {
                        "badge": "Challenge Master"
                        if item.get("type") == "challenge"
                        else None,
                        "streak": 1 if item.get("completed") else 0,
                    },
                }
            )

        available = [item for item in items if item["is_unlocked"]]
        return {
            "method": "gamified",
            "content": available,
            "locked_content": [item for item in items if not item["is_unlocked"]],
            "current_item": _first_pending(available),
            "gamification": {
                "current_level": level,
                "current_points": points,
                "next_level_points": (level + 1) * 100,
                "achievements": gamification.get("achievements", []),
            },
        }

    def get_delivery_method(self) -> str:
        return "Gamified - Points, levels, and achievements"


# ==============================================================================
# Assessment generation
# ==============================================================================


class AssessmentStrategy(ABC):
    @abstractmethod
    def generate_assessment(
        self,
        topics: list[dict[str, Any]],
        difficulty: int,
        user_profile: dict[str, Any] | None = None,
    ) -> dict[str, Any]: ...

    @abstractmethod
    def get_assessment_type(self) -> str: ...


class QuizAssessmentStrategy(AssessmentStrategy):
    def __init__(self, questions_per_topic: int = 3):
        self.questions_per_topic = questions_per_topic

    def generate_assessment(self, topics, difficulty, user_profile=None):
        questions = [
            {
                "id": f"{topic['id']}_q{n}",
                "topic": topic["name"],
                "question": f"{topic['name']} question {n}",
                "type": "multiple-choice",
                "difficulty": difficulty,
                "options": ["Option A", "Option B", "Option C", "Option D"],
                "correct_answer": "Option A",
                "points": difficulty * 2,
            }
            for topic in topics
            for n in range(1, self.questions_per_topic + 1)
        ]
        return {
            "type": "quiz",
            "title": f"{', '.join(t['name'] for t in topics)} Quiz",
            "questions": questions,
            "time_limit": len(questions) * 2,
            "total_points": sum(q["points"] for q in questions),
            "instructions": "Select the best answer for each question.",
        }

    def get_assessment_type(self) -> str:
        return (
            f"Multiple Choice Quiz ({self.questions_per_topic} questions per topic)"
        )


class ProjectAssessmentStrategy(AssessmentStrategy):
    RUBRIC_LEVELS = (
        ("Excellent", 4, "Masterful use of {}"),
        ("Good", 3, "Good understanding of {}"),
        ("Satisfactory", 2, "Basic use of {}"),
        ("Needs Improvement", 1, "Limited understanding of {}"),
    )

    def generate_assessment(self, topics, difficulty, user_profile=None):
        names = [t["name"] for t in topics]
        complexity = "complex" if difficulty >= 3 else "simple"
        return {
            "type": "project",
            "title": f"{' & '.join(names)} Project",
            "description": (
                f"Create a {complexity} project incorporating {', '.join(names)}"
            ),
            "requirements": [
                {
                    "topic": name,
                    "requirement": f"Demonstrate understanding of {name}",
                    "weight": 100 / len(names),
                }
                for name in names
            ],
            "deliverables": [
                "Working code/solution",
                "Documentation",
                "Reflection essay",
            ],
            "time_limit": difficulty * 7,
            "total_points": 100,
            "rubric": self.generate_rubric(names),
        }

    def generate_rubric(self, names: list[str]) -> list[dict[str, Any]]:
        return [
            {
                "criterion": name,
                "levels": [
                    {"level": level, "points": points, "description": text.format(name)}
                    for level, points, text in self.RUBRIC_LEVELS
                ],
            }
            for name in names
        ]

    def get_assessment_type(self) -> str:
        return "Project-Based Assessment with Rubric"


# ==============================================================================
# Contexts
# ==============================================================================


class GradeCalculator:
    def __init__(self, strategy: GradingStrategy):
        self.strategy = strategy

    def set_strategy(self, strategy: GradingStrategy) -> None:
        self.strategy = strategy

    def calculate_student_grade(self, scores: dict[str, Any]) -> dict[str, Any]:
        return self.strategy.calculate_grade(scores)


class ContentManager:
    def __init__(self, strategy: ContentDeliveryStrategy):
        self.strategy = strategy

    def set_delivery_strategy(self, strategy: ContentDeliveryStrategy) -> None:
        self.strategy = strategy

    def deliver_content(
        self, content: list[dict[str, Any]], user_profile: dict[str, Any]
    ) -> dict[str, Any]:
        return self.strategy.deliver(content, user_profile)


class AssessmentGenerator:
    def __init__(self, strategy: AssessmentStrategy):
        self.strategy = strategy

    def set_assessment_strategy(self, strategy: AssessmentStrategy) -> None:
        self.strategy = strategy

    def create_assessment(
        self,
        topics: list[dict[str, Any]],
        difficulty: int,
        user_profile: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        return self.strategy.generate_assessment(topics, difficulty, user_profile)
