"""Prototype pattern: new courses, learning paths and assignments are
deep copies of registered templates."""

import copy
from datetime import datetime
from typing import Any
from uuid import uuid4

from learntrack.core.database.columns import utc_now


class Prototype:
    """Base prototype; ``clone`` deep-copies and assigns a fresh identity."""

    id_prefix = ""

    def __init__(self) -> None:
        self.id = self.generate_id()
        self.created_at: datetime = utc_now()

    def generate_id(self) -> str:
        return f"{self.id_prefix}{uuid4().hex[:9]}"

    def clone(self):
        cloned = copy.deepcopy(self)
        cloned.id = self.generate_id()
        cloned.created_at = utc_now()
        return cloned

    def update_settings(self, settings: dict[str, Any]):
        self.settings = {**self.settings, **settings}
        return self


class CoursePrototype(Prototype):
    def __init__(
        self,
        title: str,
        category: str,
        difficulty: str,
        duration: int,
        syllabus: list[dict[str, Any]] | None = None,
        settings: dict[str, Any] | None = None,
    ):
        super().__init__()
        self.title = title
        self.category = category
        self.difficulty = difficulty
        self.duration = duration
        self.syllabus = syllabus or []
        self.settings = settings or {}

    def update_title(self, title: str) -> "CoursePrototype":
        self.title = title
        return self

    def add_module(self, module: dict[str, Any]) -> "CoursePrototype":
        self.syllabus.append(module)
        return self

    def get_info(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "category": self.category,
            "difficulty": self.difficulty,
            "duration": self.duration,
            "modules": len(self.syllabus),
            "settings": self.settings,
            "created_at": self.created_at,
        }


class LearningPathPrototype(Prototype):
    id_prefix = "path_"

    def __init__(
        self,
        name: str,
        description: str,
        courses: list[dict[str, Any]] | None = None,
        prerequisites: list[str] | None = None,
        estimated_time: int = 0,
    ):
        super().__init__()
        self.name = name
        self.description = description
        self.courses = courses or []
        self.prerequisites = prerequisites or []
        self.estimated_time = estimated_time
        self.settings = {
            "auto_enroll": False,
            "sequential_order": True,
            "certificate_awarded": False,
        }

    def update_name(self, name: str) -> "LearningPathPrototype":
        self.name = name
        return self

    def add_course(self, course: dict[str, Any]) -> "LearningPathPrototype":
        self.courses.append(course)
        return self

    def get_info(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "courses_count": len(self.courses),
            "prerequisites": self.prerequisites,
            "estimated_time": self.estimated_time,
            "settings": self.settings,
            "created_at": self.created_at,
        }


class AssignmentPrototype(Prototype):
    id_prefix = "assign_"

    def __init__(
        self,
        title: str,
        description: str,
        type: str,
        max_score: int,
        time_limit: int,
        questions: list[dict[str, Any]] | None = None,
    ):
        super().__init__()
        self.title = title
        self.description = description
        self.type = type
        self.max_score = max_score
        self.time_limit = time_limit
        self.questions = questions or []
        self.settings = {
            "allow_retakes": False,
            "show_correct_answers": True,
            "randomize_questions": False,
            "passing_score": 70,
        }

    def update_title(self, title: str) -> "AssignmentPrototype":
        self.title = title
        return self

    def add_question(self, question: dict[str, Any]) -> "AssignmentPrototype":
        self.questions.append(question)
        return self

    def get_info(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "type": self.type,
            "max_score": self.max_score,
            "time_limit": self.time_limit,
            "questions_count": len(self.questions),
            "settings": self.settings,
            "created_at": self.created_at,
        }


class PrototypeRegistry:
    def __init__(self) -> None:
        self.prototypes: dict[str, Prototype] = {}

    def register(self, name: str, prototype: Prototype) -> None:
        self.prototypes[name] = prototype

    def unregister(self, name: str) -> None:
        self.prototypes.pop(name, None)

    def get(self, name: str) -> Any:
        """Return a clone of prototype ``name``; raises KeyError if unknown."""
        prototype = self.prototypes.get(name)
        if prototype is None:
            raise KeyError(f"Prototype '{name}' not found")
        return prototype.clone()

    def list(self) -> list[str]:
        return list(self.prototypes)

    def has(self, name: str) -> bool:
        return name in self.prototypes


def _modules(*entries: tuple[str, int, str]) -> list[dict[str, Any]]:
    return [{"title": t, "duration": d, "type": k} for t, d, k in entries]


class CourseTemplateFactory:
    def __init__(self) -> None:
        self.registry = PrototypeRegistry()
        self.registry.register(
            "javascript-beginner",
            CoursePrototype(
                "JavaScript Course Template",
                "Programming",
                "Beginner",
                40,
                _modules(
                    ("Introduction to JavaScript", 2, "video"),
                    ("Variables and Data Types", 3, "lesson"),
                    ("Functions", 4, "lesson"),
                    ("Objects and Arrays", 3, "lesson"),
                    ("Final Project", 8, "project"),
                ),
                {
                    "allow_discussions": True,
                    "certificate_required": True,
                    "prerequisites_required": False,
                },
            ),
        )
        self.registry.register(
            "python-beginner",
            CoursePrototype(
                "Python Course Template",
                "Programming",
                "Beginner",
                50,
                _modules(
                    ("Python Basics", 3, "video"),
                    ("Data Structures", 5, "lesson"),
                    ("Control Flow", 4, "lesson"),
                    ("Functions and Modules", 5, "lesson"),
                    ("Web Development Project", 10, "project"),
                ),
                {
                    "allow_discussions": True,
                    "certificate_required": True,
                    "prerequisites_required": False,
                },
            ),
        )
        self.registry.register(
            "design-intermediate",
            CoursePrototype(
                "Design Course Template",
                "Design",
                "Intermediate",
                30,
                _modules(
                    ("Design Principles", 3, "lesson"),
                    ("Color Theory", 2, "lesson"),
                    ("Typography", 3, "lesson"),
                    ("Design Tools", 4, "practical"),
                    ("Portfolio Project", 8, "project"),
                ),
                {
                    "allow_discussions": True,
                    "certificate_required": False,
                    "prerequisites_required": True,
                },
            ),
        )

    def create_course(
        self, template_name: str, customizations: dict[str, Any] | None = None
    ) -> CoursePrototype:
        customizations = customizations or {}
        course = self.registry.get(template_name)
        if customizations.get("title"):
            course.update_title(customizations["title"])
        for module in customizations.get("additional_modules", []):
            course.add_module(module)
        if customizations.get("settings"):
            course.update_settings(customizations["settings"])
        return course

    def get_available_templates(self) -> list[str]:
        return self.registry.list()


class LearningPathFactory:
    def __init__(self) -> None:
        self.registry = PrototypeRegistry()
        self.registry.register(
            "full-stack-developer",
            LearningPathPrototype(
                "Full-Stack Developer Path",
                "Complete path to become a full-stack developer",
                [
                    {"course_id": course_id, "order": n}
                    for n, course_id in enumerate(
                        [
                            "html-css-basics",
                            "javascript-fundamentals",
                            "react-basics",
                            "node-express",
                            "database-design",
                        ],
                        start=1,
                    )
                ],
                ["basic-computer-skills"],
                150,
            ),
        )
        self.registry.register(
            "data-scientist",
            LearningPathPrototype(
                "Data Science Path",
                "Comprehensive data science learning journey",
                [
                    {"course_id": course_id, "order": n}
                    for n, course_id in enumerate(
                        [
                            "python-basics",
                            "statistics-fundamentals",
                            "data-analysis-pandas",
                            "machine-learning",
                            "data-visualization",
                        ],
                        start=1,
                    )
                ],
                ["mathematics-basics"],
                120,
            ),
        )

    def create_learning_path(
        self, template_name: str, customizations: dict[str, Any] | None = None
    ) -> LearningPathPrototype:
        customizations = customizations or {}
        path = self.registry.get(template_name)
        if customizations.get("name"):
            path.update_name(customizations["name"])
        for course in customizations.get("additional_courses", []):
            path.add_course(course)
        if customizations.get("settings"):
            path.update_settings(customizations["settings"])
        return path
