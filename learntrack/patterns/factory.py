"""Factory pattern: build learning content without naming concrete classes.

``ContentFactory.create_content("video", {...})`` picks the right content
class; templates provide ready-made configurations. ModuleService uses the
templates to scaffold module contents.
"""

from abc import ABC, abstractmethod
from copy import deepcopy
from datetime import datetime
from typing import Any

from learntrack.core.database.columns import utc_now


class Content(ABC):
    """Base learning content item."""

    type: str = "content"

    def __init__(self, title: str, duration: int):
        self.title = title
        self.duration = duration
        self.created_at: datetime = utc_now()

    def get_info(self) -> str:
        return f"{self.type.title()}: {self.title} ({self.duration} min)"

    @abstractmethod
    def start(self) -> str:
        """Describe how the content is launched."""

    def content_data(self) -> dict[str, Any]:
        return {}

    def to_module_content(self, order: int, is_required: bool = True) -> dict[str, Any]:
        """Render as a module content item."""
        return {
            "content_id": f"c{order}",
            "type": self.type,
            "title": self.title,
            "description": self.get_info(),
            "duration": self.duration,
            "order": order,
            "is_required": is_required,
            "content_data": self.content_data(),
            "complexity": 1,
            "access_control": {
                "requires_premium": False,
                "required_role": None,
                "available_from": None,
                "available_until": None,
            },
        }


class VideoContent(Content):
    type = "video"

    def __init__(self, title: str, duration: int, video_url: str, resolution: str):
        super().__init__(title, duration)
        self.video_url = video_url
        self.resolution = resolution

    def start(self) -> str:
        return f"Starting video: {self.title} at {self.resolution} resolution"

    def content_data(self) -> dict[str, Any]:
        return {"video_url": self.video_url, "resolution": self.resolution}


class TextContent(Content):
    type = "text"

    def __init__(self, title: str, duration: int, word_count: int, reading_level: str):
        super().__init__(title, duration)
        self.word_count = word_count
        self.reading_level = reading_level

    def start(self) -> str:
        return f"Opening text content: {self.title} ({self.word_count} words)"

    def content_data(self) -> dict[str, Any]:
        return {"word_count": self.word_count, "reading_level": self.reading_level}


class QuizContent(Content):
    type = "quiz"

    def __init__(
        self,
        title: str,
        duration: int,
        questions: list[dict[str, Any]],
        passing_score: int,
    ):
        super().__init__(title, duration)
        self.questions = questions
        self.passing_score = passing_score

    def start(self) -> str:
        return f"Starting quiz: {self.title} ({len(self.questions)} questions)"

    def content_data(self) -> dict[str, Any]:
        return {"questions": self.questions, "passing_score": self.passing_score}


class InteractiveContent(Content):
    type = "interactive"

    def __init__(
        self, title: str, duration: int, interaction_type: str, tools: list[str]
    ):
        super().__init__(title, duration)
        self.interaction_type = interaction_type
        self.tools = tools

    def start(self) -> str:
        return f"Launching interactive content: {self.title} ({self.interaction_type})"

    def content_data(self) -> dict[str, Any]:
        return {"interaction_type": self.interaction_type, "tools": self.tools}


CONTENT_TEMPLATES: dict[str, dict[str, Any]] = {
    "intro-video": {
        "type": "video",
        "title": "Course Introduction",
        "duration": 10,
        "video_url": "/videos/intro.mp4",
        "resolution": "720p",
    },
    "chapter-reading": {
        "type": "text",
        "title": "Chapter Reading",
        "duration": 15,
        "word_count": 1500,
        "reading_level": "intermediate",
    },
    "knowledge-check": {
        "type": "quiz",
        "title": "Knowledge Check",
        "duration": 5,
        "questions": [
            {"question": "Sample question?", "options": ["A", "B", "C"], "answer": "A"}
        ],
        "passing_score": 80,
    },
    "coding-exercise": {
        "type": "interactive",
        "title": "Coding Exercise",
        "duration": 30,
        "interaction_type": "code-editor",
        "tools": ["javascript", "html", "css"],
    },
}


class ContentFactory:
    """Creates content objects from a type name or a template name."""

    @staticmethod
    def create_content(content_type: str, config: dict[str, Any]) -> Content:
        """Create content of ``content_type``.

        Raises:
            ValueError: If the type is unknown
        """
        kind = content_type.lower()
        title = config["title"]
        duration = int(config.get("duration", 0))
        if kind == "video":
            return VideoContent(
                title,
                duration,
                config.get("video_url", ""),
                config.get("resolution") or "1080p",
            )
        if kind == "text":
            return TextContent(
                title,
                duration,
                int(config.get("word_count", 0)),
                config.get("reading_level") or "intermediate",
            )
        if kind == "quiz":
            return QuizContent(
                title,
                duration,
                list(config.get("questions") or []),
                int(config.get("passing_score") or 70),
            )
        if kind == "interactive":
            return InteractiveContent(
                title,
                duration,
                config.get("interaction_type") or "simulation",
                list(config.get("tools") or []),
            )
        raise ValueError(f"Unknown content type: {content_type}")

    @classmethod
    def create_from_template(
        cls, template_name: str, custom_config: dict[str, Any] | None = None
    ) -> Content:
        """Create content from a named template merged with ``custom_config``.

        Raises:
            ValueError: If the template is unknown
        """
        template = CONTENT_TEMPLATES.get(template_name)
        if template is None:
            raise ValueError(f"Unknown template: {template_name}")
        config = {**deepcopy(template), **(custom_config or {})}
        return cls.create_content(config["type"], config)

    @staticmethod
    def available_templates() -> list[str]:
        return list(CONTENT_TEMPLATES)


class CourseBuilder:
    """Fluent builder that assembles a course outline from factory content."""

    def __init__(self, course_name: str):
        self.course_name = course_name
        self.contents: list[Content] = []

    def add_content(self, content_type: str, config: dict[str, Any]) -> "CourseBuilder":
        self.contents.append(ContentFactory.create_content(content_type, config))
        return self

    def add_from_template(
        self, template_name: str, custom_config: dict[str, Any] | None = None
    ) -> "CourseBuilder":
        self.contents.append(
            ContentFactory.create_from_template(template_name, custom_config)
        )
        return self

    def build(self) -> dict[str, Any]:
        return {
            "course_name": self.course_name,
            "contents": self.contents,
            "total_duration": sum(c.duration for c in self.contents),
            "content_count": len(self.contents),
        }
