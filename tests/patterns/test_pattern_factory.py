"""Tests for the content factory."""

import pytest

from learntrack.patterns.factory import (
    ContentFactory,
    CourseBuilder,
    InteractiveContent,
    QuizContent,
    TextContent,
    VideoContent,
)


class TestContentFactory:
    @pytest.mark.parametrize(
        ("content_type", "expected"),
        [
            ("video", VideoContent),
            ("TEXT", TextContent),
            ("quiz", QuizContent),
            ("interactive", InteractiveContent),
        ],
    )
    def test_create_content(self, content_type, expected) -> None:
        content = ContentFactory.create_content(
            content_type, {"title": "Item", "duration": 5}
        )
        assert isinstance(content, expected)
        assert content.duration == 5

    def test_defaults(self) -> None:
        video = ContentFactory.create_content("video", {"title": "Intro"})
        quiz = ContentFactory.create_content("quiz", {"title": "Check"})

        assert video.resolution == "1080p"
        assert video.duration == 0
        assert quiz.passing_score == 70

    def test_unknown_type(self) -> None:
        with pytest.raises(ValueError, match="Unknown content type"):
            ContentFactory.create_content("podcast", {"title": "X"})

    def test_template_with_overrides(self) -> None:
        content = ContentFactory.create_from_template(
            "chapter-reading", {"title": "Chapter 2", "word_count": 900}
        )

        assert isinstance(content, TextContent)
        assert content.title == "Chapter 2"
        assert content.word_count == 900
        assert content.reading_level == "intermediate"

    def test_unknown_template(self) -> None:
        with pytest.raises(ValueError, match="Unknown template"):
            ContentFactory.create_from_template("missing")

    def test_templates_are_not_mutated(self) -> None:
        first = ContentFactory.create_from_template("coding-exercise")
        first.tools.append("rust")
        second = ContentFactory.create_from_template("coding-exercise")
        assert "rust" not in second.tools

    def test_module_content_rendering(self) -> None:
        content = ContentFactory.create_from_template("intro-video")

        item = content.to_module_content(order=3, is_required=False)

        assert item["content_id"] == "c3"
        assert item["type"] == "video"
        assert item["is_required"] is False
        assert item["description"] == "Video: Course Introduction (10 min)"
        assert item["content_data"]["resolution"] == "720p"


def test_course_builder() -> None:
    course = (
        CourseBuilder("Python")
        .add_from_template("intro-video")
        .add_content("text", {"title": "Syntax", "duration": 20})
        .build()
    )

    assert course["course_name"] == "Python"
    assert course["content_count"] == 2
    assert course["total_duration"] == 30
    assert "Opening text content: Syntax" in course["contents"][1].start()
