"""Tests for prototype-based course and learning path templates."""

import pytest

from learntrack.patterns.prototype import (
    AssignmentPrototype,
    CoursePrototype,
    CourseTemplateFactory,
    LearningPathFactory,
    PrototypeRegistry,
)


class TestPrototype:
    def test_clone_is_deep_with_new_identity(self) -> None:
        original = CoursePrototype(
            "Python", "Programming", "Beginner", 10, [{"title": "Intro"}]
        )

        clone = original.clone()
        clone.add_module({"title": "Extra"}).update_title("Python II")

        assert clone.id != original.id
        assert original.title == "Python"
        assert len(original.syllabus) == 1
        assert clone.get_info()["modules"] == 2

    def test_id_prefixes(self) -> None:
        assignment = AssignmentPrototype("Essay", "Write", "essay", 100, 60)
        assert assignment.id.startswith("assign_")
        assert assignment.clone().id.startswith("assign_")

    def test_update_settings_merges(self) -> None:
        assignment = AssignmentPrototype("Quiz", "Q", "quiz", 10, 15)
        assignment.update_settings({"allow_retakes": True})
        assert assignment.settings["allow_retakes"] is True
        assert assignment.settings["passing_score"] == 70


class TestRegistry:
    def test_get_returns_clone(self) -> None:
        registry = PrototypeRegistry()
        prototype = CoursePrototype("Go", "Programming", "Beginner", 5)
        registry.register("go", prototype)

        assert registry.get("go") is not prototype
        assert registry.has("go")
        assert registry.list() == ["go"]

    def test_unknown(self) -> None:
        registry = PrototypeRegistry()
        with pytest.raises(KeyError):
            registry.get("missing")
        registry.unregister("missing")


class TestTemplateFactories:
    def test_course_customizations(self) -> None:
        factory = CourseTemplateFactory()

        course = factory.create_course(
            "python-beginner",
            {
                "title": "Data Python",
                "additional_modules": [{"title": "Pandas", "duration": 5}],
                "settings": {"allow_discussions": False},
            },
        )

        info = course.get_info()
        assert info["title"] == "Data Python"
        assert info["modules"] == 6
        assert info["settings"]["allow_discussions"] is False
        assert info["settings"]["certificate_required"] is True
        assert factory.create_course("python-beginner").get_info()["modules"] == 5

    def test_available_templates(self) -> None:
        assert CourseTemplateFactory().get_available_templates() == [
            "javascript-beginner",
            "python-beginner",
            "design-intermediate",
        ]

    def test_learning_path(self) -> None:
        path = LearningPathFactory().create_learning_path(
            "full-stack-developer",
            {"name": "Web Path", "additional_courses": [{"course_id": "x", "order": 6}]},
        )

        info = path.get_info()
        assert info["id"].startswith("path_")
        assert info["name"] == "Web Path"
        assert info["courses_count"] == 6
        assert info["prerequisites"] == ["basic-computer-skills"]
