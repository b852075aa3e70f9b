"""Tests for the course module service."""

from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest

from learntrack.auth.permissions import UserRole
from learntrack.core.database.columns import utc_now
from learntrack.courses.models import Course
from learntrack.courses.service import CourseNotFoundError
from learntrack.modules.models import Module
from learntrack.modules.schemas import (
    ContentItem,
    CreateModuleFromTemplateRequest,
    CreateModuleRequest,
    UpdateModuleRequest,
)
from learntrack.modules.service import (
    CourseModuleNotFoundError,
    DuplicateModuleNumberError,
    ModuleCourseNotFoundError,
    ModulePermissionError,
    ModuleService,
    ModuleValidationError,
    can_user_access,
    normalize_contents,
)


@pytest.fixture
def course_service():
    service = Mock()
    service.require_course = AsyncMock()
    service.link_syllabus_module = AsyncMock()
    service.unlink_syllabus_module = AsyncMock()
    return service


@pytest.fixture
def module_service(mock_session, course_service, make_result):
    mock_session.aexecute = AsyncMock(return_value=make_result(None))
    return ModuleService(
        session=mock_session, keyspace="test_keyspace", course_service=course_service
    )


class TestNormalizeContents:
    def test_assigns_ids_and_orders(self) -> None:
        items = [
            ContentItem(type="video", title="Intro", duration=10),
            ContentItem(content_id="custom", type="text", title="Read", order=7),
        ]

        contents = normalize_contents(items)

        assert contents[0]["content_id"] == "c1"
        assert contents[0]["order"] == 1
        assert contents[1]["content_id"] == "custom"
        assert contents[1]["order"] == 7
        assert contents[0]["type"] == "video"

    def test_estimated_duration_is_derived(self) -> None:
        module = Module(
            contents=normalize_contents(
                [
                    ContentItem(type="video", title="A", duration=10),
                    ContentItem(type="text", title="B", duration=25),
                ]
            )
        )
        assert module.estimated_duration == 35


class TestCanUserAccess:
    """Tests for module access decisions."""

    def test_inactive_module(self, student) -> None:
        module = Module(settings={"is_active": False})
        assert can_user_access(module, student) == {
            "can_access": False,
            "reason": "Module is not active",
        }

    def test_outside_availability_window(self, student) -> None:
        module = Module(
            settings={"available_from": (utc_now() + timedelta(days=1)).isoformat()}
        )
        result = can_user_access(module, student)
        assert result["reason"] == "Module is not available at this time"

    def test_required_role(self, student, instructor) -> None:
        module = Module(
            contents=[{"content_id": "c1", "access_control": {"required_role": "instructor"}}]
        )
        assert can_user_access(module, student)["reason"] == "Insufficient role permissions"
        assert can_user_access(module, instructor)["can_access"] is True

    def test_premium_content_admin_bypass(self, student, admin) -> None:
        module = Module(
            contents=[{"content_id": "c1", "access_control": {"requires_premium": True}}]
        )
        assert can_user_access(module, student)["reason"] == "Premium subscription required"
        assert can_user_access(module, admin)["can_access"] is True

    def test_prerequisites_only_checked_with_progress(self, student) -> None:
        prerequisite = str(uuid4())
        module = Module(prerequisites={"modules": [prerequisite]})

        assert can_user_access(module, student)["can_access"] is True
        assert can_user_access(module, student, set())["can_access"] is False
        assert can_user_access(module, student, {prerequisite})["can_access"] is True


class TestCreateModule:
    """Tests for module creation."""

    @pytest.mark.asyncio
    async def test_create_links_syllabus(
        self, module_service, course_service, instructor
    ) -> None:
        course = Course(title="C", instructor_id=instructor.id)
        course_service.require_course.return_value = course
        data = CreateModuleRequest(
            module_number=1,
            title="Intro",
            learning_objectives=["basics"],
            contents=[ContentItem(type="video", title="Welcome", duration=30)],
        )

        module = await module_service.create_module(course.id, data, instructor)

        assert module.course_id == course.id
        assert module.created_by == instructor.id
        assert module.contents[0]["content_id"] == "c1"
        course_service.link_syllabus_module.assert_awaited_once_with(
            course, module.id, "Intro", estimated_hours=0.5, topics=["basics"]
        )

    @pytest.mark.asyncio
    async def test_duplicate_number(
        self, module_service, course_service, mock_session, make_result, admin
    ) -> None:
        course_service.require_course.return_value = Course(title="C")
        mock_session.aexecute = AsyncMock(
            return_value=make_result(SimpleNamespace(module_id=uuid4()))
        )

        with pytest.raises(DuplicateModuleNumberError) as exc:
            await module_service.create_module(
                uuid4(), CreateModuleRequest(module_number=2, title="X"), admin
            )

        assert exc.value.code == "module_number_exists"

    @pytest.mark.asyncio
    async def test_not_owner(self, module_service, course_service, user_factory) -> None:
        course_service.require_course.return_value = Course(
            title="C", instructor_id=uuid4()
        )
        with pytest.raises(ModulePermissionError):
            await module_service.create_module(
                uuid4(),
                CreateModuleRequest(module_number=1, title="X"),
                user_factory(UserRole.INSTRUCTOR),
            )

    @pytest.mark.asyncio
    async def test_missing_course(self, module_service, course_service, admin) -> None:
        course_service.require_course.side_effect = CourseNotFoundError()
        with pytest.raises(ModuleCourseNotFoundError):
            await module_service.create_module(
                uuid4(), CreateModuleRequest(module_number=1, title="X"), admin
            )

    @pytest.mark.asyncio
    async def test_from_template(self, module_service, course_service, admin) -> None:
        course_service.require_course.return_value = Course(title="C")
        data = CreateModuleFromTemplateRequest(
            module_number=1,
            title="Week 1",
            items=[
                {"template": "intro-video"},
                {"template": "chapter-reading", "overrides": {"title": "Chapter 1"}},
            ],
        )

        module = await module_service.create_module_from_template(
            uuid4(), data, admin
        )

        assert [c["type"] for c in module.contents] == ["video", "text"]
        assert module.contents[1]["title"] == "Chapter 1"
        assert module.estimated_duration == 25

    @pytest.mark.asyncio
    async def test_unknown_template(self, module_service, course_service, admin) -> None:
        course_service.require_course.return_value = Course(title="C")
        data = CreateModuleFromTemplateRequest(
            module_number=1, title="Week 1", items=[{"template": "nope"}]
        )
        with pytest.raises(ModuleValidationError):
            await module_service.create_module_from_template(uuid4(), data, admin)


class TestUpdateDelete:
    @pytest.mark.asyncio
    async def test_update_merges_settings(
        self, module_service, course_service, admin
    ) -> None:
        module = Module(course_id=uuid4(), title="Old", settings={"max_attempts": 5})
        module_service.require_module = AsyncMock(return_value=module)
        course_service.require_course.return_value = Course(title="C")

        updated = await module_service.update_module(
            module.id,
            UpdateModuleRequest(title="New", settings={"allow_skip": True}),
            admin,
        )

        assert updated.title == "New"
        assert updated.settings["allow_skip"] is True

    @pytest.mark.asyncio
    async def test_delete_unlinks(self, module_service, course_service, admin) -> None:
        module = Module(course_id=uuid4(), title="M")
        course = Course(title="C")
        module_service.require_module = AsyncMock(return_value=module)
        course_service.require_course.return_value = course

        await module_service.delete_module(module.id, admin)

        course_service.unlink_syllabus_module.assert_awaited_once_with(course, module.id)

    @pytest.mark.asyncio
    async def test_missing_module(self, module_service, admin) -> None:
        with pytest.raises(CourseModuleNotFoundError):
            await module_service.delete_module(uuid4(), admin)


class TestNavigationAndGrading:
    @pytest.mark.asyncio
    async def test_next_and_previous_skip_inactive(self, module_service) -> None:
        course_id = uuid4()
        first = Module(course_id=course_id, module_number=1)
        hidden = Module(
            course_id=course_id, module_number=2, settings={"is_active": False}
        )
        third = Module(course_id=course_id, module_number=3)
        module_service.require_module = AsyncMock(return_value=first)
        module_service.list_course_modules = AsyncMock(
            return_value=[first, hidden, third]
        )

        assert await module_service.next_module(first.id) is third
        assert await module_service.previous_module(first.id) is None

        module_service.require_module = AsyncMock(return_value=third)
        assert await module_service.previous_module(third.id) is first

    @pytest.mark.asyncio
    async def test_grade_weighted(self, module_service) -> None:
        module_service.require_module = AsyncMock(return_value=Module())

        description, result = await module_service.grade_module(
            uuid4(),
            {"assignments": [80, 90], "quizzes": [70], "final_exam": 100},
        )

        assert description.startswith("Weighted Average")
        assert result["final_grade"] == 85.0
        assert result["letter_grade"] == "B"

    @pytest.mark.asyncio
    async def test_grade_unknown_strategy(self, module_service) -> None:
        module_service.require_module = AsyncMock(return_value=Module())
        with pytest.raises(ModuleValidationError):
            await module_service.grade_module(uuid4(), {}, strategy="curve")
