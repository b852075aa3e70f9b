"""Module service layer.

Business logic for:
- Module CRUD under a course, kept in sync with the course syllabus
- Module ordering (next / previous by module_number)
- Access rules (availability, roles, premium content, prerequisites)
- Scaffolding contents from factory templates
- Grading with pluggable strategies
"""

from typing import TYPE_CHECKING, Any
from uuid import UUID

import structlog

from learntrack.auth.permissions import is_admin
from learntrack.auth.schemas import UserResponse
from learntrack.core.database.columns import to_json_column, utc_now
from learntrack.courses.models import Course
from learntrack.courses.service import CourseNotFoundError
from learntrack.modules.models import Module, ModuleStatus
from learntrack.modules.schemas import (
    ContentItem,
    CreateModuleFromTemplateRequest,
    CreateModuleRequest,
    UpdateModuleRequest,
)
from learntrack.patterns.factory import ContentFactory
from learntrack.patterns.strategy import GradeCalculator, get_grading_strategy


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from learntrack.courses.service import CourseService

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class ModuleError(Exception):
    """Base module error."""

    def __init__(self, message: str, code: str = "module_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class CourseModuleNotFoundError(ModuleError):
    def __init__(self, message: str = "Module not found"):
        super().__init__(message, "module_not_found")


class ModuleCourseNotFoundError(ModuleError):
    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "course_not_found")


class ModulePermissionError(ModuleError):
    def __init__(self, message: str = "Not authorized to modify modules of this course"):
        super().__init__(message, "permission_denied")


class DuplicateModuleNumberError(ModuleError):
    def __init__(self, module_number: int):
        super().__init__(
            f"Module number {module_number} already exists in this course",
            "module_number_exists",
        )


class ModuleValidationError(ModuleError):
    def __init__(self, message: str):
        super().__init__(message, "validation_error")


# ==============================================================================
# Helpers
# ==============================================================================


def normalize_contents(items: list[ContentItem]) -> list[dict[str, Any]]:
    """Assign default ids (``c{n}``) and orders, return storable dicts."""
    contents = []
    for n, item in enumerate(items, start=1):
        data = item.model_dump(mode="json")
        data["content_id"] = data.get("content_id") or f"c{n}"
        if data.get("order") is None:
            data["order"] = n
        contents.append(data)
    return contents


def can_user_access(
    module: Module,
    user: UserResponse,
    completed_module_ids: set[str] | None = None,
) -> dict[str, Any]:
    """Decide whether ``user`` may open ``module``.

    Returns ``{"can_access": bool, "reason": str | None}``. Prerequisites are
    only checked when ``completed_module_ids`` is given.
    """
    admin = is_admin(user.role)

    if not module.is_active:
        return {"can_access": False, "reason": "Module is not active"}

    now = utc_now()
    if not module.is_within_availability(now):
        return {"can_access": False, "reason": "Module is not available at this time"}

    for content in module.contents:
        access = content.get("access_control") or {}
        required_role = access.get("required_role")
        if required_role and required_role != user.role and not admin:
            return {"can_access": False, "reason": "Insufficient role permissions"}

    if not admin and any(
        (c.get("access_control") or {}).get("requires_premium") for c in module.contents
    ):
        return {"can_access": False, "reason": "Premium subscription required"}

    if completed_module_ids is not None:
        missing = [
            m for m in module.prerequisite_module_ids if m not in completed_module_ids
        ]
        if missing:
            return {"can_access": False, "reason": "Prerequisites not completed"}

    return {"can_access": True, "reason": None}


# ==============================================================================
# Module Service
# ==============================================================================


class ModuleService:
    """Service for course modules."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        course_service: "CourseService",
    ):
        self.session = session
        self.keyspace = keyspace
        self.course_service = course_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._get_module = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.modules WHERE id = ?"
        )
        self._insert_module = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.modules
            (id, course_id, module_number, title, description, learning_objectives,
             difficulty, estimated_duration, contents, prerequisites, assessment,
             settings, tags, status, created_by, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._delete_module = self.session.prepare(
            f"DELETE FROM {self.keyspace}.modules WHERE id = ?"
        )

        self._get_modules_by_course = self.session.prepare(f"""
            SELECT module_id FROM {self.keyspace}.modules_by_course
            WHERE course_id = ?
        """)
        self._get_module_by_number = self.session.prepare(f"""
            SELECT module_id FROM {self.keyspace}.modules_by_course
            WHERE course_id = ? AND module_number = ?
        """)
        self._insert_module_by_course = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.modules_by_course
            (course_id, module_number, module_id, title) VALUES (?, ?, ?, ?)
        """)
        self._delete_module_by_course = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.modules_by_course
            WHERE course_id = ? AND module_number = ?
        """)

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get_module(self, module_id: UUID) -> Module | None:
        result = await self.session.aexecute(self._get_module, [module_id])
        row = result.one()
        return Module.from_row(row) if row else None

    async def require_module(self, module_id: UUID) -> Module:
        module = await self.get_module(module_id)
        if module is None:
            raise CourseModuleNotFoundError
        return module

    async def list_course_modules(self, course_id: UUID) -> list[Module]:
        """Modules of a course ordered by module_number."""
        rows = await self.session.aexecute(self._get_modules_by_course, [course_id])
        modules = []
        for row in rows:
            module = await self.get_module(row.module_id)
            if module:
                modules.append(module)
        return sorted(modules, key=lambda m: m.module_number)

    async def next_module(self, module_id: UUID) -> Module | None:
        module = await self.require_module(module_id)
        siblings = await self.list_course_modules(module.course_id)
        later = [
            m for m in siblings if m.module_number > module.module_number and m.is_active
        ]
        return later[0] if later else None

    async def previous_module(self, module_id: UUID) -> Module | None:
        module = await self.require_module(module_id)
        siblings = await self.list_course_modules(module.course_id)
        earlier = [
            m for m in siblings if m.module_number < module.module_number and m.is_active
        ]
        return earlier[-1] if earlier else None

    # ==========================================================================
    # Mutations
    # ==========================================================================

    async def _require_editable_course(
        self, course_id: UUID, actor: UserResponse
    ) -> Course:
        try:
            course = await self.course_service.require_course(course_id)
        except CourseNotFoundError as e:
            raise ModuleCourseNotFoundError from e
        if not (course.is_owned_by(actor.id) or is_admin(actor.role)):
            raise ModulePermissionError
        return course

    async def _ensure_number_free(
        self, course_id: UUID, module_number: int, module_id: UUID | None = None
    ) -> None:
        result = await self.session.aexecute(
            self._get_module_by_number, [course_id, module_number]
        )
        row = result.one()
        if row and row.module_id != module_id:
            raise DuplicateModuleNumberError(module_number)

    async def create_module(
        self,
        course_id: UUID,
        data: CreateModuleRequest,
        actor: UserResponse,
    ) -> Module:
        """Create a module and link it into the course syllabus.

        Raises:
            ModuleCourseNotFoundError: Course does not exist
            ModulePermissionError: Caller is neither the course owner nor an admin
            DuplicateModuleNumberError: module_number already used in the course
        """
        course = await self._require_editable_course(course_id, actor)
        await self._ensure_number_free(course_id, data.module_number)

        now = utc_now()
        module = Module(
            course_id=course_id,
            module_number=data.module_number,
            title=data.title,
            description=data.description,
            learning_objectives=data.learning_objectives,
            difficulty=data.difficulty,
            contents=normalize_contents(data.contents),
            prerequisites=data.prerequisites.model_dump(mode="json"),
            assessment=data.assessment.model_dump(mode="json"),
            settings=data.settings.model_dump(mode="json"),
            tags=data.tags,
            status=data.status.value,
            created_by=actor.id,
            created_at=now,
            updated_at=now,
        )
        return await self._insert_new(course, module)

    async def create_module_from_template(
        self,
        course_id: UUID,
        data: CreateModuleFromTemplateRequest,
        actor: UserResponse,
    ) -> Module:
        """Create a module whose contents come from content factory templates."""
        course = await self._require_editable_course(course_id, actor)
        await self._ensure_number_free(course_id, data.module_number)

        contents = []
        for order, item in enumerate(data.items, start=1):
            try:
                content = ContentFactory.create_from_template(
                    item.template, item.overrides
                )
            except (ValueError, KeyError) as e:
                raise ModuleValidationError(str(e)) from e
            contents.append(content.to_module_content(order))

        now = utc_now()
        module = Module(
            course_id=course_id,
            module_number=data.module_number,
            title=data.title,
            description=data.description,
            contents=contents,
            status=ModuleStatus.DRAFT.value,
            created_by=actor.id,
            created_at=now,
            updated_at=now,
        )
        return await self._insert_new(course, module)

    async def _insert_new(self, course: Course, module: Module) -> Module:
        await self._save(module)
        await self.session.aexecute(
            self._insert_module_by_course,
            [module.course_id, module.module_number, module.id, module.title],
        )
        await self.course_service.link_syllabus_module(
            course,
            module.id,
            module.title,
            estimated_hours=round(module.estimated_duration / 60, 2),
            topics=module.learning_objectives,
        )
        logger.info(
            "module_created",
            module_id=str(module.id),
            course_id=str(module.course_id),
            module_number=module.module_number,
            contents=len(module.contents),
        )
        return module

    async def update_module(
        self,
        module_id: UUID,
        data: UpdateModuleRequest,
        actor: UserResponse,
    ) -> Module:
        module = await self.require_module(module_id)
        await self._require_editable_course(module.course_id, actor)

        previous_number = module.module_number
        if data.module_number is not None and data.module_number != previous_number:
            await self._ensure_number_free(
                module.course_id, data.module_number, module.id
            )

        updates = data.model_dump(exclude_unset=True, mode="json")
        if "contents" in updates:
            updates["contents"] = normalize_contents(data.contents or [])
        for field in ("prerequisites", "assessment", "settings"):
            if field in updates and updates[field] is not None:
                updates[field] = {**getattr(module, field), **updates[field]}
        for field, value in updates.items():
            if value is not None:
                setattr(module, field, value)
        if "contents" in updates:
            module.contents = sorted(module.contents, key=lambda c: c.get("order", 0))

        module.updated_at = utc_now()
        await self._save(module)

        if module.module_number != previous_number:
            await self.session.aexecute(
                self._delete_module_by_course, [module.course_id, previous_number]
            )
        await self.session.aexecute(
            self._insert_module_by_course,
            [module.course_id, module.module_number, module.id, module.title],
        )

        logger.info("module_updated", module_id=str(module.id), fields=list(updates))
        return module

    async def delete_module(self, module_id: UUID, actor: UserResponse) -> None:
        """Delete a module and remove it from the course syllabus."""
        module = await self.require_module(module_id)
        course = await self._require_editable_course(module.course_id, actor)

        await self.session.aexecute(self._delete_module, [module.id])
        await self.session.aexecute(
            self._delete_module_by_course, [module.course_id, module.module_number]
        )
        await self.course_service.unlink_syllabus_module(course, module.id)
        logger.info(
            "module_deleted", module_id=str(module.id), course_id=str(course.id)
        )

    # ==========================================================================
    # Grading
    # ==========================================================================

    async def grade_module(
        self,
        module_id: UUID,
        scores: dict[str, Any],
        strategy: str = "weighted",
        options: dict[str, Any] | None = None,
    ) -> tuple[str, dict[str, Any]]:
        """Grade ``scores`` for a module with the named strategy.

        Returns the strategy description and the grade result.
        """
        await self.require_module(module_id)
        try:
            grading = get_grading_strategy(strategy, **(options or {}))
        except (ValueError, TypeError) as e:
            raise ModuleValidationError(str(e)) from e

        try:
            result = GradeCalculator(grading).calculate_student_grade(scores)
        except (KeyError, TypeError) as e:
            raise ModuleValidationError(f"Invalid scores: {e}") from e
        return grading.get_description(), result

    async def _save(self, module: Module) -> None:
        await self.session.aexecute(
            self._insert_module,
            [
                module.id,
                module.course_id,
                module.module_number,
                module.title,
                module.description,
                module.learning_objectives,
                module.difficulty,
                module.estimated_duration,
                to_json_column(module.contents),
                to_json_column(module.prerequisites),
                to_json_column(module.assessment),
                to_json_column(module.settings),
                module.tags,
                module.status,
                module.created_by,
                module.created_at,
                module.updated_at,
            ],
        )
