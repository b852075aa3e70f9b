"""Pydantic schemas for course modules."""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from learntrack.auth.permissions import UserRole
from learntrack.modules.models import ContentType, Module, ModuleStatus


# ==============================================================================
# Nested documents
# ==============================================================================


class AccessControl(BaseModel):
    requires_premium: bool = False
    required_role: UserRole | None = None
    available_from: datetime | None = None
    available_until: datetime | None = None


class ContentItem(BaseModel):
    """A single piece of content inside a module."""

    content_id: str | None = Field(None, description="Defaults to c{n}")
    type: ContentType
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    duration: int = Field(default=0, ge=0, description="Minutes")
    order: int | None = Field(None, ge=0)
    is_required: bool = True
    content_data: dict[str, Any] = Field(default_factory=dict)
    complexity: int = Field(default=1, ge=1, le=5)
    access_control: AccessControl = Field(default_factory=AccessControl)


class ModulePrerequisites(BaseModel):
    modules: list[UUID] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    courses: list[UUID] = Field(default_factory=list)


class ModuleAssessment(BaseModel):
    is_required: bool = False
    type: str = "quiz"
    passing_score: int = Field(default=70, ge=0, le=100)
    weight_in_course: float = Field(default=0, ge=0, le=100)


class ModuleSettings(BaseModel):
    is_active: bool = True
    allow_skip: bool = False
    sequential_access: bool = True
    max_attempts: int = Field(default=3, ge=1)
    available_from: datetime | None = None
    available_until: datetime | None = None


# ==============================================================================
# Requests
# ==============================================================================


class CreateModuleRequest(BaseModel):
    module_number: int = Field(..., ge=1)
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=2000)
    learning_objectives: list[str] = Field(default_factory=list)
    difficulty: Literal["Beginner", "Intermediate", "Advanced"] = "Beginner"
    contents: list[ContentItem] = Field(default_factory=list)
    prerequisites: ModulePrerequisites = Field(default_factory=ModulePrerequisites)
    assessment: ModuleAssessment = Field(default_factory=ModuleAssessment)
    settings: ModuleSettings = Field(default_factory=ModuleSettings)
    tags: list[str] = Field(default_factory=list)
    status: ModuleStatus = ModuleStatus.DRAFT


class UpdateModuleRequest(BaseModel):
    """Partial module update."""

    module_number: int | None = Field(None, ge=1)
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    learning_objectives: list[str] | None = None
    difficulty: Literal["Beginner", "Intermediate", "Advanced"] | None = None
    contents: list[ContentItem] | None = None
    prerequisites: ModulePrerequisites | None = None
    assessment: ModuleAssessment | None = None
    settings: ModuleSettings | None = None
    tags: list[str] | None = None
    status: ModuleStatus | None = None


class TemplateItem(BaseModel):
    template: str = Field(..., description="Content template name")
    overrides: dict[str, Any] = Field(default_factory=dict)


class CreateModuleFromTemplateRequest(BaseModel):
    module_number: int = Field(..., ge=1)
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    items: list[TemplateItem] = Field(..., min_length=1)


class GradeModuleRequest(BaseModel):
    strategy: Literal["weighted", "pass_fail", "competency"] = "weighted"
    scores: dict[str, Any]
    options: dict[str, Any] = Field(
        default_factory=dict, description="Strategy constructor options"
    )


# ==============================================================================
# Responses
# ==============================================================================


class ModuleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    course_id: UUID
    module_number: int
    title: str
    description: str = ""
    learning_objectives: list[str] = Field(default_factory=list)
    difficulty: str
    estimated_duration: int
    contents: list[dict[str, Any]] = Field(default_factory=list)
    prerequisites: dict[str, Any] = Field(default_factory=dict)
    assessment: dict[str, Any] = Field(default_factory=dict)
    settings: dict[str, Any] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    status: str
    created_by: UUID | None = None
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, module: Module) -> "ModuleResponse":
        return cls(
            id=module.id,
            course_id=module.course_id,
            module_number=module.module_number,
            title=module.title,
            description=module.description,
            learning_objectives=module.learning_objectives,
            difficulty=module.difficulty,
            estimated_duration=module.estimated_duration,
            contents=module.contents,
            prerequisites=module.prerequisites,
            assessment=module.assessment,
            settings=module.settings,
            tags=module.tags,
            status=module.status,
            created_by=module.created_by,
            created_at=module.created_at,
            updated_at=module.updated_at,
        )


class ModuleListResponse(BaseModel):
    modules: list[ModuleResponse]
    total: int


class NeighbourResponse(BaseModel):
    module: ModuleResponse | None = None


class AccessCheckResponse(BaseModel):
    can_access: bool
    reason: str | None = None


class GradeResponse(BaseModel):
    strategy: str
    description: str
    result: dict[str, Any]


class MessageResponse(BaseModel):
    message: str
