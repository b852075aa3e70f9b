"""Course module API endpoints."""

from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from learntrack.auth.dependencies import CurrentUser, InstructorUser
from learntrack.modules.dependencies import ModuleServiceDep
from learntrack.modules.schemas import (
    AccessCheckResponse,
    CreateModuleFromTemplateRequest,
    CreateModuleRequest,
    GradeModuleRequest,
    GradeResponse,
    MessageResponse,
    ModuleListResponse,
    ModuleResponse,
    NeighbourResponse,
    UpdateModuleRequest,
)
from learntrack.modules.service import ModuleError
from learntrack.progress.dependencies import ProgressServiceDep
from learntrack.progress.service import ProgressError


router = APIRouter(prefix="/v1/modules", tags=["modules"])


def handle_module_error(error: ModuleError | ProgressError) -> HTTPException:
    """Convert ModuleError to HTTPException."""
    status_map = {
        "module_not_found": status.HTTP_404_NOT_FOUND,
        "course_not_found": status.HTTP_404_NOT_FOUND,
        "permission_denied": status.HTTP_403_FORBIDDEN,
        "module_number_exists": status.HTTP_409_CONFLICT,
        "validation_error": status.HTTP_400_BAD_REQUEST,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )


@router.get(
    "/course/{course_id}",
    response_model=ModuleListResponse,
    summary="List modules of a course",
)
async def list_course_modules(
    course_id: UUID, user: CurrentUser, module_service: ModuleServiceDep
) -> ModuleListResponse:
    modules = await module_service.list_course_modules(course_id)
    return ModuleListResponse(
        modules=[ModuleResponse.from_entity(m) for m in modules],
        total=len(modules),
    )


@router.post(
    "/course/{course_id}",
    response_model=ModuleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a module",
    responses={409: {"description": "Module number already used in the course"}},
)
async def create_module(
    course_id: UUID,
    data: CreateModuleRequest,
    user: InstructorUser,
    module_service: ModuleServiceDep,
) -> ModuleResponse:
    try:
        module = await module_service.create_module(course_id, data, user)
    except ModuleError as e:
        raise handle_module_error(e) from e
    return ModuleResponse.from_entity(module)


@router.post(
    "/course/{course_id}/from-template",
    response_model=ModuleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a module from content templates",
)
async def create_module_from_template(
    course_id: UUID,
    data: CreateModuleFromTemplateRequest,
    user: InstructorUser,
    module_service: ModuleServiceDep,
) -> ModuleResponse:
    try:
        module = await module_service.create_module_from_template(
            course_id, data, user
        )
    except ModuleError as e:
        raise handle_module_error(e) from e
    return ModuleResponse.from_entity(module)


@router.get("/{module_id}", response_model=ModuleResponse, summary="Get a module")
async def get_module(
    module_id: UUID, user: CurrentUser, module_service: ModuleServiceDep
) -> ModuleResponse:
    try:
        module = await module_service.require_module(module_id)
    except ModuleError as e:
        raise handle_module_error(e) from e
    return ModuleResponse.from_entity(module)


@router.put("/{module_id}", response_model=ModuleResponse, summary="Update a module")
async def update_module(
    module_id: UUID,
    data: UpdateModuleRequest,
    user: InstructorUser,
    module_service: ModuleServiceDep,
) -> ModuleResponse:
    try:
        module = await module_service.update_module(module_id, data, user)
    except ModuleError as e:
        raise handle_module_error(e) from e
    return ModuleResponse.from_entity(module)


@router.delete(
    "/{module_id}", response_model=MessageResponse, summary="Delete a module"
)
async def delete_module(
    module_id: UUID, user: InstructorUser, module_service: ModuleServiceDep
) -> MessageResponse:
    try:
        await module_service.delete_module(module_id, user)
    except ModuleError as e:
        raise handle_module_error(e) from e
    return MessageResponse(message="Module deleted successfully")


@router.get(
    "/{module_id}/next",
    response_model=NeighbourResponse,
    summary="Next module in the course",
)
async def next_module(
    module_id: UUID, user: CurrentUser, module_service: ModuleServiceDep
) -> NeighbourResponse:
    try:
        module = await module_service.next_module(module_id)
    except ModuleError as e:
        raise handle_module_error(e) from e
    return NeighbourResponse(module=ModuleResponse.from_entity(module) if module else None)


@router.get(
    "/{module_id}/previous",
    response_model=NeighbourResponse,
    summary="Previous module in the course",
)
async def previous_module(
    module_id: UUID, user: CurrentUser, module_service: ModuleServiceDep
) -> NeighbourResponse:
    try:
        module = await module_service.previous_module(module_id)
    except ModuleError as e:
        raise handle_module_error(e) from e
    return NeighbourResponse(module=ModuleResponse.from_entity(module) if module else None)


@router.get(
    "/{module_id}/access",
    response_model=AccessCheckResponse,
    summary="Check whether the current user can access a module",
)
async def check_access(
    module_id: UUID, user: CurrentUser, progress_service: ProgressServiceDep
) -> AccessCheckResponse:
    try:
        decision = await progress_service.module_access(user, module_id)
    except ProgressError as e:
        raise handle_module_error(e) from e
    return AccessCheckResponse(**decision)


@router.post(
    "/{module_id}/grade",
    response_model=GradeResponse,
    summary="Grade scores with a grading strategy",
)
async def grade_module(
    module_id: UUID,
    data: GradeModuleRequest,
    user: InstructorUser,
    module_service: ModuleServiceDep,
) -> GradeResponse:
    try:
        description, result = await module_service.grade_module(
            module_id, data.scores, data.strategy, data.options
        )
    except ModuleError as e:
        raise handle_module_error(e) from e
    return GradeResponse(strategy=data.strategy, description=description, result=result)
