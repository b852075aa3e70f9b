"""Authentication API endpoints.

Provides routes for:
- Registration and login
- Profile management
- Admin user listing
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from learntrack.auth.dependencies import AdminUser, AuthServiceDep, CurrentUser
from learntrack.auth.permissions import UserRole
from learntrack.auth.schemas import (
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UpdateGoalsRequest,
    UpdateProfileRequest,
    UserListResponse,
    UserResponse,
)
from learntrack.auth.service import AuthError


router = APIRouter(prefix="/v1/auth", tags=["auth"])


def handle_auth_error(error: AuthError) -> HTTPException:
    """Convert AuthError to HTTPException."""
    status_map = {
        "invalid_credentials": status.HTTP_401_UNAUTHORIZED,
        "user_inactive": status.HTTP_403_FORBIDDEN,
        "user_not_found": status.HTTP_404_NOT_FOUND,
        "user_exists": status.HTTP_409_CONFLICT,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )


@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register new user",
    responses={409: {"description": "Email already registered"}},
)
async def register(data: RegisterRequest, auth_service: AuthServiceDep) -> TokenResponse:
    """Register an account and return an access token.

    Self-registration as admin is not allowed; such requests are created
    as students.
    """
    if data.role == UserRole.ADMIN:
        data = data.model_copy(update={"role": UserRole.STUDENT})
    try:
        user = await auth_service.register_user(data)
    except AuthError as e:
        raise handle_auth_error(e) from e
    return auth_service.issue_token(user)


@router.post("/login", response_model=TokenResponse, summary="User login")
async def login(data: LoginRequest, auth_service: AuthServiceDep) -> TokenResponse:
    try:
        user = await auth_service.authenticate_user(data.email, data.password)
    except AuthError as e:
        raise handle_auth_error(e) from e
    return auth_service.issue_token(user)


@router.get("/me", response_model=UserResponse, summary="Current user profile")
async def get_me(user: CurrentUser, auth_service: AuthServiceDep) -> UserResponse:
    try:
        entity = await auth_service.require_user(UUID(str(user.id)))
    except AuthError as e:
        raise handle_auth_error(e) from e
    return auth_service.to_response(entity)


@router.put("/me", response_model=UserResponse, summary="Update profile")
async def update_me(
    data: UpdateProfileRequest,
    user: CurrentUser,
    auth_service: AuthServiceDep,
) -> UserResponse:
    try:
        entity = await auth_service.update_profile(UUID(str(user.id)), data.name)
    except AuthError as e:
        raise handle_auth_error(e) from e
    return auth_service.to_response(entity)


@router.get("/users", response_model=UserListResponse, summary="List users (admin)")
async def list_users(
    admin: AdminUser,
    auth_service: AuthServiceDep,
    role: UserRole | None = Query(None, description="Filter by role"),
) -> UserListResponse:
    users = await auth_service.list_users(role)
    items = [auth_service.to_response(u) for u in users]
    return UserListResponse(items=items, total=len(items))


@router.put("/me/goals", response_model=UserResponse, summary="Update learning goals")
async def update_my_goals(
    data: UpdateGoalsRequest,
    user: CurrentUser,
    auth_service: AuthServiceDep,
) -> UserResponse:
    """Replace learning goals; omitted periods fall back to the defaults."""
    user_id = UUID(str(user.id))
    try:
        await auth_service.update_learning_goals(
            user_id, daily=data.daily, weekly=data.weekly, monthly=data.monthly
        )
        entity = await auth_service.require_user(user_id)
    except AuthError as e:
        raise handle_auth_error(e) from e
    return auth_service.to_response(entity)
