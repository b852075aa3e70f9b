"""Request authentication and role guards.

Routes declare who may call them through the ``Annotated`` aliases at the
bottom of this module (``CurrentUser``, ``InstructorUser``, ``AdminUser``).
"""

from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from learntrack.auth.permissions import UserRole, has_permission
from learntrack.auth.schemas import UserResponse
from learntrack.auth.security import InvalidTokenError, read_access_token
from learntrack.auth.service import AuthService
from learntrack.core.context import set_user_id
from learntrack.core.logging import get_logger
from learntrack.core.services import ServiceSlot


logger = get_logger(__name__)

get_auth_service = ServiceSlot[AuthService]("AuthService")
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]

# auto_error=False: a missing header must produce our own 401 body, not 403
bearer_scheme = HTTPBearer(auto_error=False)
BearerCredentials = Annotated[
    HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
]


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _authenticate(token: str) -> UserResponse:
    claims = read_access_token(token)
    set_user_id(claims.user_id, role=claims.role)
    return UserResponse(
        id=claims.user_id, email=claims.email, role=claims.role, name=claims.name
    )


async def get_current_user(credentials: BearerCredentials) -> UserResponse:
    if credentials is None:
        raise _unauthorized("Not authorized, no token")
    try:
        return _authenticate(credentials.credentials)
    except InvalidTokenError as e:
        logger.info("token_rejected", reason=str(e))
        raise _unauthorized("Not authorized, token failed") from e


def role_guard(
    allowed: Callable[[str], bool],
) -> Callable[[UserResponse], Awaitable[UserResponse]]:
    """Build a dependency that lets a user through when ``allowed(role)`` holds."""

    async def guard(
        user: Annotated[UserResponse, Depends(get_current_user)],
    ) -> UserResponse:
        if not allowed(user.role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"User role {user.role} is not authorized to access this route",
            )
        return user

    return guard


def at_least(role: UserRole) -> Callable[[UserResponse], Awaitable[UserResponse]]:
    """Hierarchical check: admin passes any instructor guard."""
    return role_guard(lambda actual: has_permission(actual, role))


def exactly(*roles: UserRole) -> Callable[[UserResponse], Awaitable[UserResponse]]:
    names = {r.value for r in roles}
    return role_guard(lambda actual: actual in names)


CurrentUser = Annotated[UserResponse, Depends(get_current_user)]
InstructorUser = Annotated[UserResponse, Depends(at_least(UserRole.INSTRUCTOR))]
AdminUser = Annotated[UserResponse, Depends(exactly(UserRole.ADMIN))]
