"""JWT authentication middleware."""

from dataclasses import dataclass
from typing import Annotated

import structlog
from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from studiohub.core.auth.service import AuthService
from studiohub.core.auth.types import ADMIN_ROLES, UserRole
from studiohub.core.exceptions import AuthenticationError
from studiohub.core.users.service import Actor
from studiohub.entrypoints.api.deps import get_auth_service

logger = structlog.get_logger()

ACCESS_COOKIE = "access_token"

# Bearer header is the fallback when no access cookie is sent
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class AuthContext:
    """Context from a verified access token."""

    user_public_id: str
    company_public_id: str
    role: UserRole
    name: str
    email: str

    @property
    def is_admin(self) -> bool:
        """Whether the caller holds an admin role."""
        return self.role in ADMIN_ROLES

    @property
    def actor(self) -> Actor:
        """The caller as seen by the user-management service."""
        return Actor(
            public_id=self.user_public_id,
            company_public_id=self.company_public_id,
            role=self.role,
        )


async def verify_access_token(
    request: Request,
    service: Annotated[AuthService, Depends(get_auth_service)],
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),  # noqa: B008
) -> AuthContext:
    """Verify the access token and return the caller's context.

    The ``access_token`` cookie wins over an ``Authorization: Bearer``
    header. Any failure answers 401.

    Args:
        request: The current request.
        service: Auth service.
        credentials: Bearer token credentials.

    Returns:
        AuthContext for the active, unlocked caller.

    Raises:
        HTTPException: 401 if the token is missing or invalid, or the user
            may not sign in.
    """
    token = request.cookies.get(ACCESS_COOKIE)
    if not token and credentials:
        token = credentials.credentials

    try:
        user = await service.authenticate(token)
    except AuthenticationError as e:
        logger.info("access_token_rejected", reason=e.code, path=request.url.path)
        raise HTTPException(
            status_code=401,
            detail={"error": e.code, "message": e.message},
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    context = AuthContext(
        user_public_id=user.public_id,
        company_public_id=user.company_public_id,
        role=user.role,
        name=user.name,
        email=user.email,
    )

    # Store in request state for downstream use
    request.state.user = context

    logger.debug(
        "access_token_verified",
        user_id=context.user_public_id,
        company_id=context.company_public_id,
        role=context.role.value,
    )

    return context


async def require_admin(
    auth: Annotated[AuthContext, Depends(verify_access_token)],
) -> AuthContext:
    """Dependency admitting only ``admin`` and ``super_admin`` callers.

    Raises:
        HTTPException: 403 for any other role.
    """
    if not auth.is_admin:
        raise HTTPException(
            status_code=403,
            detail={"error": "FORBIDDEN", "message": "Admin access required"},
        )
    return auth


# Common dependencies for convenience
RequireUser = Annotated[AuthContext, Depends(verify_access_token)]
RequireAdmin = Annotated[AuthContext, Depends(require_admin)]
