"""Auth API routes for registration, login, token refresh and sessions."""

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from studiohub.core.auth.jwt import TokenConfig
from studiohub.core.auth.service import AuthResult, AuthService
from studiohub.core.auth.types import DeviceInfo
from studiohub.core.exceptions import StudioHubError
from studiohub.entrypoints.api.deps import Settings, get_auth_service, get_settings
from studiohub.entrypoints.api.errors import error_response
from studiohub.entrypoints.api.middleware.jwt_auth import ACCESS_COOKIE, RequireUser
from studiohub.entrypoints.api.schemas import company_payload, envelope, user_payload

logger = structlog.get_logger()

router = APIRouter(prefix="/auth", tags=["auth"])

REFRESH_COOKIE = "refresh_token"
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
SettingsDep = Annotated[Settings, Depends(get_settings)]


# Request models
class RegisterRequest(BaseModel):
    """Registration request body."""

    company_name: str = Field(..., min_length=2, max_length=100)
    email: str = Field(..., pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=6)
    name: str | None = Field(None, max_length=100)


class LoginRequest(BaseModel):
    """Login request body."""

    email: str = Field(..., pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=1)


def device_from_request(request: Request) -> DeviceInfo:
    """Client metadata recorded with a new session."""
    return DeviceInfo(
        user_agent=request.headers.get("user-agent") or "unknown",
        ip=request.client.host if request.client else "unknown",
    )


def set_auth_cookies(
    response: Response,
    result: AuthResult,
    config: TokenConfig,
    secure: bool,
) -> None:
    """Set both auth cookies with their token lifetimes."""
    response.set_cookie(
        ACCESS_COOKIE,
        result.access_token,
        max_age=int(config.access_ttl.total_seconds()),
        httponly=True,
        secure=secure,
        samesite="strict",
        path="/",
    )
    response.set_cookie(
        REFRESH_COOKIE,
        result.refresh_token,
        max_age=int(config.refresh_ttl.total_seconds()),
        httponly=True,
        secure=secure,
        samesite="strict",
        path="/",
    )


def clear_auth_cookies(response: Response, secure: bool) -> None:
    """Expire both auth cookies."""
    for name in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(
            name,
            httponly=True,
            secure=secure,
            samesite="strict",
            path="/",
        )


@router.post("/register", status_code=201)
async def register(
    body: RegisterRequest,
    request: Request,
    response: Response,
    service: AuthServiceDep,
    settings: SettingsDep,
) -> dict[str, Any]:
    """Create a company with its super-admin user and sign them in.

    Args:
        body: Registration info.
        request: The current request, for device metadata.
        response: Response the auth cookies are set on.
        service: Auth service.
        settings: Application settings.

    Returns:
        The new company and user.
    """
    kwargs: dict[str, Any] = {}
    if body.name and body.name.strip():
        kwargs["admin_name"] = body.name.strip()

    result = await service.register(
        company_name=body.company_name,
        email=body.email,
        password=body.password,
        device=device_from_request(request),
        **kwargs,
    )
    set_auth_cookies(response, result, service.tokens.config, settings.is_production)

    return envelope(
        {"company": company_payload(result.company), "user": user_payload(result.user)},
        message="Registration successful",
    )


@router.post("/login")
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    service: AuthServiceDep,
    settings: SettingsDep,
) -> dict[str, Any]:
    """Authenticate a user and set auth cookies.

    Args:
        body: Login credentials.
        request: The current request, for device metadata.
        response: Response the auth cookies are set on.
        service: Auth service.
        settings: Application settings.

    Returns:
        The signed-in user and their company.
    """
    result = await service.login(
        email=body.email,
        password=body.password,
        device=device_from_request(request),
    )
    set_auth_cookies(response, result, service.tokens.config, settings.is_production)

    return envelope(
        {"company": company_payload(result.company), "user": user_payload(result.user)},
        message="Login successful",
    )


@router.post("/refresh-token")
async def refresh_token(
    request: Request,
    service: AuthServiceDep,
    settings: SettingsDep,
) -> JSONResponse:
    """Rotate the refresh token and issue a new access token.

    Every failure, including unexpected ones, clears both cookies so the
    client never keeps a half-valid pair.
    """
    try:
        result = await service.refresh(request.cookies.get(REFRESH_COOKIE))
    except StudioHubError as e:
        if e.status_code >= 500:
            logger.error("refresh_failed", error_code=e.code, message=e.message)
            failure = error_response(500, "INTERNAL_ERROR", "Internal server error")
        else:
            failure = error_response(e.status_code, e.code, e.message)
        clear_auth_cookies(failure, settings.is_production)
        return failure
    except Exception:
        logger.exception("refresh_failed_unexpectedly")
        failure = error_response(500, "INTERNAL_ERROR", "Internal server error")
        clear_auth_cookies(failure, settings.is_production)
        return failure

    response = JSONResponse(
        envelope({"user": user_payload(result.user)}, message="Token refreshed")
    )
    set_auth_cookies(response, result, service.tokens.config, settings.is_production)
    return response


@router.post("/logout")
async def logout(
    auth: RequireUser,
    request: Request,
    response: Response,
    service: AuthServiceDep,
    settings: SettingsDep,
) -> dict[str, Any]:
    """End the current session, or every session when no refresh cookie is sent."""
    await service.logout(auth.user_public_id, request.cookies.get(REFRESH_COOKIE))
    clear_auth_cookies(response, settings.is_production)
    return envelope(message="Logged out")


@router.get("/me")
async def get_current_user(
    auth: RequireUser,
    service: AuthServiceDep,
) -> dict[str, Any]:
    """Get the current authenticated user and their company."""
    user, company = await service.whoami(auth.user_public_id)
    return envelope({"user": user_payload(user), "company": company_payload(company)})


@router.get("/sessions")
async def list_sessions(
    auth: RequireUser,
    service: AuthServiceDep,
) -> dict[str, Any]:
    """List the caller's active sessions, pruning expired ones first."""
    sessions = await service.list_sessions(auth.user_public_id)
    return envelope({"sessions": [s.model_dump(mode="json") for s in sessions]})
