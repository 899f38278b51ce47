"""Exception handlers rendering every failure into the error envelope."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from studiohub.core.exceptions import StudioHubError

logger = structlog.get_logger()

_STATUS_TO_CODE = {
    400: "VALIDATION_ERROR",
    401: "UNAUTHENTICATED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    409: "CONFLICT",
    423: "ACCOUNT_LOCKED",
    500: "INTERNAL_ERROR",
}


def error_response(
    status_code: int,
    code: str,
    message: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build a ``{"success": false, "error", "message"}`` response."""
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": code, "message": message},
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers for domain, HTTP, validation and unexpected errors."""

    @app.exception_handler(StudioHubError)
    async def handle_domain_error(request: Request, exc: StudioHubError) -> JSONResponse:
        if exc.status_code >= 500:
            # Internal details stay in the log
            logger.error(
                "domain_error",
                path=request.url.path,
                method=request.method,
                error_code=exc.code,
                message=exc.message,
            )
            return error_response(500, "INTERNAL_ERROR", "Internal server error")

        logger.info(
            "request_rejected",
            path=request.url.path,
            method=request.method,
            status_code=exc.status_code,
            error_code=exc.code,
        )
        return error_response(exc.status_code, exc.code, exc.message)

    @app.exception_handler(HTTPException)
    async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
        detail: Any = exc.detail
        if isinstance(detail, dict):
            code = detail.get("error") or _STATUS_TO_CODE.get(exc.status_code, "ERROR")
            message = detail.get("message", "")
        else:
            code = _STATUS_TO_CODE.get(exc.status_code, "ERROR")
            message = str(detail)
        return error_response(exc.status_code, code, message, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(part) for part in first.get("loc", ())[1:])
        message = first.get("msg", "Invalid request")
        logger.info("request_validation_failed", path=request.url.path, field=field)
        return error_response(
            400, "VALIDATION_ERROR", f"{field}: {message}" if field else message
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error_type=type(exc).__name__,
        )
        return error_response(500, "INTERNAL_ERROR", "Internal server error")
