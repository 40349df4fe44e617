"""Application error taxonomy and the FastAPI handlers that render it."""

from typing import Any, Dict, List, Optional, Union

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings

logger = structlog.get_logger(__name__)

ErrorItem = Union[str, Dict[str, str]]


class AppError(Exception):
    """Base class for errors that map onto a JSON error response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, **payload: Any):
        self.message = message or self.default_message
        self.payload = payload
        super().__init__(self.message)

    def to_content(self) -> Dict[str, Any]:
        content: Dict[str, Any] = {"success": False, "message": self.message}
        content.update(self.payload)
        return content


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation failed"

    def __init__(self, errors: Optional[List[ErrorItem]] = None, message: Optional[str] = None):
        self.errors = list(errors or [])
        if self.errors:
            super().__init__(message, errors=self.errors)
        else:
            super().__init__(message)


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class AuthorizationError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Insufficient permissions"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class ConflictError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Resource already exists"


class RateLimitError(AppError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many requests, please try again later."


class InternalError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"


def _request_validation_errors(exc: RequestValidationError) -> List[Dict[str, str]]:
    errors = []
    for error in exc.errors():
        # loc looks like ("body", "email") or ("path", "goal_id")
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({
            "field": ".".join(location) or "body",
            "message": error.get("msg", "Invalid value"),
        })
    return errors


def register_exception_handlers(app: FastAPI) -> None:
    """Install the JSON error handlers on the application."""

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        logger.info("validation_failed", path=request.url.path, errors=exc.errors)
        return JSONResponse(status_code=exc.status_code, content=exc.to_content())

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("request_failed", path=request.url.path, error=exc.message)
        else:
            logger.info(
                "request_rejected",
                path=request.url.path,
                status_code=exc.status_code,
                error=exc.message,
            )
        return JSONResponse(status_code=exc.status_code, content=exc.to_content())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = _request_validation_errors(exc)
        logger.info("request_validation_failed", path=request.url.path, errors=errors)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "message": "Validation failed", "errors": errors},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            message = "Endpoint not found"
        elif exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
            message = "Method not allowed"
        else:
            message = str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": message},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler."""
        logger.exception("unhandled_exception", path=request.url.path, method=request.method)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "message": str(exc) if settings.DEBUG else "Internal server error",
            },
        )
