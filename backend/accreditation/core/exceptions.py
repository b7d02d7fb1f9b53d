import structlog
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = structlog.get_logger()


class AccreditationError(Exception):
    """Base exception for the accreditation engine."""

    def __init__(self, message: str, status_code: int = 500) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class NotFoundError(AccreditationError):
    """Absent, soft-deleted, or outside the actor's tenant."""

    def __init__(self, resource: str, resource_id: str) -> None:
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(
            message=f"{resource} with id '{resource_id}' not found",
            status_code=404,
        )


class AuthorizationError(AccreditationError):
    def __init__(self, message: str = "You are not allowed to perform this action") -> None:
        super().__init__(message=message, status_code=403)


class StateConflictError(AccreditationError):
    def __init__(self, message: str) -> None:
        super().__init__(message=message, status_code=409)


class ValidationError(AccreditationError):
    def __init__(self, message: str, errors: dict[str, str] | None = None) -> None:
        self.errors = errors or {}
        super().__init__(message=message, status_code=422)


class PersistenceError(AccreditationError):
    def __init__(self, message: str = "The operation could not be completed") -> None:
        super().__init__(message=message, status_code=500)


async def accreditation_error_handler(request: Request, exc: AccreditationError) -> JSONResponse:
    content: dict[str, object] = {"error": exc.message, "type": type(exc).__name__}
    if isinstance(exc, ValidationError) and exc.errors:
        content["errors"] = exc.errors
    return JSONResponse(status_code=exc.status_code, content=content)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail, "type": "HTTPException"},
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Database failures outside an explicit commit surface as PersistenceError."""
    logger.error("database_operation_failed", path=request.url.path, error=str(exc))
    return await accreditation_error_handler(request, PersistenceError())
