"""Domain errors raised by the services and rendered by the API layer."""

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class HallbookError(ValueError):
    kind = "error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(HallbookError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(HallbookError):
    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT


class PolicyViolationError(HallbookError):
    kind = "policy_violation"
    status_code = status.HTTP_400_BAD_REQUEST


class ForbiddenError(HallbookError):
    kind = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class ValidationError(HallbookError):
    kind = "validation_error"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


async def hallbook_error_handler(request: Request, exc: HallbookError) -> JSONResponse:
    logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "kind": exc.kind},
    )


def register_exception_handlers(app):
    app.add_exception_handler(HallbookError, hallbook_error_handler)
