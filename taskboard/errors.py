"""Typed errors raised by the ordering subsystem.

Route handlers never build error responses for these by hand; the exception
handler registered in ``taskboard.main`` maps each class to its status code and
renders ``{"error": message, "code": code}``.
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse


class OrderingError(Exception):
    code = "ordering_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Ordering operation failed"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidTitle(OrderingError):
    code = "invalid_title"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Title must be between 1 and 255 characters"


class ValidationFailed(OrderingError):
    code = "validation_failed"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid task fields"


class InvalidAnchor(OrderingError):
    code = "invalid_anchor"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Anchor task is not in the target column"


class InvalidColumn(OrderingError):
    code = "invalid_column"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Column not found"


class TaskNotFound(OrderingError):
    code = "task_not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Task not found"


class ContentionError(OrderingError):
    """The store stayed contended after the automatic retry; the caller may retry."""

    code = "contention"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Board is busy, please retry"


class PositionRangeExhausted(OrderingError):
    """Even a freshly rebalanced column cannot fit another position."""

    code = "position_range_exhausted"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "No ordering positions left in column"


async def ordering_error_handler(request: Request, exc: OrderingError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "code": exc.code},
    )
