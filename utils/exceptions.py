# utils/exceptions.py
from typing import Any, Optional
from fastapi import status


class LMSException(Exception):
    """Base class for errors that map onto an HTTP response"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None,
                 error: Optional[Any] = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.error = error
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"message": self.message}
        if self.error is not None:
            body["error"] = self.error
        return body


class NotFoundError(LMSException):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class AlreadyExistsError(LMSException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Resource already exists"


class AlreadyEnrolledError(AlreadyExistsError):
    default_message = "Already enrolled in this course"


class AlreadyReviewedError(AlreadyExistsError):
    default_message = "Already reviewed this course"


class NotEnrolledError(LMSException):
    # Progress updates report 404, reviews report 400
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not enrolled in this course"


class ForbiddenError(LMSException):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not authorized"


class ValidationFailure(LMSException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation failed"


class InvalidIdError(ValidationFailure):
    default_message = "Invalid id"


class ConflictError(LMSException):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Concurrent update, please retry"
