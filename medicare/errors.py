"""
Domain errors raised by the service layer.
Each carries the HTTP status the API boundary translates it to.
"""
from fastapi import status


class MedicareError(Exception):
    """Base class for recoverable, caller-facing errors"""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(MedicareError):
    """Missing, malformed or out-of-range input"""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthorizationError(MedicareError):
    """Role or ownership violation"""

    status_code = status.HTTP_403_FORBIDDEN


class ConflictError(MedicareError):
    """Business-rule collision: double booking, overlapping windows, duplicate rating"""

    status_code = status.HTTP_409_CONFLICT


class NotFoundError(MedicareError):
    """Referenced entity does not exist"""

    status_code = status.HTTP_404_NOT_FOUND
