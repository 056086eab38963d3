# postflow/services/errors.py
from fastapi import status


class PostflowError(Exception):
    """Base for domain errors; the app maps ``status_code`` to the HTTP response."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(PostflowError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidStateError(ValidationError):
    pass


class AuthenticationError(PostflowError):
    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(PostflowError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(PostflowError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(PostflowError):
    status_code = status.HTTP_409_CONFLICT


class UpstreamError(PostflowError):
    status_code = status.HTTP_502_BAD_GATEWAY
