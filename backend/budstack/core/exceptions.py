"""
Domain exceptions raised by services and mapped to HTTP responses by the API layer
"""
from fastapi import HTTPException, status


class BudStackError(Exception):
    """Base class for service-level errors"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BudStackError):
    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(BudStackError):
    status_code = status.HTTP_401_UNAUTHORIZED


class NotFoundError(BudStackError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(BudStackError):
    status_code = status.HTTP_409_CONFLICT


class PermissionDeniedError(BudStackError):
    status_code = status.HTTP_403_FORBIDDEN


class ExternalServiceError(BudStackError):
    """An upstream API (Dr. Green, GitHub, Resend) failed or answered badly"""
    status_code = status.HTTP_502_BAD_GATEWAY


class MissingCredentialsError(BudStackError):
    """Tenant has no Dr. Green API credentials configured"""
    status_code = status.HTTP_400_BAD_REQUEST


def to_http_exception(error: BudStackError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.message)
