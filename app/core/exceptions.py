from typing import Optional
from fastapi import HTTPException, status
from app.core.constants import StatusCodeError


class AppException(HTTPException):
    """HTTP exception carrying a numeric application error code."""

    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail_default = "Internal server error"
    code_default = StatusCodeError.UNKNOWN_ERROR

    def __init__(
        self,
        detail: Optional[str] = None,
        code: Optional[StatusCodeError] = None,
        headers: Optional[dict] = None
    ):
        super().__init__(
            status_code=self.status_code_default,
            detail=detail or self.detail_default,
            headers=headers
        )
        self.code = code or self.code_default


class BadRequestException(AppException):
    """Exception raised when a request breaks a business rule."""
    status_code_default = status.HTTP_400_BAD_REQUEST
    detail_default = "Bad request"


class UnauthorizedException(AppException):
    """Exception raised when credentials are missing or invalid."""
    status_code_default = status.HTTP_401_UNAUTHORIZED
    detail_default = "Unauthorized"


class ApiKeyException(UnauthorizedException):
    """Exception raised when the X-API-KEY header is rejected."""

    def __init__(self, detail: str = "Invalid API key", code: Optional[StatusCodeError] = None):
        super().__init__(
            detail=detail,
            code=code or StatusCodeError.API_KEY_INVALID_ERROR,
            headers={"WWW-Authenticate": "ApiKey"}
        )


class TokenException(UnauthorizedException):
    """Exception raised when a bearer token is rejected."""

    def __init__(self, detail: str = "Invalid or expired token", code: Optional[StatusCodeError] = None):
        super().__init__(
            detail=detail,
            code=code or StatusCodeError.AUTH_JWT_ACCESS_TOKEN_ERROR,
            headers={"WWW-Authenticate": "Bearer"}
        )


class ForbiddenException(AppException):
    """Exception raised when an authenticated caller may not proceed."""
    status_code_default = status.HTTP_403_FORBIDDEN
    detail_default = "Forbidden"


class PermissionDeniedException(ForbiddenException):
    """Exception raised when user doesn't have permission."""
    detail_default = "Permission denied"
    code_default = StatusCodeError.AUTH_PERMISSION_INVALID_ERROR


class NotFoundException(AppException):
    """Exception raised when a requested record does not exist."""
    status_code_default = status.HTTP_404_NOT_FOUND
    detail_default = "Not found"


class ServiceUnavailableException(AppException):
    """Exception raised while the application is in maintenance mode."""
    status_code_default = status.HTTP_503_SERVICE_UNAVAILABLE
    detail_default = "Service unavailable"
    code_default = StatusCodeError.SERVICE_UNAVAILABLE_ERROR
