"""Error taxonomy shared by every service.

Each error is an ``HTTPException`` so services can raise it directly and
FastAPI renders it as ``{"detail": ...}`` with a stable status code.
"""

from fastapi import HTTPException, status


class StudyPartnerError(HTTPException):
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_detail: str = "Request failed"

    def __init__(self, detail: str | None = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)


class Unauthenticated(StudyPartnerError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Not authenticated"

    def __init__(self, detail: str | None = None):
        super().__init__(detail)
        self.headers = {"WWW-Authenticate": "Bearer"}


class Unauthorized(StudyPartnerError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Permission denied"


class NotFound(StudyPartnerError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Resource not found"


class InvalidState(StudyPartnerError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Action not allowed in the current state"


class DuplicateResource(StudyPartnerError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Resource already exists"


class InsufficientFunds(StudyPartnerError):
    status_code = status.HTTP_402_PAYMENT_REQUIRED
    default_detail = "Insufficient tokens"


class ExternalServiceError(StudyPartnerError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "External service failed"
