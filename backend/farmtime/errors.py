"""Domain error kinds.

They subclass ``HTTPException`` so the service layer can raise them directly
and FastAPI renders them with the matching status code.
"""
from fastapi import HTTPException, status


class DomainError(HTTPException):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str):
        super().__init__(status_code=self.status_code, detail=detail)


class ValidationError(DomainError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND


class PermissionDeniedError(DomainError):
    status_code = status.HTTP_403_FORBIDDEN


class ConflictError(DomainError):
    status_code = status.HTTP_409_CONFLICT


class AuthenticationRequiredError(DomainError):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, detail: str = "Unauthorized"):
        super().__init__(detail)


class UpstreamError(DomainError):
    status_code = status.HTTP_502_BAD_GATEWAY
