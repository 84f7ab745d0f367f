from dataclasses import dataclass
from fastapi import status


ACCESS_DENIED_KIND = "AccessDenied"
INVALID_REQUEST_KIND = "InvalidRequest"
DATA_UNAVAILABLE_KIND = "DataUnavailable"
INTERNAL_KIND = "Internal"


@dataclass(frozen=True)
class ErrorDefinition:
    code: str
    message: str
    status_code: int
    kind: str = INTERNAL_KIND


class ErrorCatalog:
    INVALID_TOKEN = ErrorDefinition(
        "INVALID_TOKEN",
        "Invalid token",
        status.HTTP_401_UNAUTHORIZED,
        ACCESS_DENIED_KIND,
    )
    ACCESS_DENIED = ErrorDefinition(
        "ACCESS_DENIED",
        "Access denied for this report",
        status.HTTP_403_FORBIDDEN,
        ACCESS_DENIED_KIND,
    )
    INVALID_REQUEST = ErrorDefinition(
        "INVALID_REQUEST",
        "Invalid report request",
        status.HTTP_400_BAD_REQUEST,
        INVALID_REQUEST_KIND,
    )
    REPORT_NOT_FOUND = ErrorDefinition(
        "REPORT_NOT_FOUND",
        "Unknown report type",
        status.HTTP_400_BAD_REQUEST,
        INVALID_REQUEST_KIND,
    )
    SCOPE_VIOLATION = ErrorDefinition(
        "SCOPE_VIOLATION",
        "Requested scope is outside the caller's tenant",
        status.HTTP_400_BAD_REQUEST,
        INVALID_REQUEST_KIND,
    )
    DATA_UNAVAILABLE = ErrorDefinition(
        "DATA_UNAVAILABLE",
        "Report data unavailable",
        status.HTTP_503_SERVICE_UNAVAILABLE,
        DATA_UNAVAILABLE_KIND,
    )
    VALIDATION_ERROR = ErrorDefinition(
        "VALIDATION_ERROR",
        "Validation error",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        INVALID_REQUEST_KIND,
    )
    INTERNAL_ERROR = ErrorDefinition(
        "INTERNAL_ERROR",
        "Internal server error",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


class AppError(Exception):
    def __init__(self, error: ErrorDefinition, details: object | None = None):
        self.error = error
        self.details = details
        super().__init__(error.message)

    @property
    def kind(self) -> str:
        return self.error.kind
