import enum
from http import HTTPStatus
from typing import Optional


class BaseErrorCode(enum.Enum):
    """
    Error codes carry the HTTP status and the client-facing message that a
    request layer should translate them into.
    """

    def __init__(self, http_status: HTTPStatus, message: str):
        self.http_status = http_status
        self.message = message

    @property
    def status_code(self) -> int:
        return int(self.http_status)


class PlatformErrorCode(BaseErrorCode):
    INFRASTRUCTURE_ERROR = (
        HTTPStatus.SERVICE_UNAVAILABLE,
        "Service temporarily unavailable. Please try again.",
    )


class ServiceError(Exception):
    """Base for every error raised by the service layer."""

    def __init__(self, error_code: BaseErrorCode, detail: Optional[str] = None):
        self.error_code = error_code
        self.detail = detail or error_code.message
        super().__init__(self.detail)

    @property
    def status_code(self) -> int:
        return self.error_code.status_code

    def to_dict(self) -> dict:
        return {"success": False, "code": self.error_code.name, "message": self.error_code.message}


class InfrastructureError(ServiceError):
    """A backing service (redis, database) failed. Safe for the caller to retry."""

    def __init__(self, detail: Optional[str] = None):
        super().__init__(PlatformErrorCode.INFRASTRUCTURE_ERROR, detail)
