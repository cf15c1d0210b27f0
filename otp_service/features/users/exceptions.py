from http import HTTPStatus
from typing import Optional

from otp_service.platform.exceptions import BaseErrorCode, ServiceError


class UserErrorCode(BaseErrorCode):
    USER_NOT_FOUND = (HTTPStatus.NOT_FOUND, "User not found.")


class UserNotFoundError(ServiceError):
    def __init__(self, detail: Optional[str] = None):
        super().__init__(UserErrorCode.USER_NOT_FOUND, detail)
