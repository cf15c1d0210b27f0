from http import HTTPStatus
from typing import Optional

from otp_service.platform.exceptions import BaseErrorCode, ServiceError


class VerificationErrorCode(BaseErrorCode):
    INVALID_SUBJECT = (HTTPStatus.BAD_REQUEST, "Invalid email address.")
    TOO_SOON = (HTTPStatus.TOO_MANY_REQUESTS, "Please wait before requesting another code.")
    DISPATCH_FAILED = (HTTPStatus.BAD_GATEWAY, "Unable to send code. Try again later.")
    NOT_FOUND = (HTTPStatus.BAD_REQUEST, "No active verification code. Please request a new code.")
    MISMATCH = (HTTPStatus.BAD_REQUEST, "Invalid verification code.")
    TOO_MANY_ATTEMPTS = (
        HTTPStatus.TOO_MANY_REQUESTS,
        "Too many invalid attempts. Request a new code.",
    )


class VerificationError(ServiceError):
    pass


class InvalidSubjectError(VerificationError):
    def __init__(self, detail: Optional[str] = None):
        super().__init__(VerificationErrorCode.INVALID_SUBJECT, detail)


class TooSoonError(VerificationError):
    def __init__(self, retry_after: int):
        self.retry_after = retry_after
        super().__init__(
            VerificationErrorCode.TOO_SOON,
            f"Code already sent. Retry in {retry_after} seconds.",
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["retry_after"] = self.retry_after
        return data


class DispatchFailedError(VerificationError):
    def __init__(self, detail: Optional[str] = None):
        super().__init__(VerificationErrorCode.DISPATCH_FAILED, detail)
