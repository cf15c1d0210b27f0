import hmac

from pydantic import ValidationError

from otp_service.features.verification.exceptions import InvalidSubjectError, VerificationErrorCode
from otp_service.features.verification.schemas.verification import (
    Subject,
    VerificationOutcome,
    VerificationResult,
    VerifyCodeResponse,
)

_OUTCOME_MESSAGES = {
    VerificationOutcome.CONSUMED: "Verification successful",
    VerificationOutcome.NOT_FOUND: VerificationErrorCode.NOT_FOUND.message,
    VerificationOutcome.MISMATCH: VerificationErrorCode.MISMATCH.message,
    VerificationOutcome.TOO_MANY_ATTEMPTS: VerificationErrorCode.TOO_MANY_ATTEMPTS.message,
}


def normalize_subject(subject: str) -> str:
    try:
        return Subject(email=subject).email
    except ValidationError as e:
        raise InvalidSubjectError() from e


def codes_match(expected: str, submitted: str) -> bool:
    # compare_digest runs in time independent of where the inputs differ
    return hmac.compare_digest(expected.encode("utf-8"), str(submitted).encode("utf-8"))


def describe_result(result: VerificationResult) -> VerifyCodeResponse:
    return VerifyCodeResponse(
        success=result.ok,
        message=_OUTCOME_MESSAGES[result.outcome],
        attempts_remaining=result.attempts_remaining,
    )