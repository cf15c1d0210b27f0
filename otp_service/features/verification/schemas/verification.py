import enum
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, EmailStr, field_validator


class VerificationOutcome(str, enum.Enum):
    CONSUMED = "consumed"
    NOT_FOUND = "not_found"
    MISMATCH = "mismatch"
    TOO_MANY_ATTEMPTS = "too_many_attempts"


@dataclass(frozen=True)
class VerificationResult:
    outcome: VerificationOutcome
    attempts_remaining: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.outcome is VerificationOutcome.CONSUMED

    @classmethod
    def consumed(cls) -> "VerificationResult":
        return cls(VerificationOutcome.CONSUMED)

    @classmethod
    def not_found(cls) -> "VerificationResult":
        return cls(VerificationOutcome.NOT_FOUND)

    @classmethod
    def mismatch(cls, attempts_remaining: int) -> "VerificationResult":
        return cls(VerificationOutcome.MISMATCH, attempts_remaining=attempts_remaining)

    @classmethod
    def too_many_attempts(cls) -> "VerificationResult":
        return cls(VerificationOutcome.TOO_MANY_ATTEMPTS, attempts_remaining=0)


class Subject(BaseModel):
    email: EmailStr

    @field_validator("email", mode="before")
    @classmethod
    def normalize(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v


class VerifyCodeResponse(BaseModel):
    success: bool
    message: str
    attempts_remaining: int | None = None
