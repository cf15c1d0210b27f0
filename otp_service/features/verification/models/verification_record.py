from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone


def _to_millis(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def _from_millis(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


@dataclass(frozen=True)
class VerificationRecord:
    """A code issued against a subject, live until ``expires_at``."""

    subject: str
    code: str
    issued_at: datetime
    expires_at: datetime
    attempts: int = 0

    @classmethod
    def create(cls, subject: str, code: str, issued_at: datetime, ttl: timedelta) -> "VerificationRecord":
        return cls(subject=subject, code=code, issued_at=issued_at, expires_at=issued_at + ttl)

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def issued_within(self, window: timedelta, now: datetime) -> bool:
        return now - self.issued_at < window

    def with_attempt(self) -> "VerificationRecord":
        return replace(self, attempts=self.attempts + 1)

    def to_payload(self) -> dict:
        return {
            "subject": self.subject,
            "code": self.code,
            "issued_at": _to_millis(self.issued_at),
            "expires_at": _to_millis(self.expires_at),
            "attempts": self.attempts,
        }

    @classmethod
    def from_payload(cls, payload: dict) -> "VerificationRecord":
        return cls(
            subject=payload["subject"],
            code=str(payload["code"]),
            issued_at=_from_millis(int(payload["issued_at"])),
            expires_at=_from_millis(int(payload["expires_at"])),
            attempts=int(payload.get("attempts", 0)),
        )

    def __repr__(self):
        # omits the code
        return (
            f"<VerificationRecord(subject={self.subject}, expires_at={self.expires_at.isoformat()}, "
            f"attempts={self.attempts})>"
        )
