"""
Storage for issued verification codes.

A store keeps at most one record per subject. Expired records are treated
as absent by every read, whether or not they have been physically removed.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Callable, Dict, Optional

from otp_service.features.verification.models.verification_record import VerificationRecord
from otp_service.platform.exceptions import InfrastructureError

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CodeStore(ABC):
    """Abstract base class for verification code stores"""

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or utcnow

    @abstractmethod
    async def put(
        self,
        subject: str,
        code: str,
        ttl: timedelta,
        cooldown: Optional[timedelta] = None,
    ) -> Optional[VerificationRecord]:
        """
        Store ``code`` for ``subject``, replacing any previous record.

        Args:
            subject: Normalized subject key
            code: Code to store
            ttl: Lifetime of the record
            cooldown: When given, refuse to overwrite a live record issued
                less than ``cooldown`` ago

        Returns:
            The stored record, or None if the cooldown refused the write
        """

    @abstractmethod
    async def get(self, subject: str) -> Optional[VerificationRecord]:
        """Return the live record for ``subject``, or None."""

    @abstractmethod
    async def remove(self, subject: str) -> None:
        """Delete the record for ``subject`` if present."""

    @abstractmethod
    async def remove_if(self, subject: str, code: str) -> bool:
        """
        Atomically delete the record for ``subject`` only if it is live and
        still holds ``code``.

        Returns:
            True if this call removed the record
        """

    @abstractmethod
    async def increment_attempts(self, subject: str, code: str) -> Optional[int]:
        """
        Atomically count one failed attempt against the live record holding
        ``code``.

        Returns:
            The new attempt count, or None if that record no longer exists
        """

    async def purge_expired(self) -> int:
        """Physically drop expired records. Returns how many were dropped."""
        return 0


class InMemoryCodeStore(CodeStore):
    """
    Process-local store. Every operation runs under one lock and never
    awaits while holding it, so it is safe for asyncio tasks and threads alike.
    """

    def __init__(self, clock: Optional[Clock] = None):
        super().__init__(clock)
        self._records: Dict[str, VerificationRecord] = {}
        self._lock = Lock()

    def _live(self, subject: str, now: datetime) -> Optional[VerificationRecord]:
        record = self._records.get(subject)
        if record is None:
            return None
        if record.is_expired(now):
            del self._records[subject]
            return None
        return record

    async def put(self, subject, code, ttl, cooldown=None):
        now = self.clock()
        with self._lock:
            current = self._live(subject, now)
            if cooldown and current and current.issued_within(cooldown, now):
                return None
            record = VerificationRecord.create(subject, code, now, ttl)
            self._records[subject] = record
            return record

    async def get(self, subject):
        now = self.clock()
        with self._lock:
            return self._live(subject, now)

    async def remove(self, subject):
        with self._lock:
            self._records.pop(subject, None)

    async def remove_if(self, subject, code):
        now = self.clock()
        with self._lock:
            current = self._live(subject, now)
            if current is None or current.code != code:
                return False
            del self._records[subject]
            return True

    async def increment_attempts(self, subject, code):
        now = self.clock()
        with self._lock:
            current = self._live(subject, now)
            if current is None or current.code != code:
                return None
            updated = current.with_attempt()
            self._records[subject] = updated
            return updated.attempts

    async def purge_expired(self):
        now = self.clock()
        with self._lock:
            expired = [s for s, r in self._records.items() if r.is_expired(now)]
            for subject in expired:
                del self._records[subject]
        return len(expired)


async def run_expiry_sweeper(store: CodeStore, interval_seconds: float):
    """
    Periodically drop expired records. Runs until cancelled.
    """
    logger.info(f"Starting verification code sweeper (every {interval_seconds}s)")
    try:
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                purged = await store.purge_expired()
            except InfrastructureError as e:
                logger.error(f"Verification code sweep failed: {e}")
                continue
            if purged:
                logger.info(f"Purged {purged} expired verification code(s)")
    except asyncio.CancelledError:
        logger.info("Verification code sweeper stopped")
        raise
