"""
Test configuration and fixtures for the verification code service.

Settings are pointed at process-local backends before any application
module is imported, so no redis, SMTP server or database is needed.
"""

import asyncio
import os
import random
import tempfile
from datetime import datetime, timedelta, timezone

from dotenv import load_dotenv

load_dotenv()

_tmp_dir = tempfile.mkdtemp(prefix="otp_service_")
os.environ["LOG_DIR"] = os.path.join(_tmp_dir, "logs")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_tmp_dir, 'otp_service.db')}"
os.environ["OTP_STORE_BACKEND"] = "memory"
os.environ["MAIL_TRANSPORT"] = "console"
os.environ["ENVIRONMENT"] = "local"

import pytest

from otp_service.features.verification.services.code_store import InMemoryCodeStore
from otp_service.features.verification.services.mail_transport import MailTransport
from otp_service.features.verification.services.verification_service import VerificationService
from otp_service.features.verification.utils.code_generator import CodeGenerator


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class RecordingTransport(MailTransport):
    """Captures sent codes; can be told to fail, raise or hang."""

    def __init__(self):
        self.sent: list[tuple[str, str]] = []
        self.result = True
        self.error: Exception | None = None
        self.delay: float = 0

    async def send(self, recipient: str, code: str) -> bool:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.sent.append((recipient, code))
        return self.result

    def last_code(self) -> str:
        return self.sent[-1][1]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return InMemoryCodeStore(clock=clock)


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def service(store, transport):
    return VerificationService(
        store,
        transport,
        CodeGenerator(length=6, rng=random.Random(42)),
        ttl=timedelta(minutes=5),
        cooldown=timedelta(seconds=60),
        max_attempts=5,
        dispatch_timeout=0.5,
    )
