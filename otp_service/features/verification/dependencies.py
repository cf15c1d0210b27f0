"""
Builds verification components from settings.
"""
import asyncio
import logging
from typing import Optional

from otp_service.features.verification.services.code_store import CodeStore, InMemoryCodeStore, run_expiry_sweeper
from otp_service.features.verification.services.mail_transport import (
    ConsoleMailTransport,
    EmailMailTransport,
    MailTransport,
)
from otp_service.features.verification.services.redis_code_store import RedisCodeStore
from otp_service.features.verification.services.verification_service import VerificationService
from otp_service.platform.cache.redis import get_redis
from otp_service.platform.config import settings

logger = logging.getLogger(__name__)

_store_instance: Optional[CodeStore] = None
_service_instance: Optional[VerificationService] = None


def build_code_store() -> CodeStore:
    backend = settings.OTP_STORE_BACKEND.lower()

    if backend == "redis":
        logger.info("[OTP] Using redis code store")
        return RedisCodeStore(get_redis(), key_prefix=settings.OTP_KEY_PREFIX)

    elif backend == "memory":
        if settings.ENVIRONMENT == "production":
            logger.warning("[OTP] In-memory code store in production; codes are lost on restart")
        logger.info("[OTP] Using in-memory code store")
        return InMemoryCodeStore()

    else:
        raise ValueError(f"Unknown OTP store backend: {backend}. Must be one of: redis, memory")


def build_mail_transport() -> MailTransport:
    transport = settings.MAIL_TRANSPORT.lower()

    if transport == "email":
        return EmailMailTransport()

    elif transport == "console":
        if settings.ENVIRONMENT == "production":
            raise ValueError("Console mail transport cannot be used in production")
        return ConsoleMailTransport()

    else:
        raise ValueError(f"Unknown mail transport: {transport}. Must be one of: email, console")


def get_code_store() -> CodeStore:
    global _store_instance
    if _store_instance is None:
        _store_instance = build_code_store()
    return _store_instance


def get_verification_service() -> VerificationService:
    """
    Shared VerificationService instance configured from settings.
    """
    global _service_instance
    if _service_instance is None:
        _service_instance = VerificationService(get_code_store(), build_mail_transport())
    return _service_instance


def start_expiry_sweeper() -> Optional[asyncio.Task]:
    """Start the background sweep when OTP_SWEEP_INTERVAL_SECONDS is set. Needs a running loop."""
    interval = settings.OTP_SWEEP_INTERVAL_SECONDS
    if interval <= 0:
        return None
    return asyncio.create_task(run_expiry_sweeper(get_code_store(), interval))


def reset_verification_service() -> None:
    global _store_instance, _service_instance
    _store_instance = None
    _service_instance = None
