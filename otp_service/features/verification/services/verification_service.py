import asyncio
import logging
import math
from datetime import timedelta
from typing import Optional

from otp_service.features.verification.exceptions import DispatchFailedError, TooSoonError
from otp_service.features.verification.schemas.verification import VerificationResult
from otp_service.features.verification.services.code_store import CodeStore
from otp_service.features.verification.services.mail_transport import MailTransport
from otp_service.features.verification.utils.code_generator import CodeGenerator
from otp_service.features.verification.utils.verify import codes_match, normalize_subject
from otp_service.platform.config import settings

logger = logging.getLogger(__name__)


class VerificationService:
    """
    Issues one-time codes and validates them exactly once.

    All per-subject state lives in the ``CodeStore``; the service itself is
    stateless and may be shared by any number of concurrent callers.
    """

    def __init__(
        self,
        store: CodeStore,
        transport: MailTransport,
        generator: Optional[CodeGenerator] = None,
        *,
        ttl: Optional[timedelta] = None,
        cooldown: Optional[timedelta] = None,
        max_attempts: Optional[int] = None,
        dispatch_timeout: Optional[float] = None,
    ):
        self.store = store
        self.transport = transport
        self.generator = generator if generator is not None else CodeGenerator(settings.OTP_CODE_LENGTH)
        self.ttl = ttl if ttl is not None else timedelta(seconds=settings.OTP_TTL_SECONDS)
        self.cooldown = cooldown if cooldown is not None else timedelta(seconds=settings.OTP_COOLDOWN_SECONDS)
        self.max_attempts = max_attempts if max_attempts is not None else settings.OTP_MAX_ATTEMPTS
        self.dispatch_timeout = (
            dispatch_timeout if dispatch_timeout is not None else settings.MAIL_DISPATCH_TIMEOUT_SECONDS
        )

    async def issue(self, subject: str) -> str:
        """
        Generate, store and deliver a new code for ``subject``.

        A new code replaces any outstanding one. If delivery fails, or the
        call is cancelled while delivering, the stored code is withdrawn
        again so the caller can retry cleanly.

        Returns:
            The issued code

        Raises:
            InvalidSubjectError: ``subject`` is not a valid email address
            TooSoonError: a code was issued within the cooldown window
            DispatchFailedError: the transport failed or timed out
            InfrastructureError: the store is unavailable
        """
        subject = normalize_subject(subject)
        code = self.generator.generate()

        record = await self.store.put(subject, code, self.ttl, cooldown=self.cooldown)
        if record is None:
            logger.warning(f"Verification code cooldown active - Email: {subject}")
            raise TooSoonError(await self._retry_after(subject))

        try:
            delivered = await asyncio.wait_for(
                self.transport.send(subject, code), timeout=self.dispatch_timeout
            )
        except asyncio.TimeoutError:
            logger.error(f"Verification mail timed out after {self.dispatch_timeout}s - Email: {subject}")
            await self.store.remove_if(subject, code)
            raise DispatchFailedError("Mail dispatch timed out")
        except asyncio.CancelledError:
            logger.warning(f"Verification issue cancelled during dispatch - Email: {subject}")
            # the caller is gone; the removal must still finish
            await asyncio.shield(self.store.remove_if(subject, code))
            raise
        except Exception as e:
            logger.exception(f"Verification mail transport error - Email: {subject}")
            await self.store.remove_if(subject, code)
            raise DispatchFailedError() from e

        if not delivered:
            logger.error(f"Verification mail rejected - Email: {subject}")
            await self.store.remove_if(subject, code)
            raise DispatchFailedError()

        logger.info(f"Verification code issued - Email: {subject}")
        return code

    async def validate(self, subject: str, submitted_code: str) -> VerificationResult:
        """
        Check ``submitted_code`` against the live code for ``subject`` and
        consume it on a match.

        Missing, expired and already-consumed codes all yield NOT_FOUND.

        Raises:
            InvalidSubjectError: ``subject`` is not a valid email address
            InfrastructureError: the store is unavailable
        """
        subject = normalize_subject(subject)

        record = await self.store.get(subject)
        if record is None:
            logger.info(f"Verification failed, no active code - Email: {subject}")
            return VerificationResult.not_found()

        if record.attempts >= self.max_attempts:
            await self.store.remove_if(subject, record.code)
            logger.warning(f"Verification attempts exhausted - Email: {subject}")
            return VerificationResult.too_many_attempts()

        if not codes_match(record.code, submitted_code):
            attempts = await self.store.increment_attempts(subject, record.code)
            if attempts is None:
                return VerificationResult.not_found()
            if attempts > self.max_attempts:
                await self.store.remove_if(subject, record.code)
                logger.warning(f"Verification attempts exhausted - Email: {subject}")
                return VerificationResult.too_many_attempts()
            logger.warning(f"Verification code mismatch ({attempts}/{self.max_attempts}) - Email: {subject}")
            return VerificationResult.mismatch(self.max_attempts - attempts)

        if not await self.store.remove_if(subject, record.code):
            # another caller consumed or replaced it first
            return VerificationResult.not_found()

        logger.info(f"Verification code consumed - Email: {subject}")
        return VerificationResult.consumed()

    async def _retry_after(self, subject: str) -> int:
        record = await self.store.get(subject)
        if record is None:
            return 0
        remaining = (record.issued_at + self.cooldown - self.store.clock()).total_seconds()
        return max(math.ceil(remaining), 0)
