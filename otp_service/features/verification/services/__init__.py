"""
Verification code services: storage, delivery and the issue/validate workflow
"""
from .code_store import CodeStore, InMemoryCodeStore, run_expiry_sweeper
from .redis_code_store import RedisCodeStore
from .mail_transport import ConsoleMailTransport, EmailMailTransport, MailTransport
from .verification_service import VerificationService

__all__ = [
    "CodeStore",
    "InMemoryCodeStore",
    "RedisCodeStore",
    "run_expiry_sweeper",
    "MailTransport",
    "EmailMailTransport",
    "ConsoleMailTransport",
    "VerificationService",
]
