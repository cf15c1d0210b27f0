import logging

from otp_service.features.users.exceptions import UserNotFoundError
from otp_service.features.users.models.user import User, UserStatus
from otp_service.features.users.services.user_directory import UserDirectory
from otp_service.features.verification.schemas.verification import VerificationResult
from otp_service.features.verification.services.verification_service import VerificationService

logger = logging.getLogger(__name__)


class WithdrawalService:
    """
    Account withdrawal confirmed by a code mailed to the account address.
    """

    def __init__(self, directory: UserDirectory, verification: VerificationService):
        self.directory = directory
        self.verification = verification

    async def _load_user(self, user_id: str) -> User:
        user = await self.directory.find_by_id(user_id)
        if user is None or user.status == UserStatus.DELETED:
            raise UserNotFoundError()
        return user

    async def request_withdrawal(self, user_id: str) -> None:
        user = await self._load_user(user_id)
        logger.info(f"Sending withdrawal verification mail - Id: {user_id}")
        await self.verification.issue(user.email)
        logger.info(f"Withdrawal verification mail sent - Id: {user_id}")

    async def confirm_withdrawal(self, user_id: str, code: str) -> VerificationResult:
        user = await self._load_user(user_id)

        result = await self.verification.validate(user.email, code)
        if not result.ok:
            logger.warning(f"Withdrawal verification failed ({result.outcome.value}) - Id: {user_id}")
            return result

        await self.directory.update_status(user_id, UserStatus.DELETED)
        logger.info(f"Account withdrawn - Id: {user_id}")
        return result
