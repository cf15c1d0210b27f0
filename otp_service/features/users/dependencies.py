from otp_service.features.users.services.user_directory import SqlAlchemyUserDirectory
from otp_service.features.users.services.withdrawal_service import WithdrawalService
from otp_service.features.verification.dependencies import get_verification_service
from otp_service.platform.db.session import get_session_factory


def get_withdrawal_service() -> WithdrawalService:
    directory = SqlAlchemyUserDirectory(get_session_factory())
    return WithdrawalService(directory, get_verification_service())
