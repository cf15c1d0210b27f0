from .user_directory import SqlAlchemyUserDirectory, UserDirectory
from .withdrawal_service import WithdrawalService

__all__ = ["UserDirectory", "SqlAlchemyUserDirectory", "WithdrawalService"]
