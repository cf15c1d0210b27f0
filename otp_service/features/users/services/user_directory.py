import logging
from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from otp_service.features.users.models.user import User, UserStatus
from otp_service.platform.exceptions import InfrastructureError

logger = logging.getLogger(__name__)


class UserDirectory(ABC):
    """Resolves accounts that verification codes are issued for"""

    @abstractmethod
    async def find_by_id(self, user_id: str) -> Optional[User]:
        pass

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[User]:
        pass

    @abstractmethod
    async def update_status(self, user_id: str, status: UserStatus) -> bool:
        """
        Returns:
            True if a row was updated
        """
        pass


class SqlAlchemyUserDirectory(UserDirectory):
    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def find_by_id(self, user_id):
        try:
            async with self.session_factory() as db:
                result = await db.execute(select(User).where(User.id == user_id))
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Database error loading user {user_id}: {e}")
            raise InfrastructureError("User directory unavailable") from e

    async def find_by_email(self, email):
        try:
            async with self.session_factory() as db:
                result = await db.execute(select(User).where(User.email == email.lower()))
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Database error loading user by email: {e}")
            raise InfrastructureError("User directory unavailable") from e

    async def update_status(self, user_id, status):
        try:
            async with self.session_factory() as db:
                result = await db.execute(
                    update(User).where(User.id == user_id).values(status=status)
                )
                await db.commit()
                return result.rowcount > 0
        except SQLAlchemyError as e:
            logger.error(f"Database error updating status of user {user_id}: {e}")
            raise InfrastructureError("User directory unavailable") from e
