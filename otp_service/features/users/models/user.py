import enum

from sqlalchemy import Column, Enum, String

from otp_service.platform.db.base import BaseModel


class UserStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    DORMANT = "DORMANT"
    DELETED = "DELETED"
    REGISTER = "REGISTER"


class User(BaseModel):
    __tablename__ = "users"
    email = Column(String(255), unique=True, nullable=False, index=True)
    nickname = Column(String(100), nullable=True)
    status = Column(Enum(UserStatus, name="user_status"), nullable=False, default=UserStatus.ACTIVE)

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, status={self.status})>"
