from pathlib import Path
from typing import Literal, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── App ─────────────────────────────────────
    APP_NAME: str = "DODO Verification"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    DEBUG: bool = True

    # ── Logging ─────────────────────────────────
    LOG_DIR: str = "logs"
    LOG_FILE_NAME: str = "otp_service.log"
    LOG_LEVEL: str = "INFO"

    # ── Database ────────────────────────────────
    DATABASE_URL: str = "sqlite+aiosqlite:///./otp_service.db"

    # ── Redis ───────────────────────────────────
    REDIS_URL: str = "redis://localhost:6379/0"

    # ── Verification codes ──────────────────────
    OTP_STORE_BACKEND: Literal["redis", "memory"] = "redis"
    OTP_KEY_PREFIX: str = "auth_code:"
    OTP_CODE_LENGTH: int = 6
    OTP_TTL_SECONDS: int = 300
    OTP_COOLDOWN_SECONDS: int = 60
    OTP_MAX_ATTEMPTS: int = 5
    # 0 disables the background sweep; redis expires keys on its own
    OTP_SWEEP_INTERVAL_SECONDS: int = 0

    # ── Email Configuration ─────────────────────
    MAIL_TRANSPORT: Literal["email", "console"] = "email"
    MAIL_HOST: str = "smtp.gmail.com"
    MAIL_PORT: int = 587
    MAIL_USERNAME: str = "your-email-id"
    MAIL_PASSWORD: str = "your-password"
    MAIL_ENCRYPTION: str = "tls"
    MAIL_FROM_ADDRESS: str = "example@localhost"
    MAIL_FROM_NAME: str = "DODO"
    MAIL_DISPATCH_TIMEOUT_SECONDS: float = 10.0

    EMAIL_RELAY_URL: str = ""
    EMAIL_RELAY_API_KEY: str = ""
    # relay and SMTP fallback together should finish within MAIL_DISPATCH_TIMEOUT_SECONDS
    EMAIL_RELAY_TIMEOUT: int = 4

    TEMPLATE_DIR: Optional[str] = None

    class Config:
        env_file = str(Path(__file__).parent.parent.parent / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
