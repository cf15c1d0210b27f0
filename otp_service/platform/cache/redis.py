from typing import Optional

from redis.asyncio import Redis

from otp_service.platform.config import settings

_redis: Optional[Redis] = None


def get_redis() -> Redis:
    """Shared async redis client, created on first use."""
    global _redis
    if _redis is None:
        _redis = Redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
        )
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None
