"""
Redis-backed verification code store.

Each record is one JSON string under ``<prefix><subject>`` with a PX expiry
matching the record TTL. Check-and-set, compare-and-remove and the attempt
counter run as Lua scripts so they are atomic on the server.
"""
import json
import logging
from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from otp_service.features.verification.models.verification_record import VerificationRecord
from otp_service.features.verification.services.code_store import Clock, CodeStore
from otp_service.platform.config import settings
from otp_service.platform.exceptions import InfrastructureError

logger = logging.getLogger(__name__)

# KEYS[1] record key; ARGV: payload, ttl_ms, cooldown_ms, now_ms
PUT_SCRIPT = """
local current = redis.call('GET', KEYS[1])
local cooldown = tonumber(ARGV[3])
if current and cooldown > 0 then
    local record = cjson.decode(current)
    if tonumber(ARGV[4]) - tonumber(record['issued_at']) < cooldown then
        return 0
    end
end
redis.call('SET', KEYS[1], ARGV[1], 'PX', ARGV[2])
return 1
"""

# KEYS[1] record key; ARGV: code
REMOVE_IF_SCRIPT = """
local current = redis.call('GET', KEYS[1])
if not current then
    return 0
end
local record = cjson.decode(current)
if record['code'] ~= ARGV[1] then
    return 0
end
redis.call('DEL', KEYS[1])
return 1
"""

# KEYS[1] record key; ARGV: code
INCREMENT_ATTEMPTS_SCRIPT = """
local current = redis.call('GET', KEYS[1])
if not current then
    return -1
end
local record = cjson.decode(current)
if record['code'] ~= ARGV[1] then
    return -1
end
local ttl = redis.call('PTTL', KEYS[1])
if ttl <= 0 then
    return -1
end
record['attempts'] = (record['attempts'] or 0) + 1
redis.call('SET', KEYS[1], cjson.encode(record), 'PX', ttl)
return record['attempts']
"""


def _millis(delta) -> int:
    return int(delta.total_seconds() * 1000)


class RedisCodeStore(CodeStore):
    def __init__(
        self,
        redis: Redis,
        key_prefix: Optional[str] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(clock)
        self.redis = redis
        self.key_prefix = key_prefix if key_prefix is not None else settings.OTP_KEY_PREFIX
        self._put = redis.register_script(PUT_SCRIPT)
        self._remove_if = redis.register_script(REMOVE_IF_SCRIPT)
        self._increment_attempts = redis.register_script(INCREMENT_ATTEMPTS_SCRIPT)

    def key(self, subject: str) -> str:
        return f"{self.key_prefix}{subject}"

    async def put(self, subject, code, ttl, cooldown=None):
        now = self.clock()
        record = VerificationRecord.create(subject, code, now, ttl)
        try:
            stored = await self._put(
                keys=[self.key(subject)],
                args=[
                    json.dumps(record.to_payload()),
                    _millis(ttl),
                    _millis(cooldown) if cooldown else 0,
                    int(now.timestamp() * 1000),
                ],
            )
        except RedisError as e:
            logger.error(f"Redis error storing verification code: {e}")
            raise InfrastructureError("Verification store unavailable") from e
        return record if int(stored) == 1 else None

    async def get(self, subject):
        try:
            raw = await self.redis.get(self.key(subject))
        except RedisError as e:
            logger.error(f"Redis error reading verification code: {e}")
            raise InfrastructureError("Verification store unavailable") from e
        if raw is None:
            return None
        try:
            record = VerificationRecord.from_payload(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Corrupt verification record under {self.key(subject)}: {e}")
            raise InfrastructureError("Verification store returned an unreadable record") from e
        if record.is_expired(self.clock()):
            return None
        return record

    async def remove(self, subject):
        try:
            await self.redis.delete(self.key(subject))
        except RedisError as e:
            logger.error(f"Redis error deleting verification code: {e}")
            raise InfrastructureError("Verification store unavailable") from e

    async def remove_if(self, subject, code):
        try:
            removed = await self._remove_if(keys=[self.key(subject)], args=[code])
        except RedisError as e:
            logger.error(f"Redis error consuming verification code: {e}")
            raise InfrastructureError("Verification store unavailable") from e
        return int(removed) == 1

    async def increment_attempts(self, subject, code):
        try:
            attempts = await self._increment_attempts(keys=[self.key(subject)], args=[code])
        except RedisError as e:
            logger.error(f"Redis error counting verification attempt: {e}")
            raise InfrastructureError("Verification store unavailable") from e
        attempts = int(attempts)
        return attempts if attempts >= 0 else None
