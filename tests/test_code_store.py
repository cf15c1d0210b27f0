import asyncio
from datetime import timedelta

import pytest

from otp_service.features.verification.models.verification_record import VerificationRecord
from otp_service.features.verification.services.code_store import run_expiry_sweeper

TTL = timedelta(minutes=5)
SUBJECT = "user@example.com"


class TestInMemoryCodeStore:
    """Test suite for the in-memory verification code store"""

    @pytest.mark.asyncio
    async def test_put_and_get(self, store, clock):
        """A stored record is returned with its expiry"""
        record = await store.put(SUBJECT, "482913", TTL)

        fetched = await store.get(SUBJECT)

        assert fetched == record
        assert fetched.code == "482913"
        assert fetched.issued_at == clock.now
        assert fetched.expires_at == clock.now + TTL
        assert fetched.attempts == 0

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, store):
        assert await store.get(SUBJECT) is None

    @pytest.mark.asyncio
    async def test_put_overwrites_previous_record(self, store):
        """Only the latest record for a subject survives"""
        await store.put(SUBJECT, "111111", TTL)
        await store.put(SUBJECT, "222222", TTL)

        assert (await store.get(SUBJECT)).code == "222222"

    @pytest.mark.asyncio
    async def test_expired_record_is_absent(self, store, clock):
        """A record past its expiry reads as missing"""
        await store.put(SUBJECT, "482913", TTL)

        clock.advance(minutes=5)

        assert await store.get(SUBJECT) is None

    @pytest.mark.asyncio
    async def test_record_live_until_expiry(self, store, clock):
        await store.put(SUBJECT, "482913", TTL)

        clock.advance(minutes=4, seconds=59)

        assert await store.get(SUBJECT) is not None

    @pytest.mark.asyncio
    async def test_remove_is_idempotent(self, store):
        await store.put(SUBJECT, "482913", TTL)

        await store.remove(SUBJECT)
        await store.remove(SUBJECT)

        assert await store.get(SUBJECT) is None

    @pytest.mark.asyncio
    async def test_remove_if_matching_code(self, store):
        """Compare-and-remove succeeds exactly once"""
        await store.put(SUBJECT, "482913", TTL)

        assert await store.remove_if(SUBJECT, "482913") is True
        assert await store.remove_if(SUBJECT, "482913") is False
        assert await store.get(SUBJECT) is None

    @pytest.mark.asyncio
    async def test_remove_if_other_code_keeps_record(self, store):
        await store.put(SUBJECT, "482913", TTL)

        assert await store.remove_if(SUBJECT, "000000") is False
        assert await store.get(SUBJECT) is not None

    @pytest.mark.asyncio
    async def test_remove_if_expired_record(self, store, clock):
        await store.put(SUBJECT, "482913", TTL)
        clock.advance(minutes=6)

        assert await store.remove_if(SUBJECT, "482913") is False

    @pytest.mark.asyncio
    async def test_increment_attempts(self, store):
        await store.put(SUBJECT, "482913", TTL)

        assert await store.increment_attempts(SUBJECT, "482913") == 1
        assert await store.increment_attempts(SUBJECT, "482913") == 2
        assert (await store.get(SUBJECT)).attempts == 2

    @pytest.mark.asyncio
    async def test_increment_attempts_on_replaced_record(self, store):
        """Attempts are never counted against a newer code"""
        await store.put(SUBJECT, "111111", TTL)
        await store.put(SUBJECT, "222222", TTL)

        assert await store.increment_attempts(SUBJECT, "111111") is None
        assert (await store.get(SUBJECT)).attempts == 0

    @pytest.mark.asyncio
    async def test_increment_attempts_keeps_expiry(self, store, clock):
        record = await store.put(SUBJECT, "482913", TTL)
        clock.advance(minutes=1)

        await store.increment_attempts(SUBJECT, "482913")

        assert (await store.get(SUBJECT)).expires_at == record.expires_at

    @pytest.mark.asyncio
    async def test_cooldown_refuses_recent_overwrite(self, store, clock):
        await store.put(SUBJECT, "111111", TTL)
        clock.advance(seconds=30)

        result = await store.put(SUBJECT, "222222", TTL, cooldown=timedelta(seconds=60))

        assert result is None
        assert (await store.get(SUBJECT)).code == "111111"

    @pytest.mark.asyncio
    async def test_cooldown_allows_overwrite_after_window(self, store, clock):
        await store.put(SUBJECT, "111111", TTL)
        clock.advance(seconds=60)

        result = await store.put(SUBJECT, "222222", TTL, cooldown=timedelta(seconds=60))

        assert result is not None
        assert (await store.get(SUBJECT)).code == "222222"

    @pytest.mark.asyncio
    async def test_subjects_are_independent(self, store):
        await store.put("a@example.com", "111111", TTL)
        await store.put("b@example.com", "222222", TTL, cooldown=timedelta(seconds=60))

        assert (await store.get("a@example.com")).code == "111111"
        assert (await store.get("b@example.com")).code == "222222"

    @pytest.mark.asyncio
    async def test_purge_expired(self, store, clock):
        await store.put("a@example.com", "111111", TTL)
        clock.advance(minutes=3)
        await store.put("b@example.com", "222222", TTL)
        clock.advance(minutes=3)

        assert await store.purge_expired() == 1
        assert await store.get("b@example.com") is not None

    @pytest.mark.asyncio
    async def test_sweeper_purges_until_cancelled(self, store, clock):
        await store.put(SUBJECT, "482913", TTL)
        clock.advance(minutes=10)

        task = asyncio.create_task(run_expiry_sweeper(store, 0.01))
        await asyncio.sleep(0.05)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert SUBJECT not in store._records


class TestVerificationRecord:
    """Test suite for the record payload encoding"""

    def test_payload_round_trip_keeps_leading_zeros(self, clock):
        record = VerificationRecord.create(SUBJECT, "012345", clock.now, TTL)

        restored = VerificationRecord.from_payload(record.to_payload())

        assert restored == record
        assert restored.code == "012345"

    def test_repr_hides_code(self, clock):
        record = VerificationRecord.create(SUBJECT, "482913", clock.now, TTL)

        assert "482913" not in repr(record)
