import asyncio
import unittest

from otpauth.models import OtpChallenge
from otpauth.services.otp_service import OtpService
from otpauth.stores.memory_store import MemoryChallengeStore
from support import FakeClock, RecordingNotifier


def _challenge(session_id: str, code: str = "123456", created_at: float = 1000.0) -> OtpChallenge:
    return OtpChallenge(
        session_id=session_id,
        destination="a@b.com",
        code=code,
        created_at=created_at,
        expires_at=created_at + 300,
    )


class TestMemoryChallengeStore(unittest.IsolatedAsyncioTestCase):
    async def test_put_overwrites_previous_challenge(self):
        store = MemoryChallengeStore()
        await store.put(_challenge("sess1", code="111111"))
        await store.put(_challenge("sess1", code="222222"))

        stored = await store.get("sess1")
        self.assertEqual(stored.code, "222222")
        self.assertEqual(len(store), 1)

    async def test_get_active_evicts_expired_record(self):
        store = MemoryChallengeStore()
        await store.put(_challenge("sess1"))

        self.assertIsNotNone(await store.get_active("sess1", now=1300.0))
        self.assertIsNone(await store.get_active("sess1", now=1300.5))
        self.assertIsNone(await store.get("sess1"))

    async def test_get_active_hides_consumed_record(self):
        store = MemoryChallengeStore()
        challenge = _challenge("sess1")
        challenge.consumed = True
        await store.put(challenge)

        self.assertIsNone(await store.get_active("sess1", now=1001.0))
        self.assertEqual(len(store), 0)

    async def test_invalidate_removes_only_that_session(self):
        store = MemoryChallengeStore()
        await store.put(_challenge("sess1"))
        await store.put(_challenge("sess2"))

        await store.invalidate("sess1")

        self.assertIsNone(await store.get("sess1"))
        self.assertIsNotNone(await store.get("sess2"))

    async def test_purge_expired(self):
        store = MemoryChallengeStore()
        await store.put(_challenge("old", created_at=0.0))
        await store.put(_challenge("fresh", created_at=1000.0))

        removed = await store.purge_expired(now=1000.0)

        self.assertEqual(removed, 1)
        self.assertIsNone(await store.get("old"))
        self.assertIsNotNone(await store.get("fresh"))

    async def test_lock_entry_is_dropped_after_release(self):
        store = MemoryChallengeStore()

        async with store.lock("sess1"):
            self.assertIn("sess1", store._key_locks)

        self.assertEqual(store._key_locks, {})

    async def test_lock_serializes_one_session_and_hands_off_to_waiters(self):
        store = MemoryChallengeStore()
        events = []

        async def worker(name: str):
            async with store.lock("sess1"):
                events.append(f"{name}-in")
                await asyncio.sleep(0.01)
                events.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"), worker("c"))

        self.assertEqual(events, ["a-in", "a-out", "b-in", "b-out", "c-in", "c-out"])
        self.assertEqual(store._key_locks, {})

    async def test_lock_does_not_block_other_sessions(self):
        store = MemoryChallengeStore()

        async def other():
            async with store.lock("sess2"):
                return "done"

        async with store.lock("sess1"):
            result = await asyncio.wait_for(other(), timeout=1)

        self.assertEqual(result, "done")
        self.assertEqual(store._key_locks, {})

    async def test_lock_entry_released_after_exception(self):
        store = MemoryChallengeStore()

        with self.assertRaises(RuntimeError):
            async with store.lock("sess1"):
                raise RuntimeError("boom")

        self.assertEqual(store._key_locks, {})

    async def test_many_issue_and_verify_cycles_leave_no_locks(self):
        notifier = RecordingNotifier()
        store = MemoryChallengeStore()
        service = OtpService(store, notifier, clock=FakeClock())

        for i in range(50):
            await service.issue(f"sess{i}", "a@b.com")
            await service.verify(f"sess{i}", notifier.last_code)

        self.assertEqual(len(store), 0)
        self.assertEqual(len(store._key_locks), 0)


if __name__ == "__main__":
    unittest.main()
