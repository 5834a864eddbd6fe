"""Tests for per-key asyncio locks."""

import asyncio

from metabase_tenancy.provisioning.locks import KeyedLock


class TestKeyedLock:
    async def test_same_key_is_serialised(self):
        locks = KeyedLock()
        events = []

        async def worker(name):
            async with locks.hold(42):
                events.append(f"{name}-in")
                await asyncio.sleep(0.01)
                events.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))
        assert events == ["a-in", "a-out", "b-in", "b-out"]

    async def test_different_keys_overlap(self):
        locks = KeyedLock()
        inside = []
        peak = []

        async def worker(key):
            async with locks.hold(key):
                inside.append(key)
                peak.append(len(inside))
                await asyncio.sleep(0.01)
                inside.remove(key)

        await asyncio.gather(worker(1), worker(2), worker(3))
        assert max(peak) == 3

    async def test_locks_dropped_after_use(self):
        locks = KeyedLock()
        async with locks.hold(1):
            assert len(locks) == 1
        assert len(locks) == 0

    async def test_released_on_error(self):
        locks = KeyedLock()
        try:
            async with locks.hold(1):
                raise ValueError("boom")
        except ValueError:
            pass
        assert len(locks) == 0
        async with locks.hold(1):
            pass
