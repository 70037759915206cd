"""Tests for lock managers - mutual exclusion, wait timeouts and release."""

import asyncio
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from orchestration.errors import ErrorKind, WorkflowLockError
from orchestration.locks import InMemoryLockManager, RedisLockManager


@pytest.mark.asyncio
async def test_same_key_holders_never_overlap():
    locks = InMemoryLockManager()
    active = 0
    max_active = 0

    async def critical_section() -> None:
        nonlocal active, max_active
        async with locks.hold("cart:1", wait_seconds=5):
            active += 1
            max_active = max(max_active, active)
            await asyncio.sleep(0.01)
            active -= 1

    await asyncio.gather(*(critical_section() for _ in range(5)))

    assert max_active == 1


@pytest.mark.asyncio
async def test_different_keys_may_overlap():
    locks = InMemoryLockManager()
    active = 0
    max_active = 0
    both_inside = asyncio.Event()

    async def critical_section(key: str) -> None:
        nonlocal active, max_active
        async with locks.hold(key, wait_seconds=5):
            active += 1
            max_active = max(max_active, active)
            if active == 2:
                both_inside.set()
            await asyncio.wait_for(both_inside.wait(), timeout=1)
            active -= 1

    await asyncio.gather(critical_section("cart:1"), critical_section("cart:2"))

    assert max_active == 2


@pytest.mark.asyncio
async def test_acquire_times_out_with_conflict_error():
    locks = InMemoryLockManager()
    handle = await locks.acquire("order:1", owner="first")

    with pytest.raises(WorkflowLockError) as exc_info:
        await locks.acquire("order:1", wait_seconds=0.05, owner="second")

    assert exc_info.value.kind == ErrorKind.CONFLICT
    assert exc_info.value.code == "LOCK_UNAVAILABLE"
    await locks.release(handle)


@pytest.mark.asyncio
async def test_release_is_idempotent():
    locks = InMemoryLockManager()
    handle = await locks.acquire("payment:1")

    await locks.release(handle)
    await locks.release(handle)

    assert handle.released
    assert not await locks.is_locked("payment:1")
    second = await locks.acquire("payment:1", wait_seconds=0.1)
    assert await locks.is_locked("payment:1")
    await locks.release(second)


@pytest.mark.asyncio
async def test_hold_releases_on_exception():
    locks = InMemoryLockManager()

    with pytest.raises(RuntimeError):
        async with locks.hold("cart:9"):
            raise RuntimeError("step failed")

    assert not await locks.is_locked("cart:9")


@pytest.mark.asyncio
async def test_idle_keys_are_dropped():
    locks = InMemoryLockManager()

    async with locks.hold("cart:1"):
        assert locks.active_keys == ["cart:1"]

    assert locks.active_keys == []


@pytest.mark.asyncio
async def test_timed_out_waiter_does_not_leak_entry():
    locks = InMemoryLockManager()
    handle = await locks.acquire("cart:1")

    with pytest.raises(WorkflowLockError):
        await locks.acquire("cart:1", wait_seconds=0.01)

    await locks.release(handle)
    assert locks.active_keys == []


def _redis_client() -> AsyncMock:
    client = AsyncMock()
    client.set.return_value = True
    client.eval.return_value = 1
    client.exists.return_value = 0
    return client


@pytest.mark.asyncio
async def test_redis_acquire_uses_set_nx_with_ttl():
    client = _redis_client()
    locks = RedisLockManager(client, key_prefix="test:lock:", ttl_seconds=30)

    handle = await locks.acquire("cart:1", owner="exec-1")

    client.set.assert_awaited_once_with("test:lock:cart:1", handle.token, nx=True, px=30000)
    assert handle.owner == "exec-1"
    assert handle.token.startswith("exec-1:")


@pytest.mark.asyncio
async def test_redis_acquire_gives_up_after_wait():
    client = _redis_client()
    client.set.return_value = None
    locks = RedisLockManager(client, poll_interval=0.01)

    with pytest.raises(WorkflowLockError):
        await locks.acquire("cart:1", wait_seconds=0.05)

    assert client.set.await_count >= 2


@pytest.mark.asyncio
async def test_redis_release_compares_token_and_runs_once():
    client = _redis_client()
    locks = RedisLockManager(client, key_prefix="test:lock:")
    handle = await locks.acquire("order:1")

    await locks.release(handle)
    await locks.release(handle)

    client.eval.assert_awaited_once_with(
        RedisLockManager.RELEASE_SCRIPT, 1, "test:lock:order:1", handle.token
    )


@pytest.mark.asyncio
async def test_redis_release_of_expired_lock_is_not_an_error():
    client = _redis_client()
    client.eval.return_value = 0
    locks = RedisLockManager(client)
    handle = await locks.acquire("order:1")

    await locks.release(handle)

    assert handle.released


@pytest.mark.asyncio
async def test_redis_is_locked_and_close():
    client = _redis_client()
    client.exists.return_value = 1
    locks = RedisLockManager(client, key_prefix="p:")

    assert await locks.is_locked("cart:1")
    client.exists.assert_awaited_once_with("p:cart:1")

    await locks.close()
    client.aclose.assert_awaited_once()


@pytest.mark.asyncio
async def test_in_memory_backend_is_always_healthy():
    assert await InMemoryLockManager().is_healthy()


@pytest.mark.asyncio
async def test_redis_health_pings_the_server():
    client = _redis_client()
    client.ping.return_value = True
    locks = RedisLockManager(client)

    assert await locks.is_healthy()
    client.ping.assert_awaited_once()


@pytest.mark.asyncio
async def test_unreachable_redis_is_unhealthy():
    client = _redis_client()
    client.ping.side_effect = RedisConnectionError("connection refused")
    locks = RedisLockManager(client)

    assert not await locks.is_healthy()
