"""Lock managers - scoped per-key mutual exclusion for workflow executions."""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from uuid import uuid4

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from core.infrastructure.logging import get_logger

from .errors import WorkflowLockError

logger = get_logger("orchestration.locks")


@dataclass
class LockHandle:
    """Proof of ownership of a held lock. Released at most once."""

    key: str
    owner: str
    token: str
    released: bool = False


class LockManager(ABC):
    """Per-key lock registry.

    Holders of different keys proceed concurrently; holders of the same key
    are serialized. A waiter gives up after ``wait_seconds`` with
    WorkflowLockError.
    """

    @abstractmethod
    async def acquire(
        self, key: str, *, wait_seconds: float | None = None, owner: str | None = None
    ) -> LockHandle:
        """Acquire the lock for key.

        Args:
            key: Lock key, e.g. "cart:cart_123"
            wait_seconds: Maximum wait; None waits indefinitely
            owner: Identifier of the holder (usually the execution id)

        Raises:
            WorkflowLockError: If the lock was not acquired in time
        """

    @abstractmethod
    async def release(self, handle: LockHandle) -> None:
        """Release a held lock. Releasing an already-released handle is a no-op."""

    @abstractmethod
    async def is_locked(self, key: str) -> bool:
        ...

    async def is_healthy(self) -> bool:
        """Whether the lock backend is reachable."""
        return True

    @asynccontextmanager
    async def hold(
        self, key: str, *, wait_seconds: float | None = None, owner: str | None = None
    ) -> AsyncIterator[LockHandle]:
        """Hold the lock for key for the duration of the block, on every exit path."""
        handle = await self.acquire(key, wait_seconds=wait_seconds, owner=owner)
        try:
            yield handle
        finally:
            await self.release(handle)


class _LockEntry:
    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.users = 0
        self.owner: str | None = None


class InMemoryLockManager(LockManager):
    """Process-local lock manager backed by one asyncio.Lock per key.

    Entries are created on first use and dropped once no holder or waiter
    references them, so the registry does not grow with the key space.
    """

    def __init__(self) -> None:
        self._entries: dict[str, _LockEntry] = {}

    async def acquire(
        self, key: str, *, wait_seconds: float | None = None, owner: str | None = None
    ) -> LockHandle:
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _LockEntry()
        entry.users += 1

        try:
            if wait_seconds is None:
                await entry.lock.acquire()
            else:
                await asyncio.wait_for(entry.lock.acquire(), timeout=wait_seconds)
        except asyncio.TimeoutError:
            self._leave(key, entry)
            logger.warning(f"Lock '{key}' still held by {entry.owner} after {wait_seconds}s")
            raise WorkflowLockError(
                f"Could not acquire lock '{key}' within {wait_seconds}s",
                details={"lock_key": key},
            ) from None
        except BaseException:
            self._leave(key, entry)
            raise

        holder = owner or uuid4().hex
        entry.owner = holder
        logger.debug(f"Acquired lock '{key}' for {holder}")
        return LockHandle(key=key, owner=holder, token=holder)

    async def release(self, handle: LockHandle) -> None:
        if handle.released:
            return
        handle.released = True

        entry = self._entries.get(handle.key)
        if entry is None or not entry.lock.locked():
            return
        entry.owner = None
        entry.lock.release()
        self._leave(handle.key, entry)
        logger.debug(f"Released lock '{handle.key}' for {handle.owner}")

    async def is_locked(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.lock.locked()

    @property
    def active_keys(self) -> list[str]:
        return list(self._entries)

    def _leave(self, key: str, entry: _LockEntry) -> None:
        entry.users -= 1
        if entry.users <= 0 and self._entries.get(key) is entry:
            del self._entries[key]


class RedisLockManager(LockManager):
    """Lock manager for multi-process deployments, backed by Redis.

    Acquisition is ``SET key token NX PX ttl`` polled until the wait deadline;
    release deletes the key only while it still holds this holder's token, so
    a lock that expired and was taken over is never released by the old holder.
    """

    RELEASE_SCRIPT = (
        "if redis.call('get', KEYS[1]) == ARGV[1] then "
        "return redis.call('del', KEYS[1]) "
        "else return 0 end"
    )

    def __init__(
        self,
        client: aioredis.Redis,
        *,
        key_prefix: str = "storeflow:lock:",
        ttl_seconds: float = 60.0,
        poll_interval: float = 0.05,
    ) -> None:
        self._client = client
        self._key_prefix = key_prefix
        self._ttl_ms = int(ttl_seconds * 1000)
        self._poll_interval = poll_interval

    @classmethod
    def from_url(cls, url: str, **kwargs: object) -> "RedisLockManager":
        client = aioredis.from_url(url, encoding="utf-8", decode_responses=True)
        return cls(client, **kwargs)  # type: ignore[arg-type]

    def _redis_key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    async def acquire(
        self, key: str, *, wait_seconds: float | None = None, owner: str | None = None
    ) -> LockHandle:
        holder = owner or uuid4().hex
        token = f"{holder}:{uuid4().hex}"
        loop = asyncio.get_running_loop()
        deadline = None if wait_seconds is None else loop.time() + wait_seconds

        while True:
            acquired = await self._client.set(
                self._redis_key(key), token, nx=True, px=self._ttl_ms
            )
            if acquired:
                logger.debug(f"Acquired redis lock '{key}' for {holder}")
                return LockHandle(key=key, owner=holder, token=token)
            if deadline is not None and loop.time() >= deadline:
                logger.warning(f"Redis lock '{key}' unavailable after {wait_seconds}s")
                raise WorkflowLockError(
                    f"Could not acquire lock '{key}' within {wait_seconds}s",
                    details={"lock_key": key},
                )
            await asyncio.sleep(self._poll_interval)

    async def release(self, handle: LockHandle) -> None:
        if handle.released:
            return
        handle.released = True
        deleted = await self._client.eval(
            self.RELEASE_SCRIPT, 1, self._redis_key(handle.key), handle.token
        )
        if not deleted:
            logger.warning(f"Redis lock '{handle.key}' expired before release by {handle.owner}")

    async def is_locked(self, key: str) -> bool:
        return bool(await self._client.exists(self._redis_key(key)))

    async def is_healthy(self) -> bool:
        try:
            return bool(await self._client.ping())
        except (RedisError, OSError) as exc:
            logger.warning(f"Redis lock backend unreachable: {exc}")
            return False

    async def close(self) -> None:
        await self._client.aclose()
