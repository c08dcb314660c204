"""
Redis-based distributed lock.

Guards dispatch so a ride is never fanned out to drivers twice:

* ``dispatch:ride:<id>`` -- held while one ride is being dispatched,
  whether triggered by the API or by the background worker.
* ``dispatch:cycle``     -- held by the worker for a whole cycle so only
  one instance scans for undispatched rides.

Implementation uses SET NX EX for acquire and a Lua script for
atomic check-and-delete on release.
"""

from __future__ import annotations

import uuid

import redis.asyncio as aioredis

_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class LockNotAcquired(RuntimeError):
    """The lock is held by someone else."""


class DistributedLock:
    def __init__(
        self, client: aioredis.Redis, key: str, ttl_seconds: int = 30
    ):
        self.redis = client
        self.key = f"lock:{key}"
        self.ttl = ttl_seconds
        self.token = str(uuid.uuid4())

    @classmethod
    def for_ride(
        cls, client: aioredis.Redis, ride_id: str, ttl_seconds: int = 30
    ) -> "DistributedLock":
        return cls(client, f"dispatch:ride:{ride_id}", ttl_seconds)

    async def acquire(self) -> bool:
        """Try to acquire. Returns True on success."""
        return bool(
            await self.redis.set(self.key, self.token, nx=True, ex=self.ttl)
        )

    async def release(self) -> None:
        """Release only if we still own the lock (atomic via Lua)."""
        await self.redis.eval(_RELEASE_SCRIPT, 1, self.key, self.token)

    # context-manager support
    async def __aenter__(self):
        acquired = await self.acquire()
        if not acquired:
            raise LockNotAcquired(f"Could not acquire lock: {self.key}")
        return self

    async def __aexit__(self, *args):
        await self.release()
