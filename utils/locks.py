import logging
import time
import uuid

from django.core.cache import cache

logger = logging.getLogger(__name__)


class ResourceLockedException(Exception):
    """Another worker already holds the lock for this resource."""


class ResourceLock:
    """
    Cache backed mutex for one resource, e.g. ("party-playlist", party.id).

    cache.add() only writes a missing key, which is atomic on redis and
    per-process on the local memory cache. Each holder stores its own token
    so that an expired lock picked up by someone else is never released by
    the previous owner.
    """

    def __init__(self, resource_type, resource_id, timeout=600):
        self.resource_type = resource_type
        self.resource_id = resource_id
        self.timeout = timeout
        self.key = f"{resource_type}_lock:{resource_id}"
        self.token = None

    def acquire(self) -> bool:
        token = uuid.uuid4().hex
        acquired = cache.add(
            self.key,
            {
                "token": token,
                "acquired_at": time.time(),
                "resource_type": self.resource_type,
                "resource_id": self.resource_id,
            },
            timeout=self.timeout,
        )
        if acquired:
            self.token = token
        return acquired

    def release(self):
        info = cache.get(self.key)
        if info and info.get("token") == self.token:
            cache.delete(self.key)
        elif self.token is not None:
            logger.warning(f"{self.key} expired before release")
        self.token = None

    def is_locked(self) -> bool:
        return cache.get(self.key) is not None

    def get_lock_info(self):
        return cache.get(self.key)

    def held_for(self):
        """Seconds since the current holder took the lock, None when free."""
        info = self.get_lock_info()
        if not info or not isinstance(info.get("acquired_at"), (int, float)):
            return None
        return round(time.time() - info["acquired_at"], 1)

    def __enter__(self):
        if not self.acquire():
            logger.warning(
                f"{self.resource_type} {self.resource_id} locked for {self.held_for()}s"
            )
            raise ResourceLockedException(
                f"{self.resource_type} {self.resource_id} is already being processed"
            )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False
