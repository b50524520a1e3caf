"""Read-through lookup caches for user records.

Two independent TTL caches, one keyed by login and one keyed by email, sit in
front of the user store. Every write to a user record must be followed by
``evict`` so that the login path never serves a stale credential.

A read-through load remembers the key's generation before it queries the
store and only fills the cache if no eviction happened in between, so a row
read before a concurrent write is never cached after that write's eviction.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from ...domain.models import User
from ...domain.ports.persistence import UserRepository

logger = logging.getLogger(__name__)

USERS_BY_LOGIN_CACHE = "usersByLogin"
USERS_BY_EMAIL_CACHE = "usersByEmail"

Generation = Tuple[int, int]


@dataclass
class CacheEntry:
    value: User
    expires_at: float


class TTLCache:
    """Thread-safe map whose entries expire after a fixed number of seconds."""

    def __init__(self, name: str, ttl_seconds: int, clock: Callable[[], float] = time.monotonic):
        self.name = name
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._generations: Dict[str, int] = {}
        self._epoch = 0
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[User]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() > entry.expires_at:
                del self._entries[key]
                return None
            return entry.value

    def generation(self, key: str) -> Generation:
        with self._lock:
            return self._epoch, self._generations.get(key, 0)

    def put(self, key: str, value: User, generation: Optional[Generation] = None) -> bool:
        """Store ``value``; with ``generation`` set, only if ``key`` was not evicted since."""
        with self._lock:
            if generation is not None and generation != (self._epoch, self._generations.get(key, 0)):
                return False
            self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + self.ttl_seconds)
            return True

    def evict(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)
            self._generations[key] = self._generations.get(key, 0) + 1

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._generations.clear()
            self._epoch += 1

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class UserLookupCache:
    """By-login and by-email lookups backed by the user store."""

    def __init__(
        self,
        repository: UserRepository,
        ttl_seconds: int = 3600,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._repository = repository
        self.by_login = TTLCache(USERS_BY_LOGIN_CACHE, ttl_seconds, clock)
        self.by_email = TTLCache(USERS_BY_EMAIL_CACHE, ttl_seconds, clock)

    def get_by_login(self, login: str) -> Optional[User]:
        return self._read_through(self.by_login, login.lower(), self._repository.get_user_by_login)

    def get_by_email(self, email: str) -> Optional[User]:
        return self._read_through(self.by_email, email.lower(), self._repository.get_user_by_email)

    def evict(self, user: User) -> None:
        if user.login:
            self.by_login.evict(user.login.lower())
        if user.email:
            self.by_email.evict(user.email.lower())
        logger.debug("Evicted cached lookups for %s", user.login)

    def clear(self) -> None:
        self.by_login.clear()
        self.by_email.clear()

    @staticmethod
    def _read_through(cache: TTLCache, key: str, load: Callable[[str], Optional[User]]) -> Optional[User]:
        cached = cache.get(key)
        if cached is not None:
            return cached
        generation = cache.generation(key)
        user = load(key)
        if user is not None and not cache.put(key, user, generation):
            logger.debug("Skipped caching %s in %s: evicted while loading", key, cache.name)
        return user
