"""
Local storage areas used by the session lifecycle.

The short-lived area lives in process memory; the durable area is backed by
Redis so that it survives restarts. Both expose the same small key/value
protocol so cleanup can pattern-match over keys.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Protocol

import structlog
from redis import Redis

from staffgate.core.auth import Role
from staffgate.domain.models import Profile

logger = structlog.get_logger(__name__)


class StorageArea(Protocol):
    """Key/value persistence area (allows in-memory and Redis implementations)."""

    def keys(self) -> Iterator[str]:
        """Yield every key currently stored."""
        ...

    def get(self, key: str) -> str | None:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class InMemoryStorage:
    """Process-local storage area."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def keys(self) -> Iterator[str]:
        return iter(list(self._items))

    def get(self, key: str) -> str | None:
        return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove(self, key: str) -> None:
        self._items.pop(key, None)


class RedisStorage:
    """Durable storage area; keys are stored under ``namespace`` in Redis."""

    def __init__(self, client: Redis, namespace: str = "staffgate:") -> None:
        self.client = client
        self.namespace = namespace

    @classmethod
    def from_url(cls, url: str, namespace: str = "staffgate:") -> RedisStorage:
        return cls(Redis.from_url(url, decode_responses=True), namespace=namespace)

    def keys(self) -> Iterator[str]:
        for raw in self.client.scan_iter(match=f"{self.namespace}*"):
            key = raw.decode() if isinstance(raw, bytes) else raw
            yield key[len(self.namespace) :]

    def get(self, key: str) -> str | None:
        value = self.client.get(self.namespace + key)
        if isinstance(value, bytes):
            return value.decode()
        return value

    def set(self, key: str, value: str) -> None:
        self.client.set(self.namespace + key, value)

    def remove(self, key: str) -> None:
        self.client.delete(self.namespace + key)


def purge_prefixed(area: StorageArea, prefixes: Iterable[str]) -> list[str]:
    """Delete every key starting with one of ``prefixes``; returns removed keys."""
    prefixes = tuple(prefixes)
    removed = [key for key in list(area.keys()) if key.startswith(prefixes)]
    for key in removed:
        area.remove(key)
    return removed


@dataclass(slots=True, frozen=True)
class CachedClaims:
    """Role, tenant and staff flag remembered across restarts."""

    role: Role | None
    tenant_id: str | None
    is_staff: bool

    @classmethod
    def from_profile(cls, profile: Profile) -> CachedClaims:
        return cls(role=profile.role, tenant_id=profile.tenant_id, is_staff=profile.is_staff)


class ClaimsCache:
    """Narrow persisted cache of profile-derived claims.

    Entries are rewritten whenever a freshly fetched profile disagrees with them
    and are dropped when the profile is missing or on storage cleanup.
    """

    def __init__(self, area: StorageArea, key: str = "session-store") -> None:
        self.area = area
        self.key = key

    def load(self) -> CachedClaims | None:
        raw = self.area.get(self.key)
        if raw is None:
            return None
        try:
            data = json.loads(raw)
            role = data.get("role")
            return CachedClaims(
                role=Role.parse(role) if role else None,
                tenant_id=data.get("tenant_id"),
                is_staff=bool(data.get("is_staff", False)),
            )
        except (ValueError, AttributeError):
            logger.warning("claims_cache_corrupt", key=self.key)
            self.area.remove(self.key)
            return None

    def reconcile(self, profile: Profile | None) -> bool:
        """Align the cache with ``profile``; returns True when the entry changed."""
        cached = self.load()
        if profile is None:
            if cached is None:
                return False
            self.clear()
            return True

        fresh = CachedClaims.from_profile(profile)
        if cached == fresh:
            return False
        self.area.set(
            self.key,
            json.dumps(
                {
                    "role": fresh.role.value if fresh.role else None,
                    "tenant_id": fresh.tenant_id,
                    "is_staff": fresh.is_staff,
                }
            ),
        )
        return True

    def clear(self) -> None:
        self.area.remove(self.key)
