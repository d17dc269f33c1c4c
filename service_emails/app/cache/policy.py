"""
Expiration policy and cache entry bookkeeping.

An entry carries two limits: a sliding window that restarts on every read,
and an absolute deadline fixed when the entry is written. The effective
expiry is always ``min(last_access + sliding, absolute_deadline)``.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from shared.config import AccessConfig


@dataclass(frozen=True)
class ExpirationPolicy:
    """Sliding plus absolute expiration. Either limit may be omitted."""
    sliding: Optional[timedelta] = None
    absolute: Optional[timedelta] = None

    def __post_init__(self):
        for name in ("sliding", "absolute"):
            value = getattr(self, name)
            if value is not None and value <= timedelta(0):
                raise ValueError(f"{name} expiration must be positive")

    @property
    def sliding_seconds(self) -> Optional[float]:
        return self.sliding.total_seconds() if self.sliding is not None else None

    def absolute_deadline(self, now: float) -> Optional[float]:
        """Deadline for an entry written at ``now`` (seconds on the store's clock)."""
        if self.absolute is None:
            return None
        return now + self.absolute.total_seconds()

    @classmethod
    def from_config(cls, config: AccessConfig) -> "ExpirationPolicy":
        return cls(
            sliding=timedelta(seconds=config.cache_sliding_expiration_seconds),
            absolute=timedelta(seconds=config.cache_absolute_expiration_seconds),
        )


DEFAULT_POLICY = ExpirationPolicy(
    sliding=timedelta(minutes=10),
    absolute=timedelta(minutes=30),
)


@dataclass
class CacheEntry:
    """A stored value with its expiration bookkeeping."""
    key: str
    value: str
    sliding_seconds: Optional[float]
    absolute_deadline: Optional[float]
    expires_at: Optional[float] = None

    @classmethod
    def create(cls, key: str, value: str, policy: ExpirationPolicy, now: float) -> "CacheEntry":
        entry = cls(
            key=key,
            value=value,
            sliding_seconds=policy.sliding_seconds,
            absolute_deadline=policy.absolute_deadline(now),
        )
        entry.touch(now)
        return entry

    def next_expiry(self, now: float) -> Optional[float]:
        """Expiry if the entry were accessed at ``now``; None means it never expires."""
        candidates = []
        if self.sliding_seconds is not None:
            candidates.append(now + self.sliding_seconds)
        if self.absolute_deadline is not None:
            candidates.append(self.absolute_deadline)
        return min(candidates) if candidates else None

    def remaining_ttl(self, now: float) -> Optional[float]:
        expiry = self.next_expiry(now)
        return None if expiry is None else expiry - now

    def touch(self, now: float) -> None:
        self.expires_at = self.next_expiry(now)

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at
