"""
Unit tests for the expiration policy and cache entry bookkeeping.
"""

import pytest
from datetime import timedelta

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from shared.config import get_config
from service_emails.app.cache.policy import CacheEntry, ExpirationPolicy, DEFAULT_POLICY


class TestExpirationPolicy:
    """Test cases for ExpirationPolicy."""

    def test_default_policy_matches_reference_values(self):
        assert DEFAULT_POLICY.sliding == timedelta(minutes=10)
        assert DEFAULT_POLICY.absolute == timedelta(minutes=30)

    def test_non_positive_durations_rejected(self):
        with pytest.raises(ValueError):
            ExpirationPolicy(sliding=timedelta(0))
        with pytest.raises(ValueError):
            ExpirationPolicy(absolute=timedelta(seconds=-5))

    def test_absolute_deadline_is_relative_to_write_time(self):
        assert DEFAULT_POLICY.absolute_deadline(1000.0) == 2800.0
        assert ExpirationPolicy(sliding=timedelta(seconds=5)).absolute_deadline(1000.0) is None

    def test_from_config(self):
        config = get_config(cache_sliding_expiration_seconds=60, cache_absolute_expiration_seconds=120)
        policy = ExpirationPolicy.from_config(config)
        assert policy.sliding_seconds == 60
        assert policy.absolute == timedelta(seconds=120)


class TestCacheEntry:
    """Test cases for CacheEntry expiry arithmetic."""

    def test_new_entry_expires_after_sliding_window(self):
        entry = CacheEntry.create("k", "v", DEFAULT_POLICY, now=0.0)
        assert entry.expires_at == 600.0
        assert not entry.is_expired(599.9)
        assert entry.is_expired(600.0)

    def test_touch_extends_sliding_window(self):
        entry = CacheEntry.create("k", "v", DEFAULT_POLICY, now=0.0)
        entry.touch(500.0)
        assert entry.expires_at == 1100.0

    def test_sliding_never_passes_absolute_deadline(self):
        entry = CacheEntry.create("k", "v", DEFAULT_POLICY, now=0.0)
        now = 0.0
        while now < 1800.0:
            assert not entry.is_expired(now)
            entry.touch(now)
            assert entry.expires_at <= 1800.0
            now += 300.0
        assert entry.is_expired(1800.0)

    def test_sliding_larger_than_absolute_is_capped(self):
        policy = ExpirationPolicy(sliding=timedelta(minutes=60), absolute=timedelta(minutes=5))
        entry = CacheEntry.create("k", "v", policy, now=100.0)
        assert entry.expires_at == 400.0
        assert entry.remaining_ttl(100.0) == 300.0

    def test_absolute_only_entry(self):
        policy = ExpirationPolicy(absolute=timedelta(seconds=30))
        entry = CacheEntry.create("k", "v", policy, now=10.0)
        entry.touch(20.0)
        assert entry.expires_at == 40.0

    def test_entry_without_limits_never_expires(self):
        entry = CacheEntry.create("k", "v", ExpirationPolicy(), now=0.0)
        assert entry.expires_at is None
        assert entry.remaining_ttl(1e9) is None
        assert not entry.is_expired(1e9)
