"""
Unit tests for cached value codecs and cache keys.
"""

import pytest
from datetime import datetime, timezone

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from shared.errors import DeserializationError
from service_emails.app.cache.codec import COUNT_CODEC, EMAIL_LIST_CODEC
from service_emails.app.cache.keys import (
    ALL_RECORDS_KEY, TOTAL_COUNT_KEY, aggregate_keys, cache_key, list_key
)
from service_emails.app.models import Email, SortField, SortSpec


class TestCodecs:
    """Test cases for JsonCodec instances."""

    @pytest.fixture
    def emails(self):
        return [
            Email(
                id="e-2",
                sender="b@x.com",
                subject="Refund",
                body="Still waiting",
                type="negative",
                score=2,
                time=datetime(2024, 5, 2, 9, 30, tzinfo=timezone.utc)
            ),
            Email(
                id="e-1",
                sender="a@x.com",
                type="positive",
                score=9,
                time=datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)
            ),
        ]

    def test_email_list_decodes_to_equal_records(self, emails):
        payload = EMAIL_LIST_CODEC.encode(emails)
        decoded = EMAIL_LIST_CODEC.decode(payload)
        assert [email.model_dump() for email in decoded] == [email.model_dump() for email in emails]
        assert decoded[0].time.tzinfo is not None

    def test_encoding_is_deterministic(self, emails):
        copies = [email.model_copy(deep=True) for email in emails]
        assert EMAIL_LIST_CODEC.encode(emails) == EMAIL_LIST_CODEC.encode(copies)

    def test_count_payload_is_plain_integer_text(self):
        assert COUNT_CODEC.encode(42) == "42"
        assert COUNT_CODEC.decode("42") == 42

    @pytest.mark.parametrize("payload", ["", "not json", "{\"id\": 1}", "[{\"sender\": 5, \"score\": \"x\"}]"])
    def test_corrupt_list_payload(self, payload):
        with pytest.raises(DeserializationError) as exc_info:
            EMAIL_LIST_CODEC.decode(payload)
        assert exc_info.value.details["codec"] == "email_list"

    def test_corrupt_count_payload(self):
        with pytest.raises(DeserializationError):
            COUNT_CODEC.decode("[1, 2]")


class TestCacheKeys:
    """Test cases for cache key derivation."""

    def test_reference_keys(self):
        assert list_key() == ALL_RECORDS_KEY == "all_records"
        assert TOTAL_COUNT_KEY == "total_record_count"

    def test_cache_key_sorts_parameters(self):
        assert cache_key("op", b=2, a=1) == "op:a=1:b=2"
        assert cache_key("op") == "op"

    def test_non_default_sort_gets_own_key(self):
        key = list_key(SortSpec(field=SortField.SCORE, descending=False))
        assert key == "all_records:sort=score:asc"

    def test_aggregate_keys_cover_every_listing_and_count(self):
        keys = aggregate_keys()
        assert ALL_RECORDS_KEY in keys
        assert TOTAL_COUNT_KEY in keys
        assert len(keys) == len(set(keys)) == len(SortField) * 2 + 1
        for field in SortField:
            for descending in (True, False):
                assert list_key(SortSpec(field=field, descending=descending)) in keys
