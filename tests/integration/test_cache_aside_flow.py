"""
Integration tests for the assembled email service.
"""

import pytest
from prometheus_client import CollectorRegistry

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from shared.config import get_config
from shared.errors import NotFoundError
from service_emails.app.cache.keys import ALL_RECORDS_KEY, TOTAL_COUNT_KEY
from service_emails.app.cache.stores import MemoryCacheStore
from service_emails.app.main import build_service, create_service
from service_emails.app.models import Email, SortField, SortSpec
from service_emails.app.persistence import MemoryDocumentStore


class TestCacheAsideFlow:
    """End-to-end flow over in-memory backends."""

    @pytest.fixture
    def config(self):
        return get_config(
            cache_backend="memory",
            store_backend="memory",
            cache_sliding_expiration_seconds=60,
            cache_absolute_expiration_seconds=300
        )

    @pytest.fixture
    def registry(self):
        return CollectorRegistry()

    @pytest.fixture
    def service(self, config, registry):
        return build_service(config, registry=registry)

    def test_build_service_wires_configuration(self, service):
        assert isinstance(service.store, MemoryDocumentStore)
        assert isinstance(service.access.cache, MemoryCacheStore)
        assert service.access.policy.sliding_seconds == 60
        assert service.access.policy.absolute_deadline(0.0) == 300.0

    @pytest.mark.asyncio
    async def test_full_lifecycle(self, service):
        assert await service.count() == 0
        assert await service.list_all() == []

        first = await service.create(Email(sender="a@x.com", type="positive", score=9))
        second = await service.create(Email(sender="b@x.com", type="negative", score=2))

        assert await service.count() == 2
        assert {email.id for email in await service.list_all()} == {first.id, second.id}
        assert ALL_RECORDS_KEY in service.access.cache
        assert TOTAL_COUNT_KEY in service.access.cache

        await service.update(second.id, Email(sender="b@x.com", type="neutral", score=5))
        assert ALL_RECORDS_KEY not in service.access.cache
        by_score = await service.list_all(SortSpec(field=SortField.SCORE, descending=True))
        assert [email.score for email in by_score] == [9, 5]

        await service.delete(first.id)
        assert await service.count() == 1
        with pytest.raises(NotFoundError):
            await service.get_by_id(first.id)

    @pytest.mark.asyncio
    async def test_repeat_reads_are_cache_hits(self, service, registry):
        await service.create(Email(sender="a@x.com", score=1))

        await service.list_all()
        await service.list_all()
        await service.list_all()

        assert registry.get_sample_value("cache_misses_total", {"cache_key": ALL_RECORDS_KEY}) == 1.0
        assert registry.get_sample_value("cache_hits_total", {"cache_key": ALL_RECORDS_KEY}) == 2.0

    @pytest.mark.asyncio
    async def test_create_service_starts_and_probes(self, config):
        service = await create_service(config, registry=CollectorRegistry())
        try:
            assert (await service.probe_cache())["cached_value"] == "Cache is working!"
            assert await service.check_dependencies() == {"cache": "ok", "store": "ok"}
        finally:
            await service.stop()
