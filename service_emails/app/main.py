"""
Emails service wiring.

``build_service`` is the single place where configuration is turned into
concrete stores; everything below it receives its collaborators explicitly.
"""

from typing import Optional

from prometheus_client import CollectorRegistry

from shared.circuit_breaker import CircuitBreaker
from shared.config import AccessConfig, get_config
from shared.errors import CacheUnavailableError
from shared.logging import configure_logging, get_logger
from shared.metrics import get_metrics_collector
from .cache.access import CacheAsideLayer
from .cache.policy import ExpirationPolicy
from .cache.stores import MemoryCacheStore, RedisCacheStore
from .persistence import MemoryDocumentStore, PostgreSQLDocumentStore
from .service import EmailService

logger = get_logger("emails.main")


def build_cache_store(config: AccessConfig):
    if config.cache_backend == "memory":
        return MemoryCacheStore()
    return RedisCacheStore(
        config.redis_url,
        config.redis_instance_name,
        socket_timeout=config.redis_socket_timeout
    )


def build_document_store(config: AccessConfig):
    if config.store_backend == "memory":
        return MemoryDocumentStore()
    return PostgreSQLDocumentStore(
        config.postgres_dsn,
        config.emails_table,
        command_timeout=config.postgres_command_timeout
    )


def build_service(
    config: Optional[AccessConfig] = None,
    *,
    registry: Optional[CollectorRegistry] = None,
) -> EmailService:
    """Assemble an EmailService from configuration."""
    config = config or get_config()
    metrics = get_metrics_collector(config.service_name, registry)

    breaker = CircuitBreaker(
        failure_threshold=config.cache_failure_threshold,
        recovery_timeout=config.cache_recovery_timeout,
        expected_exception=CacheUnavailableError,
        name="cache"
    )
    access = CacheAsideLayer(
        build_cache_store(config),
        policy=ExpirationPolicy.from_config(config),
        breaker=breaker,
        metrics=metrics
    )

    logger.info(
        "Email service assembled",
        cache_backend=config.cache_backend,
        store_backend=config.store_backend,
        sliding_seconds=config.cache_sliding_expiration_seconds,
        absolute_seconds=config.cache_absolute_expiration_seconds
    )
    return EmailService(build_document_store(config), access, metrics=metrics)


async def create_service(config: Optional[AccessConfig] = None, **kwargs) -> EmailService:
    """Configure logging, build the service and start its stores."""
    config = config or get_config()
    configure_logging(config.service_name, config.log_level, config.json_logs)
    service = build_service(config, **kwargs)
    await service.start()
    return service
