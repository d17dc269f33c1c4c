"""
Email accessor operations.

Full listings and the total count go through the cache-aside layer; lookups
by id and filtered queries always hit the document store, so the number of
cache keys stays bounded. Every successful mutation invalidates all
aggregate keys.
"""

from contextlib import nullcontext
from datetime import timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from shared.errors import CacheUnavailableError, NotFoundError, StorageError, ValidationError
from shared.logging import bind_operation, get_logger
from shared.metrics import MetricsCollector
from .cache.access import CacheAsideLayer
from .cache.codec import COUNT_CODEC, EMAIL_LIST_CODEC
from .cache.keys import PROBE_KEY, TOTAL_COUNT_KEY, aggregate_keys, list_key
from .cache.policy import ExpirationPolicy
from .models import DEFAULT_SORT, MATCH_ALL, Email, EmailFilter, SentimentLabel, SortSpec
from .persistence import DocumentStore

T = TypeVar("T")

PROBE_VALUE = "Cache is working!"
PROBE_POLICY = ExpirationPolicy(absolute=timedelta(minutes=10))


class EmailService:
    """Read and write emails through the cache-aside layer."""

    def __init__(
        self,
        store: DocumentStore,
        access: CacheAsideLayer,
        *,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.store = store
        self.access = access
        self.metrics = metrics
        self.logger = get_logger("emails.service")

    async def start(self):
        start = getattr(self.store, "start", None)
        if start is not None:
            await start()
        self.logger.info("Email service started")

    async def stop(self):
        stop = getattr(self.store, "stop", None)
        if stop is not None:
            await stop()
        close = getattr(self.access.cache, "close", None)
        if close is not None:
            await close()
        self.logger.info("Email service stopped")

    # Cached aggregates

    async def list_all(self, sort: Optional[SortSpec] = None, *, use_cache: bool = True) -> List[Email]:
        """All emails, newest first unless another order is given."""
        sort = sort or DEFAULT_SORT
        with bind_operation("list_all"):
            return await self.access.read_through(
                list_key(sort),
                lambda: self._call_store("list_all", self.store.find, MATCH_ALL, sort),
                EMAIL_LIST_CODEC,
                use_cache=use_cache,
                operation="list_all",
            )

    async def count(self, *, use_cache: bool = True) -> int:
        """Total number of stored emails."""
        with bind_operation("count"):
            return await self.access.read_through(
                TOTAL_COUNT_KEY,
                lambda: self._call_store("count", self.store.count_documents, MATCH_ALL),
                COUNT_CODEC,
                use_cache=use_cache,
                operation="count",
            )

    # Direct store reads

    async def get_by_id(self, email_id: str) -> Email:
        with bind_operation("get_by_id"):
            email = await self._call_store("get_by_id", self.store.find_one, email_id, email_id=email_id)
            if email is None:
                self.logger.warning("Email not found", operation="get_by_id", email_id=email_id)
                raise NotFoundError("email", email_id)
            return email

    async def get_by_filter(self, filter: EmailFilter, sort: Optional[SortSpec] = None) -> List[Email]:
        """Emails matching ``filter``. Never cached."""
        with bind_operation("get_by_filter"):
            if filter.min_score is not None and filter.max_score is not None and filter.min_score > filter.max_score:
                self.logger.warning(
                    "Rejected inverted score range",
                    operation="get_by_filter",
                    min_score=filter.min_score,
                    max_score=filter.max_score
                )
                raise ValidationError(
                    "min_score must not exceed max_score",
                    {"min_score": filter.min_score, "max_score": filter.max_score}
                )
            return await self._call_store(
                "get_by_filter", self.store.find, filter, sort or DEFAULT_SORT, **filter.describe()
            )

    async def get_by_type(self, label: SentimentLabel) -> List[Email]:
        try:
            label = SentimentLabel(label)
        except ValueError as e:
            self.logger.warning("Rejected unknown sentiment label", operation="get_by_type", label=str(label))
            raise ValidationError(
                "unknown sentiment label",
                {"label": str(label), "allowed": [member.value for member in SentimentLabel]}
            ) from e
        return await self.get_by_filter(EmailFilter(type=label))

    async def get_positive(self) -> List[Email]:
        return await self.get_by_type(SentimentLabel.POSITIVE)

    async def get_negative(self) -> List[Email]:
        return await self.get_by_type(SentimentLabel.NEGATIVE)

    async def get_by_score_range(self, min_score: int, max_score: int) -> List[Email]:
        """Emails scored within ``[min_score, max_score]``."""
        return await self.get_by_filter(EmailFilter(min_score=min_score, max_score=max_score))

    async def get_by_sender(self, sender: str) -> List[Email]:
        return await self.get_by_filter(EmailFilter(sender=sender))

    # Mutations

    async def create(self, email: Email) -> Email:
        with bind_operation("create"):
            await self._call_store(
                "create", self.store.insert_one, email,
                email_id=email.id, sender=email.sender, score=email.score
            )
            self.logger.info("Stored email", email_id=email.id, sender=email.sender, score=email.score)
            await self._invalidate_aggregates("create", email_id=email.id)
            return email

    async def update(self, email_id: str, email: Email) -> Email:
        """Replace every field of ``email_id`` except its identity."""
        with bind_operation("update"):
            if "id" in email.model_fields_set and email.id != email_id:
                self.logger.warning("Rejected identity change", operation="update", email_id=email_id, body_id=email.id)
                raise ValidationError("email id cannot be changed", {"email_id": email_id, "body_id": email.id})

            replacement = email.model_copy(update={"id": email_id})
            replaced = await self._call_store(
                "update", self.store.replace_one, email_id, replacement,
                email_id=email_id, sender=replacement.sender, score=replacement.score
            )
            if not replaced:
                self.logger.warning("Email not found", operation="update", email_id=email_id)
                raise NotFoundError("email", email_id)

            self.logger.info("Updated email", email_id=email_id)
            await self._invalidate_aggregates("update", email_id=email_id)
            return replacement

    async def delete(self, email_id: str) -> None:
        with bind_operation("delete"):
            deleted = await self._call_store("delete", self.store.delete_one, email_id, email_id=email_id)
            if not deleted:
                self.logger.warning("Email not found", operation="delete", email_id=email_id)
                raise NotFoundError("email", email_id)

            self.logger.info("Removed email", email_id=email_id)
            await self._invalidate_aggregates("delete", email_id=email_id)

    # Cache maintenance and diagnostics

    async def clear_cache(self, key: str) -> bool:
        """Remove a single cache entry."""
        return await self.access.invalidate(key, operation="clear_cache")

    async def check_dependencies(self) -> Dict[str, str]:
        """Reachability of the cache and the document store."""
        status = {}
        try:
            await self.access.cache.ping()
            status["cache"] = "ok"
        except CacheUnavailableError as e:
            self.logger.warning("Cache health check failed", error=e.message)
            status["cache"] = "unavailable"

        try:
            await self.store.ping()
            status["store"] = "ok"
        except StorageError as e:
            self.logger.warning("Document store health check failed", error=e.message)
            status["store"] = "unavailable"
        return status

    async def probe_cache(self) -> Dict[str, Any]:
        """Write a short-lived value to the cache and read it back."""
        try:
            await self.access.cache.set_string(PROBE_KEY, PROBE_VALUE, PROBE_POLICY)
            cached_value = await self.access.cache.get_string(PROBE_KEY)
        except CacheUnavailableError as e:
            self.logger.warning("Cache probe failed", error=e.message)
            return {"message": "Cache connection test", "cached_value": None, "error": e.message}

        return {"message": "Cache connection test", "cached_value": cached_value}

    # Internals

    async def _call_store(self, operation: str, func: Callable[..., Awaitable[T]], *args, **log_fields) -> T:
        timer = self.metrics.time_store_operation(operation) if self.metrics else nullcontext()
        try:
            with timer:
                return await func(*args)
        except StorageError as e:
            self.logger.error(
                "Document store operation failed",
                operation=operation,
                error=e.message,
                **log_fields
            )
            raise

    async def _invalidate_aggregates(self, operation: str, **log_fields) -> None:
        failed = await self.access.invalidate_many(aggregate_keys(), operation=operation)
        if failed:
            # Left to expire on their own, bounded by the absolute deadline
            self.logger.warning(
                "Aggregate cache invalidation incomplete",
                operation=operation,
                failed_keys=failed,
                **log_fields
            )
