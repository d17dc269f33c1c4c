"""
Unit tests for the PostgreSQL document store against a mocked pool.
"""

import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import asyncpg

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from shared.errors import StorageError
from service_emails.app.models import Email, EmailFilter, SortField, SortSpec
from service_emails.app.persistence.postgres import PostgreSQLDocumentStore

ROW = {
    "id": "e-1",
    "sender": "a@x.com",
    "subject": "Hello",
    "body": "Thanks!",
    "type": "positive",
    "score": 8,
    "time": datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc),
}


class TestPostgreSQLDocumentStore:
    """Test cases for PostgreSQLDocumentStore."""

    @pytest.fixture
    def conn(self):
        return AsyncMock()

    @pytest.fixture
    def store(self, conn):
        store = PostgreSQLDocumentStore("postgresql://localhost/sentimatrix")
        pool = MagicMock()
        pool.acquire.return_value.__aenter__.return_value = conn
        pool.acquire.return_value.__aexit__.return_value = False
        store.pool = pool
        return store

    @pytest.mark.asyncio
    async def test_find_all_orders_newest_first(self, store, conn):
        conn.fetch.return_value = [ROW]

        emails = await store.find()

        query = conn.fetch.await_args.args[0]
        assert "WHERE" not in query
        assert query.endswith("ORDER BY time DESC, id DESC")
        assert emails[0].id == "e-1"
        assert emails[0].type == "positive"

    @pytest.mark.asyncio
    async def test_find_with_filter_uses_parameters(self, store, conn):
        conn.fetch.return_value = []

        await store.find(
            EmailFilter(type="negative", min_score=1, max_score=3),
            SortSpec(field=SortField.SCORE, descending=False)
        )

        query, *args = conn.fetch.await_args.args
        assert "WHERE type = $1 AND score >= $2 AND score <= $3" in query
        assert query.endswith("ORDER BY score ASC, id ASC")
        assert args == ["negative", 1, 3]

    @pytest.mark.asyncio
    async def test_find_one(self, store, conn):
        conn.fetchrow.return_value = ROW
        email = await store.find_one("e-1")
        assert email.sender == "a@x.com"
        assert conn.fetchrow.await_args.args[1] == "e-1"

    @pytest.mark.asyncio
    async def test_find_one_missing(self, store, conn):
        conn.fetchrow.return_value = None
        assert await store.find_one("missing") is None

    @pytest.mark.asyncio
    async def test_insert_one(self, store, conn):
        email = Email(**ROW)
        await store.insert_one(email)

        query, *args = conn.execute.await_args.args
        assert query.startswith("INSERT INTO emails (id, sender, subject, body, type, score, time)")
        assert args[0] == "e-1"
        assert args[5] == 8

    @pytest.mark.asyncio
    async def test_replace_one_reports_affected_row(self, store, conn):
        conn.execute.return_value = "UPDATE 1"
        assert await store.replace_one("e-1", Email(**ROW)) is True

        query, *args = conn.execute.await_args.args
        assert query.endswith("WHERE id = $1")
        assert args[0] == "e-1"

        conn.execute.return_value = "UPDATE 0"
        assert await store.replace_one("missing", Email(**ROW)) is False

    @pytest.mark.asyncio
    async def test_delete_one(self, store, conn):
        conn.execute.return_value = "DELETE 1"
        assert await store.delete_one("e-1") is True
        conn.execute.return_value = "DELETE 0"
        assert await store.delete_one("e-1") is False

    @pytest.mark.asyncio
    async def test_count_documents(self, store, conn):
        conn.fetchval.return_value = 12
        assert await store.count_documents() == 12
        assert conn.fetchval.await_args.args == ("SELECT COUNT(*) FROM emails",)

    @pytest.mark.asyncio
    async def test_driver_error_becomes_storage_error(self, store, conn):
        conn.fetch.side_effect = asyncpg.PostgresConnectionError("connection lost")

        with pytest.raises(StorageError) as exc_info:
            await store.find(EmailFilter(sender="a@x.com"))

        assert exc_info.value.operation == "find"
        assert exc_info.value.details["sender"] == "a@x.com"

    @pytest.mark.asyncio
    async def test_timeout_becomes_storage_error(self, store, conn):
        conn.fetchval.side_effect = TimeoutError()
        with pytest.raises(StorageError):
            await store.ping()

    @pytest.mark.asyncio
    async def test_operations_before_start(self):
        store = PostgreSQLDocumentStore("postgresql://localhost/sentimatrix")
        with pytest.raises(StorageError) as exc_info:
            await store.count_documents()
        assert exc_info.value.operation == "count_documents"
