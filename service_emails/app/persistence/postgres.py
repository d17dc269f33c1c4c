"""
PostgreSQL document store for the Emails Service.
"""

import asyncio
from typing import Any, List, Optional, Tuple

import asyncpg

from shared.errors import StorageError
from shared.logging import get_logger
from ..models import DEFAULT_SORT, MATCH_ALL, Email, EmailFilter, SentimentLabel, SortField, SortSpec

_DRIVER_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)

_COLUMNS = ("id", "sender", "subject", "body", "type", "score", "time")


class PostgreSQLDocumentStore:
    """Email collection stored in a PostgreSQL table.

    Driver failures are raised as ``StorageError``; a missing row is reported
    through the return value (``None`` / ``False``), never as an exception.
    """

    def __init__(self, dsn: str, table: str = "emails", *, command_timeout: float = 30.0):
        self.dsn = dsn
        self.table = table
        self.command_timeout = command_timeout
        self.logger = get_logger("emails.persistence.postgres")
        self.pool: Optional[asyncpg.Pool] = None

    async def start(self):
        """Create the connection pool and the table."""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=2,
                max_size=10,
                command_timeout=self.command_timeout
            )
            await self._create_tables()
        except _DRIVER_ERRORS as e:
            self.logger.error("Failed to start PostgreSQL document store", error=str(e))
            raise StorageError("start", str(e)) from e

        self.logger.info("PostgreSQL document store started", table=self.table)

    async def stop(self):
        if self.pool:
            await self.pool.close()
            self.pool = None
            self.logger.info("PostgreSQL document store stopped")

    async def _create_tables(self):
        async with self.pool.acquire() as conn:
            await conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {self.table} (
                    id VARCHAR(64) PRIMARY KEY,
                    sender VARCHAR(320) NOT NULL,
                    subject TEXT NOT NULL DEFAULT '',
                    body TEXT NOT NULL DEFAULT '',
                    type VARCHAR(16) NOT NULL,
                    score INTEGER NOT NULL,
                    time TIMESTAMP WITH TIME ZONE NOT NULL
                );
            """)
            await conn.execute(f"CREATE INDEX IF NOT EXISTS idx_{self.table}_time ON {self.table}(time DESC);")
            await conn.execute(f"CREATE INDEX IF NOT EXISTS idx_{self.table}_type ON {self.table}(type);")
            await conn.execute(f"CREATE INDEX IF NOT EXISTS idx_{self.table}_score ON {self.table}(score);")
            await conn.execute(f"CREATE INDEX IF NOT EXISTS idx_{self.table}_sender ON {self.table}(sender);")

    def _acquire(self, operation: str):
        if self.pool is None:
            raise StorageError(operation, "document store not started")
        return self.pool.acquire()

    async def find(self, filter: EmailFilter = MATCH_ALL, sort: SortSpec = DEFAULT_SORT) -> List[Email]:
        where, args = self._where(filter)
        direction = "DESC" if sort.descending else "ASC"
        column = SortField(sort.field).value
        query = (
            f"SELECT {', '.join(_COLUMNS)} FROM {self.table}{where} "
            f"ORDER BY {column} {direction}, id {direction}"
        )
        try:
            async with self._acquire("find") as conn:
                rows = await conn.fetch(query, *args)
        except _DRIVER_ERRORS as e:
            raise StorageError("find", str(e), filter.describe()) from e
        return [self._row_to_email(row) for row in rows]

    async def find_one(self, email_id: str) -> Optional[Email]:
        try:
            async with self._acquire("find_one") as conn:
                row = await conn.fetchrow(
                    f"SELECT {', '.join(_COLUMNS)} FROM {self.table} WHERE id = $1", email_id
                )
        except _DRIVER_ERRORS as e:
            raise StorageError("find_one", str(e), {"email_id": email_id}) from e
        return self._row_to_email(row) if row else None

    async def insert_one(self, email: Email) -> None:
        placeholders = ", ".join(f"${i}" for i in range(1, len(_COLUMNS) + 1))
        try:
            async with self._acquire("insert_one") as conn:
                await conn.execute(
                    f"INSERT INTO {self.table} ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
                    *self._email_args(email)
                )
        except _DRIVER_ERRORS as e:
            raise StorageError("insert_one", str(e), {"email_id": email.id, "sender": email.sender}) from e

    async def replace_one(self, email_id: str, email: Email) -> bool:
        assignments = ", ".join(f"{column} = ${i}" for i, column in enumerate(_COLUMNS[1:], start=2))
        try:
            async with self._acquire("replace_one") as conn:
                result = await conn.execute(
                    f"UPDATE {self.table} SET {assignments} WHERE id = $1",
                    email_id, *self._email_args(email)[1:]
                )
        except _DRIVER_ERRORS as e:
            raise StorageError("replace_one", str(e), {"email_id": email_id}) from e
        return result == "UPDATE 1"

    async def delete_one(self, email_id: str) -> bool:
        try:
            async with self._acquire("delete_one") as conn:
                result = await conn.execute(f"DELETE FROM {self.table} WHERE id = $1", email_id)
        except _DRIVER_ERRORS as e:
            raise StorageError("delete_one", str(e), {"email_id": email_id}) from e
        return result == "DELETE 1"

    async def count_documents(self, filter: EmailFilter = MATCH_ALL) -> int:
        where, args = self._where(filter)
        try:
            async with self._acquire("count_documents") as conn:
                count = await conn.fetchval(f"SELECT COUNT(*) FROM {self.table}{where}", *args)
        except _DRIVER_ERRORS as e:
            raise StorageError("count_documents", str(e), filter.describe()) from e
        return count or 0

    async def ping(self) -> bool:
        try:
            async with self._acquire("ping") as conn:
                await conn.fetchval("SELECT 1")
        except _DRIVER_ERRORS as e:
            raise StorageError("ping", str(e)) from e
        return True

    @staticmethod
    def _where(filter: EmailFilter) -> Tuple[str, List[Any]]:
        clauses: List[str] = []
        args: List[Any] = []
        if filter.type is not None:
            args.append(SentimentLabel(filter.type).value)
            clauses.append(f"type = ${len(args)}")
        if filter.sender is not None:
            args.append(filter.sender)
            clauses.append(f"sender = ${len(args)}")
        if filter.min_score is not None:
            args.append(filter.min_score)
            clauses.append(f"score >= ${len(args)}")
        if filter.max_score is not None:
            args.append(filter.max_score)
            clauses.append(f"score <= ${len(args)}")
        if not clauses:
            return "", args
        return " WHERE " + " AND ".join(clauses), args

    @staticmethod
    def _email_args(email: Email) -> List[Any]:
        return [getattr(email, column) for column in _COLUMNS]

    @staticmethod
    def _row_to_email(row) -> Email:
        return Email.model_validate(dict(row))
