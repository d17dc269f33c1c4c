"""
Persistence package for the Emails Service.

The document store is the authoritative email collection. Backends raise
``StorageError`` for driver failures and report missing rows through return
values.
"""

from typing import List, Optional, Protocol

from ..models import Email, EmailFilter, SortSpec
from .memory import MemoryDocumentStore
from .postgres import PostgreSQLDocumentStore


class DocumentStore(Protocol):
    """Filtered queries, inserts, replacements, deletes and counts over emails."""

    async def find(self, filter: EmailFilter = ..., sort: SortSpec = ...) -> List[Email]: ...

    async def find_one(self, email_id: str) -> Optional[Email]: ...

    async def insert_one(self, email: Email) -> None: ...

    async def replace_one(self, email_id: str, email: Email) -> bool: ...

    async def delete_one(self, email_id: str) -> bool: ...

    async def count_documents(self, filter: EmailFilter = ...) -> int: ...

    async def ping(self) -> bool: ...


__all__ = ["DocumentStore", "MemoryDocumentStore", "PostgreSQLDocumentStore"]
