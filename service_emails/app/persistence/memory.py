"""
In-process document store, used for local runs and tests.
"""

from typing import Dict, List, Optional

from shared.errors import StorageError
from ..models import DEFAULT_SORT, MATCH_ALL, Email, EmailFilter, SortField, SortSpec


class MemoryDocumentStore:
    """Dict-backed email collection with the same query semantics as PostgreSQL."""

    def __init__(self, emails: Optional[List[Email]] = None):
        self._emails: Dict[str, Email] = {}
        for email in emails or []:
            self._emails[email.id] = email.model_copy(deep=True)

    async def find(self, filter: EmailFilter = MATCH_ALL, sort: SortSpec = DEFAULT_SORT) -> List[Email]:
        column = SortField(sort.field).value
        matched = [email for email in self._emails.values() if filter.matches(email)]
        matched.sort(key=lambda email: (getattr(email, column), email.id), reverse=sort.descending)
        return [email.model_copy(deep=True) for email in matched]

    async def find_one(self, email_id: str) -> Optional[Email]:
        email = self._emails.get(email_id)
        return email.model_copy(deep=True) if email else None

    async def insert_one(self, email: Email) -> None:
        if email.id in self._emails:
            raise StorageError("insert_one", "duplicate email id", {"email_id": email.id})
        self._emails[email.id] = email.model_copy(deep=True)

    async def replace_one(self, email_id: str, email: Email) -> bool:
        if email_id not in self._emails:
            return False
        self._emails[email_id] = email.model_copy(update={"id": email_id}, deep=True)
        return True

    async def delete_one(self, email_id: str) -> bool:
        return self._emails.pop(email_id, None) is not None

    async def count_documents(self, filter: EmailFilter = MATCH_ALL) -> int:
        return sum(1 for email in self._emails.values() if filter.matches(email))

    async def ping(self) -> bool:
        return True
