"""
Cache key derivation.

Only aggregate reads are cached. Their keys are derived from the operation
name and, for listings, the sort order; the set of possible keys is finite
so mutations can invalidate all of them.
"""

from typing import List

from ..models import DEFAULT_SORT, SortField, SortSpec

ALL_RECORDS_KEY = "all_records"
TOTAL_COUNT_KEY = "total_record_count"
PROBE_KEY = "test_connection"


def cache_key(operation: str, **params) -> str:
    """Deterministic key: operation name followed by sorted ``name=value`` parts."""
    if not params:
        return operation
    parts = [f"{name}={params[name]}" for name in sorted(params)]
    return ":".join([operation] + parts)


def list_key(sort: SortSpec = DEFAULT_SORT) -> str:
    """Key for a full listing; the default order uses the plain shared key."""
    if sort == DEFAULT_SORT:
        return ALL_RECORDS_KEY
    direction = "desc" if sort.descending else "asc"
    return cache_key(ALL_RECORDS_KEY, sort=f"{SortField(sort.field).value}:{direction}")


def aggregate_keys() -> List[str]:
    """Every key a mutation must invalidate."""
    keys = [
        list_key(SortSpec(field=field, descending=descending))
        for field in SortField
        for descending in (True, False)
    ]
    keys.append(TOTAL_COUNT_KEY)
    return keys
