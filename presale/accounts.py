"""
accounts.py - Ordered index of buyer records

AccountIndex keeps one UserInfo per buyer address, ordered by address, so
that listings are deterministic and can be paged with a stateless cursor:
the caller passes back the last address it saw and gets the records
strictly after it.

The index is a sorted key list maintained with bisect plus a dict for point
lookups. It knows nothing about storage engines or range-scan APIs.
"""

from __future__ import annotations
from bisect import bisect_right, insort
from itertools import islice
from typing import Dict, Iterator, List, Optional

from .core import UserInfo, DEFAULT_QUERY_LIMIT, MAX_QUERY_LIMIT


def clamp_limit(limit: Optional[int]) -> int:
    """
    Apply the listing limit policy.

    None means DEFAULT_QUERY_LIMIT; anything above MAX_QUERY_LIMIT is capped.

    Raises:
        ValueError: If limit is negative
    """
    if limit is None:
        return DEFAULT_QUERY_LIMIT
    if limit < 0:
        raise ValueError(f"limit must be non-negative, got {limit}")
    return min(limit, MAX_QUERY_LIMIT)


class AccountIndex:
    """
    Address-ordered map of buyer records.

    Example:
        index = AccountIndex()
        index.put(UserInfo("bob", 30, 10))
        index.put(UserInfo("alice", 3, 1))
        [r.address for r in index.range()]                   # ['alice', 'bob']
        [r.address for r in index.range(start_after="alice")]  # ['bob']
    """

    def __init__(self, records: Optional[List[UserInfo]] = None):
        self._records: Dict[str, UserInfo] = {}
        self._keys: List[str] = []
        for record in records or ():
            self.put(record)

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, address: str) -> bool:
        return address in self._records

    def __iter__(self) -> Iterator[UserInfo]:
        return self.range()

    def get(self, address: str) -> Optional[UserInfo]:
        """Return the record for ``address``, or None."""
        return self._records.get(address)

    def put(self, record: UserInfo) -> None:
        """Insert or replace the record keyed by ``record.address``."""
        if record.address not in self._records:
            insort(self._keys, record.address)
        self._records[record.address] = record

    def remove(self, address: str) -> None:
        """
        Drop a record.

        Only used when unwinding history; purchases never delete buyers.
        """
        if address not in self._records:
            raise KeyError(f"No record for {address}")
        del self._records[address]
        idx = bisect_right(self._keys, address) - 1
        del self._keys[idx]

    def range(self, start_after: Optional[str] = None) -> Iterator[UserInfo]:
        """
        Lazily iterate records in ascending address order.

        Args:
            start_after: Exclusive lower bound; iteration starts at the first
                         address strictly greater than this one.
        """
        start = 0 if start_after is None else bisect_right(self._keys, start_after)
        for address in self._keys[start:]:
            yield self._records[address]

    def page(self, start_after: Optional[str] = None, limit: Optional[int] = None) -> List[UserInfo]:
        """Return one page of records, applying the limit policy."""
        return list(islice(self.range(start_after), clamp_limit(limit)))

    def copy(self) -> AccountIndex:
        """Independent copy (records are immutable, so sharing them is safe)."""
        cloned = AccountIndex.__new__(AccountIndex)
        cloned._records = dict(self._records)
        cloned._keys = list(self._keys)
        return cloned
