"""
test_accounts.py - Unit tests for the ordered buyer index

Tests:
- Ordering and point lookups
- Exclusive start_after cursor
- Limit policy (default 10, cap 30)
- Copy independence and removal
"""

import pytest

from presale import AccountIndex, UserInfo, clamp_limit, DEFAULT_QUERY_LIMIT, MAX_QUERY_LIMIT


def _index(*addresses: str) -> AccountIndex:
    return AccountIndex([UserInfo(a, 3, 1) for a in addresses])


class TestClampLimit:

    def test_none_uses_default(self):
        assert clamp_limit(None) == DEFAULT_QUERY_LIMIT == 10

    def test_below_cap_kept(self):
        assert clamp_limit(5) == 5

    def test_above_cap_clamped(self):
        assert clamp_limit(1000) == MAX_QUERY_LIMIT == 30

    def test_zero_allowed(self):
        assert clamp_limit(0) == 0

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            clamp_limit(-1)


class TestAccountIndex:

    def test_range_is_ascending(self):
        index = _index("carol", "alice", "bob")
        assert [r.address for r in index.range()] == ["alice", "bob", "carol"]

    def test_start_after_is_exclusive(self):
        index = _index("alice", "bob", "carol")
        assert [r.address for r in index.range("alice")] == ["bob", "carol"]

    def test_start_after_need_not_exist(self):
        index = _index("alice", "bob", "carol")
        assert [r.address for r in index.range("b")] == ["bob", "carol"]
        assert [r.address for r in index.range("bz")] == ["carol"]

    def test_start_after_last_is_empty(self):
        assert list(_index("alice", "bob").range("bob")) == []

    def test_put_replaces(self):
        index = _index("alice")
        index.put(UserInfo("alice", 30, 10))
        assert len(index) == 1
        assert index.get("alice") == UserInfo("alice", 30, 10)

    def test_get_missing(self):
        assert _index("alice").get("bob") is None

    def test_contains_and_iter(self):
        index = _index("bob", "alice")
        assert "alice" in index
        assert "carol" not in index
        assert [r.address for r in index] == ["alice", "bob"]

    def test_remove(self):
        index = _index("alice", "bob", "carol")
        index.remove("bob")
        assert [r.address for r in index.range()] == ["alice", "carol"]
        assert index.get("bob") is None

    def test_remove_missing(self):
        with pytest.raises(KeyError):
            _index("alice").remove("bob")

    def test_copy_is_independent(self):
        index = _index("alice")
        cloned = index.copy()
        cloned.put(UserInfo("bob", 3, 1))
        assert "bob" not in index
        assert len(cloned) == 2

    def test_page_default_limit(self):
        index = _index(*[f"user{i:02d}" for i in range(25)])
        page = index.page()
        assert len(page) == 10
        assert page[0].address == "user00"

    def test_page_cap(self):
        index = _index(*[f"user{i:02d}" for i in range(40)])
        assert len(index.page(limit=100)) == 30

    def test_pages_cover_everything_once(self):
        addresses = [f"user{i:02d}" for i in range(23)]
        index = _index(*reversed(addresses))
        seen = []
        cursor = None
        while True:
            page = index.page(cursor, limit=7)
            if not page:
                break
            seen.extend(r.address for r in page)
            cursor = page[-1].address
        assert seen == addresses
