"""
test_query.py - Unit tests for read-only projections
"""

import pytest

from presale import (
    query_config, query_sale_info, query_user_info, query_user_infos,
    SaleInfo, UserInfo, InvalidAddress,
)
from tests.fake_view import FakeView, PRESALE_START


def _view_with_buyers(config, count: int) -> FakeView:
    users = {f"user{i:02d}": UserInfo(f"user{i:02d}", 3 * (i + 1), i + 1) for i in range(count)}
    return FakeView(config=config, users=users, time=PRESALE_START)


class TestSimpleQueries:

    def test_config(self, open_view, config):
        assert query_config(open_view) == config

    def test_sale_info(self, config):
        view = FakeView(config=config, sale_info=SaleInfo(300, 100))
        assert query_sale_info(view) == SaleInfo(300, 100)


class TestQueryUserInfo:

    def test_known_buyer(self, config):
        view = FakeView(config=config, users={"user1": UserInfo("user1", 300, 100)})
        assert query_user_info(view, "user1") == UserInfo("user1", 300, 100)

    def test_unknown_buyer_is_zero(self, open_view):
        assert query_user_info(open_view, "stranger") == UserInfo("stranger", 0, 0)

    def test_malformed_address(self, open_view):
        with pytest.raises(InvalidAddress):
            query_user_info(open_view, "NotNormalized")


class TestQueryUserInfos:

    def test_default_limit(self, config):
        assert len(query_user_infos(_view_with_buyers(config, 15))) == 10

    def test_limit_capped(self, config):
        assert len(query_user_infos(_view_with_buyers(config, 50), limit=100)) == 30

    def test_small_limit(self, config):
        records = query_user_infos(_view_with_buyers(config, 5), limit=2)
        assert [r.address for r in records] == ["user00", "user01"]

    def test_start_after(self, config):
        records = query_user_infos(_view_with_buyers(config, 5), start_after="user02")
        assert [r.address for r in records] == ["user03", "user04"]

    def test_empty(self, open_view):
        assert query_user_infos(open_view) == []
