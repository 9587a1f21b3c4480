"""
test_admin.py - Unit tests for admin-gated compute functions

Tests:
- compute_change_admin: authorization, staged config
- compute_update_config: authorization, cap below sold amount
- compute_withdraw_remainder: authorization, window, one-shot record, message
"""

import pytest
from dataclasses import replace

from presale import (
    compute_change_admin, compute_update_config, compute_withdraw_remainder,
    SaleInfo, WithdrawalRecord, WasmExecute, Cw20Transfer, OriginType,
    Unauthorized, ConfigurationInvalid, PresaleNotEnded, AlreadyWithdrawn,
)
from tests.fake_view import FakeView, make_config, PRESALE_START, PRESALE_END


class TestChangeAdmin:

    def test_stages_new_admin(self, open_view, config):
        pending = compute_change_admin(open_view, "admin", "new_admin")
        (change,) = pending.state_changes
        assert change.key == "config"
        assert change.old_state == config
        assert change.new_state == replace(config, admin="new_admin")
        assert pending.messages == ()
        assert pending.attributes == (("action", "change_admin"), ("address", "new_admin"))
        assert pending.origin.origin_type == OriginType.ADMIN

    def test_non_admin_rejected(self, open_view):
        with pytest.raises(Unauthorized):
            compute_change_admin(open_view, "user1", "user1")


class TestUpdateConfig:

    def test_replaces_whole_config(self, open_view, config):
        new_config = replace(config, token_ratio=5, presale_period=500)
        pending = compute_update_config(open_view, "admin", new_config)
        assert pending.state_changes[0].new_state == new_config
        assert pending.attributes == (("action", "update_config"),)

    def test_non_admin_rejected(self, open_view, config):
        with pytest.raises(Unauthorized):
            compute_update_config(open_view, "user1", config)

    def test_supply_below_sold_rejected(self, config):
        view = FakeView(config=config, sale_info=SaleInfo(300, 100), time=PRESALE_START)
        with pytest.raises(ConfigurationInvalid):
            compute_update_config(view, "admin", replace(config, total_supply=299))

    def test_supply_equal_to_sold_allowed(self, config):
        view = FakeView(config=config, sale_info=SaleInfo(300, 100), time=PRESALE_START)
        pending = compute_update_config(view, "admin", replace(config, total_supply=300))
        assert pending.state_changes[0].new_state.total_supply == 300

    def test_may_replace_admin(self, open_view, config):
        pending = compute_update_config(open_view, "admin", replace(config, admin="other"))
        assert pending.state_changes[0].new_state.admin == "other"

    def test_frozen_after_withdrawal(self, config):
        """The window cannot be re-opened over withdrawn tokens."""
        view = FakeView(
            config=config,
            sale_info=SaleInfo(300, 100),
            withdrawal=WithdrawalRecord(True, 9_700, PRESALE_END),
            time=PRESALE_END,
        )
        with pytest.raises(ConfigurationInvalid):
            compute_update_config(view, "admin", replace(config, presale_period=1_100))
        with pytest.raises(ConfigurationInvalid):
            compute_update_config(view, "admin", replace(config, presale_start=PRESALE_END + 10))


class TestWithdrawRemainder:

    def test_withdraws_unsold(self, config):
        view = FakeView(config=config, sale_info=SaleInfo(450, 150), time=PRESALE_END)
        pending = compute_withdraw_remainder(view, "admin")
        assert pending.messages == (
            WasmExecute("token_address", Cw20Transfer("admin", 9_550)),
        )
        (change,) = pending.state_changes
        assert change.key == "withdrawal"
        assert change.new_state == WithdrawalRecord(True, 9_550, PRESALE_END)
        assert pending.attributes == (("action", "withdraw_token_by_admin"), ("amount", "9550"))

    def test_transfer_targets_token_contract(self):
        view = FakeView(config=make_config(token_address="banana_token"), time=PRESALE_END)
        pending = compute_withdraw_remainder(view, "admin")
        assert pending.messages[0].contract_addr == "banana_token"

    def test_sold_out_withdraws_zero(self, config):
        view = FakeView(config=config, sale_info=SaleInfo(10_000, 3_334), time=PRESALE_END)
        pending = compute_withdraw_remainder(view, "admin")
        assert pending.messages[0].msg.amount == 0

    def test_non_admin_rejected(self, config):
        view = FakeView(config=config, time=PRESALE_END)
        with pytest.raises(Unauthorized):
            compute_withdraw_remainder(view, "user1")

    def test_authorization_checked_before_window(self, config):
        view = FakeView(config=config, time=PRESALE_START)
        with pytest.raises(Unauthorized):
            compute_withdraw_remainder(view, "user1")

    @pytest.mark.parametrize("now", [PRESALE_START - 1, PRESALE_START, PRESALE_END - 1])
    def test_before_end_rejected(self, config, now):
        view = FakeView(config=config, time=now)
        with pytest.raises(PresaleNotEnded):
            compute_withdraw_remainder(view, "admin")

    def test_second_withdrawal_rejected(self, config):
        view = FakeView(
            config=config,
            withdrawal=WithdrawalRecord(True, 10_000, PRESALE_END),
            time=PRESALE_END + 50,
        )
        with pytest.raises(AlreadyWithdrawn):
            compute_withdraw_remainder(view, "admin")

    def test_sale_info_untouched(self, config):
        view = FakeView(config=config, sale_info=SaleInfo(450, 150), time=PRESALE_END)
        pending = compute_withdraw_remainder(view, "admin")
        assert all(sc.key != "sale_info" for sc in pending.state_changes)
