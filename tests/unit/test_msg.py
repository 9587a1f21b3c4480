"""
test_msg.py - Unit tests for the pydantic message schemas
"""

import pytest
from pydantic import ValidationError

from presale import Config, SaleInfo, UINT128_MAX
from presale.msg import (
    InstantiateMsg, StateModel, SaleInfoModel,
    BuyTokenMsg, ChangeAdminMsg, UpdateConfigMsg, WithdrawTokenByAdminMsg,
    GetUserInfosMsg, GetSaleInfoMsg,
    execute_msg_adapter, query_msg_adapter,
)
from tests.fake_view import make_config


INSTANTIATE = {
    "admin": "admin",
    "token_address": "token_address",
    "total_supply": "10000",
    "presale_start": 1300,
    "presale_period": 100,
    "token_ratio": "3",
}


class TestInstantiateMsg:

    def test_string_amounts_parse(self):
        msg = InstantiateMsg.model_validate(INSTANTIATE)
        assert msg.total_supply == 10_000
        assert msg.to_config() == make_config()

    def test_int_amounts_parse(self):
        msg = InstantiateMsg.model_validate({**INSTANTIATE, "total_supply": 10_000})
        assert msg.total_supply == 10_000

    def test_missing_field(self):
        data = dict(INSTANTIATE)
        del data["token_ratio"]
        with pytest.raises(ValidationError):
            InstantiateMsg.model_validate(data)

    def test_unknown_field(self):
        with pytest.raises(ValidationError):
            InstantiateMsg.model_validate({**INSTANTIATE, "owner": "x"})

    def test_negative_amount(self):
        with pytest.raises(ValidationError):
            InstantiateMsg.model_validate({**INSTANTIATE, "total_supply": "-1"})

    def test_amount_above_uint128(self):
        with pytest.raises(ValidationError):
            InstantiateMsg.model_validate({**INSTANTIATE, "token_ratio": UINT128_MAX + 1})


class TestExecuteMsg:

    def test_buy_token(self):
        assert isinstance(execute_msg_adapter.validate_python({"buy_token": {}}), BuyTokenMsg)

    def test_change_admin(self):
        msg = execute_msg_adapter.validate_python({"change_admin": {"address": "new_admin"}})
        assert isinstance(msg, ChangeAdminMsg)
        assert msg.change_admin.address == "new_admin"

    def test_update_config(self):
        msg = execute_msg_adapter.validate_python({"update_config": {"state": INSTANTIATE}})
        assert isinstance(msg, UpdateConfigMsg)
        assert msg.update_config.state.to_config() == make_config()

    def test_withdraw(self):
        msg = execute_msg_adapter.validate_python({"withdraw_token_by_admin": {}})
        assert isinstance(msg, WithdrawTokenByAdminMsg)

    def test_unknown_variant(self):
        with pytest.raises(ValidationError):
            execute_msg_adapter.validate_python({"mint": {}})

    def test_payload_on_empty_variant(self):
        with pytest.raises(ValidationError):
            execute_msg_adapter.validate_python({"buy_token": {"amount": "1"}})


class TestQueryMsg:

    def test_get_user_infos_defaults(self):
        msg = query_msg_adapter.validate_python({"get_user_infos": {}})
        assert isinstance(msg, GetUserInfosMsg)
        assert msg.get_user_infos.start_after is None
        assert msg.get_user_infos.limit is None

    def test_get_user_infos_with_cursor(self):
        msg = query_msg_adapter.validate_python(
            {"get_user_infos": {"start_after": "user1", "limit": 5}}
        )
        assert msg.get_user_infos.start_after == "user1"
        assert msg.get_user_infos.limit == 5

    def test_get_sale_info(self):
        assert isinstance(query_msg_adapter.validate_python({"get_sale_info": {}}), GetSaleInfoMsg)


class TestSerialization:

    def test_amounts_serialize_as_strings(self):
        dumped = SaleInfoModel.from_sale_info(SaleInfo(300, 100)).model_dump(mode="json")
        assert dumped == {"token_sold_amount": "300", "earned_juno": "100"}

    def test_timestamps_stay_numbers(self):
        dumped = StateModel.from_config(make_config()).model_dump(mode="json")
        assert dumped["presale_start"] == 1300
        assert dumped["total_supply"] == "10000"

    def test_state_round_trip(self):
        config = make_config()
        assert StateModel.from_config(config).to_config() == config
        assert isinstance(StateModel.from_config(config).to_config(), Config)
