"""
Message schemas.

Pydantic models for the JSON messages accepted by the entry points in
contract.py and for the JSON responses they return. Execute and query
messages are externally tagged with snake_case variant names, e.g.
``{"change_admin": {"address": "new_admin"}}``. Uint128 amounts accept
ints or decimal strings and serialize back to strings in JSON mode.
"""

from typing import Annotated, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, TypeAdapter

from .core import Config, SaleInfo, UserInfo, UINT128_MAX, UINT64_MAX

Uint128 = Annotated[
    int,
    Field(ge=0, le=UINT128_MAX),
    PlainSerializer(lambda v: str(v), return_type=str, when_used="json"),
]
Uint64 = Annotated[int, Field(ge=0, le=UINT64_MAX)]
Uint32 = Annotated[int, Field(ge=0, le=2 ** 32 - 1)]


class _Strict(BaseModel):
    model_config = ConfigDict(extra="forbid")


class Empty(_Strict):
    """Variant without fields, ``{}``."""
    pass


# ============================================================================
# State Models
# ============================================================================

class StateModel(_Strict):
    """Sale configuration as exchanged over the wire."""
    admin: str
    token_address: str
    total_supply: Uint128
    presale_start: Uint64
    presale_period: Uint64
    token_ratio: Uint128

    def to_config(self) -> Config:
        return Config(**self.model_dump())

    @classmethod
    def from_config(cls, config: Config) -> "StateModel":
        return cls(
            admin=config.admin,
            token_address=config.token_address,
            total_supply=config.total_supply,
            presale_start=config.presale_start,
            presale_period=config.presale_period,
            token_ratio=config.token_ratio,
        )


class SaleInfoModel(_Strict):
    token_sold_amount: Uint128
    earned_juno: Uint128

    @classmethod
    def from_sale_info(cls, sale_info: SaleInfo) -> "SaleInfoModel":
        return cls(
            token_sold_amount=sale_info.token_sold_amount,
            earned_juno=sale_info.earned_juno,
        )


class UserInfoModel(_Strict):
    address: str
    bought_token_amount: Uint128
    sent_juno: Uint128

    @classmethod
    def from_user_info(cls, user_info: UserInfo) -> "UserInfoModel":
        return cls(
            address=user_info.address,
            bought_token_amount=user_info.bought_token_amount,
            sent_juno=user_info.sent_juno,
        )


# ============================================================================
# Instantiate
# ============================================================================

class InstantiateMsg(_Strict):
    """Parameters of a new presale."""
    admin: str
    token_address: str
    total_supply: Uint128
    presale_start: Uint64
    presale_period: Uint64
    token_ratio: Uint128

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "example": {
                "admin": "admin",
                "token_address": "token_address",
                "total_supply": "10000",
                "presale_start": 1571797719,
                "presale_period": 100,
                "token_ratio": "3",
            }
        },
    )

    def to_config(self) -> Config:
        return Config(**self.model_dump())


# ============================================================================
# Execute Messages
# ============================================================================

class ChangeAdminBody(_Strict):
    address: str


class UpdateConfigBody(_Strict):
    state: StateModel


class BuyTokenMsg(_Strict):
    buy_token: Empty


class ChangeAdminMsg(_Strict):
    change_admin: ChangeAdminBody


class UpdateConfigMsg(_Strict):
    update_config: UpdateConfigBody


class WithdrawTokenByAdminMsg(_Strict):
    withdraw_token_by_admin: Empty


ExecuteMsg = Union[BuyTokenMsg, ChangeAdminMsg, UpdateConfigMsg, WithdrawTokenByAdminMsg]
execute_msg_adapter = TypeAdapter(ExecuteMsg)


# ============================================================================
# Query Messages
# ============================================================================

class GetUserInfoBody(_Strict):
    address: str


class GetUserInfosBody(_Strict):
    start_after: Optional[str] = None
    limit: Optional[Uint32] = None


class GetStateInfoMsg(_Strict):
    get_state_info: Empty


class GetUserInfoMsg(_Strict):
    get_user_info: GetUserInfoBody


class GetSaleInfoMsg(_Strict):
    get_sale_info: Empty


class GetUserInfosMsg(_Strict):
    get_user_infos: GetUserInfosBody


QueryMsg = Union[GetStateInfoMsg, GetUserInfoMsg, GetSaleInfoMsg, GetUserInfosMsg]
query_msg_adapter = TypeAdapter(QueryMsg)


# ============================================================================
# Responses
# ============================================================================

class UserInfoResponse(_Strict):
    user_info: UserInfoModel


class UserInfosResponse(_Strict):
    user_info: List[UserInfoModel]
