"""
contract.py - JSON entry points

Host-facing wrappers around Presale:
1. instantiate() - parse InstantiateMsg and create the presale
2. execute() - parse an execute message and dispatch it
3. query() - parse a query message and return the JSON projection

The host passes the block time in Env and the caller plus attached coins
in MessageInfo. Responses are plain JSON-ready dicts. Malformed messages
raise pydantic.ValidationError; precondition failures raise PresaleError.

Example:
    presale, _ = instantiate(Env(1000), MessageInfo("owner"), {
        "admin": "admin", "token_address": "token_address",
        "total_supply": "10000", "presale_start": 1300,
        "presale_period": 100, "token_ratio": "3",
    }, verbose=False)
    execute(presale, Env(1300), MessageInfo("user1", (Coin("ujuno", 100),)),
            {"buy_token": {}})
    query(presale, {"get_sale_info": {}})
    # {'token_sold_amount': '300', 'earned_juno': '100'}
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Tuple

from .core import Coin, CosmosMsg, WasmExecute, BankSend, Response
from .presale import Presale
from .query import query_config, query_sale_info, query_user_info, query_user_infos
from .msg import (
    InstantiateMsg, StateModel, SaleInfoModel, UserInfoModel,
    BuyTokenMsg, ChangeAdminMsg, UpdateConfigMsg, WithdrawTokenByAdminMsg,
    GetStateInfoMsg, GetUserInfoMsg, GetSaleInfoMsg, GetUserInfosMsg,
    UserInfoResponse, UserInfosResponse,
    execute_msg_adapter, query_msg_adapter,
)


@dataclass(frozen=True, slots=True)
class Env:
    """Block context supplied by the host."""
    block_time: int


@dataclass(frozen=True, slots=True)
class MessageInfo:
    """Caller and attached coins supplied by the host."""
    sender: str
    funds: Tuple[Coin, ...] = ()


def _coin_to_json(coin: Coin) -> Dict[str, str]:
    return {"denom": coin.denom, "amount": str(coin.amount)}


def message_to_json(msg: CosmosMsg) -> Dict[str, Any]:
    """Serialize an outbound instruction in the host's message shape."""
    if isinstance(msg, WasmExecute):
        return {"wasm": {"execute": {
            "contract_addr": msg.contract_addr,
            "msg": {"transfer": {
                "recipient": msg.msg.recipient,
                "amount": str(msg.msg.amount),
            }},
            "funds": [_coin_to_json(c) for c in msg.funds],
        }}}
    if isinstance(msg, BankSend):
        return {"bank": {"send": {
            "to_address": msg.to_address,
            "amount": [_coin_to_json(c) for c in msg.amount],
        }}}
    raise TypeError(f"Unknown message type: {type(msg).__name__}")


def response_to_json(response: Response) -> Dict[str, Any]:
    return {
        "messages": [message_to_json(m) for m in response.messages],
        "attributes": [{"key": k, "value": v} for k, v in response.attributes],
    }


def instantiate(
    env: Env,
    info: MessageInfo,
    msg: Dict[str, Any],
    name: str = "presale",
    **presale_kwargs: Any,
) -> Tuple[Presale, Dict[str, Any]]:
    """
    Create a presale from an InstantiateMsg.

    Extra keyword arguments (verbose, address_validator, ...) are passed
    to Presale.

    Returns:
        (presale, response) where response carries no messages and the
        ``action=instantiate`` attribute.
    """
    parsed = InstantiateMsg.model_validate(msg)
    presale = Presale(
        name,
        parsed.to_config(),
        initial_time=env.block_time,
        sender=info.sender,
        **presale_kwargs,
    )
    return presale, response_to_json(Response(attributes=(("action", "instantiate"),)))


def execute(presale: Presale, env: Env, info: MessageInfo, msg: Dict[str, Any]) -> Dict[str, Any]:
    """
    Advance the presale to the block time and run one execute message.

    Raises:
        pydantic.ValidationError: If msg is not a known execute message
        PresaleError: If a precondition fails (no state is changed)
    """
    parsed = execute_msg_adapter.validate_python(msg)
    presale.advance_time(env.block_time)

    if isinstance(parsed, BuyTokenMsg):
        response = presale.buy_token(info.sender, info.funds)
    elif isinstance(parsed, ChangeAdminMsg):
        response = presale.change_admin(info.sender, parsed.change_admin.address)
    elif isinstance(parsed, UpdateConfigMsg):
        response = presale.update_config(info.sender, parsed.update_config.state.to_config())
    elif isinstance(parsed, WithdrawTokenByAdminMsg):
        response = presale.withdraw_token_by_admin(info.sender)
    else:
        raise TypeError(f"Unhandled execute message: {type(parsed).__name__}")

    return response_to_json(response)


def query(presale: Presale, msg: Dict[str, Any]) -> Dict[str, Any]:
    """
    Run one query message and return its JSON projection.

    Raises:
        pydantic.ValidationError: If msg is not a known query message
        InvalidAddress: If get_user_info is given a malformed address
    """
    parsed = query_msg_adapter.validate_python(msg)

    if isinstance(parsed, GetStateInfoMsg):
        result = StateModel.from_config(query_config(presale))
    elif isinstance(parsed, GetUserInfoMsg):
        user_info = query_user_info(presale, parsed.get_user_info.address)
        result = UserInfoResponse(user_info=UserInfoModel.from_user_info(user_info))
    elif isinstance(parsed, GetSaleInfoMsg):
        result = SaleInfoModel.from_sale_info(query_sale_info(presale))
    elif isinstance(parsed, GetUserInfosMsg):
        body = parsed.get_user_infos
        records = query_user_infos(presale, body.start_after, body.limit)
        result = UserInfosResponse(user_info=[UserInfoModel.from_user_info(r) for r in records])
    else:
        raise TypeError(f"Unhandled query message: {type(parsed).__name__}")

    return result.model_dump(mode="json")
