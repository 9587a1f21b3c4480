"""
sale.py - Token purchase

compute_buy() is the single place where purchases are priced and the supply
cap is enforced. It reads a PresaleView and returns a PendingTransaction
that:
1. Adds the payment and the token amount to SaleInfo
2. Creates or increments the buyer's UserInfo
3. Emits a token transfer from the token contract to the buyer
4. Emits a bank send of the payment to the admin

Pattern:
    Buyer pays 100ujuno at ratio 3:
        SaleInfo: sold += 300, earned += 100
        UserInfo(buyer): bought += 300, sent += 100
        WasmExecute(token_address, Cw20Transfer(buyer, 300))
        BankSend(admin, [100ujuno])

The staged changes carry the SaleInfo and UserInfo they were computed
against, so Presale.execute() rejects the transaction if another purchase
committed in between.
"""

from __future__ import annotations
from typing import Sequence

from .core import (
    PresaleView, PendingTransaction, StateChange, TransactionOrigin, OriginType,
    Coin, SaleInfo, UserInfo, Cw20Transfer, WasmExecute, BankSend,
    SALE_INFO_KEY, user_info_key,
    SeveralCoinsSent, InvalidCoin, NoEnoughTokens, PresaleEnded,
    checked_add, checked_mul,
    build_transaction,
)
from .guards import require_sale_open


def get_coin_info(funds: Sequence[Coin], denom: str) -> Coin:
    """
    Extract the single payment coin from the funds attached to a call.

    A zero amount is refused rather than recorded as an empty purchase.

    Raises:
        SeveralCoinsSent: If zero or more than one coin is attached
        InvalidCoin: If the coin is not ``denom`` or its amount is zero
    """
    if len(funds) != 1:
        raise SeveralCoinsSent(f"Exactly one coin must be sent, got {len(funds)}")
    coin = funds[0]
    if coin.denom != denom:
        raise InvalidCoin(f"Expected {denom}, got {coin.denom}")
    if coin.amount == 0:
        raise InvalidCoin("Payment amount must be positive")
    return coin


def compute_buy(
    view: PresaleView,
    sender: str,
    funds: Sequence[Coin],
) -> PendingTransaction:
    """
    Price a purchase and stage its ledger updates.

    Validation runs in order and the first failure wins: payment shape,
    denomination, sale window (closed for good once the remainder is
    withdrawn), supply cap.

    Args:
        view: Read-only presale access
        sender: Buyer address
        funds: Coins attached to the call

    Returns:
        PendingTransaction with the SaleInfo and UserInfo updates and the two
        outbound messages (token transfer first, payment forward second).

    Raises:
        SeveralCoinsSent, InvalidCoin: Malformed payment
        PresaleNotStarted, PresaleEnded: Outside the sale window, or the
            unsold remainder was already withdrawn
        NoEnoughTokens: Purchase would exceed total_supply
        ArithmeticOverflow: Token amount does not fit in uint128
    """
    coin = get_coin_info(funds, view.denom)
    config = view.get_config()
    require_sale_open(config, view.current_time)
    withdrawal = view.get_withdrawal()
    if withdrawal.withdrawn:
        raise PresaleEnded(f"Unsold tokens were withdrawn at {withdrawal.time}")

    token_amount = checked_mul(coin.amount, config.token_ratio)
    sale_info = view.get_sale_info()

    # Exactly filling the remaining supply is allowed.
    if checked_add(sale_info.token_sold_amount, token_amount) > config.total_supply:
        remaining = config.total_supply - sale_info.token_sold_amount
        raise NoEnoughTokens(
            f"Requested {token_amount} tokens, only {remaining} left"
        )

    new_sale_info = SaleInfo(
        token_sold_amount=checked_add(sale_info.token_sold_amount, token_amount),
        earned_juno=checked_add(sale_info.earned_juno, coin.amount),
    )

    user_info = view.get_user_info(sender)
    base = user_info if user_info is not None else UserInfo.zero(sender)
    new_user_info = UserInfo(
        address=sender,
        bought_token_amount=checked_add(base.bought_token_amount, token_amount),
        sent_juno=checked_add(base.sent_juno, coin.amount),
    )

    state_changes = [
        StateChange(SALE_INFO_KEY, old_state=sale_info, new_state=new_sale_info),
        StateChange(user_info_key(sender), old_state=user_info, new_state=new_user_info),
    ]

    messages = [
        WasmExecute(
            contract_addr=config.token_address,
            msg=Cw20Transfer(recipient=sender, amount=token_amount),
        ),
        BankSend(
            to_address=config.admin,
            amount=(Coin(view.denom, coin.amount),),
        ),
    ]

    origin = TransactionOrigin(OriginType.BUYER, sender, "buy_token")
    return build_transaction(
        view,
        origin,
        state_changes=state_changes,
        messages=messages,
        attributes=[
            ("denom", coin.denom),
            ("amount", coin.amount),
            ("buyer", sender),
        ],
    )
