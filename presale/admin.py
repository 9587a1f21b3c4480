"""
admin.py - Admin-gated operations

1. compute_change_admin() - replace the admin address
2. compute_update_config() - replace the whole configuration
3. compute_withdraw_remainder() - send unsold tokens to the admin after the sale

Every function checks the caller against config.admin first and returns a
PendingTransaction for Presale.execute().

Withdrawal is one-shot: it records a WithdrawalRecord and a second attempt
fails with AlreadyWithdrawn. SaleInfo is left untouched, the remainder is
not counted as sold. After the withdrawal the configuration is frozen.
"""

from __future__ import annotations
from dataclasses import replace

from .core import (
    PresaleView, PendingTransaction, StateChange, TransactionOrigin, OriginType,
    Config, WithdrawalRecord, Cw20Transfer, WasmExecute,
    CONFIG_KEY, WITHDRAWAL_KEY,
    ConfigurationInvalid, AlreadyWithdrawn,
    checked_sub,
    build_transaction,
)
from .guards import require_admin, require_sale_closed


def _admin_origin(sender: str, action: str) -> TransactionOrigin:
    return TransactionOrigin(OriginType.ADMIN, sender, action)


def compute_change_admin(view: PresaleView, sender: str, address: str) -> PendingTransaction:
    """
    Hand the admin role to ``address``.

    The new address is stored as given; the caller is responsible for it.

    Raises:
        Unauthorized: If sender is not the admin
    """
    require_admin(view, sender)
    config = view.get_config()
    new_config = replace(config, admin=address)
    return build_transaction(
        view,
        _admin_origin(sender, "change_admin"),
        state_changes=[StateChange(CONFIG_KEY, old_state=config, new_state=new_config)],
        attributes=[("address", address)],
    )


def compute_update_config(view: PresaleView, sender: str, new_config: Config) -> PendingTransaction:
    """
    Overwrite the full configuration.

    The field check is that total_supply still covers what has already
    been sold; timing and ratio are taken verbatim. Once the unsold
    remainder has been withdrawn the configuration is frozen, so the
    window cannot be re-opened over tokens that already left the sale.

    Raises:
        Unauthorized: If sender is not the admin
        ConfigurationInvalid: If the remainder was withdrawn, or
                              new_config.total_supply < token_sold_amount
    """
    require_admin(view, sender)
    withdrawal = view.get_withdrawal()
    if withdrawal.withdrawn:
        raise ConfigurationInvalid(
            f"Configuration is frozen: remainder withdrawn at {withdrawal.time}"
        )
    sale_info = view.get_sale_info()
    if new_config.total_supply < sale_info.token_sold_amount:
        raise ConfigurationInvalid(
            f"total_supply {new_config.total_supply} is below "
            f"token_sold_amount {sale_info.token_sold_amount}"
        )
    config = view.get_config()
    return build_transaction(
        view,
        _admin_origin(sender, "update_config"),
        state_changes=[StateChange(CONFIG_KEY, old_state=config, new_state=new_config)],
    )


def compute_withdraw_remainder(view: PresaleView, sender: str) -> PendingTransaction:
    """
    Send the unsold remainder to the admin once the sale has closed.

    remainder = total_supply - token_sold_amount

    Returns:
        PendingTransaction recording the withdrawal and emitting one token
        transfer of the remainder from the token contract to the admin.

    Raises:
        Unauthorized: If sender is not the admin
        PresaleNotEnded: If the sale window is still open (or not started)
        AlreadyWithdrawn: If the remainder was already withdrawn
    """
    require_admin(view, sender)
    config = view.get_config()
    now = view.current_time
    require_sale_closed(config, now)

    withdrawal = view.get_withdrawal()
    if withdrawal.withdrawn:
        raise AlreadyWithdrawn(
            f"{withdrawal.amount} tokens already withdrawn at {withdrawal.time}"
        )

    sale_info = view.get_sale_info()
    remainder = checked_sub(config.total_supply, sale_info.token_sold_amount)

    new_withdrawal = WithdrawalRecord(withdrawn=True, amount=remainder, time=now)
    transfer = WasmExecute(
        contract_addr=config.token_address,
        msg=Cw20Transfer(recipient=config.admin, amount=remainder),
    )
    return build_transaction(
        view,
        _admin_origin(sender, "withdraw_token_by_admin"),
        state_changes=[StateChange(WITHDRAWAL_KEY, old_state=withdrawal, new_state=new_withdrawal)],
        messages=[transfer],
        attributes=[("amount", remainder)],
    )
