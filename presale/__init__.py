"""
presale - Fixed-supply token presale ledger

Accepts one native-coin payment per purchase, converts it to tokens at a
fixed ratio and records it against the sale totals and the buyer's record,
inside a half-open sale window and under a hard supply cap.

Usage:
    from presale import Presale, Config, Coin

    presale = Presale("banana", Config(
        admin="admin",
        token_address="token_address",
        total_supply=10000,
        presale_start=1300,
        presale_period=100,
        token_ratio=3,
    ), initial_time=1000, verbose=False)

    presale.advance_time(1300)
    response = presale.buy_token("user1", [Coin("ujuno", 100)])
    # response.messages: token transfer to user1, 100ujuno to admin

    presale.get_sale_info()
    # SaleInfo(token_sold_amount=300, earned_juno=100)
"""

# Core types
from .core import (
    PresaleView,
    Config,
    SaleInfo,
    UserInfo,
    WithdrawalRecord,
    ContractVersion,
    Coin,
    Cw20Transfer,
    WasmExecute,
    BankSend,
    StateChange,
    PendingTransaction,
    Transaction,
    TransactionOrigin,
    OriginType,
    Response,
    ExecuteResult,
    build_transaction,
    checked_add,
    checked_sub,
    checked_mul,
    default_address_validator,
    PresaleError,
    ConfigurationInvalid,
    Unauthorized,
    PresaleNotStarted,
    PresaleEnded,
    PresaleNotEnded,
    SeveralCoinsSent,
    InvalidCoin,
    NoEnoughTokens,
    InvalidAddress,
    AlreadyWithdrawn,
    StaleState,
    ArithmeticOverflow,
    NATIVE_DENOM,
    DEFAULT_QUERY_LIMIT,
    MAX_QUERY_LIMIT,
    UINT128_MAX,
    UINT64_MAX,
    CONTRACT_NAME,
    CONTRACT_VERSION,
)

# Buyer index
from .accounts import AccountIndex, clamp_limit

# Guards
from .guards import require_admin, require_sale_open, require_sale_closed

# Purchase
from .sale import compute_buy, get_coin_info

# Admin operations
from .admin import compute_change_admin, compute_update_config, compute_withdraw_remainder

# Queries
from .query import query_config, query_sale_info, query_user_info, query_user_infos

# Presale
from .presale import Presale, compute_instantiate

# Entry points
from .contract import Env, MessageInfo, instantiate, execute, query

__all__ = [
    # Core
    'PresaleView', 'Config', 'SaleInfo', 'UserInfo', 'WithdrawalRecord', 'ContractVersion',
    'Coin', 'Cw20Transfer', 'WasmExecute', 'BankSend',
    'StateChange', 'PendingTransaction', 'Transaction', 'TransactionOrigin', 'OriginType',
    'Response', 'ExecuteResult', 'build_transaction',
    'checked_add', 'checked_sub', 'checked_mul', 'default_address_validator',
    'PresaleError', 'ConfigurationInvalid', 'Unauthorized',
    'PresaleNotStarted', 'PresaleEnded', 'PresaleNotEnded',
    'SeveralCoinsSent', 'InvalidCoin', 'NoEnoughTokens', 'InvalidAddress',
    'AlreadyWithdrawn', 'StaleState', 'ArithmeticOverflow',
    'NATIVE_DENOM', 'DEFAULT_QUERY_LIMIT', 'MAX_QUERY_LIMIT', 'UINT128_MAX', 'UINT64_MAX',
    'CONTRACT_NAME', 'CONTRACT_VERSION',
    # Buyer index
    'AccountIndex', 'clamp_limit',
    # Guards
    'require_admin', 'require_sale_open', 'require_sale_closed',
    # Purchase
    'compute_buy', 'get_coin_info',
    # Admin
    'compute_change_admin', 'compute_update_config', 'compute_withdraw_remainder',
    # Queries
    'query_config', 'query_sale_info', 'query_user_info', 'query_user_infos',
    # Presale
    'Presale', 'compute_instantiate',
    # Entry points
    'Env', 'MessageInfo', 'instantiate', 'execute', 'query',
]

__version__ = CONTRACT_VERSION
