"""
Core types and pure functions for the presale ledger.

This module provides the foundational data structures and protocols for the presale:
1. Protocols: PresaleView for read-only access to presale state
2. Immutable records: Config, SaleInfo, UserInfo, WithdrawalRecord, Coin
3. Outbound instructions: Cw20Transfer, WasmExecute, BankSend
4. Transactions: StateChange, PendingTransaction, Transaction, Response
5. Exceptions: PresaleError and the tagged precondition failures
6. Checked unsigned 128-bit arithmetic

All functions in this module are pure and operate on read-only views.
No function can mutate presale state directly.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
import hashlib
from typing import (
    Dict, List, Optional, Callable, Any, Iterator, Protocol,
    Tuple, Union, runtime_checkable,
)


# ============================================================================
# CONSTANTS
# ============================================================================

CONTRACT_NAME = "BANANA_SALE"
CONTRACT_VERSION = "0.1.0"

# The single unit of account accepted as payment.
NATIVE_DENOM = "ujuno"

# Pagination policy for buyer listings.
DEFAULT_QUERY_LIMIT = 10
MAX_QUERY_LIMIT = 30

# Amounts are unsigned 128-bit integers.
UINT128_MAX = 2 ** 128 - 1

# Block times and durations are unsigned 64-bit integers.
UINT64_MAX = 2 ** 64 - 1

# Address length bounds accepted by the default validator.
MIN_ADDRESS_LENGTH = 3
MAX_ADDRESS_LENGTH = 90

# Storage keys. Buyer records live under USER_INFO_PREFIX + address.
CONFIG_KEY = "config"
SALE_INFO_KEY = "sale_info"
WITHDRAWAL_KEY = "withdrawal"
CONTRACT_INFO_KEY = "contract_info"
USER_INFO_PREFIX = "user_info:"


def user_info_key(address: str) -> str:
    """Storage key of a buyer record."""
    return f"{USER_INFO_PREFIX}{address}"


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Ordered (key, value) pairs attached to a response for auditing.
Attributes = Tuple[Tuple[str, str], ...]

# Raises InvalidAddress when the address is malformed, returns None otherwise.
AddressValidator = Callable[[str], None]


# ============================================================================
# EXCEPTIONS
# ============================================================================

class PresaleError(Exception):
    """
    Base exception for all presale precondition failures.

    Every subclass carries a stable snake_case ``tag`` identifying which
    precondition failed, so callers can branch on it without parsing text.
    """
    tag = "presale_error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.__doc__.strip().splitlines()[0])


class ConfigurationInvalid(PresaleError):
    """Sale configuration is invalid."""
    tag = "wrong_config"


class Unauthorized(PresaleError):
    """Caller is not the admin."""
    tag = "unauthorized"


class PresaleNotStarted(PresaleError):
    """Presale has not started yet."""
    tag = "presale_not_started"


class PresaleEnded(PresaleError):
    """Presale has ended."""
    tag = "presale_ended"


class PresaleNotEnded(PresaleError):
    """Presale has not ended yet."""
    tag = "presale_not_ended"


class SeveralCoinsSent(PresaleError):
    """Exactly one coin must be sent."""
    tag = "several_coins_sent"


class InvalidCoin(PresaleError):
    """Payment must be a positive amount of the sale denomination."""
    tag = "invalid_coin"


class NoEnoughTokens(PresaleError):
    """Not enough tokens left for this purchase."""
    tag = "no_enough_tokens"


class InvalidAddress(PresaleError):
    """Address is not valid."""
    tag = "invalid_address"


class AlreadyWithdrawn(PresaleError):
    """Unsold tokens were already withdrawn."""
    tag = "already_withdrawn"


class StaleState(PresaleError):
    """Transaction was computed against state that has since changed."""
    tag = "stale_state"


class ArithmeticOverflow(ArithmeticError):
    """Raised when an unsigned integer operation or field leaves its range."""
    pass


# ============================================================================
# CHECKED ARITHMETIC
# ============================================================================

def _require_uint128(value: int, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be int, got {type(value).__name__}")
    if value < 0 or value > UINT128_MAX:
        raise ArithmeticOverflow(f"{name} out of uint128 range: {value}")
    return value


def _require_uint64(value: int, name: str) -> int:
    _require_uint128(value, name)
    if value > UINT64_MAX:
        raise ArithmeticOverflow(f"{name} out of uint64 range: {value}")
    return value


def checked_add(a: int, b: int) -> int:
    """Add two uint128 values, raising ArithmeticOverflow on overflow."""
    result = _require_uint128(a, "lhs") + _require_uint128(b, "rhs")
    if result > UINT128_MAX:
        raise ArithmeticOverflow(f"overflow: {a} + {b}")
    return result


def checked_sub(a: int, b: int) -> int:
    """Subtract two uint128 values, raising ArithmeticOverflow on underflow."""
    result = _require_uint128(a, "lhs") - _require_uint128(b, "rhs")
    if result < 0:
        raise ArithmeticOverflow(f"underflow: {a} - {b}")
    return result


def checked_mul(a: int, b: int) -> int:
    """Multiply two uint128 values, raising ArithmeticOverflow on overflow."""
    result = _require_uint128(a, "lhs") * _require_uint128(b, "rhs")
    if result > UINT128_MAX:
        raise ArithmeticOverflow(f"overflow: {a} * {b}")
    return result


# ============================================================================
# ADDRESS VALIDATION
# ============================================================================

def default_address_validator(address: str) -> None:
    """
    Accept lowercase, whitespace-free addresses of reasonable length.

    Mirrors what a host's mock API accepts: the address must already be in
    its normalized (lowercase) form.

    Raises:
        InvalidAddress: If the address is empty, too short or long,
                        contains whitespace, or is not normalized.
    """
    if not isinstance(address, str) or not address:
        raise InvalidAddress("Address cannot be empty")
    if any(ch.isspace() for ch in address):
        raise InvalidAddress(f"Address contains whitespace: {address!r}")
    if not MIN_ADDRESS_LENGTH <= len(address) <= MAX_ADDRESS_LENGTH:
        raise InvalidAddress(
            f"Address length {len(address)} outside "
            f"[{MIN_ADDRESS_LENGTH}, {MAX_ADDRESS_LENGTH}]: {address!r}"
        )
    if address != address.lower():
        raise InvalidAddress(f"Address not normalized: {address!r}")


# ============================================================================
# STATE RECORDS
# ============================================================================

@dataclass(frozen=True, slots=True)
class Coin:
    """An amount of a single denomination attached to a call."""
    denom: str
    amount: int

    def __post_init__(self):
        if not self.denom or not self.denom.strip():
            raise ValueError("Coin denom cannot be empty")
        _require_uint128(self.amount, "Coin amount")

    def __repr__(self) -> str:
        return f"{self.amount}{self.denom}"


@dataclass(frozen=True, slots=True)
class Config:
    """
    Sale parameters.

    Attributes:
        admin: Address allowed to run admin operations and receiving payments.
        token_address: Token contract that holds the sellable supply.
        total_supply: Hard cap on tokens issuable through this sale.
        presale_start: Sale start, unix seconds.
        presale_period: Sale duration, seconds.
        token_ratio: Tokens issued per unit of payment.
    """
    admin: str
    token_address: str
    total_supply: int
    presale_start: int
    presale_period: int
    token_ratio: int

    def __post_init__(self):
        _require_uint128(self.total_supply, "total_supply")
        _require_uint128(self.token_ratio, "token_ratio")
        _require_uint64(self.presale_start, "presale_start")
        _require_uint64(self.presale_period, "presale_period")

    @property
    def presale_end(self) -> int:
        """First instant at which the sale is closed."""
        return checked_add(self.presale_start, self.presale_period)


@dataclass(frozen=True, slots=True)
class SaleInfo:
    """Running sale aggregates."""
    token_sold_amount: int = 0
    earned_juno: int = 0

    def __post_init__(self):
        _require_uint128(self.token_sold_amount, "token_sold_amount")
        _require_uint128(self.earned_juno, "earned_juno")


@dataclass(frozen=True, slots=True)
class UserInfo:
    """Cumulative purchases of one buyer, keyed by its own address."""
    address: str
    bought_token_amount: int = 0
    sent_juno: int = 0

    def __post_init__(self):
        if not self.address:
            raise ValueError("UserInfo address cannot be empty")
        _require_uint128(self.bought_token_amount, "bought_token_amount")
        _require_uint128(self.sent_juno, "sent_juno")

    @classmethod
    def zero(cls, address: str) -> UserInfo:
        """Zero-valued record for a buyer that never purchased."""
        return cls(address=address)


@dataclass(frozen=True, slots=True)
class WithdrawalRecord:
    """Whether the unsold remainder has been withdrawn, and when."""
    withdrawn: bool = False
    amount: int = 0
    time: Optional[int] = None


@dataclass(frozen=True, slots=True)
class ContractVersion:
    """Name and version recorded at instantiation."""
    contract: str
    version: str


# ============================================================================
# OUTBOUND INSTRUCTIONS
# ============================================================================

@dataclass(frozen=True, slots=True)
class Cw20Transfer:
    """Token-contract instruction: transfer ``amount`` tokens to ``recipient``."""
    recipient: str
    amount: int


@dataclass(frozen=True, slots=True)
class WasmExecute:
    """Instruction to execute ``msg`` on another contract."""
    contract_addr: str
    msg: Cw20Transfer
    funds: Tuple[Coin, ...] = ()


@dataclass(frozen=True, slots=True)
class BankSend:
    """Instruction to send native coins."""
    to_address: str
    amount: Tuple[Coin, ...]


CosmosMsg = Union[WasmExecute, BankSend]


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class PresaleView(Protocol):
    """
    Read-only interface to presale state.

    The compute functions in sale.py, admin.py and query.py accept a
    PresaleView and declare their read-only intent with it. The Presale class
    implements this protocol; FakeView in the tests is a minimal stand-in.
    """

    @property
    def current_time(self) -> int:
        """Current block time, unix seconds."""
        ...

    @property
    def denom(self) -> str:
        """Denomination accepted as payment."""
        ...

    def get_config(self) -> Config:
        ...

    def get_sale_info(self) -> SaleInfo:
        ...

    def get_user_info(self, address: str) -> Optional[UserInfo]:
        """Return the stored buyer record, or None if the buyer never purchased."""
        ...

    def iter_user_infos(self, start_after: Optional[str] = None) -> Iterator[UserInfo]:
        """Iterate buyer records in ascending address order after ``start_after``."""
        ...

    def get_withdrawal(self) -> WithdrawalRecord:
        ...

    def validate_address(self, address: str) -> None:
        """Raise InvalidAddress if ``address`` is malformed."""
        ...


# ============================================================================
# ENUMS
# ============================================================================

class ExecuteResult(Enum):
    """
    Outcome of a transaction execution attempt.

    APPLIED: Transaction was validated and committed.
    ALREADY_APPLIED: Transaction ID was previously processed (idempotent behavior).
    REJECTED: Transaction failed commit-time validation (stale state, cap
              violation, future timestamp).
    """
    APPLIED = "applied"
    ALREADY_APPLIED = "already_applied"
    REJECTED = "rejected"


class OriginType(Enum):
    """Classification of where a transaction originated."""
    INSTANTIATE = "instantiate"
    BUYER = "buyer"
    ADMIN = "admin"


# ============================================================================
# TRANSACTIONS
# ============================================================================

@dataclass(frozen=True, slots=True)
class TransactionOrigin:
    """
    Immutable record of a transaction's origin for audit purposes.

    Attributes:
        origin_type: Who initiated the call (buyer, admin, instantiation)
        sender: Address of the caller
        action: Action tag (e.g., "buy_token", "change_admin")
    """
    origin_type: OriginType
    sender: str
    action: str

    def __repr__(self) -> str:
        return f"Origin({self.origin_type.value}:{self.sender}, action={self.action})"


@dataclass(frozen=True, slots=True)
class StateChange:
    """
    Staged replacement of one stored record.

    ``old_state`` is the record the change was computed against (None when
    the key did not exist). Commit rejects the change if the stored record
    no longer equals ``old_state``. Keeping both sides also allows the
    change to be unwound.
    """
    key: str
    old_state: Any
    new_state: Any

    def changed_fields(self) -> Dict[str, Tuple[Any, Any]]:
        """
        Compute fields that differ between old and new record.

        Returns:
            Dict mapping field name to (old_value, new_value) tuples.
        """
        old = _record_fields(self.old_state)
        new = _record_fields(self.new_state)
        changes = {}
        for key in sorted(set(old) | set(new)):
            if old.get(key) != new.get(key):
                changes[key] = (old.get(key), new.get(key))
        return changes


def _record_fields(record: Any) -> Dict[str, Any]:
    if record is None:
        return {}
    dc_fields = getattr(type(record), "__dataclass_fields__", None)
    if dc_fields is None:
        return {"value": record}
    return {name: getattr(record, name) for name in dc_fields}


def _canonicalize(value: Any) -> str:
    """
    Produce a canonical string representation of a value for hashing.

    Dataclass records serialize by field name in sorted order, so two equal
    records always produce the same string.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return f"N:{value}"
    if isinstance(value, str):
        return f"S:{value}"
    if isinstance(value, Enum):
        return f"E:{value.value}"
    if isinstance(value, dict):
        items = sorted(value.items(), key=lambda kv: str(kv[0]))
        serialized = ",".join(f"{_canonicalize(k)}:{_canonicalize(v)}" for k, v in items)
        return f"{{{serialized}}}"
    if isinstance(value, (list, tuple)):
        serialized = ",".join(_canonicalize(item) for item in value)
        return f"[{serialized}]"
    if hasattr(type(value), "__dataclass_fields__"):
        return f"{type(value).__name__}{_canonicalize(_record_fields(value))}"
    return f"R:{repr(value)}"


def _compute_intent_id(
    state_changes: Tuple[StateChange, ...],
    messages: Tuple[CosmosMsg, ...],
    origin: TransactionOrigin,
) -> str:
    """
    Compute a deterministic content hash for a transaction's intent.

    The hash covers the origin, the staged state changes (sorted by key,
    including the old records they were computed against) and the emitted
    messages in order. Timestamps are excluded.
    """
    content_parts = [
        f"origin:{origin.origin_type.value}:{origin.sender}:{origin.action}",
    ]
    for sc in sorted(state_changes, key=lambda s: s.key):
        content_parts.append(
            f"state_change:{sc.key}|{_canonicalize(sc.old_state)}|{_canonicalize(sc.new_state)}"
        )
    for msg in messages:
        content_parts.append(f"msg:{_canonicalize(msg)}")
    content = "|".join(content_parts)
    return hashlib.sha256(content.encode()).hexdigest()[:16]


@dataclass(frozen=True, slots=True)
class PendingTransaction:
    """
    A transition before commit - represents INTENT.

    Created by the compute functions and submitted to Presale.execute().

    Attributes:
        state_changes: Records to replace, each with the record it was computed against
        messages: Outbound instructions to emit on success, in order
        attributes: Audit attributes for the response
        origin: Who/what created this transaction and why
        timestamp: Block time the transaction was computed at
        intent_id: Content-addressable hash of the intent (auto-computed)
    """
    state_changes: Tuple[StateChange, ...]
    messages: Tuple[CosmosMsg, ...]
    attributes: Attributes
    origin: TransactionOrigin
    timestamp: int
    intent_id: str = field(default="")

    def __post_init__(self):
        if not self.intent_id:
            computed_id = _compute_intent_id(self.state_changes, self.messages, self.origin)
            object.__setattr__(self, 'intent_id', computed_id)

    def is_empty(self) -> bool:
        """Return True if there is nothing to commit and nothing to emit."""
        return not self.state_changes and not self.messages

    def __repr__(self) -> str:
        return (
            f"PendingTransaction({len(self.state_changes)} changes, "
            f"{len(self.messages)} messages, {self.origin})"
        )


def build_transaction(
    view: PresaleView,
    origin: TransactionOrigin,
    state_changes: Optional[List[StateChange]] = None,
    messages: Optional[List[CosmosMsg]] = None,
    attributes: Optional[List[Tuple[str, str]]] = None,
) -> PendingTransaction:
    """
    Build a PendingTransaction stamped with the view's current time.

    The action tag of ``origin`` is always the first attribute.
    """
    attrs = [("action", origin.action)]
    attrs.extend((str(k), str(v)) for k, v in (attributes or []))
    return PendingTransaction(
        state_changes=tuple(state_changes or ()),
        messages=tuple(messages or ()),
        attributes=tuple(attrs),
        origin=origin,
        timestamp=view.current_time,
    )


@dataclass(frozen=True, slots=True)
class Transaction:
    """
    A committed, immutable record of a state transition - represents FACT.

    Attributes:
        state_changes: Records replaced by this transaction
        messages: Instructions emitted
        attributes: Audit attributes
        origin: Who/what created this transaction and why
        timestamp: Block time the PendingTransaction was computed at
        intent_id: Content hash (from PendingTransaction)
        exec_id: Unique execution identifier
        presale_name: Name of the presale that committed this
        execution_time: Block time of commit
        sequence_number: Monotonic sequence within the presale
    """
    state_changes: Tuple[StateChange, ...]
    messages: Tuple[CosmosMsg, ...]
    attributes: Attributes
    origin: TransactionOrigin
    timestamp: int
    intent_id: str
    exec_id: str
    presale_name: str
    execution_time: int
    sequence_number: int

    def __repr__(self) -> str:
        w = 100
        bar = "─" * w

        def pad(text: str) -> str:
            if len(text) > w:
                return text[:w-3] + "..."
            return text + " " * (w - len(text))

        lines = [
            "",
            f"┌{bar}┐",
            f"│{pad(' Transaction: ' + self.exec_id)}│",
            f"├{bar}┤",
            f"│{pad('   intent_id      : ' + self.intent_id)}│",
            f"│{pad('   timestamp      : ' + str(self.timestamp))}│",
            f"│{pad('   execution_time : ' + str(self.execution_time))}│",
            f"│{pad('   sequence       : ' + str(self.sequence_number))}│",
            f"│{pad('   origin         : ' + repr(self.origin))}│",
        ]
        if self.state_changes:
            lines.append(f"├{bar}┤")
            lines.append(f"│{pad(' State Changes (' + str(len(self.state_changes)) + '):')}│")
            for sc in self.state_changes:
                lines.append(f"│{pad('   [' + sc.key + ']')}│")
                for field_name, (old_val, new_val) in sc.changed_fields().items():
                    lines.append(f"│{pad(f'      {field_name}: {old_val!r} → {new_val!r}')}│")
        lines.append(f"├{bar}┤")
        lines.append(f"│{pad(' Messages (' + str(len(self.messages)) + '):')}│")
        for i, msg in enumerate(self.messages):
            lines.append(f"│{pad(f'   [{i}] {msg!r}')}│")
        lines.append(f"└{bar}┘")
        return "\n".join(lines)


@dataclass(frozen=True, slots=True)
class Response:
    """What a successful call hands back to the host: instructions plus attributes."""
    messages: Tuple[CosmosMsg, ...] = ()
    attributes: Attributes = ()

    @classmethod
    def from_pending(cls, pending: PendingTransaction) -> Response:
        return cls(messages=pending.messages, attributes=pending.attributes)

    def attribute(self, key: str) -> Optional[str]:
        """Return the first attribute value for ``key``, or None."""
        for k, v in self.attributes:
            if k == key:
                return v
        return None
