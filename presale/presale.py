"""
presale.py - Stateful presale ledger

The Presale class is the central state manager for the presale.
It is the only module that mutates state, ensuring controlled and auditable changes.

Key responsibilities:
    - Implements the PresaleView protocol for the pure compute functions
    - Commits PendingTransactions atomically (every staged change or none)
    - Rejects transactions computed against a stale snapshot
    - Holds the configuration, sale aggregates, withdrawal record and buyer index
    - Tracks block time and provides temporal operations (clone_at, replay)
    - Always validates and always logs
"""

from __future__ import annotations
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from .core import (
    # Types
    Config, SaleInfo, UserInfo, WithdrawalRecord, ContractVersion, Coin,
    PendingTransaction, Transaction, Response, StateChange,
    TransactionOrigin, OriginType, ExecuteResult, AddressValidator,
    # Constants
    NATIVE_DENOM, CONTRACT_NAME, CONTRACT_VERSION,
    CONFIG_KEY, SALE_INFO_KEY, WITHDRAWAL_KEY, CONTRACT_INFO_KEY, USER_INFO_PREFIX,
    # Exceptions
    PresaleError, ConfigurationInvalid, StaleState,
    # Helpers
    build_transaction, default_address_validator,
)
from .accounts import AccountIndex
from .sale import compute_buy
from .admin import compute_change_admin, compute_update_config, compute_withdraw_remainder


def compute_instantiate(view: Presale, sender: str, config: Config) -> PendingTransaction:
    """
    Stage the initial records of a new presale.

    Raises:
        InvalidAddress: If admin or token_address fails validation
        ConfigurationInvalid: If the sale would start before the current block time
    """
    view.validate_address(config.admin)
    view.validate_address(config.token_address)
    if config.presale_start < view.current_time:
        raise ConfigurationInvalid(
            f"presale_start {config.presale_start} is before current time {view.current_time}"
        )
    return build_transaction(
        view,
        TransactionOrigin(OriginType.INSTANTIATE, sender, "instantiate"),
        state_changes=[
            StateChange(CONTRACT_INFO_KEY, None, ContractVersion(CONTRACT_NAME, CONTRACT_VERSION)),
            StateChange(CONFIG_KEY, None, config),
            StateChange(SALE_INFO_KEY, None, SaleInfo()),
            StateChange(WITHDRAWAL_KEY, None, WithdrawalRecord()),
        ],
    )


class Presale:
    """
    Presale ledger with full validation and audit trail.

    Implements the PresaleView protocol, so it can be passed to the pure
    compute functions, which only use its read-only methods.

    Design Principles:
        - One call is one transaction: a compute function stages every record
          it wants to replace, together with the record it read, and
          execute() commits all of them or none.
        - Always validates: staged records must still match current state and
          the supply cap must hold after the commit.
        - Always logs: every committed transaction is appended to the
          transaction log, enabling clone_at() and replay().

    Thread Safety:
        Not thread-safe. The host serializes calls against one presale.

    Example:
        presale = Presale("banana", Config(
            admin="admin", token_address="token_address",
            total_supply=10000, presale_start=1000, presale_period=100,
            token_ratio=3,
        ), initial_time=700)
        presale.advance_time(1000)
        response = presale.buy_token("user1", [Coin("ujuno", 100)])
    """

    def __init__(
        self,
        name: str,
        config: Config,
        initial_time: int = 0,
        sender: Optional[str] = None,
        verbose: bool = True,
        test_mode: bool = False,
        address_validator: Optional[AddressValidator] = None,
        denom: str = NATIVE_DENOM,
    ):
        """
        Instantiate a presale.

        Args:
            name: Presale identifier (used in execution IDs)
            config: Initial sale configuration
            initial_time: Block time of instantiation, unix seconds
            sender: Instantiating address (default: config.admin)
            verbose: Print transaction receipts (default: True)
            test_mode: Allow direct record overrides for testing (default: False)
            address_validator: Callable raising InvalidAddress (default: default_address_validator)
            denom: Payment denomination (default: "ujuno")

        Raises:
            ConfigurationInvalid: If config.presale_start < initial_time
            InvalidAddress: If admin or token_address is malformed
        """
        self._init_storage(name, initial_time, verbose, test_mode, address_validator, denom)
        pending = compute_instantiate(self, sender or config.admin, config)
        self._commit(pending)

    def _init_storage(
        self,
        name: str,
        initial_time: int,
        verbose: bool,
        test_mode: bool,
        address_validator: Optional[AddressValidator],
        denom: str,
    ) -> None:
        self.name = name
        self._current_time: int = initial_time
        self.verbose = verbose
        self._test_mode = test_mode
        self._address_validator: AddressValidator = address_validator or default_address_validator
        self._denom = denom
        # Singleton records (config, sale_info, withdrawal, contract_info)
        self._records: Dict[str, Any] = {}
        self._accounts = AccountIndex()
        self.seen_intent_ids: set = set()
        self.transaction_log: List[Transaction] = []
        self._next_sequence: int = 0
        self.last_rejection: str = ""

    # ========================================================================
    # PresaleView PROTOCOL IMPLEMENTATION (read-only methods)
    # ========================================================================

    @property
    def current_time(self) -> int:
        """Current block time, unix seconds."""
        return self._current_time

    @property
    def denom(self) -> str:
        return self._denom

    def get_config(self) -> Config:
        config = self._records.get(CONFIG_KEY)
        if config is None:
            raise ConfigurationInvalid(f"Presale {self.name} is not instantiated")
        return config

    def get_sale_info(self) -> SaleInfo:
        return self._records.get(SALE_INFO_KEY, SaleInfo())

    def get_withdrawal(self) -> WithdrawalRecord:
        return self._records.get(WITHDRAWAL_KEY, WithdrawalRecord())

    def get_contract_version(self) -> Optional[ContractVersion]:
        return self._records.get(CONTRACT_INFO_KEY)

    def get_user_info(self, address: str) -> Optional[UserInfo]:
        return self._accounts.get(address)

    def iter_user_infos(self, start_after: Optional[str] = None) -> Iterator[UserInfo]:
        return self._accounts.range(start_after)

    def list_buyers(self) -> List[str]:
        """All buyer addresses in ascending order."""
        return [record.address for record in self._accounts.range()]

    def validate_address(self, address: str) -> None:
        self._address_validator(address)

    def verify_accounting(self) -> Dict[str, Any]:
        """
        Verify that the sale aggregates agree with the buyer records.

        Checks:
        - Σ bought_token_amount over buyers == token_sold_amount
        - Σ sent_juno over buyers == earned_juno
        - token_sold_amount <= total_supply

        Returns:
            Dict with keys:
            - 'valid': bool - True if every check holds
            - 'token_sold_amount': int - Sum of bought_token_amount over buyers
            - 'earned_juno': int - Sum of sent_juno over buyers
            - 'discrepancies': List[Dict] - One entry per failed check

        Example:
            result = presale.verify_accounting()
            assert result['valid'], result['discrepancies']
        """
        sale_info = self.get_sale_info()
        config = self.get_config()
        sold = 0
        earned = 0
        for record in self._accounts.range():
            sold += record.bought_token_amount
            earned += record.sent_juno

        discrepancies = []
        if sold != sale_info.token_sold_amount:
            discrepancies.append({
                'check': 'token_sold_amount',
                'expected': sale_info.token_sold_amount,
                'actual': sold,
            })
        if earned != sale_info.earned_juno:
            discrepancies.append({
                'check': 'earned_juno',
                'expected': sale_info.earned_juno,
                'actual': earned,
            })
        if sale_info.token_sold_amount > config.total_supply:
            discrepancies.append({
                'check': 'total_supply',
                'expected': config.total_supply,
                'actual': sale_info.token_sold_amount,
            })

        return {
            'valid': len(discrepancies) == 0,
            'token_sold_amount': sold,
            'earned_juno': earned,
            'discrepancies': discrepancies,
        }

    # ========================================================================
    # TIME MANAGEMENT
    # ========================================================================

    def advance_time(self, new_time: int) -> None:
        """
        Advance block time. Time can only move forward.

        Raises:
            ValueError: If new_time is before the current time
        """
        if new_time < self._current_time:
            raise ValueError(
                f"Cannot move time backwards: {new_time} < {self._current_time}"
            )
        self._current_time = new_time

    # ========================================================================
    # CONTRACT OPERATIONS (Mutating)
    # ========================================================================

    def buy_token(self, sender: str, funds: Sequence[Coin]) -> Response:
        """Buy tokens with the single coin in ``funds``. See sale.compute_buy()."""
        return self._commit(compute_buy(self, sender, funds))

    def change_admin(self, sender: str, address: str) -> Response:
        return self._commit(compute_change_admin(self, sender, address))

    def update_config(self, sender: str, config: Config) -> Response:
        return self._commit(compute_update_config(self, sender, config))

    def withdraw_token_by_admin(self, sender: str) -> Response:
        return self._commit(compute_withdraw_remainder(self, sender))

    def _commit(self, pending: PendingTransaction) -> Response:
        result = self.execute(pending)
        if result == ExecuteResult.REJECTED:
            raise StaleState(self.last_rejection)
        return Response.from_pending(pending)

    # ========================================================================
    # TEST HELPERS
    # ========================================================================

    def set_sale_info(self, sale_info: SaleInfo) -> None:
        """
        Overwrite the sale aggregates directly.

        WARNING: Bypasses validation and the transaction log. Only available
        in test mode.

        Raises:
            PresaleError: If called when test_mode is False
        """
        if not self._test_mode:
            raise PresaleError(
                "set_sale_info() is disabled in production mode. "
                "Set test_mode=True when creating Presale for testing."
            )
        self._records[SALE_INFO_KEY] = sale_info

    # ========================================================================
    # TRANSACTION EXECUTION (Mutating)
    # ========================================================================

    def _read(self, key: str) -> Any:
        if key.startswith(USER_INFO_PREFIX):
            return self._accounts.get(key[len(USER_INFO_PREFIX):])
        return self._records.get(key)

    def _write(self, key: str, value: Any) -> None:
        if key.startswith(USER_INFO_PREFIX):
            address = key[len(USER_INFO_PREFIX):]
            if value is None:
                self._accounts.remove(address)
            else:
                self._accounts.put(value)
        elif value is None:
            self._records.pop(key, None)
        else:
            self._records[key] = value

    def _generate_exec_id(self, sequence: int) -> str:
        """
        Generate a unique execution ID.

        Format: exec:{presale_name}:{sequence:012d}:{block_time}
        """
        return f"exec:{self.name}:{sequence:012d}:{self._current_time}"

    def execute(self, pending: PendingTransaction) -> ExecuteResult:
        """
        Commit a PendingTransaction atomically.

        Every staged state change is applied or none is. Execution is
        idempotent: resubmitting a committed intent whose records still hold
        its new state is a no-op. The same intent recurring later (an admin
        handed back and forth) is validated and applied like any other.

        Args:
            pending: PendingTransaction to commit

        Returns:
            ExecuteResult.APPLIED if committed
            ExecuteResult.ALREADY_APPLIED if the intent was already committed
            ExecuteResult.REJECTED if commit-time validation failed; the
            reason is kept in last_rejection
        """
        if pending.is_empty():
            return ExecuteResult.APPLIED

        if pending.intent_id in self.seen_intent_ids and self._reflects(pending):
            if self.verbose:
                print(f"⚠️  ALREADY_APPLIED: intent_id={pending.intent_id}")
            return ExecuteResult.ALREADY_APPLIED

        valid, reason = self._validate_pending(pending)
        if not valid:
            self.last_rejection = reason
            if self.verbose:
                print(f"✗ REJECTED: {reason}")
            return ExecuteResult.REJECTED

        sequence = self._next_sequence
        self._next_sequence += 1

        tx = Transaction(
            state_changes=pending.state_changes,
            messages=pending.messages,
            attributes=pending.attributes,
            origin=pending.origin,
            timestamp=pending.timestamp,
            intent_id=pending.intent_id,
            exec_id=self._generate_exec_id(sequence),
            presale_name=self.name,
            execution_time=self._current_time,
            sequence_number=sequence,
        )

        for sc in tx.state_changes:
            self._write(sc.key, sc.new_state)

        self.transaction_log.append(tx)
        self.seen_intent_ids.add(pending.intent_id)

        if self.verbose:
            self._print_tx_result(tx, "APPLIED", "✓")
        return ExecuteResult.APPLIED

    def _reflects(self, pending: PendingTransaction) -> bool:
        """True if every staged record already holds its new state."""
        return all(self._read(sc.key) == sc.new_state for sc in pending.state_changes)

    def _print_tx_result(self, tx: Transaction, result: str, icon: str) -> None:
        """Print the boxed transaction receipt with a result line appended."""
        lines = repr(tx).split('\n')
        w = 100
        bar = "─" * w
        text = ' ' + icon + ' ' + result
        lines[-1] = f"├{bar}┤"
        lines.append(f"│{text[:w].ljust(w)}│")
        lines.append(f"└{bar}┘")
        print("\n".join(lines))

    def _validate_pending(self, pending: PendingTransaction) -> Tuple[bool, str]:
        """
        Validate a pending transaction against current state.

        Checks performed:
        1. Timestamp validation (transaction must not be from the future)
        2. Each staged change's old_state equals the stored record
        3. No sale is recorded after the unsold remainder was withdrawn
        4. After the commit, token_sold_amount <= total_supply

        Returns:
            Tuple of (success: bool, reason: str)
        """
        if pending.timestamp > self._current_time:
            return False, "future timestamp"

        staged: Dict[str, Any] = {}
        for sc in pending.state_changes:
            current = self._read(sc.key)
            if current != sc.old_state:
                return False, f"stale state for {sc.key}: expected {sc.old_state!r}, found {current!r}"
            staged[sc.key] = sc.new_state

        withdrawal = self._records.get(WITHDRAWAL_KEY)
        if SALE_INFO_KEY in staged and withdrawal is not None and withdrawal.withdrawn:
            return False, "sale closed: unsold tokens already withdrawn"

        config = staged.get(CONFIG_KEY, self._records.get(CONFIG_KEY))
        sale_info = staged.get(SALE_INFO_KEY, self._records.get(SALE_INFO_KEY))
        if config is not None and sale_info is not None:
            if sale_info.token_sold_amount > config.total_supply:
                return False, (
                    f"token_sold_amount {sale_info.token_sold_amount} "
                    f"exceeds total_supply {config.total_supply}"
                )

        return True, ""

    # ========================================================================
    # PRESALE OPERATIONS
    # ========================================================================

    def clone(self) -> Presale:
        """
        Create an independent copy of this presale.

        Records are immutable, so copying the containers is enough.
        """
        cloned = Presale.__new__(Presale)
        cloned._init_storage(
            self.name, self._current_time, self.verbose, self._test_mode,
            self._address_validator, self._denom,
        )
        cloned._records = dict(self._records)
        cloned._accounts = self._accounts.copy()
        cloned.seen_intent_ids = set(self.seen_intent_ids)
        cloned.transaction_log = list(self.transaction_log)
        cloned._next_sequence = self._next_sequence
        return cloned

    def _clone_before(self, index: int) -> Presale:
        """Copy of this presale with the transactions from ``index`` on unwound."""
        cloned = self.clone()
        cloned.transaction_log = list(self.transaction_log[:index])
        cloned.seen_intent_ids = {tx.intent_id for tx in cloned.transaction_log}
        cloned._next_sequence = len(cloned.transaction_log)
        for tx in reversed(self.transaction_log[index:]):
            for sc in reversed(tx.state_changes):
                cloned._write(sc.key, sc.old_state)
        return cloned

    def clone_at(self, target_time: int) -> Presale:
        """
        Create a copy of this presale as it existed at a past block time.

        Walks backward through the transactions committed after target_time
        and restores the old_state of each of their state changes.

        Raises:
            ValueError: If target_time is in the future
        """
        if target_time > self._current_time:
            raise ValueError(f"Target time {target_time} is in the future")

        # Block time never decreases, so the log is ordered by execution_time
        index = 0
        while index < len(self.transaction_log) and self.transaction_log[index].execution_time <= target_time:
            index += 1
        cloned = self._clone_before(index)
        cloned._current_time = target_time
        return cloned

    def replay(self, from_tx: int = 0) -> Presale:
        """
        Create a new presale by re-executing the transaction log.

        The log starts with the instantiation transaction, so replaying from
        the beginning rebuilds the whole state from nothing. With from_tx > 0
        the new presale starts from the state just before that transaction.

        Raises:
            PresaleError: If a logged transaction is rejected during replay
        """
        log = self.transaction_log[from_tx:]
        start_time = log[0].execution_time if log else self._current_time
        replayed = Presale.__new__(Presale)
        replayed._init_storage(
            f"{self.name}_replayed", start_time, self.verbose, self._test_mode,
            self._address_validator, self._denom,
        )
        if from_tx:
            base = self._clone_before(from_tx)
            replayed._records = dict(base._records)
            replayed._accounts = base._accounts.copy()

        for tx in log:
            replayed.advance_time(tx.execution_time)
            pending = PendingTransaction(
                state_changes=tx.state_changes,
                messages=tx.messages,
                attributes=tx.attributes,
                origin=tx.origin,
                timestamp=tx.timestamp,
            )
            if replayed.execute(pending) != ExecuteResult.APPLIED:
                raise PresaleError(f"Replay failed at tx {tx.exec_id}: {replayed.last_rejection}")

        return replayed
