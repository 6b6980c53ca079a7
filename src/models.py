from collections import Counter
from dataclasses import dataclass, field
from decimal import ROUND_HALF_EVEN, Context, Decimal, DivisionByZero, InvalidOperation, Overflow
from enum import Enum
from typing import ClassVar, Optional, Union


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"


class TransactionKind(Enum):
    """Kinds of transaction kept in the transaction store."""
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"


class DisputeStatus(Enum):
    NONE = "none"
    DISPUTED = "disputed"
    RESOLVED = "resolved"
    CHARGED_BACK = "charged_back"


class RejectionReason(Enum):
    DUPLICATE_ID = "duplicate_id"
    INVALID_AMOUNT = "invalid_amount"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    ACCOUNT_LOCKED = "account_locked"
    UNKNOWN_TRANSACTION = "unknown_transaction"
    WRONG_KIND = "wrong_kind"
    CLIENT_MISMATCH = "client_mismatch"
    WRONG_STATE = "wrong_state"


@dataclass(frozen=True)
class Deposit:
    client_id: int
    tx_id: int
    amount: Decimal

    transaction_type: ClassVar[TransactionType] = TransactionType.DEPOSIT


@dataclass(frozen=True)
class Withdrawal:
    client_id: int
    tx_id: int
    amount: Decimal

    transaction_type: ClassVar[TransactionType] = TransactionType.WITHDRAWAL


@dataclass(frozen=True)
class Dispute:
    client_id: int
    tx_id: int

    transaction_type: ClassVar[TransactionType] = TransactionType.DISPUTE


@dataclass(frozen=True)
class Resolve:
    client_id: int
    tx_id: int

    transaction_type: ClassVar[TransactionType] = TransactionType.RESOLVE


@dataclass(frozen=True)
class Chargeback:
    client_id: int
    tx_id: int

    transaction_type: ClassVar[TransactionType] = TransactionType.CHARGEBACK


TransactionRecord = Union[Deposit, Withdrawal, Dispute, Resolve, Chargeback]


@dataclass
class StoredTransaction:
    tx_id: int
    client_id: int
    amount: Decimal
    kind: TransactionKind
    dispute_status: DisputeStatus = DisputeStatus.NONE

    def __repr__(self) -> str:
        return (
            f"StoredTransaction({self.kind.value}, client={self.client_id}, tx={self.tx_id}, "
            f"amount={self.amount}, status={self.dispute_status.value})"
        )


# Accepted amounts have at most 30 integer and 30 fractional digits, so any balance
# stays far below LEDGER_CONTEXT's precision and ledger arithmetic is exact.
MAX_AMOUNT_INTEGER_DIGITS = 30
MAX_AMOUNT_FRACTION_DIGITS = 30
LEDGER_CONTEXT = Context(prec=100, rounding=ROUND_HALF_EVEN, traps=[InvalidOperation, DivisionByZero, Overflow])


def is_supported_amount(amount: Decimal) -> bool:
    """True for finite amounts within the integer and fractional digit bounds."""
    if not amount.is_finite():
        return False
    if amount and amount.adjusted() >= MAX_AMOUNT_INTEGER_DIGITS:
        return False
    return amount.as_tuple().exponent >= -MAX_AMOUNT_FRACTION_DIGITS


@dataclass
class ClientAccount:
    """
    Balances of one client. `total` is derived, never stored.
    Mutators apply arithmetic in LEDGER_CONTEXT and never check business rules;
    the ledger validates a record before calling them.
    """

    client_id: int
    available: Decimal = Decimal("0")
    held: Decimal = Decimal("0")
    locked: bool = False

    @property
    def total(self) -> Decimal:
        return LEDGER_CONTEXT.add(self.available, self.held)

    def credit(self, amount: Decimal) -> None:
        self.available = LEDGER_CONTEXT.add(self.available, amount)

    def debit(self, amount: Decimal) -> None:
        self.available = LEDGER_CONTEXT.subtract(self.available, amount)

    def hold(self, amount: Decimal) -> None:
        self.debit(amount)
        self.held = LEDGER_CONTEXT.add(self.held, amount)

    def release_hold(self, amount: Decimal) -> None:
        self.remove_held(amount)
        self.credit(amount)

    def remove_held(self, amount: Decimal) -> None:
        self.held = LEDGER_CONTEXT.subtract(self.held, amount)

    def lock(self) -> None:
        self.locked = True


@dataclass(frozen=True)
class ProcessingResult:
    """Outcome of feeding one record to the ledger. A result without a reason was applied."""

    record: TransactionRecord
    reason: Optional[RejectionReason] = None
    message: str = ""

    @property
    def applied(self) -> bool:
        return self.reason is None

    @classmethod
    def success(cls, record: TransactionRecord) -> "ProcessingResult":
        return cls(record=record)

    @classmethod
    def rejected(cls, record: TransactionRecord, reason: RejectionReason, message: str) -> "ProcessingResult":
        return cls(record=record, reason=reason, message=message)


@dataclass
class ProcessingStats:
    """Counters for tracking processing statistics."""

    processed: int = 0
    skipped: int = 0
    rejected: Counter = field(default_factory=Counter)

    @property
    def failed(self) -> int:
        return sum(self.rejected.values())

    def record_result(self, result: ProcessingResult) -> None:
        if result.applied:
            self.processed += 1
        else:
            self.rejected[result.reason] += 1

    def record_skip(self) -> None:
        self.skipped += 1
