import csv
import logging
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, Iterator, Mapping, Optional, TextIO

from errors import InputError
from models import (
    LEDGER_CONTEXT,
    Chargeback,
    ClientAccount,
    Deposit,
    Dispute,
    Resolve,
    TransactionRecord,
    TransactionType,
    Withdrawal,
    is_supported_amount,
)

logger = logging.getLogger(__name__)

DECIMAL_PLACES = 4
QUANTUM = Decimal(1).scaleb(-DECIMAL_PLACES)

MAX_CLIENT_ID = 2**16 - 1
MAX_TX_ID = 2**32 - 1

REQUIRED_COLUMNS = ("type", "client", "tx")
OUTPUT_COLUMNS = ("client", "available", "held", "total", "locked")

SkipCallback = Callable[[int, Dict[str, str], str], None]


def read_records(stream: TextIO, on_skip: Optional[SkipCallback] = None) -> Iterator[TransactionRecord]:
    """
    Yield typed records from a CSV stream with a `type, client, tx, amount` header.

    Rows that cannot be turned into a record are logged and skipped, and on_skip is
    called with the line number, the row and the reason. A stream without the
    required header, or one that cannot be decoded, raises InputError.
    """
    reader = csv.DictReader(stream)
    try:
        fieldnames = reader.fieldnames
        if fieldnames is None:
            raise InputError("input is empty, expected a header row")
        columns = {name.strip().lower() for name in fieldnames}
        missing = [name for name in REQUIRED_COLUMNS if name not in columns]
        if missing:
            raise InputError(f"input header is missing columns: {', '.join(missing)}")

        for row in reader:
            normalized = {k.strip().lower(): (v or "").strip() for k, v in row.items() if k is not None}
            try:
                yield parse_row(normalized)
            except (KeyError, ValueError) as e:
                logger.warning(f"Failed to parse row {reader.line_num} {normalized}: {e}")
                if on_skip is not None:
                    on_skip(reader.line_num, normalized, str(e))
    except (csv.Error, UnicodeDecodeError) as e:
        raise InputError(f"cannot read input at line {reader.line_num}: {e}") from e


def parse_row(row: Mapping[str, str]) -> TransactionRecord:
    """Parse a normalized CSV row into the record variant named by its type."""
    transaction_type = TransactionType(row["type"].lower())
    client_id = _parse_id(row["client"], "client", MAX_CLIENT_ID)
    tx_id = _parse_id(row["tx"], "tx", MAX_TX_ID)

    match transaction_type:
        case TransactionType.DEPOSIT:
            return Deposit(client_id=client_id, tx_id=tx_id, amount=_parse_amount(row.get("amount", "")))
        case TransactionType.WITHDRAWAL:
            return Withdrawal(client_id=client_id, tx_id=tx_id, amount=_parse_amount(row.get("amount", "")))
        case TransactionType.DISPUTE:
            return Dispute(client_id=client_id, tx_id=tx_id)
        case TransactionType.RESOLVE:
            return Resolve(client_id=client_id, tx_id=tx_id)
        case TransactionType.CHARGEBACK:
            return Chargeback(client_id=client_id, tx_id=tx_id)

    raise ValueError(f"unsupported transaction type {transaction_type}")


def _parse_id(value: str, name: str, maximum: int) -> int:
    parsed = int(value)
    if not 0 <= parsed <= maximum:
        raise ValueError(f"{name} id {parsed} out of range 0..{maximum}")
    return parsed


def _parse_amount(value: str) -> Decimal:
    if not value:
        raise ValueError("missing amount")
    try:
        amount = Decimal(value)
    except InvalidOperation:
        raise ValueError(f"invalid amount {value!r}") from None
    if not is_supported_amount(amount):
        raise ValueError(f"unsupported amount {value!r}")
    return amount


def format_amount(value: Decimal) -> str:
    """Round to DECIMAL_PLACES fractional digits for display."""
    return f"{value.quantize(QUANTUM, context=LEDGER_CONTEXT):f}"


def write_accounts(accounts: Mapping[int, ClientAccount], stream: TextIO) -> None:
    """Write one summary row per client, in ascending client id order."""
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(OUTPUT_COLUMNS)
    for client_id in sorted(accounts):
        account = accounts[client_id]
        writer.writerow(
            (
                client_id,
                format_amount(account.available),
                format_amount(account.held),
                format_amount(account.total),
                str(account.locked).lower(),
            )
        )
