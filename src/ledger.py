import logging
from decimal import Decimal
from typing import Dict, Optional, Union

from models import (
    Chargeback,
    ClientAccount,
    Deposit,
    Dispute,
    DisputeStatus,
    ProcessingResult,
    RejectionReason,
    Resolve,
    StoredTransaction,
    TransactionKind,
    TransactionRecord,
    Withdrawal,
    is_supported_amount,
)
from stores import AccountStore, TransactionStore

logger = logging.getLogger(__name__)


class LedgerEngine:
    """
    Applies transaction records to the account and transaction stores, one at a time,
    in the order they are given.

    Every record yields a ProcessingResult. A record that breaks a rule is rejected
    with a reason and leaves both stores untouched; rejections are logged and never
    raised, so one bad record cannot abort a run.

    The engine is the only writer to its stores. It is not thread-safe: a concurrent
    caller must serialize calls to process() per client (or globally).
    """

    def __init__(self, accounts: Optional[AccountStore] = None, transactions: Optional[TransactionStore] = None):
        self._accounts = accounts if accounts is not None else AccountStore()
        self._transactions = transactions if transactions is not None else TransactionStore()

    def process(self, record: TransactionRecord) -> ProcessingResult:
        """
        Process a single record.

        Returns:
            A result with reason None when the record was applied, otherwise the
            RejectionReason explaining why it was skipped.
        """
        account = self._accounts.get_or_create(record.client_id)

        if account.locked:
            return self._reject(record, RejectionReason.ACCOUNT_LOCKED, f"client {record.client_id} is locked")

        match record:
            case Deposit():
                return self._handle_deposit(account, record)
            case Withdrawal():
                return self._handle_withdrawal(account, record)
            case Dispute():
                return self._handle_dispute(account, record)
            case Resolve():
                return self._handle_resolve(account, record)
            case Chargeback():
                return self._handle_chargeback(account, record)

        raise TypeError(f"Unsupported record type: {type(record).__name__}")

    def accounts(self) -> Dict[int, ClientAccount]:
        return self._accounts.all_accounts()

    def get_account(self, client_id: int) -> Optional[ClientAccount]:
        return self._accounts.get(client_id)

    def get_transaction(self, tx_id: int) -> Optional[StoredTransaction]:
        return self._transactions.get(tx_id)

    def _handle_deposit(self, account: ClientAccount, record: Deposit) -> ProcessingResult:
        rejection = self._check_new_transaction(record)
        if rejection is not None:
            return rejection

        self._transactions.insert(
            StoredTransaction(
                tx_id=record.tx_id,
                client_id=record.client_id,
                amount=record.amount,
                kind=TransactionKind.DEPOSIT,
            )
        )
        account.credit(record.amount)
        return ProcessingResult.success(record)

    def _handle_withdrawal(self, account: ClientAccount, record: Withdrawal) -> ProcessingResult:
        rejection = self._check_new_transaction(record)
        if rejection is not None:
            return rejection

        if account.available < record.amount:
            return self._reject(
                record,
                RejectionReason.INSUFFICIENT_FUNDS,
                f"client {record.client_id} cannot withdraw {record.amount} as available amount is {account.available}",
            )

        self._transactions.insert(
            StoredTransaction(
                tx_id=record.tx_id,
                client_id=record.client_id,
                amount=record.amount,
                kind=TransactionKind.WITHDRAWAL,
            )
        )
        account.debit(record.amount)
        return ProcessingResult.success(record)

    def _handle_dispute(self, account: ClientAccount, record: Dispute) -> ProcessingResult:
        found = self._find_transaction(record, DisputeStatus.NONE)
        if isinstance(found, ProcessingResult):
            return found

        if account.available < found.amount:
            return self._reject(
                record,
                RejectionReason.INSUFFICIENT_FUNDS,
                f"client {record.client_id} cannot dispute {found.amount} as available amount is {account.available}",
            )

        account.hold(found.amount)
        self._transactions.update_status(record.tx_id, DisputeStatus.DISPUTED)
        return ProcessingResult.success(record)

    def _handle_resolve(self, account: ClientAccount, record: Resolve) -> ProcessingResult:
        found = self._find_transaction(record, DisputeStatus.DISPUTED)
        if isinstance(found, ProcessingResult):
            return found

        # Unreachable while the held balance invariant holds.
        if account.held < found.amount:
            return self._reject(
                record,
                RejectionReason.INSUFFICIENT_FUNDS,
                f"client {record.client_id} cannot resolve {found.amount} as held amount is {account.held}",
            )

        account.release_hold(found.amount)
        self._transactions.update_status(record.tx_id, DisputeStatus.RESOLVED)
        return ProcessingResult.success(record)

    def _handle_chargeback(self, account: ClientAccount, record: Chargeback) -> ProcessingResult:
        found = self._find_transaction(record, DisputeStatus.DISPUTED)
        if isinstance(found, ProcessingResult):
            return found

        if account.held < found.amount:
            return self._reject(
                record,
                RejectionReason.INSUFFICIENT_FUNDS,
                f"client {record.client_id} cannot chargeback {found.amount} as held amount is {account.held}",
            )

        account.remove_held(found.amount)
        account.lock()
        self._transactions.update_status(record.tx_id, DisputeStatus.CHARGED_BACK)
        logger.info(f"Chargeback tx {record.tx_id}: client {record.client_id} locked")
        return ProcessingResult.success(record)

    def _check_new_transaction(self, record: Union[Deposit, Withdrawal]) -> Optional[ProcessingResult]:
        """Amount and id checks shared by deposits and withdrawals."""
        if not is_supported_amount(record.amount) or record.amount <= Decimal("0"):
            return self._reject(record, RejectionReason.INVALID_AMOUNT, f"invalid amount {record.amount}")

        if record.tx_id in self._transactions:
            return self._reject(record, RejectionReason.DUPLICATE_ID, f"transaction {record.tx_id} already exists")

        return None

    def _find_transaction(
        self, record: Union[Dispute, Resolve, Chargeback], required: DisputeStatus
    ) -> Union[StoredTransaction, ProcessingResult]:
        """
        Look up the transaction a dispute, resolve or chargeback refers to.

        Returns the stored transaction when it exists, is a deposit owned by the
        record's client and is in the required dispute status. Otherwise returns
        the rejection.
        """
        original = self._transactions.get(record.tx_id)

        if original is None:
            return self._reject(record, RejectionReason.UNKNOWN_TRANSACTION, f"transaction {record.tx_id} does not exist")

        if original.kind != TransactionKind.DEPOSIT:
            return self._reject(
                record, RejectionReason.WRONG_KIND, f"transaction {record.tx_id} is a {original.kind.value}, not a deposit"
            )

        if original.client_id != record.client_id:
            return self._reject(
                record,
                RejectionReason.CLIENT_MISMATCH,
                f"transaction {record.tx_id} belongs to client {original.client_id}, not client {record.client_id}",
            )

        if original.dispute_status != required:
            return self._reject(
                record,
                RejectionReason.WRONG_STATE,
                f"transaction {record.tx_id} is {original.dispute_status.value}, expected {required.value}",
            )

        return original

    @staticmethod
    def _reject(record: TransactionRecord, reason: RejectionReason, message: str) -> ProcessingResult:
        logger.warning(f"{record.transaction_type.value.capitalize()} tx {record.tx_id}: rejected ({reason.value}): {message}")
        return ProcessingResult.rejected(record, reason, message)

