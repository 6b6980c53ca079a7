from typing import Dict, Optional

from errors import DuplicateTransactionError
from models import ClientAccount, DisputeStatus, StoredTransaction


class AccountStore:
    """
    Client accounts keyed by client id.
    Holds state only; business rules are enforced by the ledger before any mutation.
    """

    def __init__(self):
        self._accounts: Dict[int, ClientAccount] = {}

    def get_or_create(self, client_id: int) -> ClientAccount:
        """Get existing account or create an empty, unlocked one."""
        if client_id not in self._accounts:
            self._accounts[client_id] = ClientAccount(client_id=client_id)
        return self._accounts[client_id]

    def get(self, client_id: int) -> Optional[ClientAccount]:
        return self._accounts.get(client_id)

    def all_accounts(self) -> Dict[int, ClientAccount]:
        """Return all accounts ordered by client id (for final output)."""
        return {client_id: self._accounts[client_id] for client_id in sorted(self._accounts)}

    def __contains__(self, client_id: int) -> bool:
        return client_id in self._accounts

    def __len__(self) -> int:
        return len(self._accounts)


class TransactionStore:
    """
    Deposits and withdrawals keyed by transaction id, kept for dispute lookups.
    """

    def __init__(self):
        self._transactions: Dict[int, StoredTransaction] = {}

    def get(self, tx_id: int) -> Optional[StoredTransaction]:
        """Retrieve stored transaction by ID."""
        return self._transactions.get(tx_id)

    def insert(self, transaction: StoredTransaction) -> None:
        """Store a new transaction. Existing ids are never overwritten."""
        if transaction.tx_id in self._transactions:
            raise DuplicateTransactionError(transaction.tx_id)
        self._transactions[transaction.tx_id] = transaction

    def update_status(self, tx_id: int, status: DisputeStatus) -> None:
        # Caller guarantees the id exists.
        self._transactions[tx_id].dispute_status = status

    def __contains__(self, tx_id: int) -> bool:
        return tx_id in self._transactions

    def __len__(self) -> int:
        return len(self._transactions)
