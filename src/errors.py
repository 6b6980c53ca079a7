class LedgerError(Exception):
    """Base class for errors that are raised rather than reported as outcomes."""


class InputError(LedgerError):
    """The input source cannot be read as a transaction stream. Fatal for the run."""


class DuplicateTransactionError(LedgerError):
    def __init__(self, tx_id: int):
        super().__init__(f"transaction {tx_id} already exists")
        self.tx_id = tx_id
