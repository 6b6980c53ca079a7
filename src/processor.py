import logging
from typing import Dict, Optional, TextIO

from csv_io import read_records, write_accounts
from errors import InputError
from ledger import LedgerEngine
from models import ClientAccount, ProcessingStats

logger = logging.getLogger(__name__)


class CSVProcessor:
    """
    Runs a CSV transaction stream through a LedgerEngine.
    Records are applied strictly in input order; rejected and unparsable rows are
    counted and logged, and never stop the run.
    """

    def __init__(self, engine: Optional[LedgerEngine] = None):
        self._engine = engine if engine is not None else LedgerEngine()
        self._stats = ProcessingStats()

    @property
    def engine(self) -> LedgerEngine:
        return self._engine

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    def process(self, stream: TextIO) -> ProcessingStats:
        """Apply every record in the stream. Raises InputError if the stream is not a transaction CSV."""
        for record in read_records(stream, on_skip=lambda line, row, reason: self._stats.record_skip()):
            result = self._engine.process(record)
            self._stats.record_result(result)
        return self._stats

    def process_file(self, filepath: str) -> Dict[int, ClientAccount]:
        """Process CSV file and return final account states."""
        try:
            with open(filepath, "r", newline="", encoding="utf-8-sig") as f:
                self.process(f)
        except OSError as e:
            raise InputError(f"cannot open {filepath}: {e}") from e

        logger.info(
            f"Processed: {self._stats.processed}, "
            f"Rejected: {self._stats.failed}, "
            f"Skipped: {self._stats.skipped}"
        )
        for reason, count in self._stats.rejected.most_common():
            logger.info(f"  {reason.value}: {count}")
        return self._engine.accounts()

    def export(self, stream: TextIO) -> None:
        """Write the final account summary as CSV."""
        write_accounts(self._engine.accounts(), stream)
