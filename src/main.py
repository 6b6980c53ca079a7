import logging
import os
import sys

from errors import InputError
from processor import CSVProcessor

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    level = os.environ.get("LEDGER_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv=None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 1:
        print("Usage: python main.py <transactions.csv>", file=sys.stderr)
        return 1

    configure_logging()

    processor = CSVProcessor()
    try:
        processor.process_file(args[0])
    except InputError as e:
        logger.error(str(e))
        return 1

    processor.export(sys.stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main())
