import csv
import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Callable, Dict, Iterable, Iterator, Optional, TextIO

from errors import MalformedRecord
from models import AccountSnapshot, Transaction, TransactionType

logger = logging.getLogger(__name__)

AMOUNT_PRECISION = Decimal("0.0001")
MAX_CLIENT_ID = 2**16 - 1
MAX_TRANSACTION_ID = 2**32 - 1
OUTPUT_FIELDS = ["client", "available", "held", "total", "locked"]


def parse_row(row: Dict[str, Optional[str]]) -> Transaction:
    """Parse a CSV row into a Transaction. Raises MalformedRecord."""
    normalized = {k.strip(): (v or "").strip() for k, v in row.items() if k is not None}

    try:
        transaction_type = TransactionType(normalized["type"].lower())
        client_id = _parse_id(normalized["client"], "client", MAX_CLIENT_ID)
        transaction_id = _parse_id(normalized["tx"], "tx", MAX_TRANSACTION_ID)
    except (KeyError, ValueError) as e:
        raise MalformedRecord(f"Failed to parse row {row}: {e}")

    amount = None
    if transaction_type in (TransactionType.DEPOSIT, TransactionType.WITHDRAWAL):
        amount_str = normalized.get("amount", "")
        if not amount_str:
            raise MalformedRecord(
                f"{transaction_type.value} without amount",
                transaction_id=transaction_id,
                client_id=client_id,
            )
        amount = parse_amount(amount_str)

    return Transaction(
        transaction_type=transaction_type,
        client_id=client_id,
        transaction_id=transaction_id,
        amount=amount,
    )


def parse_amount(value: str) -> Decimal:
    """Parse a decimal amount, rounded half-up to four fractional digits."""
    try:
        amount = Decimal(value)
        if not amount.is_finite():
            raise MalformedRecord(f"amount must be finite, got {value!r}")
        return amount.quantize(AMOUNT_PRECISION, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise MalformedRecord(f"unparseable amount {value!r}")


def read_transactions(
    filepath: str,
    on_malformed: Optional[Callable[[MalformedRecord], None]] = None,
) -> Iterator[Transaction]:
    """
    Yield transactions from a CSV file in file order.
    Malformed rows are logged and skipped. Failing to open the file is fatal.
    """
    with open(filepath, "r", newline="") as f:
        reader = csv.DictReader(f, skipinitialspace=True)
        for line_number, row in enumerate(reader, start=2):
            try:
                yield parse_row(row)
            except MalformedRecord as e:
                logger.warning(f"Line {line_number}: skipping malformed row: {e}")
                if on_malformed is not None:
                    on_malformed(e)


def format_amount(value: Decimal) -> str:
    """Format an amount with exactly four decimal places."""
    return f"{value.quantize(AMOUNT_PRECISION, rounding=ROUND_HALF_UP):f}"


def write_accounts(snapshots: Iterable[AccountSnapshot], stream: TextIO) -> None:
    """Write account snapshots as CSV, sorted by client id."""
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(OUTPUT_FIELDS)
    for snapshot in sorted(snapshots, key=lambda s: s.client_id):
        writer.writerow([
            snapshot.client_id,
            format_amount(snapshot.available),
            format_amount(snapshot.held),
            format_amount(snapshot.total),
            str(snapshot.locked).lower(),
        ])


def _parse_id(value: str, field: str, maximum: int) -> int:
    parsed = int(value)
    if parsed < 0 or parsed > maximum:
        raise ValueError(f"{field} {parsed} out of range 0..{maximum}")
    return parsed
