import logging
import sys
from typing import Dict, Iterable

from dispute_registry import DisputeRegistry
from errors import MalformedRecord
from ledger import AccountLedger
from models import AccountSnapshot, ProcessingResult, ProcessingStats, Transaction
from records import read_transactions
from transaction_processor import TransactionProcessor

logger = logging.getLogger(__name__)


class PaymentsEngine:
    """
    Replays transactions in input order against a fresh ledger.
    One engine instance owns the state of exactly one run.
    """

    def __init__(self, allow_negative_available: bool = True):
        self._ledger = AccountLedger(allow_negative_available=allow_negative_available)
        self._registry = DisputeRegistry()
        self._stats = ProcessingStats()
        self._processor = TransactionProcessor(self._ledger, self._registry, self._stats)

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    def process_file(self, filepath: str) -> Dict[int, AccountSnapshot]:
        """Process CSV file and return final account states."""
        logger.info(f"Processing transactions from {filepath}")
        accounts = self.process_transactions(read_transactions(filepath, on_malformed=self._record_malformed))

        # Print final processing report to stderr
        print(self._stats, file=sys.stderr)

        return accounts

    def process_transactions(self, transactions: Iterable[Transaction]) -> Dict[int, AccountSnapshot]:
        """Apply transactions in order and return final account states."""
        for transaction in transactions:
            self.apply(transaction)

        logger.info(f"Processing complete: {self._stats}")
        if self._stats.rejections:
            logger.info(f"Rejections by reason: {dict(self._stats.rejections)}")

        return self.get_all_accounts()

    def apply(self, transaction: Transaction) -> ProcessingResult:
        return self._processor.apply(transaction)

    def get_all_accounts(self) -> Dict[int, AccountSnapshot]:
        """Return a snapshot of every account (for final output)."""
        return {snapshot.client_id: snapshot for snapshot in self._ledger.snapshot_all()}

    def _record_malformed(self, error: MalformedRecord) -> None:
        self._stats.record_malformed()
