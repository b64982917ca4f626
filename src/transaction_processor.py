import logging
from decimal import Decimal
from typing import Optional

from dispute_registry import DisputeRegistry
from errors import ClientMismatch, DuplicateTx, MalformedRecord, Rejected, TransactionError
from ledger import AccountLedger
from models import ClientAccount, ProcessingResult, ProcessingStats, Transaction, TransactionType

logger = logging.getLogger(__name__)


class TransactionProcessor:
    """
    Applies transactions to the ledger and dispute registry, one at a time.
    Each transaction either takes full effect or leaves no trace.
    Rejections are logged and counted, never raised.
    """

    def __init__(self, ledger: AccountLedger, registry: DisputeRegistry, stats: Optional[ProcessingStats] = None):
        self._ledger = ledger
        self._registry = registry
        self._stats = stats if stats is not None else ProcessingStats()

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    def apply(self, transaction: Transaction) -> ProcessingResult:
        """
        Apply a single transaction.

        Returns:
            SUCCESS: Applied to ledger and registry
            REJECTED: Skipped, nothing was mutated (e.g., insufficient funds, unknown tx, frozen account)
        """
        # Referencing a client creates its account even if the record is rejected.
        account = self._ledger.get_or_create(transaction.client_id)

        try:
            if account.locked:
                raise Rejected(f"account {account.client_id} is locked", client_id=account.client_id)

            match transaction.transaction_type:
                case TransactionType.DEPOSIT:
                    self._handle_deposit(transaction)
                case TransactionType.WITHDRAWAL:
                    self._handle_withdrawal(transaction)
                case TransactionType.DISPUTE:
                    self._handle_dispute(transaction)
                case TransactionType.RESOLVE:
                    self._handle_resolve(transaction)
                case TransactionType.CHARGEBACK:
                    self._handle_chargeback(account, transaction)
        except TransactionError as e:
            self._log_rejection(transaction, e)
            self._stats.record_failure(e.code)
            return ProcessingResult.REJECTED

        self._stats.record_success()
        return ProcessingResult.SUCCESS

    def _handle_deposit(self, transaction: Transaction) -> None:
        amount = self._require_amount(transaction)
        self._registry.ensure_unused(transaction.transaction_id)
        self._ledger.apply_deposit(transaction.client_id, amount)
        self._registry.record_deposit(transaction.transaction_id, transaction.client_id, amount)

    def _handle_withdrawal(self, transaction: Transaction) -> None:
        amount = self._require_amount(transaction)
        self._registry.ensure_unused(transaction.transaction_id)
        self._ledger.apply_withdrawal(transaction.client_id, amount)
        self._registry.record_withdrawal(transaction.transaction_id)

    def _handle_dispute(self, transaction: Transaction) -> None:
        amount = self._registry.begin_dispute(transaction.transaction_id, transaction.client_id)
        try:
            self._ledger.apply_hold(transaction.client_id, amount)
        except Rejected:
            self._registry.cancel_dispute(transaction.transaction_id)
            raise

    def _handle_resolve(self, transaction: Transaction) -> None:
        amount = self._registry.resolve(transaction.transaction_id, transaction.client_id)
        self._ledger.apply_release(transaction.client_id, amount)

    def _handle_chargeback(self, account: ClientAccount, transaction: Transaction) -> None:
        amount = self._registry.chargeback(transaction.transaction_id, transaction.client_id)
        self._ledger.apply_chargeback(transaction.client_id, amount)
        logger.info(f"Chargeback for tx {transaction.transaction_id}: client {account.client_id} total now {account.total}")

    @staticmethod
    def _require_amount(transaction: Transaction) -> Decimal:
        if transaction.amount is None:
            raise MalformedRecord(
                f"{transaction.transaction_type.value} requires an amount",
                transaction_id=transaction.transaction_id,
                client_id=transaction.client_id,
            )
        return transaction.amount

    @staticmethod
    def _log_rejection(transaction: Transaction, error: TransactionError) -> None:
        kind = transaction.transaction_type.value.capitalize()
        message = f"{kind} tx {transaction.transaction_id} (client {transaction.client_id}) rejected: {error}"
        if isinstance(error, ClientMismatch):
            logger.error(message)
        elif isinstance(error, DuplicateTx):
            logger.info(message)
        else:
            logger.warning(message)
