from decimal import Decimal
from typing import Dict, Optional, Set

from errors import (
    AlreadyChargedBack,
    AlreadyDisputed,
    ClientMismatch,
    DuplicateTx,
    NotDisputed,
    UnknownTx,
)
from models import DisputeEntry, DisputeStatus


class DisputeRegistry:
    """
    Dispute state for deposit transactions, keyed by transaction id.
    Withdrawal ids are remembered only to reject reuse; they are never disputable.
    """

    def __init__(self):
        self._entries: Dict[int, DisputeEntry] = {}
        self._withdrawal_ids: Set[int] = set()

    def __contains__(self, transaction_id: int) -> bool:
        return transaction_id in self._entries or transaction_id in self._withdrawal_ids

    def get(self, transaction_id: int) -> Optional[DisputeEntry]:
        return self._entries.get(transaction_id)

    def ensure_unused(self, transaction_id: int) -> None:
        """Raise DuplicateTx if the id was already taken by a deposit or withdrawal."""
        if transaction_id in self:
            raise DuplicateTx(f"tx {transaction_id} already processed", transaction_id=transaction_id)

    def record_deposit(self, transaction_id: int, client_id: int, amount: Decimal) -> None:
        self.ensure_unused(transaction_id)
        self._entries[transaction_id] = DisputeEntry(client_id=client_id, amount=amount)

    def record_withdrawal(self, transaction_id: int) -> None:
        self.ensure_unused(transaction_id)
        self._withdrawal_ids.add(transaction_id)

    def begin_dispute(self, transaction_id: int, client_id: int) -> Decimal:
        """Move a deposit into dispute and return the amount to hold."""
        entry = self._lookup(transaction_id, client_id)
        if entry.status == DisputeStatus.DISPUTED:
            raise AlreadyDisputed(
                f"tx {transaction_id} is already disputed",
                transaction_id=transaction_id,
                client_id=client_id,
            )
        entry.status = DisputeStatus.DISPUTED
        return entry.amount

    def resolve(self, transaction_id: int, client_id: int) -> Decimal:
        """Close a dispute in the client's favour and return the amount to release."""
        entry = self._lookup_disputed(transaction_id, client_id)
        entry.status = DisputeStatus.NORMAL
        return entry.amount

    def chargeback(self, transaction_id: int, client_id: int) -> Decimal:
        """Close a dispute by reversing the deposit. The entry stays charged back for good."""
        entry = self._lookup_disputed(transaction_id, client_id)
        entry.status = DisputeStatus.CHARGED_BACK
        return entry.amount

    def cancel_dispute(self, transaction_id: int) -> None:
        """Undo begin_dispute when the matching hold could not be applied."""
        entry = self._entries[transaction_id]
        if entry.status == DisputeStatus.DISPUTED:
            entry.status = DisputeStatus.NORMAL

    def _lookup(self, transaction_id: int, client_id: int) -> DisputeEntry:
        entry = self._entries.get(transaction_id)
        if entry is None:
            if transaction_id in self._withdrawal_ids:
                message = f"tx {transaction_id} is a withdrawal, only deposits can be disputed"
            else:
                message = f"tx {transaction_id} not found"
            raise UnknownTx(message, transaction_id=transaction_id, client_id=client_id)

        if entry.client_id != client_id:
            raise ClientMismatch(transaction_id, client_id, entry.client_id)

        if entry.status == DisputeStatus.CHARGED_BACK:
            raise AlreadyChargedBack(
                f"tx {transaction_id} was charged back",
                transaction_id=transaction_id,
                client_id=client_id,
            )
        return entry

    def _lookup_disputed(self, transaction_id: int, client_id: int) -> DisputeEntry:
        entry = self._lookup(transaction_id, client_id)
        if entry.status != DisputeStatus.DISPUTED:
            raise NotDisputed(
                f"tx {transaction_id} is not disputed",
                transaction_id=transaction_id,
                client_id=client_id,
            )
        return entry
