import logging
from decimal import Decimal
from typing import Dict, Iterator, Optional

from errors import Rejected
from models import AccountSnapshot, ClientAccount

logger = logging.getLogger(__name__)


class AccountLedger:
    """
    Client accounts for a single run, keyed by client id.
    Owns every balance mutation and enforces the account lock.
    """

    def __init__(self, allow_negative_available: bool = True):
        self._accounts: Dict[int, ClientAccount] = {}
        # A dispute on funds that were already withdrawn drives available
        # below zero. When disabled, such holds are rejected instead.
        self._allow_negative_available = allow_negative_available

    def __len__(self) -> int:
        return len(self._accounts)

    def get_or_create(self, client_id: int) -> ClientAccount:
        """Get existing account or create new one."""
        if client_id not in self._accounts:
            self._accounts[client_id] = ClientAccount(client_id=client_id)
        return self._accounts[client_id]

    def get(self, client_id: int) -> Optional[ClientAccount]:
        return self._accounts.get(client_id)

    def apply_deposit(self, client_id: int, amount: Decimal) -> None:
        account = self._mutable_account(client_id)
        self._require_positive(client_id, amount, "deposit")
        account.credit(amount)

    def apply_withdrawal(self, client_id: int, amount: Decimal) -> None:
        account = self._mutable_account(client_id)
        self._require_positive(client_id, amount, "withdrawal")
        if amount > account.available:
            raise Rejected(
                f"insufficient funds: {amount} requested, {account.available} available",
                client_id=client_id,
            )
        account.debit(amount)

    def apply_hold(self, client_id: int, amount: Decimal) -> None:
        account = self._mutable_account(client_id)
        if not self._allow_negative_available and amount > account.available:
            raise Rejected(
                f"hold of {amount} exceeds available {account.available}",
                client_id=client_id,
            )
        account.hold(amount)

    def apply_release(self, client_id: int, amount: Decimal) -> None:
        account = self._mutable_account(client_id)
        account.release_hold(amount)

    def apply_chargeback(self, client_id: int, amount: Decimal) -> None:
        account = self._mutable_account(client_id)
        account.remove_held(amount)
        account.locked = True
        logger.info(f"Client {client_id}: account locked after chargeback of {amount}")

    def snapshot_all(self) -> Iterator[AccountSnapshot]:
        """Yield one snapshot per known account. Order is not significant."""
        for account in self._accounts.values():
            yield account.snapshot()

    def _mutable_account(self, client_id: int) -> ClientAccount:
        account = self.get_or_create(client_id)
        if account.locked:
            raise Rejected(f"account {client_id} is locked", client_id=client_id)
        return account

    @staticmethod
    def _require_positive(client_id: int, amount: Decimal, kind: str) -> None:
        if amount <= 0:
            raise Rejected(f"{kind} amount must be positive, got {amount}", client_id=client_id)
