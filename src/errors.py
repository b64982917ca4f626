"""
Typed rejection reasons for transaction records.

Ledger and registry raise these; TransactionProcessor catches them,
logs the reason and counts it under ``code``. None of them is fatal
to a run.

    TransactionError
    +-- MalformedRecord
    +-- Rejected
    +-- DuplicateTx
    +-- DisputeError
        +-- UnknownTx
        +-- ClientMismatch
        +-- AlreadyDisputed
        +-- NotDisputed
        +-- AlreadyChargedBack
"""

from typing import Optional


class TransactionError(Exception):
    """Base class for every per-record rejection."""

    code: str = "TRANSACTION_ERROR"

    def __init__(
        self,
        message: str,
        transaction_id: Optional[int] = None,
        client_id: Optional[int] = None,
    ):
        self.transaction_id = transaction_id
        self.client_id = client_id
        super().__init__(message)


class MalformedRecord(TransactionError):
    """Missing field, unparseable amount or unknown kind."""

    code = "MALFORMED_RECORD"


class Rejected(TransactionError):
    """Well-formed record that violates a balance or lock precondition."""

    code = "REJECTED"


class DuplicateTx(TransactionError):
    code = "DUPLICATE_TX"


class DisputeError(TransactionError):
    """Dispute, resolve or chargeback that does not fit the entry's state."""

    code = "DISPUTE_ERROR"


class UnknownTx(DisputeError):
    code = "UNKNOWN_TX"


class ClientMismatch(DisputeError):
    code = "CLIENT_MISMATCH"

    def __init__(self, transaction_id: int, client_id: int, expected_client_id: int):
        self.expected_client_id = expected_client_id
        super().__init__(
            f"tx {transaction_id} belongs to client {expected_client_id}, not {client_id}",
            transaction_id=transaction_id,
            client_id=client_id,
        )


class AlreadyDisputed(DisputeError):
    code = "ALREADY_DISPUTED"


class NotDisputed(DisputeError):
    code = "NOT_DISPUTED"


class AlreadyChargedBack(DisputeError):
    code = "ALREADY_CHARGED_BACK"
