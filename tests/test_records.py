import sys
import os
import io
from decimal import Decimal

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from errors import MalformedRecord
from models import AccountSnapshot, TransactionType
from records import format_amount, parse_amount, parse_row, read_transactions, write_accounts


class TestParseRow:
    def test_deposit(self):
        transaction = parse_row({"type": " Deposit ", "client": "1", "tx": "7", "amount": " 2.5"})
        assert transaction.transaction_type == TransactionType.DEPOSIT
        assert transaction.client_id == 1
        assert transaction.transaction_id == 7
        assert transaction.amount == Decimal("2.5000")

    def test_dispute_ignores_amount(self):
        transaction = parse_row({"type": "dispute", "client": "1", "tx": "7", "amount": "9"})
        assert transaction.transaction_type == TransactionType.DISPUTE
        assert transaction.amount is None

    def test_short_row_without_amount_column(self):
        transaction = parse_row({"type": "resolve", "client": "2", "tx": "3", "amount": None})
        assert transaction.transaction_type == TransactionType.RESOLVE

    @pytest.mark.parametrize("row", [
        {"type": "transfer", "client": "1", "tx": "1", "amount": "1"},
        {"type": "deposit", "client": "x", "tx": "1", "amount": "1"},
        {"type": "deposit", "client": "-1", "tx": "1", "amount": "1"},
        {"type": "deposit", "client": "65536", "tx": "1", "amount": "1"},
        {"type": "deposit", "client": "1", "tx": "4294967296", "amount": "1"},
        {"type": "deposit", "client": "1", "amount": "1"},
        {"type": "withdrawal", "client": "1", "tx": "1", "amount": ""},
        {"type": "deposit", "client": "1", "tx": "1", "amount": "1.2.3"},
        {"type": "deposit", "client": "1", "tx": "1", "amount": "NaN"},
        {"type": "deposit", "client": "1", "tx": "1", "amount": "Infinity"},
    ])
    def test_malformed(self, row):
        with pytest.raises(MalformedRecord):
            parse_row(row)

    def test_id_bounds_accepted(self):
        transaction = parse_row({"type": "deposit", "client": "65535", "tx": "4294967295", "amount": "1"})
        assert transaction.client_id == 65535
        assert transaction.transaction_id == 4294967295


class TestParseAmount:
    def test_rounds_to_four_places(self):
        assert parse_amount("1.23455") == Decimal("1.2346")
        assert parse_amount("0.00004") == Decimal("0.0000")

    def test_keeps_exact_value(self):
        assert parse_amount("0.1") + parse_amount("0.2") == Decimal("0.3")


class TestReadTransactions:
    def test_reads_in_order_and_skips_malformed(self, tmp_path):
        csv_file = tmp_path / "input.csv"
        csv_file.write_text('\n'.join([
            "type, client, tx, amount",
            "deposit, 1, 1, 1.0",
            "bogus, 1, 2, 1.0",
            "withdrawal, 1, 3, 0.5",
            "dispute, 1, 1",
        ]))
        malformed = []

        transactions = list(read_transactions(str(csv_file), on_malformed=malformed.append))

        assert [t.transaction_id for t in transactions] == [1, 3, 1]
        assert [t.transaction_type for t in transactions] == [
            TransactionType.DEPOSIT,
            TransactionType.WITHDRAWAL,
            TransactionType.DISPUTE,
        ]
        assert len(malformed) == 1
        assert isinstance(malformed[0], MalformedRecord)

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            list(read_transactions(str(tmp_path / "nope.csv")))


class TestWriteAccounts:
    def test_format_amount(self):
        assert format_amount(Decimal("1.5")) == "1.5000"
        assert format_amount(Decimal("-30")) == "-30.0000"
        assert format_amount(Decimal("0")) == "0.0000"

    def test_sorted_output(self):
        stream = io.StringIO()
        write_accounts([
            AccountSnapshot(2, Decimal("2"), Decimal("0"), Decimal("2"), False),
            AccountSnapshot(1, Decimal("1.5"), Decimal("0.25"), Decimal("1.75"), True),
        ], stream)

        assert stream.getvalue() == (
            "client,available,held,total,locked\n"
            "1,1.5000,0.2500,1.7500,true\n"
            "2,2.0000,0.0000,2.0000,false\n"
        )
