import argparse
import logging
import sys

from payments_engine import PaymentsEngine
from records import write_accounts

CSV_EXTENSION = ".csv"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ledger-replay",
        description="Replay a CSV of transactions and print final client balances.",
    )
    parser.add_argument("input", help="path to the transactions CSV file")
    parser.add_argument(
        "--no-negative-available",
        dest="allow_negative_available",
        action="store_false",
        help="reject disputes that would push available funds below zero",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="log processing details to stderr (repeat for debug output)",
    )
    return parser


def configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    if not args.input.endswith(CSV_EXTENSION):
        print(f"Error: the input file must have a {CSV_EXTENSION} extension", file=sys.stderr)
        return 1

    engine = PaymentsEngine(allow_negative_available=args.allow_negative_available)
    try:
        accounts = engine.process_file(args.input)
    except OSError as e:
        print(f"Error: cannot read {args.input}: {e}", file=sys.stderr)
        return 1

    write_accounts(accounts.values(), sys.stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main())
