from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from config import config
from db.db import init_db
from domain.margin_vat import UnknownItemError
from domain.periods import InvalidPeriodError
from services.tax_service import TaxService
from utils.rendering import render_profit_report, render_tax_report, render_vat_return


def build_service(db_file: Path | None = None) -> TaxService:
    session = init_db(db_file=db_file)
    return TaxService(session, default_tax_status=config().default_tax_status())


def run(args: argparse.Namespace) -> None:
    service = build_service(args.db_file)

    if args.command == "tax-report":
        report = service.annual_report(year=args.year)
        print(render_tax_report(report))
    elif args.command == "vat-return":
        print(render_vat_return(service.vat_return(args.year, args.quarter)))
    elif args.command == "profit-report":
        print(render_profit_report(service.profit_report()))
    elif args.command == "refresh-vat":
        assessments = service.refresh_vat()
        print(f"Refreshed VAT on {len(assessments)} transactions")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Tax and VAT reports for the collectibles inventory.")
    parser.add_argument("--db-file", type=Path, default=None, help="SQLite file (defaults to DB_FILE setting)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    tax_report = subparsers.add_parser("tax-report", help="Annual profit, income tax, NICs and VAT")
    tax_report.add_argument("--year", type=int, default=None, help="Tax year (defaults to earliest transaction's)")

    vat_return = subparsers.add_parser("vat-return", help="Quarterly VAT return (Stagger 1)")
    vat_return.add_argument("--year", required=True)
    vat_return.add_argument("--quarter", required=True)

    subparsers.add_parser("profit-report", help="Per-item cost, sale price and profit")
    subparsers.add_parser("refresh-vat", help="Recompute stored VAT for the registration window")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        run(args)
    except (InvalidPeriodError, UnknownItemError) as err:
        print(f"error: {err}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=config().log_level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    sys.exit(main())
