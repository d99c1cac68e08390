from __future__ import annotations

from typing import Iterable, Sequence

from domain.annual_tax import AnnualTaxReport
from domain.profit_report import ProfitReportRow
from domain.vat_return import VatReturn

from .formatting import format_date, format_pounds


def _table(header: Sequence[str], rows: list[Sequence[str]], *, left_columns: int = 1) -> str:
    widths = [max(len(header[i]), max((len(row[i]) for row in rows), default=0)) for i in range(len(header))]

    def fmt(cells: Sequence[str]) -> str:
        return " ".join(
            f"{cell:<{widths[i]}}" if i < left_columns else f"{cell:>{widths[i]}}" for i, cell in enumerate(cells)
        )

    head = fmt(header)
    return "\n".join([head, "-" * len(head), *(fmt(row) for row in rows)])


def render_tax_report(report: AnnualTaxReport) -> str:
    rows = [
        ("Revenue", format_pounds(report.revenue)),
        ("Cost of goods sold", format_pounds(report.cost_of_goods_sold)),
        ("Adjustment losses", format_pounds(report.adjustment_losses)),
        ("Profit", format_pounds(report.profit)),
        ("Personal allowance", format_pounds(report.personal_allowance)),
        ("Taxable profit", format_pounds(report.taxable_profit)),
        ("Income tax", format_pounds(report.income_tax)),
        ("Class 2 NIC", format_pounds(report.class2_nic)),
        ("Class 4 NIC", format_pounds(report.class4_nic)),
        ("Output VAT", format_pounds(report.output_vat)),
        ("Input VAT", format_pounds(report.input_vat)),
        ("Net VAT", format_pounds(report.vat)),
        ("Rolling 12m revenue", format_pounds(report.rolling_revenue)),
        ("VAT status", report.vat_status.value),
    ]
    return f"Tax year {report.tax_year}:\n" + _table(("Figure", "Amount"), rows)


def render_vat_return(vat_return: VatReturn) -> str:
    rows = [
        ("Output VAT", format_pounds(vat_return.output_vat)),
        ("Input VAT", format_pounds(vat_return.input_vat)),
        ("Net VAT", format_pounds(vat_return.net_vat)),
    ]
    title = f"VAT return {vat_return.year} Q{vat_return.quarter} ({vat_return.period}):"
    return title + "\n" + _table(("Box", "Amount"), rows)


def render_profit_report(rows: Iterable[ProfitReportRow]) -> str:
    row_list = list(rows)
    if not row_list:
        return "Profit report:\n  (no inventory)"

    table_rows = [
        (
            str(row.item_id),
            row.name,
            row.category or "-",
            format_pounds(row.cost),
            format_pounds(row.sold_price),
            format_pounds(row.profit),
            format_pounds(row.vat),
            format_date(row.date),
        )
        for row in row_list
    ]
    header = ("Id", "Name", "Category", "Cost", "Sold", "Profit", "VAT", "Date")
    return "Profit report:\n" + _table(header, table_rows, left_columns=3)
