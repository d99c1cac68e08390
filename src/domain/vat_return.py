from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable

from .periods import VatQuarter, vat_quarter
from .records import InventoryItem, ItemId, Transaction

logger = logging.getLogger(__name__)


@dataclass
class VatReturn:
    year: int
    quarter: int
    period_start: date
    period_end: date
    output_vat: Decimal
    input_vat: Decimal

    @property
    def period(self) -> str:
        return f"{self.period_start.isoformat()} to {self.period_end.isoformat()}"

    @property
    def net_vat(self) -> Decimal:
        return self.output_vat - self.input_vat

    def as_payload(self) -> dict[str, int | str | Decimal]:
        return {
            "year": self.year,
            "quarter": self.quarter,
            "period": self.period,
            "outputVat": self.output_vat,
            "inputVat": self.input_vat,
            "netVat": self.net_vat,
        }


class VatReturnCalculator:
    """Quarterly VAT return on the Stagger 1 calendar.

    Output VAT uses the stored per-transaction figures; input VAT is the VAT
    paid on acquiring each item sold during the quarter, counted once per item.
    """

    def calculate(
        self,
        year: int | str | None,
        quarter: int | str | None,
        transactions: Iterable[Transaction],
        items: Iterable[InventoryItem],
    ) -> VatReturn:
        period = vat_quarter(year, quarter)
        return self.calculate_for_period(period, transactions, items)

    def calculate_for_period(
        self,
        period: VatQuarter,
        transactions: Iterable[Transaction],
        items: Iterable[InventoryItem],
    ) -> VatReturn:
        in_period = [tx for tx in transactions if period.contains(tx.timestamp)]

        sold_item_ids: set[ItemId] = {line.item_id for tx in in_period for line in tx.out_lines}
        input_vat = sum((item.input_vat for item in items if item.id in sold_item_ids), start=Decimal("0"))
        output_vat = sum((tx.vat_amount for tx in in_period if tx.vat_applicable), start=Decimal("0"))

        logger.debug(
            "VAT return %d Q%d: %d transactions, %d items sold",
            period.year,
            period.quarter,
            len(in_period),
            len(sold_item_ids),
        )
        return VatReturn(
            year=period.year,
            quarter=period.quarter,
            period_start=period.start,
            period_end=period.end,
            output_vat=output_vat,
            input_vat=input_vat,
        )
