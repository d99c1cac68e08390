"""Annual profit, income tax, National Insurance and VAT for a sole trader.

Thresholds follow the UK 2025 rules in whole pounds. The tax year is the
calendar year of the earliest recorded transaction unless one is requested
explicitly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import StrEnum
from typing import Iterable

from .margin_vat import MarginVatCalculator, VatAssessment
from .periods import TaxYear, is_vat_applicable, rolling_window, tax_year
from .records import REVENUE_TYPES, InventoryAdjustment, InventoryItem, ItemId, TaxStatus, Transaction

logger = logging.getLogger(__name__)

PERSONAL_ALLOWANCE = Decimal("12570")
ALLOWANCE_TAPER_THRESHOLD = Decimal("100000")
BASIC_RATE_LIMIT = Decimal("50270")
HIGHER_RATE_LIMIT = Decimal("125140")
BASIC_RATE = Decimal("0.20")
HIGHER_RATE = Decimal("0.40")
ADDITIONAL_RATE = Decimal("0.45")

CLASS2_NIC_FLAT = Decimal("179.40")
CLASS2_SMALL_PROFITS_THRESHOLD = Decimal("6725")
CLASS4_MAIN_RATE = Decimal("0.09")
CLASS4_UPPER_RATE = Decimal("0.02")
CLASS4_UPPER_LIMIT = Decimal("50270")

ZERO = Decimal("0")


class VatStatus(StrEnum):
    REGISTER = "Register"
    BELOW_THRESHOLD = "Below Threshold"


def personal_allowance(profit: Decimal) -> Decimal:
    if profit <= ALLOWANCE_TAPER_THRESHOLD:
        return PERSONAL_ALLOWANCE
    # Tapered by 1 pound for every 2 pounds over the threshold.
    return max(PERSONAL_ALLOWANCE - (profit - ALLOWANCE_TAPER_THRESHOLD) / 2, ZERO)


def income_tax(profit: Decimal) -> Decimal:
    allowance = personal_allowance(profit)
    taxable = max(profit - allowance, ZERO)
    if taxable == 0:
        return ZERO

    basic_band = BASIC_RATE_LIMIT - allowance
    higher_threshold = HIGHER_RATE_LIMIT - allowance
    if taxable <= basic_band:
        return taxable * BASIC_RATE
    if taxable <= higher_threshold:
        return basic_band * BASIC_RATE + (taxable - basic_band) * HIGHER_RATE
    return (
        basic_band * BASIC_RATE
        + (higher_threshold - basic_band) * HIGHER_RATE
        + (taxable - higher_threshold) * ADDITIONAL_RATE
    )


def class2_nic(profit: Decimal) -> Decimal:
    return CLASS2_NIC_FLAT if profit > CLASS2_SMALL_PROFITS_THRESHOLD else ZERO


def class4_nic(taxable_profit: Decimal) -> Decimal:
    """Class 4 contributions, banded on taxable profit."""
    if taxable_profit <= CLASS4_UPPER_LIMIT:
        return taxable_profit * CLASS4_MAIN_RATE
    return (CLASS4_UPPER_LIMIT - PERSONAL_ALLOWANCE) * CLASS4_MAIN_RATE + (
        taxable_profit - CLASS4_UPPER_LIMIT
    ) * CLASS4_UPPER_RATE


@dataclass
class AnnualTaxReport:
    tax_year: int
    revenue: Decimal
    cost_of_goods_sold: Decimal
    adjustment_losses: Decimal
    profit: Decimal
    personal_allowance: Decimal
    taxable_profit: Decimal
    income_tax: Decimal
    class2_nic: Decimal
    class4_nic: Decimal
    output_vat: Decimal
    input_vat: Decimal
    rolling_revenue: Decimal
    vat_status: VatStatus
    vat_assessments: list[VatAssessment] = field(default_factory=list)

    @property
    def nics(self) -> Decimal:
        return self.class2_nic + self.class4_nic

    @property
    def vat(self) -> Decimal:
        return self.output_vat - self.input_vat

    def as_payload(self) -> dict[str, Decimal | str]:
        return {
            "profit": self.profit,
            "incomeTax": self.income_tax,
            "nics": self.nics,
            "vat": self.vat,
            "rollingRevenue": self.rolling_revenue,
            "vatStatus": self.vat_status.value,
        }


def anchor_tax_year(transactions: Iterable[Transaction], now: datetime) -> TaxYear:
    """Tax year of the earliest transaction, or of ``now`` when there are none."""
    earliest = min((tx.timestamp for tx in transactions), default=None)
    return TaxYear((earliest or now).year)


class AnnualTaxReportEngine:
    def __init__(self, tax_status: TaxStatus) -> None:
        self._tax_status = tax_status

    def generate(
        self,
        transactions: Iterable[Transaction],
        items: Iterable[InventoryItem],
        adjustments: Iterable[InventoryAdjustment],
        *,
        now: datetime | None = None,
        year: int | None = None,
    ) -> AnnualTaxReport:
        """Aggregate one tax year.

        The effective VAT of every transaction in the registration window is
        recomputed first and used for the output VAT figure. The assessments
        are returned on the report so the caller can persist them; nothing is
        written here. An explicit ``year`` is validated before anything is
        computed and raises InvalidPeriodError when out of range.
        """
        requested = tax_year(year) if year is not None else None
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        tx_list = list(transactions)
        item_list = list(items)
        items_by_id: dict[ItemId, InventoryItem] = {item.id: item for item in item_list if item.id is not None}

        calculator = MarginVatCalculator(items_by_id)
        assessments: list[VatAssessment] = []
        effective: list[Transaction] = []
        for tx in tx_list:
            if is_vat_applicable(tx.timestamp, self._tax_status):
                assessment = calculator.assess_transaction(tx, self._tax_status)
                assessments.append(assessment)
                tx = tx.model_copy(
                    update={"vat_applicable": assessment.vat_applicable, "vat_amount": assessment.vat_amount}
                )
            effective.append(tx)

        period = requested or anchor_tax_year(effective, now)
        in_year = [tx for tx in effective if period.contains(tx.timestamp)]

        revenue = sum(
            (line.price for tx in in_year if tx.type in REVENUE_TYPES for line in tx.out_lines),
            start=ZERO,
        )

        sold_item_ids = self._sold_item_ids(in_year)
        cost_of_goods_sold = sum((self._item_cost(item_id, items_by_id) for item_id in sold_item_ids), start=ZERO)

        # Both signs count as a loss here.
        adjustment_losses = sum(
            (abs(adj.value_change) for adj in adjustments if period.contains(adj.date)),
            start=ZERO,
        )

        profit = revenue - cost_of_goods_sold - adjustment_losses
        allowance = personal_allowance(profit)
        taxable_profit = max(profit - allowance, ZERO)

        output_vat = sum((tx.vat_amount for tx in in_year if tx.vat_applicable), start=ZERO)
        input_vat = sum(
            (items_by_id[item_id].input_vat for item_id in sold_item_ids if item_id in items_by_id),
            start=ZERO,
        )

        window_start, window_end = rolling_window(now)
        rolling_revenue = sum(
            (tx.cash_amount for tx in effective if window_start <= tx.timestamp <= window_end),
            start=ZERO,
        )
        vat_status = (
            VatStatus.REGISTER if rolling_revenue > self._tax_status.revenue_threshold else VatStatus.BELOW_THRESHOLD
        )

        logger.debug(
            "Tax year %d: revenue=%s cogs=%s adjustments=%s profit=%s",
            period.year,
            revenue,
            cost_of_goods_sold,
            adjustment_losses,
            profit,
        )

        return AnnualTaxReport(
            tax_year=period.year,
            revenue=revenue,
            cost_of_goods_sold=cost_of_goods_sold,
            adjustment_losses=adjustment_losses,
            profit=profit,
            personal_allowance=allowance,
            taxable_profit=taxable_profit,
            income_tax=income_tax(profit),
            class2_nic=class2_nic(profit),
            class4_nic=class4_nic(taxable_profit),
            output_vat=output_vat,
            input_vat=input_vat,
            rolling_revenue=rolling_revenue,
            vat_status=vat_status,
            vat_assessments=assessments,
        )

    @staticmethod
    def _sold_item_ids(transactions: Iterable[Transaction]) -> list[ItemId]:
        """Distinct sold items in first-seen order."""
        seen: dict[ItemId, None] = {}
        for tx in transactions:
            for line in tx.out_lines:
                seen.setdefault(line.item_id, None)
        return list(seen)

    @staticmethod
    def _item_cost(item_id: ItemId, items_by_id: dict[ItemId, InventoryItem]) -> Decimal:
        item = items_by_id.get(item_id)
        if item is None:
            logger.warning("Sold item %s missing from inventory, counting zero cost", item_id)
            return ZERO
        return item.total_cost
