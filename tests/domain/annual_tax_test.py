from datetime import date
from decimal import Decimal

import pytest

from domain.annual_tax import (
    AnnualTaxReportEngine,
    VatStatus,
    class2_nic,
    class4_nic,
    income_tax,
    personal_allowance,
)
from domain.margin_vat import UnknownItemError
from domain.periods import InvalidPeriodError
from domain.records import InventoryAdjustment, ItemId, TaxStatus, Transaction, TransactionType
from tests.helpers.builders import REGISTERED, UNREGISTERED, bought, make_item, make_tx, sold, utc


def test_income_tax_example() -> None:
    assert personal_allowance(Decimal("40000")) == Decimal("12570")
    assert income_tax(Decimal("40000")) == Decimal("5486")


@pytest.mark.parametrize("profit", ["-5000", "0", "12570"])
def test_no_income_tax_up_to_allowance(profit: str) -> None:
    assert income_tax(Decimal(profit)) == 0


def test_allowance_taper() -> None:
    assert personal_allowance(Decimal("100000")) == Decimal("12570")
    assert personal_allowance(Decimal("110000")) == Decimal("7570")
    assert personal_allowance(Decimal("200000")) == 0


def test_higher_and_additional_rate_bands() -> None:
    # 37700 at 20% + 22430 at 40%
    assert income_tax(Decimal("72700")) == Decimal("7540") + Decimal("8972")
    # No allowance left: 50270 at 20%, 74870 at 40%, 74860 at 45%
    assert income_tax(Decimal("200000")) == Decimal("10054") + Decimal("29948") + Decimal("33687")


def test_income_tax_is_monotonic() -> None:
    profits = [Decimal(p) for p in range(0, 300_001, 250)]
    taxes = [income_tax(p) for p in profits]

    assert all(later >= earlier for earlier, later in zip(taxes, taxes[1:]))


def test_class2_nic_threshold() -> None:
    assert class2_nic(Decimal("6725")) == 0
    assert class2_nic(Decimal("6725.01")) == Decimal("179.40")


def test_class4_nic_bands() -> None:
    assert class4_nic(Decimal("27430")) == Decimal("2468.70")
    assert class4_nic(Decimal("67430")) == Decimal("3393") + Decimal("343.20")


def _scenario() -> tuple[list[Transaction], list, list[InventoryAdjustment]]:
    items = [
        make_item(1, 100, input_vat=5),
        make_item(2, 200, modification_cost=50),
        make_item(3, 1000, input_vat=30),
        make_item(4, 10),
        make_item(5, 300),
        make_item(6, 50),
    ]
    transactions = [
        make_tx(utc(2025, 1, 10), sold(1, 160), tx_id=1),
        make_tx(utc(2025, 4, 10), sold(2, 400), tx_id=2),
        make_tx(utc(2025, 5, 10), sold(3, 1300), tx_id=3),
        # Same item sold twice by mistake.
        make_tx(utc(2025, 6, 10), sold(3, 1200), tx_id=4),
        make_tx(utc(2025, 7, 10), sold(5, 500), tx_type=TransactionType.TRADE_OUT, cash_amount=0, tx_id=5),
        make_tx(utc(2025, 8, 10), bought(6, 50), tx_type=TransactionType.TRADE_IN, tx_id=6),
        make_tx(utc(2026, 2, 1), sold(4, 40), tx_id=7),
    ]
    adjustments = [
        InventoryAdjustment(item_id=ItemId(2), date=utc(2025, 5, 1), value_change=Decimal("-100"), reason="damage"),
        InventoryAdjustment(item_id=ItemId(3), date=utc(2025, 9, 1), value_change=Decimal("20"), reason="revalued"),
        InventoryAdjustment(item_id=ItemId(1), date=utc(2024, 12, 31), value_change=Decimal("-500"), reason="lost"),
    ]
    return transactions, items, adjustments


def test_annual_report_aggregates_earliest_tax_year() -> None:
    transactions, items, adjustments = _scenario()

    report = AnnualTaxReportEngine(REGISTERED).generate(transactions, items, adjustments, now=utc(2026, 3, 1))

    assert report.tax_year == 2025
    assert report.revenue == Decimal("3560")
    assert report.cost_of_goods_sold == Decimal("1650")
    assert report.adjustment_losses == Decimal("120")
    assert report.profit == Decimal("1790")
    assert report.income_tax == 0
    assert report.nics == 0
    assert report.output_vat == Decimal("141")
    assert report.input_vat == Decimal("35")
    assert report.vat == Decimal("106")
    assert report.rolling_revenue == Decimal("2940")
    assert report.vat_status == VatStatus.BELOW_THRESHOLD
    assert report.as_payload() == {
        "profit": Decimal("1790"),
        "incomeTax": Decimal("0"),
        "nics": Decimal("0"),
        "vat": Decimal("106"),
        "rollingRevenue": Decimal("2940"),
        "vatStatus": "Below Threshold",
    }


def test_annual_report_returns_vat_refresh_without_mutating_input() -> None:
    transactions, items, adjustments = _scenario()

    report = AnnualTaxReportEngine(REGISTERED).generate(transactions, items, adjustments, now=utc(2026, 3, 1))

    refreshed = {a.tx_id: a.vat_amount for a in report.vat_assessments}
    assert refreshed == {
        2: Decimal("25"),
        3: Decimal("50"),
        4: Decimal("33"),
        5: Decimal("33"),
        6: Decimal("0"),
        7: Decimal("5"),
    }
    assert all(not tx.vat_applicable and tx.vat_amount == 0 for tx in transactions)


def test_explicit_year_overrides_anchor() -> None:
    transactions, items, adjustments = _scenario()

    report = AnnualTaxReportEngine(REGISTERED).generate(
        transactions, items, adjustments, now=utc(2026, 3, 1), year=2026
    )

    assert report.tax_year == 2026
    assert report.revenue == Decimal("40")
    assert report.cost_of_goods_sold == Decimal("10")
    assert report.profit == Decimal("30")
    assert report.output_vat == Decimal("5")


@pytest.mark.parametrize("year", [0, 9999])
def test_out_of_range_year_is_rejected_before_computing(year: int) -> None:
    transactions = [make_tx(utc(2025, 5, 1), sold(1, 160))]

    with pytest.raises(InvalidPeriodError):
        AnnualTaxReportEngine(REGISTERED).generate(transactions, [make_item(1, 100)], [], year=year)


def test_purchases_are_not_revenue() -> None:
    transactions = [
        make_tx(utc(2025, 4, 1), bought(1, 100), tx_type=TransactionType.PURCHASE, tx_id=1),
        make_tx(utc(2025, 5, 1), sold(2, 160), tx_id=2),
    ]
    items = [make_item(1, 100), make_item(2, 100)]

    report = AnnualTaxReportEngine(REGISTERED).generate(transactions, items, [], now=utc(2025, 12, 31))

    assert report.revenue == Decimal("160")
    assert report.cost_of_goods_sold == Decimal("100")
    assert report.vat_assessments[0].vat_amount == 0


def test_rolling_revenue_over_threshold_requires_registration() -> None:
    transactions, items, adjustments = _scenario()
    status = TaxStatus(vat_registration_date=date(2025, 3, 1), revenue_threshold=Decimal("2000"))

    report = AnnualTaxReportEngine(status).generate(transactions, items, adjustments, now=utc(2026, 3, 1))

    assert report.vat_status == VatStatus.REGISTER


def test_no_transactions_uses_current_year() -> None:
    report = AnnualTaxReportEngine(REGISTERED).generate([], [], [], now=utc(2027, 6, 1))

    assert report.tax_year == 2027
    assert report.profit == 0
    assert report.vat == 0
    assert report.vat_status == VatStatus.BELOW_THRESHOLD


def test_profitable_year_taxes_and_nics() -> None:
    items = [make_item(1, 10_000)]
    transactions = [make_tx(utc(2025, 5, 1), sold(1, 50_000))]

    report = AnnualTaxReportEngine(UNREGISTERED).generate(transactions, items, [], now=utc(2025, 12, 1))

    assert report.profit == Decimal("40000")
    assert report.taxable_profit == Decimal("27430")
    assert report.income_tax == Decimal("5486")
    assert report.class2_nic == Decimal("179.40")
    assert report.class4_nic == Decimal("2468.70")
    assert report.nics == Decimal("2648.10")
    assert report.output_vat == 0


def test_missing_item_costs_nothing_outside_vat_window() -> None:
    transactions = [make_tx(utc(2024, 5, 1), sold(42, 300))]

    report = AnnualTaxReportEngine(UNREGISTERED).generate(transactions, [], [], now=utc(2024, 12, 1))

    assert report.cost_of_goods_sold == 0
    assert report.input_vat == 0
    assert report.profit == Decimal("300")


def test_missing_item_inside_vat_window_fails_refresh() -> None:
    transactions = [make_tx(utc(2025, 5, 1), sold(42, 300))]

    with pytest.raises(UnknownItemError):
        AnnualTaxReportEngine(REGISTERED).generate(transactions, [], [], now=utc(2025, 12, 1))
