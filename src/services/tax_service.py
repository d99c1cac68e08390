from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from threading import Lock
from time import perf_counter

from sqlalchemy.orm import Session

from db.repositories import (
    InventoryAdjustmentRepository,
    InventoryItemRepository,
    TaxStatusRepository,
    TransactionRepository,
)
from domain.annual_tax import AnnualTaxReport, AnnualTaxReportEngine
from domain.margin_vat import MarginVatCalculator, VatAssessment, recompute_vat
from domain.periods import vat_quarter
from domain.profit_report import ProfitReportBuilder, ProfitReportRow
from domain.records import InventoryAdjustment, InventoryItem, TaxStatus, Transaction
from domain.vat_return import VatReturn, VatReturnCalculator

logger = logging.getLogger(__name__)

# Serialises every read-recompute-write cycle on transaction VAT fields.
_VAT_REFRESH_LOCK = Lock()


@dataclass
class Snapshot:
    transactions: list[Transaction]
    items: list[InventoryItem]
    adjustments: list[InventoryAdjustment]


class TaxService:
    """Runs the calculators over a fresh storage snapshot per call.

    ``tax_status`` is passed in explicitly; when omitted the stored row is used,
    seeded from ``default_tax_status`` on first use.
    """

    def __init__(
        self,
        session: Session,
        *,
        tax_status: TaxStatus | None = None,
        default_tax_status: TaxStatus | None = None,
    ) -> None:
        self._items = InventoryItemRepository(session)
        self._transactions = TransactionRepository(session)
        self._adjustments = InventoryAdjustmentRepository(session)
        self._tax_status_repository = TaxStatusRepository(session)
        self._tax_status = tax_status
        self._default_tax_status = default_tax_status

    @property
    def tax_status(self) -> TaxStatus:
        if self._tax_status is not None:
            return self._tax_status
        if self._default_tax_status is not None:
            return self._tax_status_repository.get_or_seed(self._default_tax_status)
        status = self._tax_status_repository.get()
        if status is None:
            raise LookupError("No tax status configured")
        return status

    def load_snapshot(self) -> Snapshot:
        return Snapshot(
            transactions=self._transactions.list(),
            items=self._items.list(),
            adjustments=self._adjustments.list(),
        )

    def record_transaction(self, transaction: Transaction) -> Transaction:
        """Persist a transaction with its point-of-sale VAT assessed."""
        calculator = MarginVatCalculator(self._items.list())
        assessment = calculator.assess_transaction(transaction, self.tax_status)
        to_store = transaction.model_copy(
            update={"vat_applicable": assessment.vat_applicable, "vat_amount": assessment.vat_amount}
        )
        stored = self._transactions.create(to_store)
        logger.info(
            "Recorded %s transaction %s: vat_applicable=%s vat=%s",
            stored.type,
            stored.tx_id,
            stored.vat_applicable,
            stored.vat_amount,
        )
        return stored

    def refresh_vat(self) -> list[VatAssessment]:
        """Recompute and store VAT for every transaction in the registration window."""
        tax_status = self.tax_status
        with _VAT_REFRESH_LOCK:
            snapshot = self.load_snapshot()
            assessments = recompute_vat(snapshot.transactions, snapshot.items, tax_status)
            updated = self._transactions.update_vat_many(assessments)
        logger.info("Refreshed VAT on %d transactions", updated)
        return assessments

    def annual_report(self, *, now: datetime | None = None, year: int | None = None) -> AnnualTaxReport:
        tax_status = self.tax_status
        started = perf_counter()
        with _VAT_REFRESH_LOCK:
            snapshot = self.load_snapshot()
            report = AnnualTaxReportEngine(tax_status).generate(
                snapshot.transactions,
                snapshot.items,
                snapshot.adjustments,
                now=now,
                year=year,
            )
            self._transactions.update_vat_many(report.vat_assessments)
        logger.info(
            "Generated tax report for %d from %d transactions in %.2fs",
            report.tax_year,
            len(snapshot.transactions),
            perf_counter() - started,
        )
        return report

    def vat_return(self, year: int | str | None, quarter: int | str | None) -> VatReturn:
        period = vat_quarter(year, quarter)
        snapshot = self.load_snapshot()
        return VatReturnCalculator().calculate_for_period(period, snapshot.transactions, snapshot.items)

    def profit_report(self) -> list[ProfitReportRow]:
        return ProfitReportBuilder().build(self._items.list(), self._transactions.list())
