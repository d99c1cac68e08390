from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy.orm import Session

from db import models
from domain.margin_vat import VatAssessment
from domain.records import (
    Direction,
    InventoryAdjustment,
    InventoryItem,
    ItemId,
    TaxStatus,
    Transaction,
    TransactionId,
    TransactionItem,
)


def _utc(timestamp: datetime) -> datetime:
    # SQLite drops the offset on the way back.
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp


class InventoryItemRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, item: InventoryItem) -> InventoryItem:
        orm_item = models.InventoryItemOrm(
            name=item.name,
            category=item.category,
            attributes=item.attributes,
            cost_price=item.cost_price,
            modification_cost=item.modification_cost,
            input_vat=item.input_vat,
            status=item.status,
            notes=item.notes,
        )
        if item.id is not None:
            orm_item.id = item.id

        self._session.add(orm_item)
        self._session.commit()
        self._session.refresh(orm_item)
        return self._to_domain(orm_item)

    def get(self, item_id: ItemId) -> InventoryItem | None:
        orm_item = self._session.get(models.InventoryItemOrm, item_id)
        if orm_item is None:
            return None
        return self._to_domain(orm_item)

    def list(self) -> list[InventoryItem]:
        orm_items = self._session.query(models.InventoryItemOrm).order_by(models.InventoryItemOrm.id.asc()).all()
        return [self._to_domain(item) for item in orm_items]

    @staticmethod
    def _to_domain(orm_item: models.InventoryItemOrm) -> InventoryItem:
        return InventoryItem(
            id=ItemId(orm_item.id),
            name=orm_item.name,
            category=orm_item.category,
            attributes=orm_item.attributes or {},
            cost_price=orm_item.cost_price,
            modification_cost=orm_item.modification_cost,
            input_vat=orm_item.input_vat,
            status=orm_item.status,
            notes=orm_item.notes,
        )


class TransactionRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, transaction: Transaction) -> Transaction:
        orm_tx = models.TransactionOrm(
            type=transaction.type,
            timestamp=transaction.timestamp,
            cash_amount=transaction.cash_amount,
            total_value=transaction.total_value,
            payment_method=transaction.payment_method,
            vat_applicable=transaction.vat_applicable,
            vat_amount=transaction.vat_amount,
            notes=transaction.notes,
        )
        if transaction.tx_id is not None:
            orm_tx.tx_id = transaction.tx_id
        orm_tx.items = [
            models.TransactionItemOrm(
                item_id=line.item_id,
                price=line.price,
                market_value=line.market_value if line.market_value is not None else line.price,
                direction=line.direction.value,
            )
            for line in transaction.items
        ]

        self._session.add(orm_tx)
        self._session.commit()
        self._session.refresh(orm_tx)
        return self._to_domain(orm_tx)

    def get(self, tx_id: TransactionId) -> Transaction | None:
        orm_tx = self._session.get(models.TransactionOrm, tx_id)
        if orm_tx is None:
            return None
        return self._to_domain(orm_tx)

    def list(self) -> list[Transaction]:
        orm_txs = (
            self._session.query(models.TransactionOrm)
            .order_by(models.TransactionOrm.timestamp.asc(), models.TransactionOrm.tx_id.asc())
            .all()
        )
        return [self._to_domain(tx) for tx in orm_txs]

    def update_vat_many(self, assessments: Iterable[VatAssessment]) -> int:
        """Write back VAT fields only, committing once for the whole batch."""
        updated = 0
        for assessment in assessments:
            if assessment.tx_id is None:
                continue
            orm_tx = self._session.get(models.TransactionOrm, assessment.tx_id)
            if orm_tx is None:
                continue
            orm_tx.vat_applicable = assessment.vat_applicable
            orm_tx.vat_amount = assessment.vat_amount
            updated += 1

        self._session.commit()
        return updated

    @staticmethod
    def _to_domain(orm_tx: models.TransactionOrm) -> Transaction:
        items = [
            TransactionItem(
                item_id=ItemId(line.item_id),
                price=line.price,
                market_value=line.market_value,
                direction=Direction(line.direction),
            )
            for line in orm_tx.items
        ]
        return Transaction(
            tx_id=TransactionId(orm_tx.tx_id),
            type=orm_tx.type,
            timestamp=_utc(orm_tx.timestamp),
            cash_amount=orm_tx.cash_amount,
            total_value=orm_tx.total_value,
            payment_method=orm_tx.payment_method,
            vat_applicable=orm_tx.vat_applicable,
            vat_amount=orm_tx.vat_amount,
            notes=orm_tx.notes,
            items=items,
        )


class InventoryAdjustmentRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_many(self, adjustments: list[InventoryAdjustment]) -> list[InventoryAdjustment]:
        orm_adjustments = [
            models.InventoryAdjustmentOrm(
                item_id=adjustment.item_id,
                date=adjustment.date,
                value_change=adjustment.value_change,
                reason=adjustment.reason,
            )
            for adjustment in adjustments
        ]
        self._session.add_all(orm_adjustments)
        self._session.commit()
        return adjustments

    def list(self) -> list[InventoryAdjustment]:
        orm_adjustments = (
            self._session.query(models.InventoryAdjustmentOrm).order_by(models.InventoryAdjustmentOrm.date.asc()).all()
        )
        return [
            InventoryAdjustment(
                item_id=ItemId(adjustment.item_id),
                date=_utc(adjustment.date),
                value_change=adjustment.value_change,
                reason=adjustment.reason,
            )
            for adjustment in orm_adjustments
        ]


class TaxStatusRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self) -> TaxStatus | None:
        orm_status = self._session.get(models.TaxStatusOrm, models.TAX_STATUS_ROW_ID)
        if orm_status is None:
            return None
        return TaxStatus(
            vat_registration_date=orm_status.vat_registration_date,
            vat_deregistration_date=orm_status.vat_deregistration_date,
            revenue_threshold=orm_status.revenue_threshold,
            tax_year_start=orm_status.tax_year_start,
            notes=orm_status.notes,
        )

    def save(self, status: TaxStatus) -> TaxStatus:
        orm_status = self._session.get(models.TaxStatusOrm, models.TAX_STATUS_ROW_ID)
        if orm_status is None:
            orm_status = models.TaxStatusOrm(id=models.TAX_STATUS_ROW_ID)
            self._session.add(orm_status)
        orm_status.vat_registration_date = status.vat_registration_date
        orm_status.vat_deregistration_date = status.vat_deregistration_date
        orm_status.revenue_threshold = status.revenue_threshold
        orm_status.tax_year_start = status.tax_year_start
        orm_status.notes = status.notes
        self._session.commit()
        return status

    def get_or_seed(self, default: TaxStatus) -> TaxStatus:
        status = self.get()
        if status is None:
            return self.save(default)
        return status
