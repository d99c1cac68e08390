from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Boolean, Date, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator


class DecimalAsString(TypeDecorator):
    impl = String
    cache_ok = True

    def process_bind_param(self, value: Decimal | None, dialect: object) -> str | None:
        if value is None:
            return None
        return str(value)

    def process_result_value(self, value: str | None, dialect: object) -> Decimal | None:
        if value is None:
            return None
        return Decimal(value)


class Base(DeclarativeBase):
    pass


class InventoryItemOrm(Base):
    __tablename__ = "inventory"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    category: Mapped[str | None] = mapped_column(String, nullable=True)
    attributes: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    cost_price: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    modification_cost: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False, default=Decimal("0"))
    input_vat: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False, default=Decimal("0"))
    status: Mapped[str] = mapped_column(String, nullable=False, default="In Stock")
    notes: Mapped[str | None] = mapped_column(String, nullable=True)

    adjustments: Mapped[list["InventoryAdjustmentOrm"]] = relationship(
        back_populates="item", cascade="all, delete-orphan"
    )


class TransactionOrm(Base):
    __tablename__ = "transactions"

    tx_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(String, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    cash_amount: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False, default=Decimal("0"))
    total_value: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String, nullable=True)
    vat_applicable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    vat_amount: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False, default=Decimal("0"))
    notes: Mapped[str | None] = mapped_column(String, nullable=True)

    items: Mapped[list["TransactionItemOrm"]] = relationship(
        cascade="all, delete-orphan", back_populates="transaction", lazy="joined", order_by="TransactionItemOrm.id"
    )


class TransactionItemOrm(Base):
    __tablename__ = "transaction_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tx_id: Mapped[int] = mapped_column(Integer, ForeignKey("transactions.tx_id"), nullable=False)
    item_id: Mapped[int] = mapped_column(Integer, ForeignKey("inventory.id"), nullable=False)
    price: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    market_value: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)
    direction: Mapped[str] = mapped_column(String, nullable=False)

    transaction: Mapped[TransactionOrm] = relationship(back_populates="items")


class InventoryAdjustmentOrm(Base):
    __tablename__ = "inventory_adjustments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    item_id: Mapped[int] = mapped_column(Integer, ForeignKey("inventory.id"), nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    value_change: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    reason: Mapped[str | None] = mapped_column(String, nullable=True)

    item: Mapped[InventoryItemOrm] = relationship(back_populates="adjustments")


class TaxStatusOrm(Base):
    """Single-row table; the row id is always ``TAX_STATUS_ROW_ID``."""

    __tablename__ = "tax_status"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    vat_registration_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    vat_deregistration_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    revenue_threshold: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    tax_year_start: Mapped[date | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str | None] = mapped_column(String, nullable=True)


TAX_STATUS_ROW_ID = 1
