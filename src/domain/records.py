from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import StrEnum
from typing import Any, NewType

from pydantic import BaseModel, Field, field_validator, model_validator

ItemId = NewType("ItemId", int)
TransactionId = NewType("TransactionId", int)


class Direction(StrEnum):
    OUT = "Out"
    IN = "In"


class TransactionType(StrEnum):
    """Transaction types the tax core distinguishes.

    Other values are accepted on ``Transaction.type`` and simply do not count
    towards revenue.
    """

    SALE = "Sale"
    TRADE_OUT = "Trade-Out"
    TRADE_IN = "Trade-In"
    PURCHASE = "Purchase"


REVENUE_TYPES = frozenset({TransactionType.SALE.value, TransactionType.TRADE_OUT.value})


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class InventoryItem(BaseModel):
    id: ItemId | None = None
    name: str
    category: str | None = None
    attributes: dict[str, Any] = Field(default_factory=dict)
    cost_price: Decimal
    modification_cost: Decimal = Decimal("0")
    input_vat: Decimal = Decimal("0")
    status: str = "In Stock"
    notes: str | None = None

    @model_validator(mode="after")
    def _validate_costs(self) -> InventoryItem:
        if self.cost_price < 0:
            raise ValueError("cost_price must be >= 0")
        return self

    @property
    def total_cost(self) -> Decimal:
        return self.cost_price + self.modification_cost


class TransactionItem(BaseModel):
    """A single line of a transaction.

    ``Out`` lines are items leaving inventory (sold or traded away), ``In``
    lines are items entering it.
    """

    item_id: ItemId
    price: Decimal
    direction: Direction
    market_value: Decimal | None = None


class Transaction(BaseModel):
    tx_id: TransactionId | None = None
    type: str
    timestamp: datetime
    cash_amount: Decimal = Decimal("0")
    total_value: Decimal | None = None
    payment_method: str | None = None
    vat_applicable: bool = False
    vat_amount: Decimal = Decimal("0")
    notes: str | None = None
    items: list[TransactionItem] = Field(default_factory=list)

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @model_validator(mode="after")
    def _validate_fields(self) -> Transaction:
        if not self.type:
            raise ValueError("Transaction.type must be non-empty")
        return self

    @property
    def out_lines(self) -> list[TransactionItem]:
        return [line for line in self.items if line.direction == Direction.OUT]


class InventoryAdjustment(BaseModel):
    """Signed change to an item's value (damage, revaluation, loss)."""

    item_id: ItemId
    date: datetime
    value_change: Decimal
    reason: str | None = None

    @field_validator("date")
    @classmethod
    def _normalize_date(cls, value: datetime) -> datetime:
        return _as_utc(value)


class TaxStatus(BaseModel):
    vat_registration_date: date | None = None
    vat_deregistration_date: date | None = None
    revenue_threshold: Decimal
    tax_year_start: date | None = None
    notes: str | None = None

    @model_validator(mode="after")
    def _validate_window(self) -> TaxStatus:
        if (
            self.vat_registration_date is not None
            and self.vat_deregistration_date is not None
            and self.vat_deregistration_date < self.vat_registration_date
        ):
            raise ValueError("vat_deregistration_date must not precede vat_registration_date")
        return self
