from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Mapping

from .periods import is_vat_applicable
from .records import Direction, InventoryItem, ItemId, TaxStatus, Transaction, TransactionId, TransactionItem

logger = logging.getLogger(__name__)

# VAT share of a VAT-inclusive margin at 20% is 20 / 120, one sixth.
MARGIN_VAT_DIVISOR = Decimal(6)


class UnknownItemError(LookupError):
    def __init__(self, message: str, *, item_id: ItemId, tx_id: TransactionId | None = None) -> None:
        super().__init__(message)
        self.item_id = item_id
        self.tx_id = tx_id


@dataclass(frozen=True)
class VatAssessment:
    tx_id: TransactionId | None
    vat_applicable: bool
    vat_amount: Decimal

    def as_payload(self) -> dict[str, int | Decimal]:
        return {"vat_applicable": int(self.vat_applicable), "vat_amount": self.vat_amount}


def line_vat(margin: Decimal) -> Decimal:
    """VAT on one sold line, rounded to whole pounds. Non-positive margins owe nothing."""
    if margin <= 0:
        return Decimal("0")
    return (margin / MARGIN_VAT_DIVISOR).to_integral_value(rounding=ROUND_HALF_UP)


class MarginVatCalculator:
    """Output VAT under the margin scheme: 1/6 of each positive sale margin."""

    def __init__(self, items: Iterable[InventoryItem] | Mapping[ItemId, InventoryItem]) -> None:
        if isinstance(items, Mapping):
            self._items = dict(items)
        else:
            self._items = {item.id: item for item in items if item.id is not None}

    def assess(
        self,
        timestamp: datetime,
        tax_status: TaxStatus,
        lines: Iterable[TransactionItem],
        *,
        tx_id: TransactionId | None = None,
    ) -> VatAssessment:
        if not is_vat_applicable(timestamp, tax_status):
            return VatAssessment(tx_id=tx_id, vat_applicable=False, vat_amount=Decimal("0"))

        total = Decimal("0")
        for line in lines:
            if line.direction != Direction.OUT:
                continue
            item = self._items.get(line.item_id)
            if item is None:
                raise UnknownItemError(
                    f"Transaction {tx_id} references unknown inventory item {line.item_id}",
                    item_id=line.item_id,
                    tx_id=tx_id,
                )
            total += line_vat(line.price - item.total_cost)

        logger.debug("Assessed tx=%s at %s: vat=%s", tx_id, timestamp.isoformat(), total)
        return VatAssessment(tx_id=tx_id, vat_applicable=True, vat_amount=total)

    def assess_transaction(self, transaction: Transaction, tax_status: TaxStatus) -> VatAssessment:
        return self.assess(transaction.timestamp, tax_status, transaction.items, tx_id=transaction.tx_id)


def recompute_vat(
    transactions: Iterable[Transaction],
    items: Iterable[InventoryItem],
    tax_status: TaxStatus,
) -> list[VatAssessment]:
    """Reassess every transaction dated inside the VAT registration window.

    Transactions outside the window are left out of the result so their stored
    values stay untouched.
    """
    calculator = MarginVatCalculator(items)
    return [
        calculator.assess_transaction(tx, tax_status)
        for tx in transactions
        if is_vat_applicable(tx.timestamp, tax_status)
    ]
