from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable

from .records import InventoryItem, ItemId, Transaction, TransactionItem


@dataclass
class ProfitReportRow:
    item_id: ItemId | None
    name: str
    category: str | None
    cost: Decimal
    sold_price: Decimal | None
    profit: Decimal | None
    vat: Decimal
    date: datetime | None


class ProfitReportBuilder:
    """Per-item cost, sale price, profit and VAT.

    Every inventory item appears at least once; an item sold on several lines
    gets one row per line. ``vat`` is the VAT of the whole parent transaction.
    """

    def build(self, items: Iterable[InventoryItem], transactions: Iterable[Transaction]) -> list[ProfitReportRow]:
        sales: dict[ItemId, list[tuple[TransactionItem, Transaction]]] = {}
        for tx in transactions:
            for line in tx.out_lines:
                sales.setdefault(line.item_id, []).append((line, tx))

        rows: list[ProfitReportRow] = []
        for item in items:
            cost = item.total_cost
            item_sales = sales.get(item.id)
            if not item_sales:
                rows.append(
                    ProfitReportRow(
                        item_id=item.id,
                        name=item.name,
                        category=item.category,
                        cost=cost,
                        sold_price=None,
                        profit=None,
                        vat=Decimal("0"),
                        date=None,
                    )
                )
                continue

            for line, tx in item_sales:
                rows.append(
                    ProfitReportRow(
                        item_id=item.id,
                        name=item.name,
                        category=item.category,
                        cost=cost,
                        sold_price=line.price,
                        profit=line.price - cost,
                        vat=tx.vat_amount,
                        date=tx.timestamp,
                    )
                )
        return rows
