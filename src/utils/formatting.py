from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal


def format_pounds(value: Decimal | None) -> str:
    if value is None:
        return "-"
    pence = value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if pence < 0 else ""
    return f"{sign}£{abs(pence):,.2f}"


def format_date(value: datetime | None) -> str:
    if value is None:
        return "-"
    return value.date().isoformat()
