"""Domain records and tax/VAT calculators for the collectibles business.

Records are Pydantic models independent from the persistence layer, so the
calculators can be exercised on plain in-memory snapshots.
"""

__all__ = [
    "annual_tax",
    "margin_vat",
    "periods",
    "profit_report",
    "records",
    "vat_return",
]
