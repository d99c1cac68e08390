from __future__ import annotations

from datetime import date
from decimal import Decimal
from functools import cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from domain.records import TaxStatus

PROJECT_ROOT = Path(__file__).resolve().parents[1]
DB_FILE = PROJECT_ROOT / "data" / "collectibles.db"


class AppSettings(BaseSettings):
    db_file: Path = DB_FILE
    log_level: str = "INFO"

    # Seed values for the tax-status row.
    vat_registration_date: date | None = date(2025, 3, 1)
    vat_deregistration_date: date | None = None
    revenue_threshold: Decimal = Decimal("90000")
    tax_year_start: date | None = date(2025, 1, 1)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    def default_tax_status(self) -> TaxStatus:
        return TaxStatus(
            vat_registration_date=self.vat_registration_date,
            vat_deregistration_date=self.vat_deregistration_date,
            revenue_threshold=self.revenue_threshold,
            tax_year_start=self.tax_year_start,
            notes="Monitoring for VAT threshold",
        )


@cache
def config() -> AppSettings:
    return AppSettings()
