from decimal import Decimal
from pathlib import Path

import pytest

import db.db
from config import AppSettings
from db.db import init_db
from db.repositories import InventoryItemRepository
from domain.records import InventoryItem


def test_init_db_defaults_to_configured_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    db_file = tmp_path / "nested" / "store.db"
    monkeypatch.setattr(db.db, "config", lambda: AppSettings(_env_file=None, db_file=db_file))

    with init_db() as session:
        InventoryItemRepository(session).create(InventoryItem(name="Game Boy", cost_price=Decimal("100")))

    assert db_file.exists()


def test_init_db_reset_drops_existing_rows(tmp_path: Path) -> None:
    db_file = tmp_path / "store.db"
    with init_db(db_file=db_file) as session:
        InventoryItemRepository(session).create(InventoryItem(name="Game Boy", cost_price=Decimal("100")))

    with init_db(db_file=db_file) as session:
        assert len(InventoryItemRepository(session).list()) == 1

    with init_db(db_file=db_file, reset=True) as session:
        assert InventoryItemRepository(session).list() == []
