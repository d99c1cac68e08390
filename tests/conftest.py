from typing import Generator

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from db.models import Base
from domain.records import TaxStatus
from services.tax_service import TaxService
from tests.helpers.builders import REGISTERED

# One shared in-memory connection so every session sees the same tables.
engine: Engine = create_engine(
    "sqlite:///:memory:", connect_args={"check_same_thread": False}, poolclass=StaticPool
)
session_factory = sessionmaker(engine)


@pytest.fixture(autouse=True)
def reset_db() -> Generator[None, None, None]:
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture()
def test_session() -> Generator[Session, None, None]:
    with session_factory() as session:
        yield session


@pytest.fixture()
def tax_status() -> TaxStatus:
    """VAT registered from 2025-03-01 with the 90k threshold."""
    return REGISTERED


@pytest.fixture()
def service(test_session: Session, tax_status: TaxStatus) -> TaxService:
    return TaxService(test_session, tax_status=tax_status)
