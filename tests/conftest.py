"""
Shared fixtures.

No real network or filesystem outside tmp_path: stores run on an
InMemoryMedium and every clock is frozen.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from src.audit import AuditLogger
from src.models.ledger import FinancialCategory, InvestmentType
from src.services.storage import InMemoryMedium, RecordStore


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


@pytest.fixture
def clock():
    return FrozenClock(datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def medium():
    return InMemoryMedium()


@pytest.fixture
def audit_logger():
    return AuditLogger(history_size=50)


@pytest.fixture
def store(medium, clock, audit_logger):
    return RecordStore(medium, clock=clock, audit_logger=audit_logger)


@pytest.fixture
def expense_fields():
    return {
        "category": FinancialCategory.DESPESAS,
        "subcategory": "Alimentação",
        "description": "Supermercado",
        "amount": Decimal("100"),
        "date": date(2024, 1, 10),
    }


@pytest.fixture
def income_fields():
    return {
        "category": FinancialCategory.RECEITAS,
        "subcategory": "Salário",
        "description": "Pagamento",
        "amount": Decimal("300"),
        "date": date(2024, 1, 5),
    }


@pytest.fixture
def investment_fields():
    return {
        "type": InvestmentType.ACAO,
        "symbol": "PETR4.SA",
        "name": "Petrobras PN",
        "quantity": Decimal("10"),
        "purchase_price": Decimal("20"),
        "purchase_date": date(2023, 6, 1),
        "sector": "Energia",
    }
