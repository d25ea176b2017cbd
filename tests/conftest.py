from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from api_server import app
from database import get_db, init_db, make_engine, make_session_factory
from storage import BudgetStore, TransactionStore


@pytest.fixture
def engine():
    eng = make_engine("sqlite://", poolclass=StaticPool)
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine):
    session = make_session_factory(engine)()
    yield session
    session.close()


@pytest.fixture
def transactions(db):
    return TransactionStore(db)


@pytest.fixture
def budgets(db):
    return BudgetStore(db)


@pytest.fixture
def add_txn(transactions):
    """Create a transaction with sensible defaults for the fields a test doesn't care about."""

    def _add(amount, when, category="Food", description=None):
        return transactions.create({
            "amount": amount,
            "date": when,
            "category": category,
            "description": description or f"{category} {when}",
        })

    return _add


@pytest.fixture
def march_scenario(add_txn, budgets):
    add_txn(50, date(2024, 3, 5), "Food")
    add_txn(30, date(2024, 3, 20), "Food")
    add_txn(1000, date(2024, 3, 1), "Rent")
    budgets.upsert("Food", "2024-03", 100)


@pytest.fixture
def client(engine):
    TestSession = make_session_factory(engine)

    def override_get_db():
        session = TestSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
