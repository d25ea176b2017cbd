from concurrent.futures import ThreadPoolExecutor
from datetime import date

import pytest

import storage
from dashboard import dashboard_summary
from database import init_db, make_engine, make_session_factory
from errors import NotFoundError, StorageUnavailable, ValidationError
from storage import BudgetStore, TransactionStore


# --- Transactions ---

def test_create_assigns_id_and_trims(transactions):
    txn = transactions.create({"amount": 12.5, "date": "2024-03-05", "description": "  Lunch  ", "category": " Food "})

    assert txn.id is not None
    assert txn.description == "Lunch"
    assert txn.category == "Food"
    assert txn.date == date(2024, 3, 5)
    assert transactions.get(txn.id).amount == 12.5


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"amount": 0}, "amount"),
        ({"amount": -5}, "amount"),
        ({"amount": float("nan")}, "amount"),
        ({"description": ""}, "description"),
        ({"description": "x" * 101}, "description"),
        ({"category": "   "}, "category"),
        ({"date": "not a date"}, "date"),
    ],
)
def test_create_rejects_invalid_input_without_writing(transactions, overrides, field):
    payload = {"amount": 10, "date": "2024-03-05", "description": "Lunch", "category": "Food"}
    payload.update(overrides)

    with pytest.raises(ValidationError) as exc:
        transactions.create(payload)

    assert field in exc.value.fields
    assert transactions.find_all() == []


def test_any_category_is_accepted(transactions):
    txn = transactions.create({"amount": 3, "date": "2024-03-05", "description": "Odd", "category": "Llama Feed"})
    assert txn.category == "Llama Feed"


def test_description_of_exactly_100_chars_is_allowed(transactions):
    txn = transactions.create({"amount": 3, "date": "2024-03-05", "description": "y" * 100, "category": "Food"})
    assert len(txn.description) == 100


def test_partial_update_only_touches_given_fields(add_txn, transactions):
    txn = add_txn(10, date(2024, 3, 5), "Food", "Lunch")

    updated = transactions.update(txn.id, {"amount": 15})

    assert updated.amount == 15
    assert updated.description == "Lunch"
    assert updated.category == "Food"
    assert updated.date == date(2024, 3, 5)


def test_invalid_update_leaves_row_unchanged(add_txn, transactions):
    txn = add_txn(10, date(2024, 3, 5), "Food", "Lunch")

    with pytest.raises(ValidationError):
        transactions.update(txn.id, {"amount": -1, "description": "Changed"})

    assert transactions.get(txn.id).description == "Lunch"


def test_update_rejects_explicit_null(add_txn, transactions):
    txn = add_txn(10, date(2024, 3, 5))
    with pytest.raises(ValidationError) as exc:
        transactions.update(txn.id, {"category": None})
    assert "category" in exc.value.fields


def test_unknown_keys_are_dropped(transactions):
    txn = transactions.create(
        {"amount": 4, "date": "2024-03-05", "description": "Tea", "category": "Food", "model": "x", "self": 1}
    )
    updated = transactions.update(txn.id, {"tx_id": txn.id + 1, "fields": {}, "amount": 6})

    assert updated.id == txn.id
    assert updated.amount == 6
    assert transactions.find_all() == [updated]


def test_delete_removes_transaction(add_txn, transactions):
    txn = add_txn(10, date(2024, 3, 5))

    transactions.delete(txn.id)

    assert transactions.find_all() == []
    with pytest.raises(NotFoundError):
        transactions.get(txn.id)


@pytest.mark.parametrize("action", ["get", "update", "delete"])
def test_missing_transaction_raises_not_found(transactions, action):
    with pytest.raises(NotFoundError):
        if action == "update":
            transactions.update(999, {"amount": 5})
        else:
            getattr(transactions, action)(999)


def test_find_by_date_range_is_half_open_and_ordered(add_txn, transactions):
    add_txn(1, date(2024, 3, 31))
    add_txn(2, date(2024, 3, 1))
    add_txn(3, date(2024, 4, 1))
    add_txn(4, date(2024, 2, 29))

    found = transactions.find_by_date_range(date(2024, 3, 1), date(2024, 4, 1))

    assert [t.amount for t in found] == [2, 1]


def test_find_all_orders_by_date(add_txn, transactions):
    add_txn(1, date(2024, 5, 1))
    add_txn(2, date(2024, 1, 1))
    add_txn(3, date(2024, 3, 1))

    assert [t.amount for t in transactions.find_all()] == [2, 3, 1]


# --- Budgets ---

def test_upsert_overrides_existing_amount(budgets):
    budgets.upsert("Food", "2024-03", 10)
    saved = budgets.upsert("Food", "2024-03", 20)

    rows = budgets.find_all()
    assert len(rows) == 1
    assert rows[0].amount == 20
    assert saved.amount == 20
    assert saved.id == rows[0].id


def test_upsert_keeps_keys_independent(budgets):
    budgets.upsert("Food", "2024-03", 10)
    budgets.upsert("Rent", "2024-03", 900)
    budgets.upsert("Food", "2024-04", 15)

    assert [(b.category, b.month, b.amount) for b in budgets.find_all()] == [
        ("Food", "2024-03", 10),
        ("Rent", "2024-03", 900),
        ("Food", "2024-04", 15),
    ]
    assert [b.category for b in budgets.find_by_month("2024-03")] == ["Food", "Rent"]


def test_upsert_accepts_zero(budgets):
    assert budgets.upsert("Food", "2024-03", 0).amount == 0


@pytest.mark.parametrize(
    "category, month, amount, field",
    [
        ("Food", "2024-03", -1, "amount"),
        ("Food", "2024-3", 10, "month"),
        ("Food", "2024-13", 10, "month"),
        ("", "2024-03", 10, "category"),
        ("Food", "2024-03", None, "amount"),
    ],
)
def test_upsert_rejects_invalid_input(budgets, category, month, amount, field):
    with pytest.raises(ValidationError) as exc:
        budgets.upsert(category, month, amount)

    assert field in exc.value.fields
    assert budgets.find_all() == []


def test_find_by_month_rejects_bad_token(budgets):
    with pytest.raises(ValidationError):
        budgets.find_by_month("03-2024")


def test_upsert_without_native_on_conflict(budgets, monkeypatch):
    monkeypatch.setattr(storage, "_UPSERT_DIALECTS", {})

    budgets.upsert("Food", "2024-03", 10)
    budgets.upsert("Food", "2024-03", 35)

    rows = budgets.find_all()
    assert len(rows) == 1
    assert rows[0].amount == 35


def test_concurrent_upserts_keep_a_single_row(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'budgets.db'}")
    init_db(engine)
    Session = make_session_factory(engine)
    amounts = [10.0, 20.0, 30.0, 40.0, 50.0, 60.0]

    def write(amount):
        session = Session()
        try:
            return BudgetStore(session).upsert("Food", "2024-03", amount).amount
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=4) as pool:
        list(pool.map(write, amounts))

    session = Session()
    try:
        rows = BudgetStore(session).find_all()
    finally:
        session.close()
        engine.dispose()

    assert len(rows) == 1
    assert rows[0].amount in amounts


# --- Storage outages ---

@pytest.fixture
def unreachable(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'missing' / 'nowhere.db'}")
    session = make_session_factory(engine)()
    yield session
    session.close()
    engine.dispose()


def test_reads_fail_closed_when_storage_is_down(unreachable):
    with pytest.raises(StorageUnavailable):
        TransactionStore(unreachable).find_all()
    with pytest.raises(StorageUnavailable):
        BudgetStore(unreachable).find_by_month("2024-03")


def test_writes_fail_closed_when_storage_is_down(unreachable):
    with pytest.raises(StorageUnavailable):
        BudgetStore(unreachable).upsert("Food", "2024-03", 10)
    with pytest.raises(StorageUnavailable):
        TransactionStore(unreachable).create({"amount": 1, "date": "2024-03-01", "description": "x", "category": "Food"})


def test_aggregation_fails_whole_when_storage_is_down(unreachable):
    with pytest.raises(StorageUnavailable):
        dashboard_summary("2024-03", TransactionStore(unreachable), BudgetStore(unreachable))
