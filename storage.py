"""
storage.py
----------
Transaction and budget stores over a SQLAlchemy session.

Every write is validated through the pydantic schemas before it touches the
session, so a rejected payload never leaves a partial row behind. Connection
problems surface as ``StorageUnavailable``; nothing is served from a cache.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date
from typing import Any, List, Mapping

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from database import Budget, Transaction
from errors import NotFoundError, StorageUnavailable
from schemas import BudgetUpsert, TransactionCreate, TransactionUpdate, parse, validate_month

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {"sqlite": sqlite.insert, "postgresql": postgresql.insert}


@contextmanager
def _guard(db: Session, action: str):
    """Roll back on any database error; report lost connections as StorageUnavailable."""
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        if isinstance(exc, OperationalError) or getattr(exc, "connection_invalidated", False):
            logger.error("Storage failure while trying to %s: %s", action, exc)
            raise StorageUnavailable(f"Storage unavailable while trying to {action}") from exc
        raise


class TransactionStore:
    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return self.db.query(Transaction).order_by(Transaction.date, Transaction.id)

    def find_all(self) -> List[Transaction]:
        with _guard(self.db, "list transactions"):
            return self._query().all()

    def find_by_date_range(self, start: date, end: date) -> List[Transaction]:
        """Transactions with ``start <= date < end``, oldest first."""
        with _guard(self.db, "list transactions by date"):
            return (
                self._query()
                .filter(Transaction.date >= start, Transaction.date < end)
                .all()
            )

    def get(self, tx_id: int) -> Transaction:
        with _guard(self.db, "fetch a transaction"):
            txn = self.db.get(Transaction, tx_id)
        if txn is None:
            raise NotFoundError("Transaction", tx_id)
        return txn

    def create(self, fields: Mapping[str, Any]) -> Transaction:
        data = parse(TransactionCreate, fields)
        with _guard(self.db, "create a transaction"):
            txn = Transaction(**data.model_dump())
            self.db.add(txn)
            self.db.commit()
            self.db.refresh(txn)
        logger.debug("Created transaction %s", txn.id)
        return txn

    def update(self, tx_id: int, fields: Mapping[str, Any]) -> Transaction:
        """Apply only the fields present in ``fields``."""
        changes = parse(TransactionUpdate, fields).model_dump(exclude_unset=True)
        txn = self.get(tx_id)
        with _guard(self.db, "update a transaction"):
            for key, value in changes.items():
                setattr(txn, key, value)
            self.db.commit()
            self.db.refresh(txn)
        logger.debug("Updated transaction %s: %s", tx_id, sorted(changes))
        return txn

    def delete(self, tx_id: int) -> None:
        txn = self.get(tx_id)
        with _guard(self.db, "delete a transaction"):
            self.db.delete(txn)
            self.db.commit()
        logger.debug("Deleted transaction %s", tx_id)


class BudgetStore:
    def __init__(self, db: Session):
        self.db = db

    def find_all(self) -> List[Budget]:
        with _guard(self.db, "list budgets"):
            return self.db.query(Budget).order_by(Budget.month, Budget.category).all()

    def find_by_month(self, month: str) -> List[Budget]:
        validate_month(month)
        with _guard(self.db, "list budgets by month"):
            return (
                self.db.query(Budget)
                .filter(Budget.month == month)
                .order_by(Budget.category)
                .all()
            )

    def upsert(self, category: str, month: str, amount: float) -> Budget:
        """Set the budget for (category, month), replacing any existing amount."""
        data = parse(BudgetUpsert, {"category": category, "month": month, "amount": amount})
        with _guard(self.db, "save a budget"):
            insert = _UPSERT_DIALECTS.get(self.db.get_bind().dialect.name)
            if insert is not None:
                stmt = insert(Budget).values(**data.model_dump())
                stmt = stmt.on_conflict_do_update(
                    index_elements=["category", "month"],
                    set_={"amount": stmt.excluded.amount},
                )
                self.db.execute(stmt)
                self.db.commit()
            else:
                self._insert_or_update(data)
            budget = (
                self.db.query(Budget)
                .filter(Budget.category == data.category, Budget.month == data.month)
                .populate_existing()
                .one()
            )
        logger.debug("Budget for %s %s set to %s", data.category, data.month, data.amount)
        return budget

    def _insert_or_update(self, data: BudgetUpsert) -> None:
        # No native upsert: let the unique constraint decide, then overwrite.
        try:
            self.db.add(Budget(**data.model_dump()))
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            (
                self.db.query(Budget)
                .filter(Budget.category == data.category, Budget.month == data.month)
                .update({Budget.amount: data.amount})
            )
            self.db.commit()
