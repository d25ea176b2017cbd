import logging
from datetime import date

from database import init_db, SessionLocal, Transaction
from storage import BudgetStore, TransactionStore

logger = logging.getLogger(__name__)

DEMO_TRANSACTIONS = [
    {"description": "Weekly groceries", "amount": 50.0, "date": date(2024, 3, 5), "category": "Food"},
    {"description": "Dinner out", "amount": 30.0, "date": date(2024, 3, 20), "category": "Food"},
    {"description": "March rent", "amount": 1000.0, "date": date(2024, 3, 1), "category": "Rent"},
    {"description": "Bus pass", "amount": 45.0, "date": date(2024, 4, 2), "category": "Transport"},
    {"description": "Groceries", "amount": 155.0, "date": date(2024, 4, 18), "category": "Food"},
]

DEMO_BUDGETS = [
    ("Food", "2024-03", 100.0),
    ("Food", "2024-05", 250.0),
    ("Rent", "2024-05", 1000.0),
]

def seed_demo_data(db=None):
    own_session = db is None
    if own_session:
        init_db()
        db = SessionLocal()

    try:
        # Check if data exists
        if db.query(Transaction).first():
            logger.info("Transactions already exist. Skipping seed.")
            return 0

        transactions = TransactionStore(db)
        for row in DEMO_TRANSACTIONS:
            transactions.create(row)

        budgets = BudgetStore(db)
        for category, month, amount in DEMO_BUDGETS:
            budgets.upsert(category, month, amount)

        logger.info(
            "Database seeded with %d transactions and %d budgets.",
            len(DEMO_TRANSACTIONS), len(DEMO_BUDGETS),
        )
        return len(DEMO_TRANSACTIONS)
    finally:
        if own_session:
            db.close()

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    seed_demo_data()
