import os
from sqlalchemy import create_engine, Column, Integer, String, Float, Date, UniqueConstraint
from sqlalchemy.orm import sessionmaker, declarative_base
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Database Setup
# Default to local SQLite, but allow override for a hosted Postgres
DB_URL = os.getenv("DATABASE_URL", "sqlite:///finance_tracker.db")


def make_engine(url: str, **kwargs):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args, **kwargs)


def make_session_factory(bind):
    return sessionmaker(autocommit=False, autoflush=False, bind=bind)


engine = make_engine(DB_URL)
SessionLocal = make_session_factory(engine)
Base = declarative_base()

# --- Models ---

class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False, index=True)
    description = Column(String(100), nullable=False)
    amount = Column(Float, nullable=False)
    category = Column(String, nullable=False)

    def __repr__(self):
        return f"<Transaction {self.id} {self.date} {self.category} {self.amount}>"

class Budget(Base):
    __tablename__ = "budgets"

    id = Column(Integer, primary_key=True, index=True)
    category = Column(String, nullable=False)
    month = Column(String(7), nullable=False, index=True) # 'YYYY-MM'
    amount = Column(Float, nullable=False, default=0.0)

    # One budget per category per month
    __table_args__ = (
        UniqueConstraint("category", "month", name="uq_budget_category_month"),
    )

    def __repr__(self):
        return f"<Budget {self.category} {self.month} {self.amount}>"

# --- Init DB ---
def init_db(bind=None):
    Base.metadata.create_all(bind=bind or engine)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
