"""FastAPI app exposing transactions, budgets and the dashboard views."""

import logging
import os
from typing import List

from dotenv import load_dotenv
from fastapi import Body, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from dashboard import dashboard_summary, monthly_expenses, spending_trends
from database import get_db, init_db
from errors import FinanceError, NotFoundError, StorageUnavailable, ValidationError
from schemas import (
    CATEGORIES,
    BudgetOut,
    DashboardSummary,
    MonthlyTotal,
    SpendingTrendPoint,
    TransactionOut,
)
from storage import BudgetStore, TransactionStore

load_dotenv()

logger = logging.getLogger(__name__)

app = FastAPI(title="Personal Finance Tracker API", version="0.2.0")


def get_transaction_store(db: Session = Depends(get_db)) -> TransactionStore:
    return TransactionStore(db)


def get_budget_store(db: Session = Depends(get_db)) -> BudgetStore:
    return BudgetStore(db)


# --- Error mapping ---

@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"message": exc.message, "errors": exc.fields})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    # Query params and malformed bodies get the same 400 shape as store validation.
    fields = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        fields.setdefault(loc[0] if loc else "__all__", []).append(err.get("msg", "Invalid value"))
    return JSONResponse(status_code=400, content={"message": "Invalid input", "errors": fields})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"message": f"{exc.resource} not found"})


@app.exception_handler(FinanceError)
async def finance_error_handler(request: Request, exc: FinanceError):
    logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"message": str(exc) or "Request failed"})


@app.exception_handler(StorageUnavailable)
async def storage_unavailable_handler(request: Request, exc: StorageUnavailable):
    logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"message": str(exc)})


# --- Transactions ---

@app.get("/api/transactions", response_model=List[TransactionOut])
def list_transactions(store: TransactionStore = Depends(get_transaction_store)):
    # Most recent first
    return list(reversed(store.find_all()))


@app.post("/api/transactions", response_model=TransactionOut, status_code=201)
def create_transaction(payload: dict = Body(...), store: TransactionStore = Depends(get_transaction_store)):
    return store.create(payload)


@app.get("/api/transactions/{tx_id}", response_model=TransactionOut)
def get_transaction(tx_id: int, store: TransactionStore = Depends(get_transaction_store)):
    return store.get(tx_id)


@app.put("/api/transactions/{tx_id}", response_model=TransactionOut)
def update_transaction(tx_id: int, payload: dict = Body(...), store: TransactionStore = Depends(get_transaction_store)):
    return store.update(tx_id, payload)


@app.delete("/api/transactions/{tx_id}")
def delete_transaction(tx_id: int, store: TransactionStore = Depends(get_transaction_store)):
    store.delete(tx_id)
    return {"message": "Transaction deleted successfully"}


# --- Budgets ---

@app.get("/api/budgets", response_model=List[BudgetOut])
def list_budgets(month: str = Query(...), store: BudgetStore = Depends(get_budget_store)):
    return store.find_by_month(month)


@app.post("/api/budgets", response_model=BudgetOut, status_code=201)
def upsert_budget(payload: dict = Body(...), store: BudgetStore = Depends(get_budget_store)):
    return store.upsert(payload.get("category"), payload.get("month"), payload.get("amount"))


# --- Dashboard views ---

@app.get("/api/dashboard-summary", response_model=DashboardSummary)
def get_dashboard_summary(
    month: str = Query(...),
    transactions: TransactionStore = Depends(get_transaction_store),
    budgets: BudgetStore = Depends(get_budget_store),
):
    return dashboard_summary(month, transactions, budgets)


@app.get("/api/monthly-expenses", response_model=List[MonthlyTotal])
def get_monthly_expenses(transactions: TransactionStore = Depends(get_transaction_store)):
    return monthly_expenses(transactions)


@app.get("/api/spending-trends", response_model=List[SpendingTrendPoint])
def get_spending_trends(
    transactions: TransactionStore = Depends(get_transaction_store),
    budgets: BudgetStore = Depends(get_budget_store),
):
    return spending_trends(transactions, budgets)


@app.get("/api/categories", response_model=List[str])
def list_categories():
    return CATEGORIES


@app.get("/health")
def health():
    return {"status": "ok"}


def main():
    import uvicorn

    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    init_db()
    uvicorn.run(app, host=os.getenv("API_HOST", "0.0.0.0"), port=int(os.getenv("API_PORT", 8000)))


if __name__ == "__main__":
    main()
