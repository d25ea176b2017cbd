# dashboard.py — budget vs. spending views computed fresh from both stores

from __future__ import annotations

from datetime import date
from typing import Iterable, List, Tuple

import pandas as pd

from schemas import (
    BudgetVsActual,
    DashboardSummary,
    MonthlyTotal,
    SpendingTrendPoint,
    TransactionOut,
    validate_month,
)
from storage import BudgetStore, TransactionStore

RECENT_TRANSACTIONS = 5


def month_bounds(month: str) -> Tuple[date, date]:
    """Half-open [first day, first day of next month) for a YYYY-MM token."""
    validate_month(month)
    start = pd.Timestamp(f"{month}-01")
    end = start + pd.DateOffset(months=1)
    return start.date(), end.date()


def _prep(transactions: Iterable) -> pd.DataFrame:
    """
    Prepares transaction rows for grouping.

    Dates are stored at day granularity in UTC, so the month label is taken
    straight from the date.
    """
    df = pd.DataFrame(
        [{"Date": t.date, "Amount": t.amount, "Category": t.category} for t in transactions],
        columns=["Date", "Amount", "Category"],
    )
    if df.empty:
        return df.assign(Month=pd.Series(dtype=str))

    df["Date"] = pd.to_datetime(df["Date"])
    df["Month"] = df["Date"].dt.to_period("M").astype(str)
    df["Amount"] = pd.to_numeric(df["Amount"]).astype(float)
    return df


def dashboard_summary(month: str, transactions: TransactionStore, budgets: BudgetStore) -> DashboardSummary:
    """
    Budget vs. actual for every category touched in ``month``.

    A category with a budget but no spending, or spending but no budget,
    still gets an entry with the missing side at 0.
    """
    start, end = month_bounds(month)

    budget_map = {b.category: float(b.amount) for b in budgets.find_by_month(month)}

    txns = transactions.find_by_date_range(start, end)
    df = _prep(txns)
    if df.empty:
        spent_by_cat = pd.Series(dtype=float)
        total_expenses = 0.0
    else:
        spent_by_cat = df.groupby("Category")["Amount"].sum()
        total_expenses = float(df["Amount"].sum())

    categories = sorted(set(budget_map) | set(spent_by_cat.index))
    budget_vs_actual = [
        BudgetVsActual(
            category=category,
            budget=budget_map.get(category, 0.0),
            actual=float(spent_by_cat.get(category, 0.0)),
        )
        for category in categories
    ]

    # sorted() is stable, so same-day ties keep storage order
    recent = sorted(txns, key=lambda t: t.date, reverse=True)[:RECENT_TRANSACTIONS]

    return DashboardSummary(
        total_expenses=total_expenses,
        total_budget=float(sum(budget_map.values())),
        budget_vs_actual=budget_vs_actual,
        recent_transactions=[TransactionOut.model_validate(t) for t in recent],
    )


def monthly_expenses(transactions: TransactionStore) -> List[MonthlyTotal]:
    """Total spent per month over all history, oldest first. Empty months are skipped."""
    df = _prep(transactions.find_all())
    if df.empty:
        return []

    monthly = df.groupby("Month")["Amount"].sum().sort_index()
    return [MonthlyTotal(month=month, expenses=float(total)) for month, total in monthly.items()]


def spending_trends(transactions: TransactionStore, budgets: BudgetStore) -> List[SpendingTrendPoint]:
    """
    Monthly expenses next to the month's total budget across all categories.

    Every month that has either spending or a budget appears; the missing
    side is 0.
    """
    df = _prep(transactions.find_all())
    expenses = df.groupby("Month")["Amount"].sum() if not df.empty else pd.Series(dtype=float)

    budget_df = pd.DataFrame(
        [{"Month": b.month, "Amount": b.amount} for b in budgets.find_all()],
        columns=["Month", "Amount"],
    )
    if budget_df.empty:
        budget_totals = pd.Series(dtype=float)
    else:
        budget_totals = budget_df.groupby("Month")["Amount"].sum()

    if expenses.empty and budget_totals.empty:
        return []

    trend = (
        pd.concat({"expenses": expenses, "budget": budget_totals}, axis=1)
        .fillna(0.0)
        .sort_index()
    )
    return [
        SpendingTrendPoint(month=str(month), expenses=float(row["expenses"]), budget=float(row["budget"]))
        for month, row in trend.iterrows()
    ]
