"""
Pydantic schemas for transactions, budgets and the derived report views.

Inbound models validate user input before anything reaches the database.
Outbound models use camelCase aliases so the JSON payloads keep the field
names the dashboard front end reads (``totalExpenses``, ``budgetVsActual``...).
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Annotated, Any, List, Mapping, Type, TypeVar

import pandas as pd
from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    StringConstraints,
    ValidationError as PydanticValidationError,
    computed_field,
)
from pydantic.alias_generators import to_camel

from errors import ValidationError

MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

# Suggested names for the category pickers. Not enforced anywhere.
CATEGORIES = [
    "Food",
    "Groceries",
    "Rent",
    "Utilities",
    "Transport",
    "Healthcare",
    "Entertainment",
    "Shopping",
    "Education",
    "Travel",
    "Subscriptions",
    "Other",
]


def validate_month(month) -> str:
    if not isinstance(month, str) or not MONTH_PATTERN.match(month):
        raise ValidationError(fields={"month": ["Month must be in YYYY-MM format"]})
    return month


def usage_percentage(actual: float, budget: float) -> float:
    """Share of the budget spent, in percent. 0 when no budget is set."""
    if budget <= 0:
        return 0.0
    return actual / budget * 100


def _to_utc_date(value):
    # datetime subclasses date, so check it first
    if isinstance(value, datetime):
        ts = pd.Timestamp(value)
    elif isinstance(value, date):
        return value
    elif isinstance(value, str):
        ts = pd.Timestamp(value.strip())
    else:
        return value
    if pd.isna(ts):
        raise ValueError("Invalid date format")
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC")
    return ts.date()


def _check_month(value):
    if isinstance(value, str) and not MONTH_PATTERN.match(value):
        raise ValueError("Month must be in YYYY-MM format")
    return value


Description = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
CategoryName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
PositiveAmount = Annotated[float, Field(gt=0, allow_inf_nan=False)]
BudgetAmount = Annotated[float, Field(ge=0, allow_inf_nan=False)]
TransactionDate = Annotated[date, BeforeValidator(_to_utc_date)]
MonthToken = Annotated[str, BeforeValidator(_check_month)]


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# --- Inbound ---

class TransactionCreate(ApiModel):
    description: Description
    amount: PositiveAmount
    date: TransactionDate
    category: CategoryName


class TransactionUpdate(ApiModel):
    """Partial update: only the fields that were sent are applied."""

    description: Description = None
    amount: PositiveAmount = None
    date: TransactionDate = None
    category: CategoryName = None


class BudgetUpsert(ApiModel):
    category: CategoryName
    month: MonthToken
    amount: BudgetAmount


M = TypeVar("M", bound=BaseModel)


def parse(model: Type[M], values: Mapping[str, Any]) -> M:
    """Validate ``values`` against ``model``, raising the app's ValidationError.

    Keys the model does not declare are dropped.
    """
    try:
        return model.model_validate(dict(values))
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc) from exc


# --- Outbound ---

class TransactionOut(ApiModel):
    id: int
    amount: float
    date: date
    description: str
    category: str


class BudgetOut(ApiModel):
    id: int
    category: str
    month: str
    amount: float


class BudgetVsActual(ApiModel):
    category: str
    budget: float = 0.0
    actual: float = 0.0

    @computed_field
    @property
    def percentage(self) -> float:
        return usage_percentage(self.actual, self.budget)

    @computed_field
    @property
    def remaining(self) -> float:
        return self.budget - self.actual

    @computed_field(alias="isOver")
    @property
    def is_over(self) -> bool:
        return self.actual > self.budget


class DashboardSummary(ApiModel):
    total_expenses: float
    total_budget: float
    budget_vs_actual: List[BudgetVsActual]
    recent_transactions: List[TransactionOut]

    @computed_field(alias="budgetUsage")
    @property
    def budget_usage(self) -> float:
        return usage_percentage(self.total_expenses, self.total_budget)


class MonthlyTotal(ApiModel):
    month: str
    expenses: float


class SpendingTrendPoint(ApiModel):
    month: str
    expenses: float = 0.0
    budget: float = 0.0
