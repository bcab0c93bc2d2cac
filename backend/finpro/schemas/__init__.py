from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
import datetime
from typing import List, Optional


class CamelModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


# --- EXPENSE SCHEMAS ---
class ExpenseOut(CamelModel):
    id: int
    name: str
    amount: float
    percentage_of_income: float
    category: Optional[str] = None
    icon: Optional[str] = None
    is_fixed: bool
    is_auto_posted: bool
    created_at: datetime.datetime

    @classmethod
    def from_expense(cls, expense) -> "ExpenseOut":
        return cls(
            id=expense.id,
            name=expense.name,
            amount=expense.amount,
            percentage_of_income=expense.percentage_of_income,
            category=expense.category.name if expense.category else None,
            icon=expense.category.icon if expense.category else None,
            is_fixed=bool(expense.is_fixed),
            is_auto_posted=bool(expense.is_auto_posted),
            created_at=expense.created_at,
        )

class BudgetSnapshot(CamelModel):
    income: float
    expenses: List[ExpenseOut] = []
    savings_goal: float
    total_savings: float
    duration: str
    increment_day: Optional[int] = None
    increment_amount: Optional[float] = None

class TrendPoint(CamelModel):
    month: str
    year_month: str
    expenses: float

class CategoryOut(CamelModel):
    id: int
    name: str
    icon: str


# --- INCOME SCHEMAS ---
class IncomeCreate(CamelModel):
    name: str = "Income"
    amount: float = Field(..., gt=0)
    date: Optional[datetime.date] = None

class IncomeOut(CamelModel):
    id: int
    name: str
    amount: float
    date_added: datetime.date
    is_recurring: bool
    created_at: datetime.datetime

class IncomeSettingsUpdate(CamelModel):
    # No increment_day removes the recurring raise
    increment_day: Optional[int] = Field(None, ge=1, le=31)
    increment_amount: Optional[float] = Field(None, gt=0)

class SavingsGoalUpdate(CamelModel):
    savings_goal: float = Field(..., ge=0)

class TotalSavingsUpdate(CamelModel):
    total_savings: float = Field(..., ge=0)


# --- FIXED EXPENSE SCHEMAS ---
class FixedExpenseBase(CamelModel):
    name: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0)
    category: str = Field(..., min_length=1)
    due_day: int = Field(..., ge=1, le=31)
    icon: Optional[str] = None

class FixedExpenseCreate(FixedExpenseBase):
    pass

class FixedExpenseUpdate(FixedExpenseBase):
    pass

class FixedExpenseOut(FixedExpenseBase):
    id: int
    last_posted_month: Optional[str] = None


# --- REWARDS SCHEMAS ---
class PointsOut(CamelModel):
    total_points: int
    months_under_budget: int
    months_no_discretionary_spend: int
    last_streak_eval_month: Optional[str] = None

class LeaderboardEntry(CamelModel):
    id: int
    first_name: str
    last_name: str
    total_points: int
    months_under_budget: int


# --- USER SCHEMAS ---
class UserProfile(CamelModel):
    id: int
    username: str
    first_name: str
    last_name: str
    email: str
    created_at: datetime.datetime
