from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date, datetime, timedelta
from finpro.core.config import settings
from finpro.database import get_db
from finpro.deps import get_current_user, get_now
from finpro.models.budget import Category
from finpro.models.user import User
from finpro.schemas import (
    BudgetSnapshot,
    CategoryOut,
    ExpenseOut,
    IncomeCreate,
    IncomeOut,
    IncomeSettingsUpdate,
    SavingsGoalUpdate,
    TotalSavingsUpdate,
    TrendPoint,
)
from finpro.services import budget_service, db_service
from finpro.services.automation_service import refresh_user_state
from finpro.services.db_service import month_bounds

router = APIRouter(tags=["finance"])

def _budget_snapshot(db: Session, user_id: int) -> BudgetSnapshot:
    account = db_service.get_or_create_account(db, user_id)
    expenses = db_service.get_expenses(db, user_id)
    return BudgetSnapshot(
        income=account.income,
        expenses=[ExpenseOut.from_expense(e) for e in expenses],
        savings_goal=account.savings_goal,
        total_savings=account.total_savings,
        duration=account.duration,
        increment_day=account.increment_day,
        increment_amount=account.increment_amount,
    )

# --- Read endpoints (each one catches the account up first) ---

@router.get("/budget", response_model=BudgetSnapshot)
def get_budget_data(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    now: datetime = Depends(get_now)
):
    """
    Budget snapshot: income, expenses (newest first), savings and the
    increment rule.
    """
    refresh_user_state(db, current_user, now)

    return _budget_snapshot(db, current_user.id)

@router.get("/expenses", response_model=List[ExpenseOut])
def get_expenses(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    now: datetime = Depends(get_now)
):
    refresh_user_state(db, current_user, now)
    return [ExpenseOut.from_expense(e) for e in db_service.get_expenses(db, current_user.id)]

@router.get("/trends", response_model=List[TrendPoint])
def get_expense_trends(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    now: datetime = Depends(get_now)
):
    """Monthly expense totals for the last TREND_MONTHS months."""
    refresh_user_state(db, current_user, now)
    return db_service.get_expense_trends(db, current_user.id, now, settings.TREND_MONTHS)

@router.get("/categories", response_model=List[CategoryOut])
def get_categories(db: Session = Depends(get_db)):
    return db.query(Category).order_by(Category.name).all()

@router.get("/incomes", response_model=List[IncomeOut])
def get_incomes(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    now: datetime = Depends(get_now)
):
    refresh_user_state(db, current_user, now)
    return budget_service.get_incomes(db, current_user.id)

@router.get("/income-history", response_model=List[IncomeOut])
def get_income_history(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    now: datetime = Depends(get_now)
):
    """Income entries in [start_date, end_date]; defaults to the current month."""
    refresh_user_state(db, current_user, now)
    if not start_date or not end_date:
        first, next_first = month_bounds(now)
        start_date = start_date or first.date()
        end_date = end_date or (next_first - timedelta(days=1)).date()
    return budget_service.get_incomes(db, current_user.id, start_date, end_date)

# --- Settings ---

@router.post("/income", response_model=IncomeOut)
def add_income(
    payload: IncomeCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    now: datetime = Depends(get_now)
):
    """One-time income, added on top of the current income."""
    try:
        return budget_service.add_income(db, current_user.id, payload.amount, payload.name, payload.date, now)
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=str(e))

@router.put("/income-settings", response_model=BudgetSnapshot)
def update_income_settings(
    payload: IncomeSettingsUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    now: datetime = Depends(get_now)
):
    """
    Set the recurring income raise (day + amount), or remove it by sending
    no incrementDay.
    """
    if payload.increment_day and not payload.increment_amount:
        raise HTTPException(status_code=400, detail="incrementAmount is required with incrementDay")

    try:
        budget_service.update_income_settings(
            db, current_user.id, payload.increment_day, payload.increment_amount, now
        )
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=str(e))

    return _budget_snapshot(db, current_user.id)

@router.post("/income-settings/reset")
def reset_income_settings(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Zeroes income, savings goal and total savings, removes the increment
    rule and deletes the income history.
    """
    try:
        budget_service.reset_income_settings(db, current_user.id)
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=str(e))
    return {"message": "Income settings reset successfully"}

@router.put("/savings-goal")
def update_savings_goal(
    payload: SavingsGoalUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    account = budget_service.update_savings_goal(db, current_user.id, payload.savings_goal)
    return {"message": "Savings goal updated", "savingsGoal": account.savings_goal}

@router.put("/total-savings")
def update_total_savings(
    payload: TotalSavingsUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    account = budget_service.update_total_savings(db, current_user.id, payload.total_savings)
    return {"message": "Total savings updated", "totalSavings": account.total_savings}
