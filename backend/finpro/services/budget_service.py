"""
User-driven changes to the budget account, income history and recurring rules.
"""
import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy import case, update
from sqlalchemy.orm import Session

from finpro.core.automation import month_key
from finpro.models.budget import BudgetAccount
from finpro.models.finance import FixedExpense, IncomeEntry
from finpro.services import db_service
from finpro.services.automation_service import run_automation

logger = logging.getLogger(__name__)


def _keep_marker_if_current(now: datetime):
    # Editing the rule must not re-open a month whose raise was already applied
    current_month = month_key(now)
    return case(
        (BudgetAccount.last_increment_month == current_month, BudgetAccount.last_increment_month),
        else_=None,
    )


def update_income_settings(
    db: Session,
    user_id: int,
    increment_day: Optional[int],
    increment_amount: Optional[float],
    now: Optional[datetime] = None,
) -> BudgetAccount:
    """
    Sets (or removes, when increment_day is None) the recurring income raise.

    A rule whose day has already arrived this month is applied right away by
    the evaluator, exactly once.
    """
    now = now or datetime.now()
    account = db_service.get_or_create_account(db, user_id)

    if increment_day:
        values = {"increment_day": increment_day, "increment_amount": increment_amount}
    else:
        values = {"increment_day": None, "increment_amount": None}
    values["last_increment_month"] = _keep_marker_if_current(now)

    db.execute(
        update(BudgetAccount)
        .where(BudgetAccount.user_id == user_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if increment_day:
        db.add(IncomeEntry(
            user_id=user_id,
            name="Income",
            amount=increment_amount,
            date_added=now.date(),
            is_recurring=True,
            created_at=now,
        ))
    db.commit()
    logger.info(f"User {user_id}: income increment set to day={increment_day} amount={increment_amount}")

    run_automation(db, user_id, now)
    db.refresh(account)
    return account


def add_income(
    db: Session,
    user_id: int,
    amount: float,
    name: str = "Income",
    date_added: Optional[date] = None,
    now: Optional[datetime] = None,
) -> IncomeEntry:
    """One-time income: added on top of the current income."""
    now = now or datetime.now()
    db_service.get_or_create_account(db, user_id)

    entry = IncomeEntry(
        user_id=user_id,
        name=name or "Income",
        amount=amount,
        date_added=date_added or now.date(),
        is_recurring=False,
        created_at=now,
    )
    db.add(entry)
    db_service.add_to_income(db, user_id, amount)
    db.commit()
    db.refresh(entry)

    db_service.recalculate_expense_percentages(db, user_id, db_service.current_income(db, user_id))
    return entry


def update_savings_goal(db: Session, user_id: int, savings_goal: float) -> BudgetAccount:
    account = db_service.get_or_create_account(db, user_id)
    account.savings_goal = savings_goal
    db.commit()
    db.refresh(account)
    return account


def update_total_savings(db: Session, user_id: int, total_savings: float) -> BudgetAccount:
    account = db_service.get_or_create_account(db, user_id)
    account.total_savings = total_savings
    db.commit()
    db.refresh(account)
    return account


def reset_income_settings(db: Session, user_id: int) -> BudgetAccount:
    """Zeroes the account, drops the increment rule and deletes income history."""
    account = db_service.get_or_create_account(db, user_id)
    account.income = 0
    account.savings_goal = 0
    account.total_savings = 0
    account.increment_day = None
    account.increment_amount = None
    account.last_increment_month = None

    deleted = db.query(IncomeEntry).filter(IncomeEntry.user_id == user_id).delete()
    db.commit()
    logger.info(f"User {user_id}: income settings reset, {deleted} income entries deleted")

    db_service.recalculate_expense_percentages(db, user_id, 0)
    db.refresh(account)
    return account


def get_incomes(db: Session, user_id: int, start: Optional[date] = None, end: Optional[date] = None):
    query = db.query(IncomeEntry).filter(IncomeEntry.user_id == user_id)
    if start:
        query = query.filter(IncomeEntry.date_added >= start)
    if end:
        query = query.filter(IncomeEntry.date_added <= end)
    return query.order_by(IncomeEntry.date_added.desc(), IncomeEntry.id.desc()).all()


# --- Recurring rules ---

def create_fixed_expense(
    db: Session,
    user_id: int,
    name: str,
    amount: float,
    category: str,
    due_day: int,
    icon: Optional[str] = None,
) -> FixedExpense:
    """Creates the rule only; the first posting happens on the next evaluation."""
    rule = FixedExpense(
        user_id=user_id,
        name=name.strip(),
        amount=amount,
        category=category.strip(),
        icon=icon or "📦",
        due_day=due_day,
    )
    db.add(rule)
    db.commit()
    db.refresh(rule)
    return rule


def update_fixed_expense(
    db: Session,
    user_id: int,
    rule_id: int,
    name: str,
    amount: float,
    category: str,
    due_day: int,
    icon: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Optional[FixedExpense]:
    """
    Rewrites the rule and clears its posted marker, then evaluates right away
    so an edited rule that is already due posts for this month.
    """
    now = now or datetime.now()
    rule = db_service.get_fixed_expense(db, user_id, rule_id)
    if not rule:
        return None

    rule.name = name.strip()
    rule.amount = amount
    rule.category = category.strip()
    rule.due_day = due_day
    if icon:
        rule.icon = icon
    rule.last_posted_month = None
    db.commit()

    run_automation(db, user_id, now)
    db.refresh(rule)
    return rule


def delete_fixed_expense(db: Session, user_id: int, rule_id: int) -> bool:
    rule = db_service.get_fixed_expense(db, user_id, rule_id)
    if not rule:
        return False
    db.delete(rule)
    db.commit()
    return True
