"""
Storage access for accounts, recurring rules, the expense ledger and rewards.

Every month-marker transition is a single conditional UPDATE whose affected
row count tells the caller whether it won. Nothing here reads a marker and
writes it back in a separate step.
"""
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from finpro.core.automation import compute_percentage, month_key, PlannedExpense
from finpro.core.config import settings
from finpro.core.rewards import StreakCounters
from finpro.models.budget import BudgetAccount, Category
from finpro.models.finance import Expense, FixedExpense
from finpro.models.rewards import UserBadge, UserStreak

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    ("Housing", "🏠"),
    ("Food", "🍔"),
    ("Transport", "🚗"),
    ("Entertainment", "🎮"),
    ("Healthcare", "🏥"),
    ("Shopping", "🛒"),
    ("Utilities", "⚡"),
    ("Education", "📚"),
    ("Travel", "✈️"),
    ("Savings", "💰"),
    ("Other", "📦"),
]


def month_bounds(now: datetime) -> Tuple[datetime, datetime]:
    """[first instant of the month, first instant of the next month)"""
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end

def shift_month(start: datetime, months: int) -> datetime:
    """First day of the month `months` away from `start` (negative goes back)."""
    index = start.year * 12 + (start.month - 1) + months
    return start.replace(year=index // 12, month=index % 12 + 1, day=1)


# --- Categories ---

def seed_default_categories(db: Session) -> int:
    existing = {c.name.strip().lower() for c in db.query(Category).all()}
    created = 0
    for name, icon in DEFAULT_CATEGORIES:
        if name.lower() not in existing:
            db.add(Category(name=name, icon=icon))
            created += 1
    if created:
        db.commit()
    return created

def resolve_category_id(db: Session, name: Optional[str]) -> Optional[int]:
    """Case-insensitive, whitespace-trimmed lookup. None when unknown."""
    if not name or not name.strip():
        return None
    row = db.query(Category.id).filter(
        func.lower(func.trim(Category.name)) == name.strip().lower()
    ).first()
    return row[0] if row else None


# --- Budget account ---

def get_or_create_account(db: Session, user_id: int) -> BudgetAccount:
    """Returns the user's account, creating an all-zero one on first access."""
    account = db.query(BudgetAccount).filter(BudgetAccount.user_id == user_id).first()
    if account:
        return account

    account = BudgetAccount(
        user_id=user_id,
        income=0,
        savings_goal=0,
        total_savings=0,
        duration=settings.DEFAULT_DURATION,
    )
    db.add(account)
    try:
        db.commit()
    except IntegrityError:
        # Another request created it first
        db.rollback()
        return db.query(BudgetAccount).filter(BudgetAccount.user_id == user_id).one()
    db.refresh(account)
    return account

def try_apply_income_increment(db: Session, user_id: int, now: datetime) -> bool:
    """
    Adds increment_amount to income for this month if nobody has yet.

    The whole due check lives in the WHERE clause, so a concurrent request
    or a stale snapshot sees zero affected rows instead of a second raise.
    """
    current_month = month_key(now)
    result = db.execute(
        update(BudgetAccount)
        .where(
            BudgetAccount.user_id == user_id,
            BudgetAccount.increment_day.is_not(None),
            BudgetAccount.increment_day <= now.day,
            BudgetAccount.increment_amount > 0,
            or_(
                BudgetAccount.last_increment_month.is_(None),
                BudgetAccount.last_increment_month != current_month,
            ),
        )
        .values(
            income=BudgetAccount.income + BudgetAccount.increment_amount,
            last_increment_month=current_month,
        )
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount == 1

def add_to_income(db: Session, user_id: int, amount: float) -> None:
    db.execute(
        update(BudgetAccount)
        .where(BudgetAccount.user_id == user_id)
        .values(income=BudgetAccount.income + amount)
        .execution_options(synchronize_session=False)
    )

def recalculate_expense_percentages(db: Session, user_id: int, income: float) -> int:
    """Rewrites percentage_of_income for every expense of the user. Idempotent."""
    expenses = db.query(Expense).filter(Expense.user_id == user_id).all()
    for exp in expenses:
        exp.percentage_of_income = compute_percentage(exp.amount, income)
    db.commit()
    return len(expenses)

def current_income(db: Session, user_id: int) -> float:
    income = db.query(BudgetAccount.income).filter(BudgetAccount.user_id == user_id).scalar()
    return float(income or 0)


# --- Recurring rules ---

def get_fixed_expenses(db: Session, user_id: int) -> List[FixedExpense]:
    return db.query(FixedExpense).filter(
        FixedExpense.user_id == user_id
    ).order_by(FixedExpense.due_day.asc(), FixedExpense.id.asc()).all()

def get_fixed_expense(db: Session, user_id: int, rule_id: int) -> Optional[FixedExpense]:
    return db.query(FixedExpense).filter(
        FixedExpense.id == rule_id,
        FixedExpense.user_id == user_id
    ).first()

def claim_and_post_fixed_expense(
    db: Session,
    user_id: int,
    planned: PlannedExpense,
    now: datetime,
) -> Optional[Expense]:
    """
    Marks the rule as posted for this month and inserts its expense in the
    same transaction. Returns None when the rule was already claimed.
    """
    current_month = month_key(now)
    claim = db.execute(
        update(FixedExpense)
        .where(
            FixedExpense.id == planned.rule_id,
            FixedExpense.user_id == user_id,
            FixedExpense.due_day <= now.day,
            or_(
                FixedExpense.last_posted_month.is_(None),
                FixedExpense.last_posted_month != current_month,
            ),
        )
        .values(last_posted_month=current_month)
        .execution_options(synchronize_session=False)
    )
    if claim.rowcount != 1:
        db.rollback()
        return None

    expense = Expense(
        user_id=user_id,
        category_id=planned.category_id,
        name=planned.name,
        amount=planned.amount,
        percentage_of_income=planned.percentage_of_income,
        is_fixed=True,
        is_auto_posted=True,
        created_at=now,
    )
    db.add(expense)
    db.commit()
    db.refresh(expense)
    return expense


# --- Expense ledger ---

def get_expenses(db: Session, user_id: int) -> List[Expense]:
    return db.query(Expense).filter(
        Expense.user_id == user_id
    ).order_by(Expense.created_at.desc(), Expense.id.desc()).all()

def get_month_expenses(db: Session, user_id: int, now: datetime) -> List[Tuple[str, float, Optional[str]]]:
    """(name, amount, category_name) for every expense created in now's month."""
    start, end = month_bounds(now)
    rows = db.query(Expense.name, Expense.amount, Category.name).outerjoin(
        Category, Expense.category_id == Category.id
    ).filter(
        Expense.user_id == user_id,
        Expense.created_at >= start,
        Expense.created_at < end
    ).all()
    return [(name, float(amount), cat_name) for name, amount, cat_name in rows]

def get_expense_trends(db: Session, user_id: int, now: datetime, months: int) -> List[dict]:
    """Monthly totals for the last `months` months (current included), oldest first."""
    start, end = month_bounds(now)
    window_start = shift_month(start, -(months - 1))
    rows = db.query(Expense.amount, Expense.created_at).filter(
        Expense.user_id == user_id,
        Expense.created_at >= window_start,
        Expense.created_at < end
    ).all()

    totals = {}
    for amount, created_at in rows:
        key = month_key(created_at)
        totals[key] = totals.get(key, 0.0) + float(amount)

    if not totals:
        return [{"month": now.strftime("%b"), "year_month": month_key(now), "expenses": 0.0}]

    trends = []
    for key in sorted(totals):
        label = datetime.strptime(key, "%Y-%m").strftime("%b")
        trends.append({"month": label, "year_month": key, "expenses": round(totals[key], 2)})
    return trends


# --- Streaks & badges ---

def get_or_create_streak(db: Session, user_id: int) -> UserStreak:
    streak = db.query(UserStreak).filter(UserStreak.user_id == user_id).first()
    if streak:
        return streak

    streak = UserStreak(
        user_id=user_id,
        total_points=0,
        months_under_budget=0,
        months_no_discretionary_spend=0,
    )
    db.add(streak)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return db.query(UserStreak).filter(UserStreak.user_id == user_id).one()
    db.refresh(streak)
    return streak

def try_advance_streak(db: Session, user_id: int, now: datetime, counters: StreakCounters) -> bool:
    """Stores the counters for this month unless this month was already evaluated."""
    current_month = month_key(now)
    result = db.execute(
        update(UserStreak)
        .where(
            UserStreak.user_id == user_id,
            or_(
                UserStreak.last_streak_eval_month.is_(None),
                UserStreak.last_streak_eval_month != current_month,
            ),
        )
        .values(
            months_under_budget=counters.months_under_budget,
            months_no_discretionary_spend=counters.months_no_discretionary_spend,
            last_streak_eval_month=current_month,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount == 1

def get_badge_names(db: Session, user_id: int) -> List[str]:
    rows = db.query(UserBadge.badge_name).filter(
        UserBadge.user_id == user_id
    ).order_by(UserBadge.earned_at.desc(), UserBadge.id.desc()).all()
    return [r[0] for r in rows]

def award_badge(db: Session, user_id: int, badge_name: str, points: int, now: datetime) -> bool:
    """
    Inserts the badge and credits its points atomically.

    Returns False if the badge already exists; the unique constraint on
    (user_id, badge_name) guarantees points are credited at most once.
    """
    db.add(UserBadge(user_id=user_id, badge_name=badge_name, earned_at=now))
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        return False

    if points > 0:
        db.execute(
            update(UserStreak)
            .where(UserStreak.user_id == user_id)
            .values(total_points=UserStreak.total_points + points)
            .execution_options(synchronize_session=False)
        )
    db.commit()
    return True
