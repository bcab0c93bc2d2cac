import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from finpro.core.config import settings
from finpro.core.automation import month_key
from finpro.core.rewards import MonthActivity, StreakCounters, next_streak_counters, summarize_month
from finpro.models.rewards import UserStreak
from finpro.services import db_service

logger = logging.getLogger(__name__)


def get_month_activity(db: Session, user_id: int, now: datetime) -> MonthActivity:
    income = db_service.current_income(db, user_id)
    expenses = db_service.get_month_expenses(db, user_id, now)
    return summarize_month(expenses, income, settings.discretionary_categories)


def update_streaks(db: Session, user_id: int, now: Optional[datetime] = None) -> UserStreak:
    """
    Moves the streak counters at most once per calendar month.

    Must run after the automation step so this month's fixed expenses are
    already in the ledger.
    """
    now = now or datetime.now()
    streak = db_service.get_or_create_streak(db, user_id)

    if streak.last_streak_eval_month == month_key(now):
        return streak

    activity = get_month_activity(db, user_id, now)
    counters = next_streak_counters(
        StreakCounters(
            months_under_budget=streak.months_under_budget or 0,
            months_no_discretionary_spend=streak.months_no_discretionary_spend or 0,
        ),
        activity,
    )

    if db_service.try_advance_streak(db, user_id, now, counters):
        logger.info(
            f"[STREAK] User {user_id}: {month_key(now)} under_budget={activity.is_under_budget} "
            f"-> {counters.months_under_budget} months, no_discretionary -> {counters.months_no_discretionary_spend} months"
        )

    db.refresh(streak)
    return streak
