import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from finpro.core.rewards import BadgeContext, account_age_months, badges_to_award
from finpro.models.user import User
from finpro.services import db_service
from finpro.services.streak_service import get_month_activity

logger = logging.getLogger(__name__)


def build_badge_context(db: Session, user: User, now: datetime) -> BadgeContext:
    account = db_service.get_or_create_account(db, user.id)
    streak = db_service.get_or_create_streak(db, user.id)
    activity = get_month_activity(db, user.id, now)

    return BadgeContext(
        account_age_months=account_age_months(user.created_at, now),
        savings_goal=float(account.savings_goal or 0),
        total_savings=float(account.total_savings or 0),
        months_under_budget=streak.months_under_budget or 0,
        months_no_discretionary_spend=streak.months_no_discretionary_spend or 0,
        total_expenses=activity.total_expenses,
        has_discretionary_spend=activity.has_discretionary_spend,
    )


def check_and_award_badges(db: Session, user: User, now: Optional[datetime] = None) -> List[str]:
    """
    Awards every catalog badge whose condition holds and that the user does
    not have yet. Returns the names awarded by this call.

    Existing badges are never touched, so a condition that stops holding
    later does not revoke anything.
    """
    now = now or datetime.now()
    context = build_badge_context(db, user, now)
    earned = db_service.get_badge_names(db, user.id)

    awarded = []
    for rule in badges_to_award(context, earned):
        if db_service.award_badge(db, user.id, rule.name, rule.points, now):
            awarded.append(rule.name)
            logger.info(f"[BADGES] User {user.id}: awarded '{rule.name}' (+{rule.points} pts)")
    return awarded
