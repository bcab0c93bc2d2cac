"""
Request-triggered monthly automation.

There is no scheduler: every read path calls `refresh_user_state` first and
whatever came due since the last request is caught up here.
"""
import logging
from dataclasses import replace
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from finpro.core.automation import AccountSnapshot, CatchUpResult, RuleSnapshot, catch_up, compute_percentage
from finpro.models.user import User
from finpro.services import db_service
from finpro.services.badge_service import check_and_award_badges
from finpro.services.streak_service import update_streaks

logger = logging.getLogger(__name__)


def _category_resolver(db: Session, user_id: int):
    """Resolver for `catch_up` that turns a storage error into an unresolved rule."""
    def resolve(name: str) -> Optional[int]:
        try:
            return db_service.resolve_category_id(db, name)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"[AUTOMATION] User {user_id}: category lookup for '{name}' failed: {e}")
            return None
    return resolve


def run_automation(db: Session, user_id: int, now: Optional[datetime] = None) -> CatchUpResult:
    """
    Applies the income increment, posts due recurring expenses and brings
    every expense percentage in line with the stored income.

    The plan comes from the pure `catch_up`; each decision is then committed
    through a conditional update, so re-running within the same month (or
    racing another request) changes nothing once the month is applied.
    Failures are contained per step/rule and retried on the next request.
    """
    now = now or datetime.now()
    account = db_service.get_or_create_account(db, user_id)
    rules = [RuleSnapshot.from_row(r) for r in db_service.get_fixed_expenses(db, user_id)]

    plan = catch_up(AccountSnapshot.from_row(account), rules, now, _category_resolver(db, user_id))

    # Step A: income increment
    if plan.increment_applied:
        try:
            if db_service.try_apply_income_increment(db, user_id, now):
                logger.info(
                    f"[AUTOMATION] User {user_id}: income increment applied for {plan.month}, "
                    f"income now {db_service.current_income(db, user_id)}"
                )
            else:
                logger.debug(f"[AUTOMATION] User {user_id}: increment for {plan.month} already applied elsewhere")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"[AUTOMATION] User {user_id}: income increment failed: {e}")

    for rule in plan.unresolved:
        logger.warning(
            f"[AUTOMATION] User {user_id}: fixed expense {rule.id} '{rule.name}' could not resolve category "
            f"'{rule.category}', will retry on next request"
        )

    # Step B: recurring expenses, priced against the stored income
    if plan.posted:
        income = db_service.current_income(db, user_id)
        for planned in plan.posted:
            planned = replace(planned, percentage_of_income=compute_percentage(planned.amount, income))
            try:
                expense = db_service.claim_and_post_fixed_expense(db, user_id, planned, now)
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"[AUTOMATION] User {user_id}: posting fixed expense {planned.rule_id} failed: {e}")
                continue
            if expense:
                logger.info(f"[AUTOMATION] User {user_id}: posted '{expense.name}' ({expense.amount}) for {plan.month}")

    # Step C: percentages always match the stored income once an evaluation finishes
    try:
        db_service.recalculate_expense_percentages(db, user_id, db_service.current_income(db, user_id))
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[AUTOMATION] User {user_id}: percentage recompute failed: {e}")

    return plan


def refresh_user_state(db: Session, user: User, now: Optional[datetime] = None) -> None:
    """
    Full read-path precondition: automation, then streaks, then badges.

    Streaks need this month's totals complete, and badges read the streaks,
    so the order is fixed.
    """
    now = now or datetime.now()
    try:
        run_automation(db, user.id, now)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[AUTOMATION] User {user.id}: evaluation aborted: {e}")

    try:
        update_streaks(db, user.id, now)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[STREAK] User {user.id}: streak update failed: {e}")

    try:
        check_and_award_badges(db, user, now)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[BADGES] User {user.id}: badge check failed: {e}")
