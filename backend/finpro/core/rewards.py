from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Tuple

# Plan allocation placeholders are created by the budget planner, not spent money
PLAN_BUDGET_MARKER = " Budget"
PLAN_ALLOCATION_MARKER = "Allocation"
SAVINGS_CATEGORY = "savings"

ACCOUNT_MONTH_DAYS = 30


@dataclass(frozen=True)
class MonthActivity:
    total_expenses: float
    is_under_budget: bool
    has_discretionary_spend: bool


@dataclass(frozen=True)
class StreakCounters:
    months_under_budget: int
    months_no_discretionary_spend: int


@dataclass(frozen=True)
class BadgeContext:
    account_age_months: int
    savings_goal: float
    total_savings: float
    months_under_budget: int
    months_no_discretionary_spend: int
    total_expenses: float
    has_discretionary_spend: bool


@dataclass(frozen=True)
class BadgeRule:
    name: str
    predicate: Callable[[BadgeContext], bool]
    points: int


# --- BADGE CATALOG ---
BADGE_CATALOG: List[BadgeRule] = [
    BadgeRule(
        "Smart Saver",
        lambda c: c.account_age_months >= 1 and c.savings_goal > 0 and c.total_savings >= c.savings_goal,
        100,
    ),
    BadgeRule("Budget Pro", lambda c: c.months_under_budget >= 3, 300),
    BadgeRule(
        "Zero Waste",
        lambda c: not c.has_discretionary_spend and c.total_expenses > 0 and c.months_no_discretionary_spend >= 1,
        500,
    ),
    BadgeRule("Financial Guru", lambda c: c.months_under_budget >= 6, 600),
    BadgeRule("Savings Master", lambda c: c.total_savings >= 100000, 1000),
    BadgeRule("First Month", lambda c: c.account_age_months >= 1, 50),
]


def is_plan_allocation(name: str, category_name: Optional[str]) -> bool:
    name = name or ""
    if PLAN_BUDGET_MARKER in name:
        return True
    return (category_name or "").strip().lower() == SAVINGS_CATEGORY and PLAN_ALLOCATION_MARKER in name

def summarize_month(
    expenses: Iterable[Tuple[str, float, Optional[str]]],
    income: float,
    discretionary: Iterable[str],
) -> MonthActivity:
    """
    Budget adherence for one month.

    `expenses` yields (name, amount, category_name). Plan allocation
    placeholders do not count towards the total. Discretionary matching is
    case-insensitive.
    """
    discretionary = {d.strip().lower() for d in discretionary}
    total = 0.0
    has_discretionary = False
    for name, amount, category_name in expenses:
        if is_plan_allocation(name, category_name):
            continue
        total += float(amount)
        if (category_name or "").strip().lower() in discretionary:
            has_discretionary = True

    return MonthActivity(
        total_expenses=total,
        is_under_budget=income > 0 and total <= income,
        has_discretionary_spend=has_discretionary,
    )

def next_streak_counters(current: StreakCounters, activity: MonthActivity) -> StreakCounters:
    """Counters after a month transition. Same-month calls must not reach here."""
    if activity.is_under_budget:
        under = current.months_under_budget + 1
    else:
        under = 0

    if not activity.has_discretionary_spend and activity.total_expenses > 0:
        no_discretionary = current.months_no_discretionary_spend + 1
    else:
        no_discretionary = 0

    return StreakCounters(months_under_budget=under, months_no_discretionary_spend=no_discretionary)

def account_age_months(created_at: datetime, now: datetime) -> int:
    if created_at is None:
        return 0
    days = (now - created_at).total_seconds() / 86400
    return max(0, int(days // ACCOUNT_MONTH_DAYS))

def badges_to_award(context: BadgeContext, already_earned: Iterable[str]) -> List[BadgeRule]:
    earned = set(already_earned)
    return [rule for rule in BADGE_CATALOG if rule.name not in earned and rule.predicate(context)]
