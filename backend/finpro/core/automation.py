"""
Monthly automation rules: income increments and recurring expense posting.

Everything here is pure. Callers pass in snapshots of the stored rows and the
current time; the service layer commits the resulting decisions with
conditional updates so two requests can never both apply the same month.
"""
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Callable, List, Optional

MONTH_KEY_FORMAT = "%Y-%m"

def month_key(now: datetime) -> str:
    """Year-month identifier used as the 'already processed' marker, e.g. '2024-06'."""
    return now.strftime(MONTH_KEY_FORMAT)

def compute_percentage(amount: float, income: float) -> float:
    if not income or income <= 0:
        return 0.0
    return round(amount / income * 100, 1)


@dataclass(frozen=True)
class AccountSnapshot:
    income: float
    increment_day: Optional[int] = None
    increment_amount: Optional[float] = None
    last_increment_month: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "AccountSnapshot":
        return cls(
            income=float(row.income or 0),
            increment_day=row.increment_day,
            increment_amount=row.increment_amount,
            last_increment_month=row.last_increment_month,
        )


@dataclass(frozen=True)
class RuleSnapshot:
    id: int
    name: str
    amount: float
    category: str
    due_day: int
    last_posted_month: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "RuleSnapshot":
        return cls(
            id=row.id,
            name=row.name,
            amount=float(row.amount),
            category=row.category,
            due_day=row.due_day,
            last_posted_month=row.last_posted_month,
        )


@dataclass(frozen=True)
class PlannedExpense:
    rule_id: int
    category_id: int
    name: str
    amount: float
    percentage_of_income: float


@dataclass
class CatchUpResult:
    account: AccountSnapshot
    month: str
    increment_applied: bool = False
    posted: List[PlannedExpense] = field(default_factory=list)
    unresolved: List[RuleSnapshot] = field(default_factory=list)


def income_increment_due(account: AccountSnapshot, now: datetime) -> bool:
    """
    True when the configured raise should be added to income right now.

    Before the configured day nothing happens and the stored marker is left
    untouched. On or after it, the raise applies once per month key.
    """
    if not account.increment_day:
        return False
    if not account.increment_amount or account.increment_amount <= 0:
        return False
    if now.day < account.increment_day:
        return False
    return account.last_increment_month != month_key(now)

def rule_is_due(rule: RuleSnapshot, now: datetime) -> bool:
    # Late evaluation still posts: any day on/after due_day within the month
    if rule.due_day > now.day:
        return False
    return rule.last_posted_month != month_key(now)

def catch_up(
    account: AccountSnapshot,
    rules: List[RuleSnapshot],
    now: datetime,
    resolve_category: Callable[[str], Optional[int]],
) -> CatchUpResult:
    """
    Decide what a request arriving at `now` must apply for one user.

    Step A adds the income increment if it is due. Step B posts each due
    recurring rule against the (possibly incremented) income. Rules whose
    category cannot be resolved are reported in `unresolved` and stay
    unmarked so the next evaluation retries them.
    """
    current_month = month_key(now)
    result = CatchUpResult(account=account, month=current_month)

    if income_increment_due(account, now):
        result.account = replace(
            account,
            income=account.income + float(account.increment_amount),
            last_increment_month=current_month,
        )
        result.increment_applied = True

    income = result.account.income
    for rule in rules:
        if not rule_is_due(rule, now):
            continue
        category_id = resolve_category(rule.category)
        if category_id is None:
            result.unresolved.append(rule)
            continue
        result.posted.append(PlannedExpense(
            rule_id=rule.id,
            category_id=category_id,
            name=rule.name,
            amount=rule.amount,
            percentage_of_income=compute_percentage(rule.amount, income),
        ))

    return result
