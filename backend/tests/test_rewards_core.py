from datetime import datetime, timedelta

from finpro.core.rewards import (
    BADGE_CATALOG,
    BadgeContext,
    MonthActivity,
    StreakCounters,
    account_age_months,
    badges_to_award,
    is_plan_allocation,
    next_streak_counters,
    summarize_month,
)

DISCRETIONARY = ["Shopping", "Entertainment"]


def _context(**overrides):
    values = dict(
        account_age_months=0,
        savings_goal=0,
        total_savings=0,
        months_under_budget=0,
        months_no_discretionary_spend=0,
        total_expenses=0,
        has_discretionary_spend=False,
    )
    values.update(overrides)
    return BadgeContext(**values)


def test_plan_allocations_are_recognised():
    assert is_plan_allocation("Food Budget", "Food")
    assert is_plan_allocation("Emergency Allocation", "Savings")
    assert not is_plan_allocation("Emergency Allocation", "Other")
    assert not is_plan_allocation("Groceries", "Food")


def test_summarize_month_skips_allocations():
    expenses = [
        ("Groceries", 300, "Food"),
        ("Food Budget", 5000, "Food"),
        ("Rainy day Allocation", 1000, "savings"),
    ]
    activity = summarize_month(expenses, income=1000, discretionary=DISCRETIONARY)
    assert activity.total_expenses == 300
    assert activity.is_under_budget
    assert not activity.has_discretionary_spend


def test_summarize_month_discretionary_is_case_insensitive():
    activity = summarize_month([("Shoes", 80, "shopping ")], income=1000, discretionary=DISCRETIONARY)
    assert activity.has_discretionary_spend


def test_not_under_budget_without_income():
    activity = summarize_month([], income=0, discretionary=DISCRETIONARY)
    assert not activity.is_under_budget


def test_streak_counters_increment_and_reset():
    current = StreakCounters(months_under_budget=2, months_no_discretionary_spend=4)

    good = next_streak_counters(current, MonthActivity(100, True, False))
    assert good == StreakCounters(3, 5)

    bad = next_streak_counters(current, MonthActivity(100, False, True))
    assert bad == StreakCounters(0, 0)


def test_no_discretionary_streak_needs_some_spend():
    counters = next_streak_counters(StreakCounters(0, 3), MonthActivity(0, True, False))
    assert counters.months_no_discretionary_spend == 0
    assert counters.months_under_budget == 1


def test_account_age_in_thirty_day_months():
    now = datetime(2024, 6, 10)
    assert account_age_months(now - timedelta(days=29), now) == 0
    assert account_age_months(now - timedelta(days=30), now) == 1
    assert account_age_months(now - timedelta(days=95), now) == 3
    assert account_age_months(now + timedelta(days=3), now) == 0
    assert account_age_months(None, now) == 0


def test_catalog_points():
    points = {rule.name: rule.points for rule in BADGE_CATALOG}
    assert points == {
        "Smart Saver": 100,
        "Budget Pro": 300,
        "Zero Waste": 500,
        "Financial Guru": 600,
        "Savings Master": 1000,
        "First Month": 50,
    }


def test_badges_to_award_skips_earned():
    context = _context(account_age_months=1, months_under_budget=6)
    names = [rule.name for rule in badges_to_award(context, ["Budget Pro"])]
    assert names == ["Financial Guru", "First Month"]


def test_smart_saver_needs_a_goal():
    no_goal = _context(account_age_months=2, savings_goal=0, total_savings=500)
    met = _context(account_age_months=2, savings_goal=400, total_savings=500)
    assert "Smart Saver" not in [r.name for r in badges_to_award(no_goal, [])]
    assert "Smart Saver" in [r.name for r in badges_to_award(met, [])]


def test_zero_waste_predicate():
    ok = _context(total_expenses=50, months_no_discretionary_spend=1)
    spent = _context(total_expenses=50, months_no_discretionary_spend=1, has_discretionary_spend=True)
    assert "Zero Waste" in [r.name for r in badges_to_award(ok, [])]
    assert "Zero Waste" not in [r.name for r in badges_to_award(spent, [])]


def test_savings_master_threshold():
    assert "Savings Master" in [r.name for r in badges_to_award(_context(total_savings=100000), [])]
    assert "Savings Master" not in [r.name for r in badges_to_award(_context(total_savings=99999.99), [])]
