from datetime import datetime

from sqlalchemy.exc import OperationalError

from finpro.core.automation import PlannedExpense
from finpro.models.budget import BudgetAccount, Category
from finpro.models.finance import Expense, FixedExpense
from finpro.services import db_service
from finpro.services.automation_service import run_automation


def _account(db, user, **fields):
    account = db_service.get_or_create_account(db, user.id)
    for key, value in fields.items():
        setattr(account, key, value)
    db.commit()
    return account


def _rule(db, user, name="Rent", amount=800, category="Housing", due_day=3, last_posted_month=None):
    rule = FixedExpense(
        user_id=user.id,
        name=name,
        amount=amount,
        category=category,
        due_day=due_day,
        last_posted_month=last_posted_month,
    )
    db.add(rule)
    db.commit()
    db.refresh(rule)
    return rule


def _expenses(db, user):
    db.expire_all()
    return db.query(Expense).filter(Expense.user_id == user.id).all()


def _stored_account(db, user):
    db.expire_all()
    return db.query(BudgetAccount).filter(BudgetAccount.user_id == user.id).one()


def test_increment_is_idempotent_within_month(db, user):
    _account(db, user, income=0, increment_day=5, increment_amount=1000)
    day_10 = datetime(2024, 6, 10)

    for _ in range(3):
        run_automation(db, user.id, day_10)

    account = _stored_account(db, user)
    assert account.income == 1000
    assert account.last_increment_month == "2024-06"


def test_future_increment_is_deferred(db, user):
    _account(db, user, income=200, increment_day=25, increment_amount=1000, last_increment_month="2024-05")

    run_automation(db, user.id, datetime(2024, 6, 10))

    account = _stored_account(db, user)
    assert account.income == 200
    assert account.last_increment_month == "2024-05"


def test_increment_applies_again_next_month(db, user):
    _account(db, user, income=0, increment_day=5, increment_amount=1000)

    run_automation(db, user.id, datetime(2024, 6, 10))
    run_automation(db, user.id, datetime(2024, 7, 4))
    assert _stored_account(db, user).income == 1000

    run_automation(db, user.id, datetime(2024, 7, 5))
    assert _stored_account(db, user).income == 2000


def test_catch_up_posts_rule_exactly_once(db, user):
    _account(db, user, income=4000)
    rule = _rule(db, user, due_day=3)

    run_automation(db, user.id, datetime(2024, 6, 20))
    run_automation(db, user.id, datetime(2024, 6, 25))

    expenses = _expenses(db, user)
    assert len(expenses) == 1
    assert expenses[0].amount == 800
    assert expenses[0].is_fixed and expenses[0].is_auto_posted
    assert expenses[0].percentage_of_income == 20.0
    db.refresh(rule)
    assert rule.last_posted_month == "2024-06"


def test_rule_not_posted_before_due_day(db, user):
    _account(db, user, income=4000)
    rule = _rule(db, user, due_day=15)

    run_automation(db, user.id, datetime(2024, 6, 10))

    assert _expenses(db, user) == []
    db.refresh(rule)
    assert rule.last_posted_month is None


def test_scenario_zero_income_food_rule(db, user):
    _account(db, user, income=0)
    rule = _rule(db, user, name="Groceries", amount=500, category="Food", due_day=1)

    run_automation(db, user.id, datetime(2024, 6, 1, 8, 0))

    expenses = _expenses(db, user)
    assert len(expenses) == 1
    expense = expenses[0]
    assert expense.amount == 500
    assert expense.is_auto_posted
    assert expense.percentage_of_income == 0
    assert expense.category.name == "Food"
    db.refresh(rule)
    assert rule.last_posted_month == "2024-06"


def test_category_resolution_ignores_case_and_spaces(db, user):
    _account(db, user, income=1000)
    _rule(db, user, category="  fOoD ", due_day=1)

    run_automation(db, user.id, datetime(2024, 6, 10))

    food = db.query(Category).filter(Category.name == "Food").one()
    assert [e.category_id for e in _expenses(db, user)] == [food.id]


def test_unresolved_category_is_retried(db, user):
    _account(db, user, income=1000)
    rule = _rule(db, user, name="Pet food", amount=50, category="Pets", due_day=1)

    run_automation(db, user.id, datetime(2024, 6, 10))
    assert _expenses(db, user) == []
    db.refresh(rule)
    assert rule.last_posted_month is None

    db.add(Category(name="Pets", icon="🐶"))
    db.commit()
    run_automation(db, user.id, datetime(2024, 6, 11))

    assert len(_expenses(db, user)) == 1
    db.refresh(rule)
    assert rule.last_posted_month == "2024-06"


def test_percentages_follow_income_increment(db, user):
    _account(db, user, income=1000, increment_day=15, increment_amount=1000)
    _rule(db, user, amount=500, category="Housing", due_day=1)

    run_automation(db, user.id, datetime(2024, 6, 10))
    assert _expenses(db, user)[0].percentage_of_income == 50.0

    run_automation(db, user.id, datetime(2024, 6, 15))
    account = _stored_account(db, user)
    assert account.income == 2000
    for expense in _expenses(db, user):
        assert expense.percentage_of_income == round(expense.amount / account.income * 100, 1)


def test_stale_increment_claim_affects_nothing(db, user):
    _account(db, user, income=0, increment_day=1, increment_amount=300)
    now = datetime(2024, 6, 10)

    assert db_service.try_apply_income_increment(db, user.id, now)
    assert not db_service.try_apply_income_increment(db, user.id, now)
    assert _stored_account(db, user).income == 300


def test_stale_rule_claim_posts_nothing(db, user):
    _account(db, user, income=1000)
    rule = _rule(db, user, amount=100, category="Food", due_day=1)
    food_id = db_service.resolve_category_id(db, "Food")
    planned = PlannedExpense(rule_id=rule.id, category_id=food_id, name="Rent", amount=100, percentage_of_income=10.0)
    now = datetime(2024, 6, 10)

    # Two requests planned from the same snapshot
    first = db_service.claim_and_post_fixed_expense(db, user.id, planned, now)
    second = db_service.claim_and_post_fixed_expense(db, user.id, planned, now)

    assert first is not None
    assert second is None
    assert len(_expenses(db, user)) == 1


def test_automation_scoped_to_user(db, make_user):
    alice = make_user(first_name="Alice")
    bob = make_user(first_name="Bob")
    _account(db, alice, income=1000)
    _account(db, bob, income=1000)
    _rule(db, alice, due_day=1)

    run_automation(db, bob.id, datetime(2024, 6, 10))

    assert _expenses(db, bob) == []
    assert _expenses(db, alice) == []


def _storage_error():
    return OperationalError("UPDATE expenses", {}, Exception("database is locked"))


def test_interrupted_recompute_is_redone_next_request(db, user, monkeypatch):
    _account(db, user, income=1000, increment_day=5, increment_amount=1000, last_increment_month="2024-05")
    db.add(Expense(
        user_id=user.id,
        category_id=db_service.resolve_category_id(db, "Food"),
        name="Groceries",
        amount=500,
        percentage_of_income=50.0,
        created_at=datetime(2024, 6, 2),
    ))
    db.commit()

    recalculate = db_service.recalculate_expense_percentages
    calls = {"n": 0}

    def fail_first_time(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] == 1:
            raise _storage_error()
        return recalculate(*args, **kwargs)

    monkeypatch.setattr(db_service, "recalculate_expense_percentages", fail_first_time)

    run_automation(db, user.id, datetime(2024, 6, 10))
    assert _stored_account(db, user).income == 2000
    assert _expenses(db, user)[0].percentage_of_income == 50.0

    run_automation(db, user.id, datetime(2024, 6, 11))
    assert _stored_account(db, user).income == 2000
    assert _expenses(db, user)[0].percentage_of_income == 25.0


def test_category_lookup_failure_only_skips_that_rule(db, user, monkeypatch):
    _account(db, user, income=1000, increment_day=1, increment_amount=500)
    rent = _rule(db, user, name="Rent", amount=300, category="Housing", due_day=1)
    broken = _rule(db, user, name="Cable", amount=40, category="Utilities", due_day=1)

    resolve = db_service.resolve_category_id

    def flaky_resolve(session, name):
        if name == "Utilities":
            raise _storage_error()
        return resolve(session, name)

    monkeypatch.setattr(db_service, "resolve_category_id", flaky_resolve)

    result = run_automation(db, user.id, datetime(2024, 6, 10))

    assert [r.id for r in result.unresolved] == [broken.id]
    assert _stored_account(db, user).income == 1500
    assert [e.name for e in _expenses(db, user)] == ["Rent"]
    db.refresh(rent)
    db.refresh(broken)
    assert rent.last_posted_month == "2024-06"
    assert broken.last_posted_month is None

    monkeypatch.setattr(db_service, "resolve_category_id", resolve)
    run_automation(db, user.id, datetime(2024, 6, 11))
    assert sorted(e.name for e in _expenses(db, user)) == ["Cable", "Rent"]
