from finpro.models.user import User
from finpro.models.budget import BudgetAccount, Category
from finpro.models.finance import FixedExpense, Expense, IncomeEntry
from finpro.models.rewards import UserStreak, UserBadge

__all__ = [
    "User",
    "BudgetAccount",
    "Category",
    "FixedExpense",
    "Expense",
    "IncomeEntry",
    "UserStreak",
    "UserBadge",
]
