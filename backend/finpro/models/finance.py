from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Date, Boolean
from sqlalchemy.orm import relationship
from datetime import datetime, date
from finpro.database import Base

class FixedExpense(Base):
    """Recurring expense rule, posted once per month on its due day."""
    __tablename__ = "fixed_expenses"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    category = Column(String, nullable=False)  # Name, resolved case-insensitively when posting
    icon = Column(String, nullable=False, default="📦")
    due_day = Column(Integer, nullable=False)  # 1-31
    last_posted_month = Column(String, nullable=True)  # "YYYY-MM"
    created_at = Column(DateTime, default=datetime.now)

class Expense(Base):
    __tablename__ = "expenses"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    name = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    percentage_of_income = Column(Float, nullable=False, default=0)
    is_fixed = Column(Boolean, default=False)
    is_auto_posted = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.now, index=True)

    category = relationship("Category")

class IncomeEntry(Base):
    __tablename__ = "income_entries"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, nullable=False, default="Income")
    amount = Column(Float, nullable=False)
    date_added = Column(Date, default=date.today)
    is_recurring = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.now)
