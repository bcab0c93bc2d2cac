from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey
from finpro.database import Base

class BudgetAccount(Base):
    """Budget account, one per user"""
    __tablename__ = "budget_accounts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False, index=True)
    income = Column(Float, nullable=False, default=0)
    savings_goal = Column(Float, nullable=False, default=0)
    total_savings = Column(Float, nullable=False, default=0)
    duration = Column(String, nullable=False, default="monthly")

    # Recurring income raise
    increment_day = Column(Integer, nullable=True)  # 1-31
    increment_amount = Column(Float, nullable=True)
    last_increment_month = Column(String, nullable=True)  # Format: "2026-02"

    created_at = Column(DateTime, default=datetime.now)

class Category(Base):
    """Global expense category catalog"""
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    icon = Column(String, nullable=False, default="📦")
