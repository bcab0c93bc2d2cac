from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from finpro.database import Base

class UserStreak(Base):
    __tablename__ = "user_streaks"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False, index=True)
    total_points = Column(Integer, nullable=False, default=0)
    months_under_budget = Column(Integer, nullable=False, default=0)
    months_no_discretionary_spend = Column(Integer, nullable=False, default=0)
    # Month of the last streak transition; independent of any other write to the row
    last_streak_eval_month = Column(String, nullable=True)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

class UserBadge(Base):
    __tablename__ = "user_badges"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    badge_name = Column(String, nullable=False)
    earned_at = Column(DateTime, default=datetime.now)

    __table_args__ = (UniqueConstraint("user_id", "badge_name", name="_user_badge_uc"),)
