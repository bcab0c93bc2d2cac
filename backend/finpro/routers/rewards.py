import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from datetime import datetime
from finpro.core.config import settings
from finpro.database import get_db
from finpro.deps import get_current_user, get_now
from finpro.models.rewards import UserStreak
from finpro.models.user import User
from finpro.schemas import LeaderboardEntry, PointsOut
from finpro.services import db_service
from finpro.services.automation_service import refresh_user_state

logger = logging.getLogger(__name__)

router = APIRouter(tags=["rewards"])

@router.get("/points", response_model=PointsOut)
def get_user_points(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    now: datetime = Depends(get_now)
):
    refresh_user_state(db, current_user, now)
    return db_service.get_or_create_streak(db, current_user.id)

@router.get("/badges", response_model=List[str])
def get_user_badges(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    now: datetime = Depends(get_now)
):
    """Earned badge names, most recent first."""
    refresh_user_state(db, current_user, now)
    return db_service.get_badge_names(db, current_user.id)

@router.get("/leaderboard", response_model=List[LeaderboardEntry])
def get_leaderboard(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    now: datetime = Depends(get_now)
):
    """
    Top users by points. Every user is caught up first, since points of
    idle users only move when something evaluates them.
    """
    users = db.query(User).all()
    logger.info(f"[LEADERBOARD] Evaluating {len(users)} users")
    for user in users:
        refresh_user_state(db, user, now)

    rows = db.query(User, UserStreak).join(
        UserStreak, UserStreak.user_id == User.id
    ).order_by(UserStreak.total_points.desc(), User.id.asc()).limit(settings.LEADERBOARD_SIZE).all()

    return [
        LeaderboardEntry(
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            total_points=streak.total_points,
            months_under_budget=streak.months_under_budget,
        )
        for user, streak in rows
    ]
