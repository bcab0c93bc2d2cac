from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from datetime import datetime
from finpro.database import get_db
from finpro.schemas import UserProfile
from finpro.deps import get_current_user, get_now
from finpro.models.user import User
from finpro.services.automation_service import refresh_user_state

router = APIRouter()

@router.get("/me", response_model=UserProfile)
def read_users_me(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    now: datetime = Depends(get_now)
):
    refresh_user_state(db, current_user, now)
    return current_user
