from datetime import datetime
from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session
from finpro.database import get_db
from finpro.models.user import User

def get_current_user(
    x_user_id: int = Header(..., alias="X-User-Id"),
    db: Session = Depends(get_db)
) -> User:
    """
    Caller identity as resolved upstream by the auth layer.
    """
    user = db.query(User).filter(User.id == x_user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user

def get_now() -> datetime:
    # Server-local wall clock; overridden in tests
    return datetime.now()
