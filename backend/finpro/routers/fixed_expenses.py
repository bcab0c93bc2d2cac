from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List
from datetime import datetime
from finpro.database import get_db
from finpro.deps import get_current_user, get_now
from finpro.models.user import User
from finpro.schemas import FixedExpenseCreate, FixedExpenseOut, FixedExpenseUpdate
from finpro.services import budget_service, db_service
from finpro.services.automation_service import refresh_user_state

router = APIRouter(tags=["fixed-expenses"])

@router.get("/", response_model=List[FixedExpenseOut])
def get_fixed_expenses(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    now: datetime = Depends(get_now)
):
    """
    Recurring rules ordered by due day, after posting anything that is due.
    """
    refresh_user_state(db, current_user, now)
    return db_service.get_fixed_expenses(db, current_user.id)

@router.post("/", response_model=FixedExpenseOut)
def create_fixed_expense(
    payload: FixedExpenseCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Create a recurring rule. Nothing is posted here; the next read posts it
    if its due day has arrived.
    """
    try:
        return budget_service.create_fixed_expense(
            db,
            current_user.id,
            name=payload.name,
            amount=payload.amount,
            category=payload.category,
            due_day=payload.due_day,
            icon=payload.icon,
        )
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=str(e))

@router.put("/{fixed_expense_id}", response_model=FixedExpenseOut)
def update_fixed_expense(
    fixed_expense_id: int,
    payload: FixedExpenseUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    now: datetime = Depends(get_now)
):
    rule = budget_service.update_fixed_expense(
        db,
        current_user.id,
        fixed_expense_id,
        name=payload.name,
        amount=payload.amount,
        category=payload.category,
        due_day=payload.due_day,
        icon=payload.icon,
        now=now,
    )
    if not rule:
        raise HTTPException(status_code=404, detail="Fixed expense not found or not owned by you")
    return rule

@router.delete("/{fixed_expense_id}")
def delete_fixed_expense(
    fixed_expense_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    if not budget_service.delete_fixed_expense(db, current_user.id, fixed_expense_id):
        raise HTTPException(status_code=404, detail="Fixed expense not found or not owned by you")
    return {"message": "Fixed expense deleted"}
