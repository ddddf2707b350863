# backend/routes/batches.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from routes.responses import STOCK_ROLES, to_response
from schemas.batch import BatchAdjustment, BatchCreate, BatchUpdate
from schemas.common import ActionResult
from services import batches as batch_service
from utils.tokenJWT import role_required

router = APIRouter(prefix="/batches", tags=["Batches"])

can_manage_stock = role_required(*STOCK_ROLES)


@router.get("/expiring", response_model=ActionResult)
def expiring_batches(
    days_ahead: int = Query(30, ge=0, le=365),
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage_stock),
):
    return to_response(batch_service.get_expiring_batches(db, current_user, days_ahead))


@router.post("", response_model=ActionResult)
def create_batch(
    payload: BatchCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage_stock),
):
    return to_response(batch_service.create_batch(db, current_user, payload))


@router.patch("/{batch_id}", response_model=ActionResult)
def update_batch(
    batch_id: int,
    payload: BatchUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage_stock),
):
    return to_response(batch_service.update_batch(db, current_user, batch_id, payload))


@router.post("/adjust", response_model=ActionResult)
def adjust_batch(
    payload: BatchAdjustment,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage_stock),
):
    return to_response(batch_service.adjust_batch_quantity(db, current_user, payload))


@router.delete("/{batch_id}", response_model=ActionResult)
def delete_batch(
    batch_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage_stock),
):
    return to_response(batch_service.delete_batch(db, current_user, batch_id))
