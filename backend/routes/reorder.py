# backend/routes/reorder.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from routes.responses import STOCK_ROLES, to_response
from schemas.common import ActionResult
from schemas.reorder import ReorderRuleCreate, ReorderRuleUpdate
from services import reorder as reorder_service
from utils.tokenJWT import role_required

router = APIRouter(prefix="/reorder", tags=["Reorder"])

can_manage_stock = role_required(*STOCK_ROLES)


@router.get("/suggestions", response_model=ActionResult)
def suggestions(db: Session = Depends(get_db), current_user: User = Depends(can_manage_stock)):
    return to_response(reorder_service.get_reorder_suggestions(db, current_user))


@router.get("/stats", response_model=ActionResult)
def stats(db: Session = Depends(get_db), current_user: User = Depends(can_manage_stock)):
    return to_response(reorder_service.get_reorder_stats(db, current_user))


@router.get("/rules", response_model=ActionResult)
def list_rules(db: Session = Depends(get_db), current_user: User = Depends(can_manage_stock)):
    return to_response(reorder_service.get_reorder_rules(db, current_user))


@router.post("/rules", response_model=ActionResult)
def create_rule(
    payload: ReorderRuleCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage_stock),
):
    return to_response(reorder_service.create_reorder_rule(db, current_user, payload))


@router.patch("/rules/{rule_id}", response_model=ActionResult)
def update_rule(
    rule_id: int,
    payload: ReorderRuleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage_stock),
):
    return to_response(reorder_service.update_reorder_rule(db, current_user, rule_id, payload))


@router.delete("/rules/{rule_id}", response_model=ActionResult)
def delete_rule(rule_id: int, db: Session = Depends(get_db), current_user: User = Depends(can_manage_stock)):
    return to_response(reorder_service.delete_reorder_rule(db, current_user, rule_id))


@router.post("/rules/{rule_id}/toggle", response_model=ActionResult)
def toggle_rule(rule_id: int, db: Session = Depends(get_db), current_user: User = Depends(can_manage_stock)):
    return to_response(reorder_service.toggle_reorder_rule(db, current_user, rule_id))
