# backend/routes/purchase_orders.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from routes.responses import STOCK_ROLES, to_response
from schemas.common import ActionResult
from schemas.purchase_order import PurchaseOrderCreate, PurchaseOrderStatusUpdate, ReceivePurchaseOrder
from services import purchase_orders as po_service
from utils.tokenJWT import role_required

router = APIRouter(prefix="/purchase-orders", tags=["Purchase orders"])

can_manage_stock = role_required(*STOCK_ROLES)


@router.post("", response_model=ActionResult)
def create_purchase_order(
    payload: PurchaseOrderCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage_stock),
):
    return to_response(po_service.create_purchase_order(db, current_user, payload))


@router.post("/receive", response_model=ActionResult)
def receive_items(
    payload: ReceivePurchaseOrder,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage_stock),
):
    return to_response(po_service.receive_purchase_order_items(db, current_user, payload))


@router.get("/{order_id}", response_model=ActionResult)
def get_purchase_order(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage_stock),
):
    return to_response(po_service.get_purchase_order(db, current_user, order_id))


@router.patch("/{order_id}/status", response_model=ActionResult)
def update_status(
    order_id: int,
    payload: PurchaseOrderStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage_stock),
):
    return to_response(po_service.update_purchase_order_status(db, current_user, order_id, payload.status))


@router.delete("/{order_id}", response_model=ActionResult)
def delete_purchase_order(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage_stock),
):
    return to_response(po_service.delete_purchase_order(db, current_user, order_id))
