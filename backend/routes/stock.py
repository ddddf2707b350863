# backend/routes/stock.py
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_db
from models.stock import MovementType
from models.users import User
from routes.responses import STOCK_ROLES, to_response
from schemas.common import ActionResult
from schemas.product import ProductImport
from schemas.stock import BulkAdjustment, BulkDelete, StockAdjustment
from services import stock as stock_service
from utils.tokenJWT import role_required

router = APIRouter(prefix="/stock", tags=["Stock"])

can_manage_stock = role_required(*STOCK_ROLES)


@router.get("", response_model=ActionResult)
def list_movements(
    product_id: Optional[int] = Query(None),
    location_id: Optional[int] = Query(None),
    type: Optional[MovementType] = Query(None),
    reference: Optional[str] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    limit: int = Query(500, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage_stock),
):
    filters = {
        "product_id": product_id, "location_id": location_id, "type": type,
        "reference": reference, "date_from": date_from, "date_to": date_to, "limit": limit,
    }
    return to_response(stock_service.get_stock_movements(db, current_user, filters))


@router.get("/summary", response_model=ActionResult)
def movement_summary(
    product_id: Optional[int] = Query(None),
    location_id: Optional[int] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage_stock),
):
    filters = {
        "product_id": product_id, "location_id": location_id,
        "date_from": date_from, "date_to": date_to,
    }
    return to_response(stock_service.get_movement_summary(db, current_user, filters))


@router.get("/products/{product_id}/history", response_model=ActionResult)
def product_history(
    product_id: int,
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage_stock),
):
    return to_response(stock_service.get_product_movement_history(db, current_user, product_id, limit))


@router.get("/products/{product_id}/reconciliation", response_model=ActionResult)
def product_reconciliation(
    product_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage_stock),
):
    return to_response(stock_service.get_stock_reconciliation(db, current_user, product_id))


@router.post("/adjust", response_model=ActionResult)
def adjust_stock(
    payload: StockAdjustment,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage_stock),
):
    return to_response(stock_service.adjust_stock(db, current_user, payload))


@router.post("/bulk-adjust", response_model=ActionResult)
def bulk_adjust(
    payload: BulkAdjustment,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage_stock),
):
    return to_response(stock_service.bulk_adjust_stock(db, current_user, payload))


@router.post("/bulk-delete", response_model=ActionResult)
def bulk_delete(
    payload: BulkDelete,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage_stock),
):
    return to_response(stock_service.bulk_delete_products(db, current_user, payload.product_ids))


@router.post("/import", response_model=ActionResult)
def import_products(
    payload: ProductImport,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage_stock),
):
    return to_response(stock_service.bulk_import_products(db, current_user, payload))
