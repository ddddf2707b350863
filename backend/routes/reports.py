# backend/routes/reports.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from routes.responses import STOCK_ROLES, to_response
from schemas.common import ActionResult
from services import alerts as alert_service
from services import forecast as forecast_service
from utils.tokenJWT import role_required

router = APIRouter(prefix="/reports", tags=["Reports"])

can_view_reports = role_required(*STOCK_ROLES)


@router.get("/forecast", response_model=ActionResult)
def inventory_forecast(
    days_to_analyze: int = Query(30, ge=1, le=365),
    days_to_forecast: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_db),
    current_user: User = Depends(can_view_reports),
):
    return to_response(
        forecast_service.get_inventory_forecast(db, current_user, days_to_analyze, days_to_forecast)
    )


@router.get("/forecast/products/{product_id}", response_model=ActionResult)
def product_demand_forecast(
    product_id: int,
    days_to_analyze: int = Query(90, ge=7, le=365),
    db: Session = Depends(get_db),
    current_user: User = Depends(can_view_reports),
):
    return to_response(
        forecast_service.get_product_demand_forecast(db, current_user, product_id, days_to_analyze)
    )


@router.get("/alerts", response_model=ActionResult)
def stock_alerts(db: Session = Depends(get_db), current_user: User = Depends(can_view_reports)):
    return to_response(alert_service.get_stock_alerts(db, current_user))


@router.get("/alerts/summary", response_model=ActionResult)
def stock_alert_summary(db: Session = Depends(get_db), current_user: User = Depends(can_view_reports)):
    return to_response(alert_service.get_stock_alert_summary(db, current_user))


@router.get("/low-stock", response_model=ActionResult)
def low_stock(db: Session = Depends(get_db), current_user: User = Depends(can_view_reports)):
    return to_response(alert_service.get_low_stock_products(db, current_user))
