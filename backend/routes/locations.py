# backend/routes/locations.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from routes.responses import STOCK_ROLES, to_response
from schemas.common import ActionResult
from schemas.location import LocationCreate, StockTransfer
from services import locations as location_service
from utils.tokenJWT import role_required

router = APIRouter(prefix="/locations", tags=["Locations"])

can_manage_stock = role_required(*STOCK_ROLES)


@router.get("", response_model=ActionResult)
def list_locations(db: Session = Depends(get_db), current_user: User = Depends(can_manage_stock)):
    return to_response(location_service.get_locations(db, current_user))


@router.post("", response_model=ActionResult)
def create_location(
    payload: LocationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage_stock),
):
    return to_response(location_service.create_location(db, current_user, payload))


@router.delete("/{location_id}", response_model=ActionResult)
def delete_location(
    location_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage_stock),
):
    return to_response(location_service.delete_location(db, current_user, location_id))


@router.post("/transfer", response_model=ActionResult)
def transfer_stock(
    payload: StockTransfer,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage_stock),
):
    return to_response(location_service.transfer_stock(db, current_user, payload))


@router.get("/products/{product_id}", response_model=ActionResult)
def product_stock(
    product_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage_stock),
):
    return to_response(location_service.get_product_stock_by_location(db, current_user, product_id))
