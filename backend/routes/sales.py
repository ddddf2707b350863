# backend/routes/sales.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from routes.responses import STOCK_ROLES, to_response
from schemas.common import ActionResult
from schemas.sale import SaleCreate
from services import sales as sale_service
from utils.tokenJWT import role_required

router = APIRouter(prefix="/sales", tags=["Sales"])


@router.post("", response_model=ActionResult)
def create_sale(
    payload: SaleCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(*STOCK_ROLES)),
):
    return to_response(sale_service.create_sale(db, current_user, payload))
