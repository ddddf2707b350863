# backend/services/sales.py
import logging
from collections import OrderedDict
from datetime import datetime
from typing import Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database import atomic
from models.batch import Batch
from models.product import Product
from models.sale import SALE_COMPLETED, Sale, SaleItem
from models.stock import MovementType, ReferenceType, StockMovement
from models.users import User
from schemas.common import ActionResult
from schemas.sale import SaleCreate
from services.activity import ActivityAction, EntityType
from services.exceptions import DuplicateKeyError, NotFoundError
from services.guard import ensure_available
from services.results import action_boundary, success_result
from services.scope import after_commit, locked
from utils.timeutils import utcnow
from utils.tokenJWT import require_authed_user

logger = logging.getLogger(__name__)


def next_sale_number(db: Session, owner_id: int, now: Optional[datetime] = None) -> str:
    now = now or utcnow()
    prefix = f"SALE-{now:%Y%m%d}"
    latest = (
        db.query(Sale.sale_number)
        .filter(Sale.user_id == owner_id, Sale.sale_number.like(f"{prefix}-%"))
        .order_by(Sale.sale_number.desc())
        .first()
    )
    sequence = int(latest[0][-4:]) + 1 if latest and latest[0][-4:].isdigit() else 1
    return f"{prefix}-{sequence:04d}"


def _latest_cost(db: Session, product_id: int) -> Optional[float]:
    row = (
        db.query(Batch.cost_price)
        .filter(Batch.product_id == product_id, Batch.cost_price.isnot(None))
        .order_by(Batch.created_at.desc(), Batch.id.desc())
        .first()
    )
    return row[0] if row else None


@action_boundary("Failed to create sale")
def create_sale(db: Session, user: Optional[User], data) -> ActionResult:
    """Checkout: every line is checked against locked stock before any decrement."""
    scope = require_authed_user(user)
    data = SaleCreate.model_validate(data)

    wanted: Dict[int, int] = OrderedDict()
    for item in data.items:
        wanted[item.product_id] = wanted.get(item.product_id, 0) + item.quantity

    owned = {
        pid for (pid,) in db.query(Product.id).filter(
            Product.id.in_(wanted.keys()), Product.user_id == scope.owner_id
        )
    }
    missing = {
        f"items.{i}.product_id": ["Product not found."]
        for i, item in enumerate(data.items)
        if item.product_id not in owned
    }
    if missing:
        raise NotFoundError("Product not found.", missing)

    subtotal = round(sum(i.price * i.quantity - i.discount for i in data.items), 2)
    discount = min(data.overall_discount, subtotal)
    taxable = subtotal - discount
    tax = round(taxable * data.tax_rate / 100, 2)
    total = round(taxable + tax, 2)

    try:
        with atomic(db):
            products = {
                p.id: p
                for p in locked(
                    db.query(Product).filter(Product.id.in_(wanted.keys())).order_by(Product.id)
                ).all()
            }
            for product_id, quantity in wanted.items():
                product = products[product_id]
                ensure_available(product.name, product.quantity, quantity)

            sale_number = next_sale_number(db, scope.owner_id)
            sale = Sale(
                user_id=scope.owner_id,
                sale_number=sale_number,
                customer=data.customer,
                payment_method=data.payment_method,
                status=SALE_COMPLETED,
                subtotal=subtotal,
                discount=discount,
                tax=tax,
                total_amount=total,
                notes=data.notes,
            )
            db.add(sale)
            db.flush()
            sale_id = sale.id

            for item in data.items:
                product = products[item.product_id]
                product.quantity -= item.quantity
                db.add(SaleItem(
                    sale_id=sale_id,
                    product_id=product.id,
                    product_name=product.name,
                    quantity=item.quantity,
                    price=item.price,
                    discount=item.discount,
                    cost_price=_latest_cost(db, product.id),
                    total=round(item.price * item.quantity - item.discount, 2),
                ))
                db.add(StockMovement(
                    user_id=scope.owner_id,
                    product_id=product.id,
                    type=MovementType.OUT,
                    quantity=-item.quantity,
                    reference=sale_number,
                    reference_type=ReferenceType.SALE,
                    notes=f"Sale {sale_number}",
                ))
    except IntegrityError:
        raise DuplicateKeyError("Sale number is already in use, please try again.")

    logger.info("Sale %s completed: %s lines, total %.2f", sale_number, len(data.items), total)
    after_commit(
        scope, EntityType.SALE, sale_id, ActivityAction.CREATE,
        changes={"sale_number": sale_number, "total_amount": total, "item_count": len(data.items)},
        note=f"Completed sale {sale_number}",
    )
    return success_result(
        "Sale completed successfully",
        {"sale_id": sale_id, "sale_number": sale_number, "total_amount": total},
    )
