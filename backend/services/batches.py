# backend/services/batches.py
import math
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from database import atomic
from models.batch import Batch
from models.product import Product
from models.purchase_order import PurchaseOrder
from models.stock import MovementType, ReferenceType, StockMovement
from models.users import User
from schemas.batch import BatchAdjustment, BatchCreate, BatchUpdate
from schemas.common import ActionResult
from services.activity import ActivityAction, EntityType
from services.exceptions import DuplicateKeyError, ValidationFailed
from services.guard import ensure_non_negative
from services.results import action_boundary, success_result
from services.scope import after_commit, get_owned, lock_row
from utils.timeutils import as_naive_utc, utcnow
from utils.tokenJWT import require_authed_user


def _duplicate_number(db: Session, owner_id: int, product_id: int, number: str, exclude_id=None) -> bool:
    query = db.query(Batch.id).filter(
        Batch.user_id == owner_id, Batch.product_id == product_id, Batch.batch_number == number
    )
    if exclude_id is not None:
        query = query.filter(Batch.id != exclude_id)
    return query.first() is not None


@action_boundary("Failed to create batch")
def create_batch(db: Session, user: Optional[User], data) -> ActionResult:
    scope = require_authed_user(user)
    data = BatchCreate.model_validate(data)

    get_owned(db, Product, data.product_id, scope.owner_id, "Product")
    if data.purchase_order_id is not None:
        get_owned(db, PurchaseOrder, data.purchase_order_id, scope.owner_id, "Purchase order")
    if _duplicate_number(db, scope.owner_id, data.product_id, data.batch_number):
        raise DuplicateKeyError(
            "A batch with this number already exists for this product",
            {"batch_number": ["Batch number already exists"]},
        )

    with atomic(db):
        batch = Batch(
            user_id=scope.owner_id,
            product_id=data.product_id,
            purchase_order_id=data.purchase_order_id,
            batch_number=data.batch_number,
            quantity=data.quantity,
            cost_price=data.cost_price,
            expiry_date=as_naive_utc(data.expiry_date),
            manufacturing_date=as_naive_utc(data.manufacturing_date),
            notes=data.notes,
        )
        db.add(batch)
        db.flush()
        batch_id = batch.id

        if data.quantity > 0:
            product = lock_row(db, Product, data.product_id)
            product.quantity = ensure_non_negative(product.name, product.quantity, data.quantity)
            db.add(StockMovement(
                user_id=scope.owner_id,
                product_id=data.product_id,
                batch_id=batch_id,
                type=MovementType.IN,
                quantity=data.quantity,
                reference=data.batch_number,
                reference_type=ReferenceType.BATCH,
                notes="Initial batch creation",
            ))

    after_commit(
        scope, EntityType.BATCH, batch_id, ActivityAction.CREATE,
        changes={"batch_number": data.batch_number, "quantity": data.quantity},
        note=f"Created batch {data.batch_number}",
    )
    return success_result("Batch created successfully", {"id": batch_id})


@action_boundary("Failed to update batch")
def update_batch(db: Session, user: Optional[User], batch_id: int, data) -> ActionResult:
    scope = require_authed_user(user)
    data = BatchUpdate.model_validate(data)
    batch = get_owned(db, Batch, batch_id, scope.owner_id, "Batch")

    fields = data.model_dump(exclude_unset=True)
    if fields.get("batch_number", "") is None:
        del fields["batch_number"]
    if "batch_number" in fields and _duplicate_number(
        db, scope.owner_id, batch.product_id, fields["batch_number"], exclude_id=batch.id
    ):
        raise DuplicateKeyError(
            "A batch with this number already exists for this product",
            {"batch_number": ["Batch number already exists"]},
        )

    manufacturing = as_naive_utc(fields.get("manufacturing_date", batch.manufacturing_date))
    expiry = as_naive_utc(fields.get("expiry_date", batch.expiry_date))
    if manufacturing and expiry and manufacturing > expiry:
        raise ValidationFailed(
            "Validation failed",
            {"manufacturing_date": ["Manufacturing date must be before expiry date"]},
        )

    with atomic(db):
        for name, value in fields.items():
            if isinstance(value, datetime):
                value = as_naive_utc(value)
            setattr(batch, name, value)
        number = batch.batch_number

    after_commit(
        scope, EntityType.BATCH, batch_id, ActivityAction.UPDATE,
        changes={k: str(v) if isinstance(v, datetime) else v for k, v in fields.items()},
        note=f"Updated batch {number}",
    )
    return success_result("Batch updated successfully", {"id": batch_id})


@action_boundary("Failed to adjust batch quantity")
def adjust_batch_quantity(db: Session, user: Optional[User], data) -> ActionResult:
    scope = require_authed_user(user)
    data = BatchAdjustment.model_validate(data)
    batch = get_owned(db, Batch, data.batch_id, scope.owner_id, "Batch")

    with atomic(db):
        batch = lock_row(db, Batch, batch.id)
        product = lock_row(db, Product, batch.product_id)
        number = batch.batch_number
        previous = batch.quantity
        batch.quantity = ensure_non_negative(f"batch {number}", previous, data.adjustment)
        product.quantity = ensure_non_negative(product.name, product.quantity, data.adjustment)
        new_quantity = batch.quantity

        db.add(StockMovement(
            user_id=scope.owner_id,
            product_id=product.id,
            batch_id=batch.id,
            type=MovementType.ADJUSTMENT,
            quantity=data.adjustment,
            reference=number,
            reference_type=ReferenceType.BATCH,
            notes=data.reason or "Batch quantity adjustment",
        ))

    after_commit(
        scope, EntityType.BATCH, data.batch_id, ActivityAction.STOCK_ADJUSTMENT,
        changes={"quantity": {"from": previous, "to": new_quantity}, "reason": data.reason},
        note=f"Adjusted batch {number} by {data.adjustment:+d}",
    )
    return success_result(
        f"Batch quantity adjusted by {data.adjustment:+d}",
        {"batch_id": data.batch_id, "previous_quantity": previous, "new_quantity": new_quantity},
    )


@action_boundary("Failed to delete batch")
def delete_batch(db: Session, user: Optional[User], batch_id: int) -> ActionResult:
    scope = require_authed_user(user)
    batch = get_owned(db, Batch, batch_id, scope.owner_id, "Batch")

    with atomic(db):
        batch = lock_row(db, Batch, batch.id)
        number = batch.batch_number
        if batch.quantity > 0:
            raise ValidationFailed(
                "Cannot delete batch with remaining quantity. Adjust quantity to 0 first.",
                {"quantity": [f"Batch still holds {batch.quantity} units"]},
            )
        # The batch's own movements go with it
        db.delete(batch)

    after_commit(
        scope, EntityType.BATCH, batch_id, ActivityAction.DELETE, note=f"Deleted batch {number}",
    )
    return success_result("Batch deleted successfully")


def _expiry_row(batch: Batch, now: datetime, expired: bool) -> dict:
    expiry = as_naive_utc(batch.expiry_date)
    seconds = ((now - expiry) if expired else (expiry - now)).total_seconds()
    row = {
        "id": batch.id,
        "product_id": batch.product_id,
        "product_name": batch.product.name,
        "product_sku": batch.product.sku,
        "batch_number": batch.batch_number,
        "quantity": batch.quantity,
        "expiry_date": expiry,
    }
    row["days_expired" if expired else "days_until_expiry"] = math.ceil(seconds / 86400)
    return row


@action_boundary("Failed to get expiring batches")
def get_expiring_batches(
    db: Session, user: Optional[User], days_ahead: int = 30, now: Optional[datetime] = None
) -> ActionResult:
    scope = require_authed_user(user)
    now = as_naive_utc(now) or utcnow()
    horizon = now + timedelta(days=days_ahead)

    base = db.query(Batch).filter(
        Batch.user_id == scope.owner_id, Batch.quantity > 0, Batch.expiry_date.isnot(None)
    )
    expiring = (
        base.filter(Batch.expiry_date >= now, Batch.expiry_date <= horizon)
        .order_by(Batch.expiry_date)
        .all()
    )
    expired = base.filter(Batch.expiry_date < now).order_by(Batch.expiry_date).all()

    return success_result("Expiring batches fetched", {
        "expiring": [_expiry_row(b, now, expired=False) for b in expiring],
        "expired": [_expiry_row(b, now, expired=True) for b in expired],
    })
