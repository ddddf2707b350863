# backend/services/purchase_orders.py
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database import atomic
from models.product import Product
from models.purchase_order import PurchaseOrder, PurchaseOrderItem, PurchaseOrderStatus
from models.stock import MovementType, ReferenceType, StockMovement
from models.supplier import Supplier
from models.users import User
from schemas.common import ActionResult
from schemas.purchase_order import PurchaseOrderCreate, PurchaseOrderStatusUpdate, ReceivePurchaseOrder
from services.activity import ActivityAction, EntityType
from services.exceptions import (
    DuplicateKeyError, InvalidStateTransition, NotFoundError, OverReceiveError
)
from services.guard import ensure_non_negative
from services.order_status import status_after_receipt, validate_transition
from services.results import action_boundary, success_result
from services.scope import after_commit, get_owned, lock_row, locked
from utils.timeutils import as_naive_utc, utcnow
from utils.tokenJWT import require_authed_user

logger = logging.getLogger(__name__)


def next_order_number(db: Session, owner_id: int, now: Optional[datetime] = None) -> str:
    """``PO-YYYYMM-NNNN``; the sequence restarts every month."""
    now = now or utcnow()
    prefix = f"PO-{now.year}{now.month:02d}"
    latest = (
        db.query(PurchaseOrder.order_number)
        .filter(PurchaseOrder.user_id == owner_id, PurchaseOrder.order_number.like(f"{prefix}-%"))
        .order_by(PurchaseOrder.order_number.desc())
        .first()
    )
    sequence = 1
    if latest:
        try:
            sequence = int(latest[0][-4:]) + 1
        except ValueError:
            pass
    return f"{prefix}-{sequence:04d}"


def order_to_dict(order: PurchaseOrder) -> dict:
    return {
        "id": order.id,
        "order_number": order.order_number,
        "status": order.status.value,
        "supplier_id": order.supplier_id,
        "supplier_name": order.supplier.name if order.supplier else None,
        "order_date": order.order_date,
        "expected_date": order.expected_date,
        "received_date": order.received_date,
        "subtotal": order.subtotal,
        "tax": order.tax,
        "shipping_cost": order.shipping_cost,
        "total_amount": order.total_amount,
        "notes": order.notes,
        "items": [
            {
                "id": item.id,
                "product_id": item.product_id,
                "product_name": item.product_name,
                "sku": item.sku,
                "ordered_quantity": item.ordered_quantity,
                "received_quantity": item.received_quantity,
                "unit_cost": item.unit_cost,
                "total_cost": item.total_cost,
            }
            for item in order.items
        ],
    }


@action_boundary("Failed to create purchase order.")
def create_purchase_order(db: Session, user: Optional[User], data) -> ActionResult:
    scope = require_authed_user(user)
    data = PurchaseOrderCreate.model_validate(data)

    supplier = db.query(Supplier).filter(
        Supplier.id == data.supplier_id, Supplier.user_id == scope.owner_id
    ).first()
    if supplier is None:
        raise NotFoundError("Supplier not found.", {"supplier_id": ["Supplier not found."]})

    product_ids = {item.product_id for item in data.items if item.product_id is not None}
    if product_ids:
        owned = {
            pid for (pid,) in db.query(Product.id).filter(
                Product.id.in_(product_ids), Product.user_id == scope.owner_id
            )
        }
        missing = {
            f"items.{i}.product_id": ["Product not found."]
            for i, item in enumerate(data.items)
            if item.product_id is not None and item.product_id not in owned
        }
        if missing:
            raise NotFoundError("Product not found.", missing)

    subtotal = round(sum(i.ordered_quantity * i.unit_cost for i in data.items), 2)
    total = round(subtotal + data.tax + data.shipping_cost, 2)

    try:
        with atomic(db):
            order_number = next_order_number(db, scope.owner_id)
            order = PurchaseOrder(
                user_id=scope.owner_id,
                supplier_id=supplier.id,
                order_number=order_number,
                status=PurchaseOrderStatus.DRAFT,
                expected_date=as_naive_utc(data.expected_date),
                subtotal=subtotal,
                tax=data.tax,
                shipping_cost=data.shipping_cost,
                total_amount=total,
                notes=data.notes,
                items=[
                    PurchaseOrderItem(
                        product_id=i.product_id,
                        product_name=i.product_name,
                        sku=i.sku,
                        ordered_quantity=i.ordered_quantity,
                        received_quantity=0,
                        unit_cost=i.unit_cost,
                        total_cost=round(i.ordered_quantity * i.unit_cost, 2),
                    )
                    for i in data.items
                ],
            )
            db.add(order)
            db.flush()
            order_id = order.id
    except IntegrityError:
        raise DuplicateKeyError(
            "Order number is already in use, please try again.", {"order_number": ["Already exists"]}
        )

    after_commit(
        scope, EntityType.PURCHASE_ORDER, order_id, ActivityAction.CREATE,
        changes={"order_number": order_number, "total_amount": total, "item_count": len(data.items)},
        note=f"Created purchase order {order_number}",
    )
    return success_result(
        f"Purchase order {order_number} created successfully!",
        {"id": order_id, "order_number": order_number, "total_amount": total},
    )


@action_boundary("Failed to update status.")
def update_purchase_order_status(db: Session, user: Optional[User], order_id: int, status) -> ActionResult:
    scope = require_authed_user(user)
    target = PurchaseOrderStatusUpdate.model_validate({"status": status}).status
    get_owned(db, PurchaseOrder, order_id, scope.owner_id, "Purchase order")

    with atomic(db):
        order = lock_row(db, PurchaseOrder, order_id)
        current = order.status
        check = validate_transition(current, target)
        if not check.ok:
            raise InvalidStateTransition(check.error, current.value, target.value)

        order.status = target
        now = utcnow()
        if target is PurchaseOrderStatus.ORDERED:
            order.order_date = now
        elif target is PurchaseOrderStatus.RECEIVED:
            order.received_date = now

    after_commit(
        scope, EntityType.PURCHASE_ORDER, order_id, ActivityAction.UPDATE,
        changes={"status": {"from": current.value, "to": target.value}},
        note=f'Changed status from "{current.value}" to "{target.value}"',
    )
    return success_result(f'Status updated to "{target.value}".', {"id": order_id, "status": target.value})


@action_boundary("Failed to receive items.")
def receive_purchase_order_items(db: Session, user: Optional[User], data) -> ActionResult:
    """Book received quantities against the order lines.

    All lines are checked against the locked rows before the first write, so an
    over-receive on any line leaves the whole order untouched.
    """
    scope = require_authed_user(user)
    data = ReceivePurchaseOrder.model_validate(data)
    get_owned(db, PurchaseOrder, data.purchase_order_id, scope.owner_id, "Purchase order")

    with atomic(db):
        order = lock_row(db, PurchaseOrder, data.purchase_order_id)
        if order.status is PurchaseOrderStatus.CANCELLED:
            raise InvalidStateTransition(
                "Cannot receive items for a cancelled order.", order.status.value, None
            )
        if order.status is PurchaseOrderStatus.RECEIVED:
            raise InvalidStateTransition(
                "This order has already been fully received.", order.status.value, None
            )
        if order.status is PurchaseOrderStatus.DRAFT:
            raise InvalidStateTransition(
                "Mark the order as ordered before receiving items.", order.status.value, None
            )

        lines = {
            item.id: item
            for item in locked(
                db.query(PurchaseOrderItem)
                .filter(PurchaseOrderItem.purchase_order_id == order.id)
                .order_by(PurchaseOrderItem.id)
            ).all()
        }

        # A line listed twice gets the sum of both quantities
        requested = {}
        for index, received in enumerate(data.items):
            if received.item_id not in lines:
                raise NotFoundError(
                    "Purchase order item not found.", {f"items.{index}.item_id": ["Item not found."]}
                )
            requested[received.item_id] = requested.get(received.item_id, 0) + received.received_quantity

        for item_id, quantity in requested.items():
            line = lines[item_id]
            if line.received_quantity + quantity > line.ordered_quantity:
                raise OverReceiveError(line.product_name, line.ordered_quantity, line.received_quantity + quantity)

        # Same lock order as checkout and bulk adjust: products by id
        product_ids = {lines[i].product_id for i, q in requested.items() if q and lines[i].product_id}
        products = {}
        if product_ids:
            products = {
                p.id: p
                for p in locked(
                    db.query(Product).filter(Product.id.in_(product_ids)).order_by(Product.id)
                ).all()
            }

        received_total = 0
        for item_id, quantity in requested.items():
            if quantity == 0:
                continue
            line = lines[item_id]
            line.received_quantity += quantity
            received_total += quantity
            if line.product_id is None:
                continue
            product = products[line.product_id]
            product.quantity = ensure_non_negative(product.name, product.quantity, quantity)
            db.add(StockMovement(
                user_id=scope.owner_id,
                product_id=line.product_id,
                type=MovementType.RECEIVE,
                quantity=quantity,
                reference=order.order_number,
                reference_type=ReferenceType.PURCHASE_ORDER,
                notes=f"Received from PO {order.order_number}",
            ))

        previous_status = order.status
        new_status = status_after_receipt(
            previous_status, [(l.ordered_quantity, l.received_quantity) for l in lines.values()]
        )
        if new_status is not previous_status:
            check = validate_transition(previous_status, new_status)
            if not check.ok:
                raise InvalidStateTransition(check.error, previous_status.value, new_status.value)
            order.status = new_status
            if new_status is PurchaseOrderStatus.RECEIVED:
                order.received_date = utcnow()
        order_number = order.order_number

    logger.info("Received %s units on %s, status %s", received_total, order_number, new_status.value)
    after_commit(
        scope, EntityType.PURCHASE_ORDER, data.purchase_order_id, ActivityAction.RECEIVE,
        changes={
            "items": [{"item_id": k, "received_quantity": v} for k, v in requested.items()],
            "status": {"from": previous_status.value, "to": new_status.value},
        },
        note=f"Received items for PO {order_number}",
    )
    return success_result(
        "Items received successfully!",
        {"id": data.purchase_order_id, "status": new_status.value, "received_total": received_total},
    )


@action_boundary("Failed to delete purchase order.")
def delete_purchase_order(db: Session, user: Optional[User], order_id: int) -> ActionResult:
    scope = require_authed_user(user)
    get_owned(db, PurchaseOrder, order_id, scope.owner_id, "Purchase order")

    with atomic(db):
        order = lock_row(db, PurchaseOrder, order_id)
        if order.status is not PurchaseOrderStatus.DRAFT:
            raise InvalidStateTransition(
                "Only draft orders can be deleted.", order.status.value, None
            )
        order_number = order.order_number
        db.delete(order)

    after_commit(
        scope, EntityType.PURCHASE_ORDER, order_id, ActivityAction.DELETE,
        note=f"Deleted purchase order {order_number}",
    )
    return success_result("Purchase order deleted successfully!")


@action_boundary("Failed to fetch purchase order.")
def get_purchase_order(db: Session, user: Optional[User], order_id: int) -> ActionResult:
    scope = require_authed_user(user)
    order = get_owned(db, PurchaseOrder, order_id, scope.owner_id, "Purchase order")
    return success_result("Purchase order fetched.", order_to_dict(order))
