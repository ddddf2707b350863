# backend/services/stock.py
"""
Stock counters and the movement ledger.

Every change to ``Product.quantity`` made here writes at least one ``StockMovement``
in the same transaction, and the guard always checks a quantity that was read
under a row lock inside that transaction.
"""
import logging
from collections import OrderedDict
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database import atomic
from models.location import Location, ProductStock
from models.product import Category, Product
from models.stock import MovementType, ReferenceType, StockMovement
from models.supplier import Supplier
from models.users import User
from schemas.common import ActionResult
from schemas.product import ProductImport
from schemas.stock import BulkAdjustment, BulkDelete, MovementFilters, StockAdjustment
from services.activity import ActivityAction, EntityType
from services.exceptions import DuplicateKeyError, NotFoundError, ValidationFailed
from services.guard import ensure_non_negative
from services.results import action_boundary, success_result
from services.scope import after_commit, get_owned, lock_row, locked
from utils.tokenJWT import require_authed_user

logger = logging.getLogger(__name__)


def movement_to_dict(m: StockMovement) -> dict:
    return {
        "id": m.id,
        "product_id": m.product_id,
        "product_name": m.product.name if m.product else None,
        "location_id": m.location_id,
        "location_name": m.location.name if m.location else None,
        "batch_id": m.batch_id,
        "type": m.type.value,
        "quantity": m.quantity,
        "reference": m.reference,
        "reference_type": m.reference_type.value if m.reference_type else None,
        "notes": m.notes,
        "created_at": m.created_at,
    }


def _adjust_location_stock(db: Session, product: Product, location: Location, delta: int) -> int:
    stock = locked(
        db.query(ProductStock).filter(
            ProductStock.product_id == product.id,
            ProductStock.location_id == location.id,
        )
    ).first()
    current = stock.quantity if stock else 0
    new_quantity = ensure_non_negative(f"{product.name} at {location.name}", current, delta)
    if stock is None:
        db.add(ProductStock(product_id=product.id, location_id=location.id, quantity=new_quantity))
    else:
        stock.quantity = new_quantity
    return new_quantity


@action_boundary("Failed to adjust stock.")
def adjust_stock(db: Session, user: Optional[User], data) -> ActionResult:
    scope = require_authed_user(user)
    data = StockAdjustment.model_validate(data)

    product = get_owned(db, Product, data.product_id, scope.owner_id, "Product")
    location = None
    if data.location_id is not None:
        location = get_owned(db, Location, data.location_id, scope.owner_id, "Location")

    with atomic(db):
        product = lock_row(db, Product, product.id)
        product_name = product.name
        previous = product.quantity
        new_quantity = ensure_non_negative(product_name, previous, data.adjustment)
        product.quantity = new_quantity
        if location is not None:
            _adjust_location_stock(db, product, location, data.adjustment)

        db.add(StockMovement(
            user_id=scope.owner_id,
            product_id=product.id,
            location_id=data.location_id,
            type=MovementType.ADJUSTMENT,
            quantity=data.adjustment,
            notes=data.reason or "Manual stock adjustment",
        ))

    logger.info("Stock adjusted for product %s: %s -> %s", data.product_id, previous, new_quantity)
    after_commit(
        scope, EntityType.PRODUCT, data.product_id, ActivityAction.STOCK_ADJUSTMENT,
        changes={"quantity": {"from": previous, "to": new_quantity}, "reason": data.reason},
        note=f"Adjusted stock of {product_name} by {data.adjustment:+d}",
    )
    return success_result(
        "Stock adjusted successfully.",
        {"product_id": data.product_id, "previous_quantity": previous, "new_quantity": new_quantity},
    )


@action_boundary("Failed to adjust stock.")
def bulk_adjust_stock(db: Session, user: Optional[User], adjustments) -> ActionResult:
    scope = require_authed_user(user)
    if isinstance(adjustments, (list, tuple)):
        adjustments = {"adjustments": adjustments}
    payload = BulkAdjustment.model_validate(adjustments)
    lines = payload.adjustments

    # Net change per product, in first-seen order
    deltas: Dict[int, int] = OrderedDict()
    for line in lines:
        deltas[line.product_id] = deltas.get(line.product_id, 0) + line.adjustment

    owned = db.query(func.count(Product.id)).filter(
        Product.id.in_(deltas.keys()), Product.user_id == scope.owner_id
    ).scalar()
    if owned != len(deltas):
        raise NotFoundError("Some products not found or access denied.")

    with atomic(db):
        products = {
            p.id: p
            for p in locked(
                db.query(Product).filter(Product.id.in_(deltas.keys())).order_by(Product.id)
            ).all()
        }

        # Check every product before touching any of them
        changes = []
        for product_id, delta in deltas.items():
            product = products[product_id]
            new_quantity = ensure_non_negative(product.name, product.quantity, delta)
            changes.append({
                "product_id": product_id,
                "product_name": product.name,
                "previous_quantity": product.quantity,
                "new_quantity": new_quantity,
            })

        for change in changes:
            products[change["product_id"]].quantity = change["new_quantity"]
        for line in lines:
            db.add(StockMovement(
                user_id=scope.owner_id,
                product_id=line.product_id,
                type=MovementType.ADJUSTMENT,
                quantity=line.adjustment,
                notes=line.reason or "Bulk stock adjustment",
            ))

    after_commit(
        scope, EntityType.PRODUCT, lines[0].product_id, ActivityAction.STOCK_ADJUSTMENT,
        changes={"operation": "bulk_stock_adjustment", "adjustments": changes, "count": len(changes)},
        note=f"Bulk adjusted stock for {len(changes)} products",
    )
    return success_result(
        f"Successfully adjusted stock for {len(changes)} products.",
        {"updated_count": len(changes), "movement_count": len(lines)},
    )


@action_boundary("Failed to delete products.")
def bulk_delete_products(db: Session, user: Optional[User], product_ids) -> ActionResult:
    scope = require_authed_user(user)
    ids = list(dict.fromkeys(BulkDelete.model_validate({"product_ids": product_ids}).product_ids))

    products = db.query(Product).filter(Product.id.in_(ids), Product.user_id == scope.owner_id).all()
    if len(products) != len(ids):
        raise NotFoundError("Some products not found or access denied.")
    names = [p.name for p in products]

    try:
        with atomic(db):
            for product in products:
                db.delete(product)
    except IntegrityError:
        raise ValidationFailed(
            "Some products cannot be deleted because they have sales history.",
            {"product_ids": ["Referenced by existing sales"]},
        )

    after_commit(
        scope, EntityType.PRODUCT, ids[0], ActivityAction.DELETE,
        changes={"operation": "bulk_delete", "product_ids": ids, "product_names": names, "count": len(ids)},
        note=f"Bulk deleted {len(ids)} products",
    )
    return success_result(f"Successfully deleted {len(ids)} products.", {"deleted_count": len(ids)})


def _resolve_by_name(db: Session, model, owner_id: int, names) -> Dict[str, int]:
    """Map lower-cased names to ids, creating the rows that do not exist yet."""
    wanted = {n.lower(): n for n in names if n}
    if not wanted:
        return {}
    found = {
        row.name.lower(): row.id
        for row in db.query(model).filter(
            model.user_id == owner_id, func.lower(model.name).in_(wanted.keys())
        ).all()
    }
    for key, name in wanted.items():
        if key not in found:
            row = model(user_id=owner_id, name=name)
            db.add(row)
            db.flush()
            found[key] = row.id
    return found


@action_boundary("Failed to import products.")
def bulk_import_products(db: Session, user: Optional[User], rows) -> ActionResult:
    scope = require_authed_user(user)
    if isinstance(rows, (list, tuple)):
        rows = {"rows": rows}
    rows = ProductImport.model_validate(rows).rows

    errors: Dict[str, List[str]] = {}
    seen: Dict[str, int] = {}
    for index, row in enumerate(rows):
        if row.sku is None:
            continue
        if row.sku in seen:
            errors.setdefault(f"rows.{index}.sku", []).append(
                f"Duplicate SKU {row.sku} (also on row {seen[row.sku] + 1})"
            )
        else:
            seen[row.sku] = index
    if errors:
        raise ValidationFailed("Validation errors in import data.", errors)

    if seen:
        existing = {
            sku for (sku,) in db.query(Product.sku).filter(
                Product.user_id == scope.owner_id, Product.sku.in_(seen.keys())
            )
        }
        if existing:
            raise DuplicateKeyError(
                "Some SKUs already exist.",
                {f"rows.{seen[sku]}.sku": [f"SKU {sku} already exists"] for sku in sorted(existing)},
            )

    with atomic(db):
        categories = _resolve_by_name(db, Category, scope.owner_id, [r.category for r in rows])
        suppliers = _resolve_by_name(db, Supplier, scope.owner_id, [r.supplier for r in rows])

        created = []
        for row in rows:
            product = Product(
                user_id=scope.owner_id,
                name=row.name,
                sku=row.sku,
                manufacturer=row.manufacturer,
                category_id=categories.get(row.category.lower()) if row.category else None,
                supplier_id=suppliers.get(row.supplier.lower()) if row.supplier else None,
                price=row.price,
                quantity=row.quantity,
                low_stock_at=row.low_stock_at,
                notes=row.notes,
            )
            db.add(product)
            db.flush()
            if row.quantity > 0:
                db.add(StockMovement(
                    user_id=scope.owner_id,
                    product_id=product.id,
                    type=MovementType.IN,
                    quantity=row.quantity,
                    reference="import",
                    reference_type=ReferenceType.IMPORT,
                    notes="Opening stock from import",
                ))
            created.append(product.id)

    after_commit(
        scope, EntityType.PRODUCT, created[0], ActivityAction.CREATE,
        changes={"operation": "bulk_import", "count": len(created)},
        note=f"Bulk imported {len(created)} products",
    )
    return success_result(
        f"Successfully imported {len(created)} products.", {"imported_count": len(created)}
    )


# --- Ledger reads ---

@action_boundary("Failed to fetch stock movements.")
def get_stock_movements(db: Session, user: Optional[User], filters=None) -> ActionResult:
    scope = require_authed_user(user)
    filters = MovementFilters.model_validate(filters or {})

    query = db.query(StockMovement).filter(StockMovement.user_id == scope.owner_id)
    if filters.product_id is not None:
        query = query.filter(StockMovement.product_id == filters.product_id)
    if filters.location_id is not None:
        query = query.filter(StockMovement.location_id == filters.location_id)
    if filters.type is not None:
        query = query.filter(StockMovement.type == filters.type)
    if filters.reference:
        query = query.filter(StockMovement.reference.ilike(f"%{filters.reference}%"))
    if filters.date_from is not None:
        query = query.filter(StockMovement.created_at >= filters.date_from)
    if filters.date_to is not None:
        query = query.filter(StockMovement.created_at <= filters.date_to)

    movements = (
        query.order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
        .limit(filters.limit)
        .all()
    )
    return success_result("Stock movements fetched.", [movement_to_dict(m) for m in movements])


def summarize_movements(rows) -> dict:
    """Fold ``(type, quantity_sum, row_count)`` rows into the ledger summary."""
    sums = {t: 0 for t in MovementType}
    counts = {t: 0 for t in MovementType}
    for movement_type, quantity_sum, count in rows:
        movement_type = MovementType(movement_type)
        sums[movement_type] += int(quantity_sum or 0)
        counts[movement_type] += int(count or 0)

    summary = {}
    for movement_type in MovementType:
        if movement_type in (MovementType.IN, MovementType.RECEIVE):
            summary["total_in"] = summary.get("total_in", 0) + sums[movement_type]
            summary["total_in_count"] = summary.get("total_in_count", 0) + counts[movement_type]
        elif movement_type is MovementType.OUT:
            summary["total_out"] = abs(sums[movement_type])
            summary["total_out_count"] = counts[movement_type]
        elif movement_type is MovementType.ADJUSTMENT:
            summary["adjustments"] = sums[movement_type]
            summary["adjustment_count"] = counts[movement_type]
        elif movement_type is MovementType.TRANSFER:
            # Each transfer writes one row per side
            summary["transfer_count"] = counts[movement_type] // 2
        else:
            raise ValueError(f"Unhandled movement type {movement_type!r}")
    return summary


@action_boundary("Failed to summarize stock movements.")
def get_movement_summary(db: Session, user: Optional[User], filters=None) -> ActionResult:
    scope = require_authed_user(user)
    filters = MovementFilters.model_validate(filters or {})

    query = db.query(
        StockMovement.type, func.sum(StockMovement.quantity), func.count(StockMovement.id)
    ).filter(StockMovement.user_id == scope.owner_id)
    if filters.product_id is not None:
        query = query.filter(StockMovement.product_id == filters.product_id)
    if filters.location_id is not None:
        query = query.filter(StockMovement.location_id == filters.location_id)
    if filters.date_from is not None:
        query = query.filter(StockMovement.created_at >= filters.date_from)
    if filters.date_to is not None:
        query = query.filter(StockMovement.created_at <= filters.date_to)

    return success_result(
        "Movement summary fetched.", summarize_movements(query.group_by(StockMovement.type).all())
    )


@action_boundary("Failed to fetch movement history.")
def get_product_movement_history(
    db: Session, user: Optional[User], product_id: int, limit: int = 50
) -> ActionResult:
    scope = require_authed_user(user)
    get_owned(db, Product, product_id, scope.owner_id, "Product")
    movements = (
        db.query(StockMovement)
        .filter(StockMovement.product_id == product_id, StockMovement.user_id == scope.owner_id)
        .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
        .limit(limit)
        .all()
    )
    return success_result("Movement history fetched.", [movement_to_dict(m) for m in movements])


@action_boundary("Failed to reconcile stock.")
def get_stock_reconciliation(db: Session, user: Optional[User], product_id: int) -> ActionResult:
    """Compare the product total with its per-location rows.

    The two counters are allowed to differ (unlocated stock); ``drift`` only flags
    the case that cannot be explained that way, located stock above the total.
    """
    scope = require_authed_user(user)
    product = get_owned(db, Product, product_id, scope.owner_id, "Product")
    located = db.query(func.coalesce(func.sum(ProductStock.quantity), 0)).filter(
        ProductStock.product_id == product.id
    ).scalar()
    ledger_total = db.query(func.coalesce(func.sum(StockMovement.quantity), 0)).filter(
        StockMovement.product_id == product.id,
        StockMovement.type != MovementType.TRANSFER,
    ).scalar()
    return success_result("Stock reconciliation fetched.", {
        "product_id": product.id,
        "total": product.quantity,
        "located": int(located),
        "unlocated": product.quantity - int(located),
        "ledger_total": int(ledger_total),
        "drift": int(located) > product.quantity,
    })
