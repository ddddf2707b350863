# backend/services/locations.py
import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from database import atomic
from models.location import Location, ProductStock
from models.product import Product
from models.stock import MovementType, ReferenceType, StockMovement
from models.users import User
from schemas.common import ActionResult
from schemas.location import LocationCreate, StockTransfer
from services.activity import ActivityAction, EntityType
from services.exceptions import DuplicateKeyError, NotFoundError, ValidationFailed
from services.guard import ensure_available
from services.results import action_boundary, success_result
from services.scope import after_commit, get_owned, locked
from utils.tokenJWT import require_authed_user

logger = logging.getLogger(__name__)


def location_to_dict(location: Location) -> dict:
    return {
        "id": location.id,
        "name": location.name,
        "address": location.address,
        "is_default": location.is_default,
        "notes": location.notes,
    }


@action_boundary("Failed to create location.")
def create_location(db: Session, user: Optional[User], data) -> ActionResult:
    scope = require_authed_user(user)
    data = LocationCreate.model_validate(data)

    duplicate = db.query(Location.id).filter(
        Location.user_id == scope.owner_id, func.lower(Location.name) == data.name.lower()
    ).first()
    if duplicate:
        raise DuplicateKeyError(
            "A location with this name already exists.", {"name": ["Location name must be unique"]}
        )

    with atomic(db):
        if data.is_default:
            db.query(Location).filter(
                Location.user_id == scope.owner_id, Location.is_default.is_(True)
            ).update({Location.is_default: False}, synchronize_session=False)
        location = Location(
            user_id=scope.owner_id,
            name=data.name,
            address=data.address,
            is_default=data.is_default,
            notes=data.notes,
        )
        db.add(location)
        db.flush()
        location_id = location.id

    after_commit(
        scope, EntityType.LOCATION, location_id, ActivityAction.CREATE,
        changes={"name": data.name, "is_default": data.is_default},
        note=f"Created location: {data.name}",
    )
    return success_result("Location created successfully!", {"id": location_id})


@action_boundary("Failed to delete location.")
def delete_location(db: Session, user: Optional[User], location_id: int) -> ActionResult:
    scope = require_authed_user(user)
    location = get_owned(db, Location, location_id, scope.owner_id, "Location")
    name = location.name

    with atomic(db):
        stocks = locked(db.query(ProductStock).filter(ProductStock.location_id == location.id)).all()
        held = sum(s.quantity for s in stocks)
        if held > 0:
            raise ValidationFailed(
                "Cannot delete location with existing stock. Transfer or remove stock first.",
                {"location_id": [f"Location still holds {held} units"]},
            )
        # Empty stock rows go with the location
        db.delete(location)

    after_commit(
        scope, EntityType.LOCATION, location_id, ActivityAction.DELETE,
        note=f"Deleted location: {name}",
    )
    return success_result("Location deleted successfully!")


@action_boundary("Failed to fetch locations.")
def get_locations(db: Session, user: Optional[User]) -> ActionResult:
    scope = require_authed_user(user)
    locations = (
        db.query(Location)
        .filter(Location.user_id == scope.owner_id)
        .order_by(Location.is_default.desc(), Location.name)
        .all()
    )
    return success_result("Locations fetched.", [location_to_dict(l) for l in locations])


@action_boundary("Failed to transfer stock.")
def transfer_stock(db: Session, user: Optional[User], data) -> ActionResult:
    """Move units of one product between two locations.

    Product.quantity is untouched: the units stay in the tenant's total stock.
    Both sides get a ``transfer`` movement whose reference is the other location.
    """
    scope = require_authed_user(user)
    data = StockTransfer.model_validate(data)

    product = get_owned(db, Product, data.product_id, scope.owner_id, "Product")
    source = db.query(Location).filter(
        Location.id == data.from_location_id, Location.user_id == scope.owner_id
    ).first()
    if source is None:
        raise NotFoundError("Source location not found.")
    target = db.query(Location).filter(
        Location.id == data.to_location_id, Location.user_id == scope.owner_id
    ).first()
    if target is None:
        raise NotFoundError("Destination location not found.")
    product_name, source_name, target_name = product.name, source.name, target.name
    suffix = f": {data.notes}" if data.notes else ""

    with atomic(db):
        # Lock in a fixed order so two opposite transfers cannot deadlock
        rows = {
            s.location_id: s
            for s in locked(
                db.query(ProductStock)
                .filter(
                    ProductStock.product_id == product.id,
                    ProductStock.location_id.in_([source.id, target.id]),
                )
                .order_by(ProductStock.location_id)
            ).all()
        }
        source_stock = rows.get(source.id)
        available = source_stock.quantity if source_stock else 0
        remaining = ensure_available(product_name, available, data.quantity, where=source_name)

        source_stock.quantity = remaining
        target_stock = rows.get(target.id)
        if target_stock is None:
            db.add(ProductStock(product_id=product.id, location_id=target.id, quantity=data.quantity))
        else:
            target_stock.quantity += data.quantity

        db.add_all([
            StockMovement(
                user_id=scope.owner_id,
                product_id=product.id,
                location_id=source.id,
                type=MovementType.TRANSFER,
                quantity=-data.quantity,
                reference=str(target.id),
                reference_type=ReferenceType.TRANSFER,
                notes=f"Transfer to {target_name}{suffix}",
            ),
            StockMovement(
                user_id=scope.owner_id,
                product_id=product.id,
                location_id=target.id,
                type=MovementType.TRANSFER,
                quantity=data.quantity,
                reference=str(source.id),
                reference_type=ReferenceType.TRANSFER,
                notes=f"Transfer from {source_name}{suffix}",
            ),
        ])

    logger.info(
        "Transferred %s of product %s from location %s to %s",
        data.quantity, data.product_id, data.from_location_id, data.to_location_id,
    )
    after_commit(
        scope, EntityType.STOCK, data.product_id, ActivityAction.TRANSFER,
        changes={
            "from_location_id": data.from_location_id,
            "to_location_id": data.to_location_id,
            "quantity": data.quantity,
        },
        note=f"Transferred {data.quantity} of {product_name} from {source_name} to {target_name}",
    )
    return success_result(
        f"Transferred {data.quantity} units from {source_name} to {target_name}",
        {"product_id": data.product_id, "from_quantity": remaining},
    )


@action_boundary("Failed to get product stock.")
def get_product_stock_by_location(db: Session, user: Optional[User], product_id: int) -> ActionResult:
    scope = require_authed_user(user)
    get_owned(db, Product, product_id, scope.owner_id, "Product")
    stocks = (
        db.query(ProductStock)
        .join(Location, ProductStock.location_id == Location.id)
        .filter(ProductStock.product_id == product_id)
        .order_by(Location.name)
        .all()
    )
    return success_result("Product stock fetched.", [
        {
            "location_id": s.location_id,
            "location_name": s.location.name,
            "is_default": s.location.is_default,
            "quantity": s.quantity,
        }
        for s in stocks
    ])
