# backend/services/reorder.py
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from database import atomic
from models.product import Product
from models.reorder import ReorderRule
from models.supplier import Supplier
from models.users import User
from schemas.common import ActionResult
from schemas.reorder import ReorderRuleCreate, ReorderRuleUpdate
from services.activity import ActivityAction, EntityType
from services.cache import ReadCache, cache_key, cached, read_cache
from services.exceptions import DuplicateKeyError
from services.results import action_boundary, success_result
from services.scope import after_commit, get_owned
from utils.tokenJWT import require_authed_user

URGENCY_ORDER = {"critical": 0, "warning": 1, "normal": 2}

# Products without a rule get 2x their low-stock threshold, at least this many
MIN_DEFAULT_REORDER = 10


def calculate_urgency(current: int, reorder_point: int) -> str:
    if current <= 0:
        return "critical"
    if reorder_point <= 0:
        return "normal"
    ratio = current / reorder_point
    if ratio <= 0.5:
        return "critical"
    if ratio <= 1:
        return "warning"
    return "normal"


def _suggestion(product: Product, reorder_point: int, quantity: int, supplier, rule_id) -> dict:
    return {
        "product_id": product.id,
        "product_name": product.name,
        "sku": product.sku,
        "current_stock": product.quantity,
        "reorder_point": reorder_point,
        "suggested_quantity": quantity,
        "supplier_id": supplier.id if supplier else None,
        "supplier_name": supplier.name if supplier else None,
        "rule_id": rule_id,
        "urgency": calculate_urgency(product.quantity, reorder_point),
    }


def build_reorder_suggestions(db: Session, owner_id: int) -> List[dict]:
    suggestions = []

    rules = (
        db.query(ReorderRule)
        .options(joinedload(ReorderRule.product), joinedload(ReorderRule.supplier))
        .filter(ReorderRule.user_id == owner_id, ReorderRule.is_active.is_(True))
        .all()
    )
    for rule in rules:
        if rule.product.quantity <= rule.reorder_point:
            suggestions.append(
                _suggestion(rule.product, rule.reorder_point, rule.reorder_quantity, rule.supplier, rule.id)
            )

    # Any rule, even an inactive one, replaces the default heuristic
    without_rule = (
        db.query(Product)
        .outerjoin(ReorderRule, ReorderRule.product_id == Product.id)
        .filter(
            Product.user_id == owner_id,
            Product.low_stock_at.isnot(None),
            Product.low_stock_at > 0,
            ReorderRule.id.is_(None),
            Product.quantity <= Product.low_stock_at,
        )
        .all()
    )
    for product in without_rule:
        quantity = max(MIN_DEFAULT_REORDER, product.low_stock_at * 2)
        suggestions.append(_suggestion(product, product.low_stock_at, quantity, product.supplier, None))

    suggestions.sort(key=lambda s: (URGENCY_ORDER[s["urgency"]], s["product_name"]))
    return suggestions


@action_boundary("Failed to get reorder suggestions")
def get_reorder_suggestions(db: Session, user: Optional[User], cache: ReadCache = read_cache) -> ActionResult:
    scope = require_authed_user(user)
    data = cached(
        cache,
        cache_key(scope.owner_id, "reorder", "suggestions"),
        lambda: build_reorder_suggestions(db, scope.owner_id),
    )
    return success_result("Reorder suggestions fetched", data)


@action_boundary("Failed to get reorder stats")
def get_reorder_stats(db: Session, user: Optional[User], cache: ReadCache = read_cache) -> ActionResult:
    scope = require_authed_user(user)
    total = db.query(ReorderRule).filter(ReorderRule.user_id == scope.owner_id).count()
    active = db.query(ReorderRule).filter(
        ReorderRule.user_id == scope.owner_id, ReorderRule.is_active.is_(True)
    ).count()
    suggestions = cached(
        cache,
        cache_key(scope.owner_id, "reorder", "suggestions"),
        lambda: build_reorder_suggestions(db, scope.owner_id),
    )
    return success_result("Reorder stats fetched", {
        "total_rules": total,
        "active_rules": active,
        "pending_suggestions": len(suggestions),
        "critical_items": sum(1 for s in suggestions if s["urgency"] == "critical"),
    })


def rule_to_dict(rule: ReorderRule) -> dict:
    return {
        "id": rule.id,
        "product_id": rule.product_id,
        "product_name": rule.product.name if rule.product else None,
        "reorder_point": rule.reorder_point,
        "reorder_quantity": rule.reorder_quantity,
        "supplier_id": rule.supplier_id,
        "is_active": rule.is_active,
    }


@action_boundary("Failed to fetch reorder rules")
def get_reorder_rules(db: Session, user: Optional[User]) -> ActionResult:
    scope = require_authed_user(user)
    rules = (
        db.query(ReorderRule)
        .filter(ReorderRule.user_id == scope.owner_id)
        .order_by(ReorderRule.created_at.desc(), ReorderRule.id.desc())
        .all()
    )
    return success_result("Reorder rules fetched", [rule_to_dict(r) for r in rules])


@action_boundary("Failed to create reorder rule")
def create_reorder_rule(db: Session, user: Optional[User], data) -> ActionResult:
    scope = require_authed_user(user)
    data = ReorderRuleCreate.model_validate(data)
    product = get_owned(db, Product, data.product_id, scope.owner_id, "Product")
    if data.supplier_id is not None:
        get_owned(db, Supplier, data.supplier_id, scope.owner_id, "Supplier")
    if db.query(ReorderRule.id).filter(ReorderRule.product_id == product.id).first():
        raise DuplicateKeyError(
            "A reorder rule already exists for this product",
            {"product_id": ["Product already has a reorder rule"]},
        )

    with atomic(db):
        rule = ReorderRule(user_id=scope.owner_id, **data.model_dump())
        db.add(rule)
        db.flush()
        rule_id = rule.id

    after_commit(
        scope, EntityType.REORDER_RULE, rule_id, ActivityAction.CREATE,
        changes=data.model_dump(), note=f"Created reorder rule for {product.name}",
    )
    return success_result("Reorder rule created", {"id": rule_id})


@action_boundary("Failed to update reorder rule")
def update_reorder_rule(db: Session, user: Optional[User], rule_id: int, data) -> ActionResult:
    scope = require_authed_user(user)
    data = ReorderRuleUpdate.model_validate(data)
    rule = get_owned(db, ReorderRule, rule_id, scope.owner_id, "Reorder rule")
    fields = data.model_dump(exclude_unset=True)
    if fields.get("supplier_id") is not None:
        get_owned(db, Supplier, fields["supplier_id"], scope.owner_id, "Supplier")

    with atomic(db):
        for name, value in fields.items():
            if value is None and name != "supplier_id":
                continue
            setattr(rule, name, value)

    after_commit(scope, EntityType.REORDER_RULE, rule_id, ActivityAction.UPDATE, changes=fields)
    return success_result("Reorder rule updated", {"id": rule_id})


@action_boundary("Failed to delete reorder rule")
def delete_reorder_rule(db: Session, user: Optional[User], rule_id: int) -> ActionResult:
    scope = require_authed_user(user)
    rule = get_owned(db, ReorderRule, rule_id, scope.owner_id, "Reorder rule")
    with atomic(db):
        db.delete(rule)
    after_commit(scope, EntityType.REORDER_RULE, rule_id, ActivityAction.DELETE)
    return success_result("Reorder rule deleted")


@action_boundary("Failed to toggle reorder rule")
def toggle_reorder_rule(db: Session, user: Optional[User], rule_id: int) -> ActionResult:
    scope = require_authed_user(user)
    rule = get_owned(db, ReorderRule, rule_id, scope.owner_id, "Reorder rule")
    with atomic(db):
        rule.is_active = not rule.is_active
        is_active = rule.is_active
    after_commit(
        scope, EntityType.REORDER_RULE, rule_id, ActivityAction.UPDATE,
        changes={"is_active": is_active},
    )
    return success_result(
        f"Reorder rule {'activated' if is_active else 'deactivated'}", {"id": rule_id, "is_active": is_active}
    )
