# backend/services/alerts.py
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from models.product import Product
from models.users import User
from schemas.common import ActionResult
from services.cache import ReadCache, cache_key, cached, read_cache
from services.results import action_boundary, success_result
from utils.tokenJWT import require_authed_user

# Low stock at or below this share of the threshold is critical
CRITICAL_SHARE = 0.25


def classify_alert(quantity: int, threshold: Optional[int]):
    """``(alert_type, severity)`` for a product, or None when stock is fine."""
    if quantity <= 0:
        return "out_of_stock", "critical"
    if threshold is not None and quantity <= threshold:
        share = quantity / threshold if threshold > 0 else 0
        return "low_stock", "critical" if share <= CRITICAL_SHARE else "warning"
    return None


def build_stock_alerts(db: Session, owner_id: int) -> List[dict]:
    products = (
        db.query(Product)
        .filter(
            Product.user_id == owner_id,
            or_(Product.quantity <= 0, Product.low_stock_at.isnot(None)),
        )
        .order_by(Product.quantity, Product.name)
        .all()
    )
    alerts = []
    for product in products:
        kind = classify_alert(product.quantity, product.low_stock_at)
        if kind is None:
            continue
        alert_type, severity = kind
        if alert_type == "out_of_stock":
            message = f"{product.name} is out of stock"
        else:
            message = (
                f"{product.name} is running low "
                f"({product.quantity} remaining, threshold: {product.low_stock_at})"
            )
        alerts.append({
            "product_id": product.id,
            "product_name": product.name,
            "sku": product.sku,
            "current_stock": product.quantity,
            "low_stock_threshold": product.low_stock_at,
            "alert_type": alert_type,
            "severity": severity,
            "message": message,
        })
    return alerts


@action_boundary("Failed to fetch low stock products")
def get_low_stock_products(db: Session, user: Optional[User]) -> ActionResult:
    scope = require_authed_user(user)
    products = (
        db.query(Product)
        .filter(
            Product.user_id == scope.owner_id,
            Product.low_stock_at.isnot(None),
            Product.quantity <= Product.low_stock_at,
        )
        .order_by(Product.quantity, Product.name)
        .all()
    )
    return success_result("Low stock products fetched", [
        {
            "product_id": p.id,
            "product_name": p.name,
            "sku": p.sku,
            "quantity": p.quantity,
            "low_stock_at": p.low_stock_at,
        }
        for p in products
    ])


@action_boundary("Failed to fetch stock alerts")
def get_stock_alerts(db: Session, user: Optional[User], cache: ReadCache = read_cache) -> ActionResult:
    scope = require_authed_user(user)
    alerts = cached(
        cache, cache_key(scope.owner_id, "alerts"), lambda: build_stock_alerts(db, scope.owner_id)
    )
    return success_result("Stock alerts fetched", alerts)


@action_boundary("Failed to fetch stock alert summary")
def get_stock_alert_summary(db: Session, user: Optional[User], cache: ReadCache = read_cache) -> ActionResult:
    scope = require_authed_user(user)
    alerts = cached(
        cache, cache_key(scope.owner_id, "alerts"), lambda: build_stock_alerts(db, scope.owner_id)
    )
    critical = sum(1 for a in alerts if a["severity"] == "critical")
    return success_result("Stock alert summary fetched", {
        "total_alerts": len(alerts),
        "critical_alerts": critical,
        "warning_alerts": len(alerts) - critical,
        "out_of_stock": sum(1 for a in alerts if a["alert_type"] == "out_of_stock"),
        "low_stock": sum(1 for a in alerts if a["alert_type"] == "low_stock"),
    })
