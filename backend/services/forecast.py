# backend/services/forecast.py
"""
Sales-based demand forecasting.

Only completed sales count. Both calculators are read-only; the inventory forecast
is cached per tenant and dropped on the next write for that tenant.
"""
import math
from datetime import datetime, timedelta
from typing import Optional

import pandas as pd
from sqlalchemy.orm import Session

from models.product import Product
from models.sale import SALE_COMPLETED, Sale, SaleItem
from models.users import User
from schemas.common import ActionResult
from services.cache import ReadCache, cache_key, cached, read_cache
from services.exceptions import ValidationFailed
from services.results import action_boundary, success_result
from services.scope import get_owned
from utils.timeutils import as_naive_utc, utcnow
from utils.tokenJWT import require_authed_user

# Supplier lead time plus safety buffer, in days
LEAD_TIME_DAYS = 7
BUFFER_DAYS = 7
MIN_REORDER_QUANTITY = 10

TREND_UP = 1.2
TREND_DOWN = 0.8
SEASONALITY_FACTOR = 1.5

SALES_COLUMNS = ["product_id", "product_name", "quantity", "created_at"]


def classify_trend(older_avg: float, recent_avg: float) -> str:
    if recent_avg > older_avg * TREND_UP:
        return "increasing"
    if recent_avg < older_avg * TREND_DOWN:
        return "decreasing"
    return "stable"


def load_sales_frame(
    db: Session, owner_id: int, start: datetime, end: datetime, product_id: Optional[int] = None
) -> pd.DataFrame:
    """Completed sale lines in ``[start, end]`` as one row per line, timestamps naive UTC."""
    query = (
        db.query(SaleItem.product_id, SaleItem.product_name, SaleItem.quantity, Sale.created_at)
        .join(Sale, SaleItem.sale_id == Sale.id)
        .filter(
            Sale.user_id == owner_id,
            Sale.status == SALE_COMPLETED,
            Sale.created_at >= start,
            Sale.created_at <= end,
            SaleItem.product_id.isnot(None),
        )
    )
    if product_id is not None:
        query = query.filter(SaleItem.product_id == product_id)

    rows = query.all()
    if not rows:
        return pd.DataFrame(columns=SALES_COLUMNS)
    frame = pd.DataFrame([tuple(r) for r in rows], columns=SALES_COLUMNS)
    frame["created_at"] = pd.to_datetime(frame["created_at"], utc=True).dt.tz_convert(None)
    return frame


def build_inventory_forecast(
    db: Session, owner_id: int, days_to_analyze: int, days_to_forecast: int, now: datetime
) -> list:
    start = now - timedelta(days=days_to_analyze)
    sales = load_sales_frame(db, owner_id, start, now)
    if sales.empty:
        return []

    midpoint = max(days_to_analyze // 2, 1)
    recent_start = pd.Timestamp(now - timedelta(days=midpoint))
    sales["recent"] = sales["quantity"].where(sales["created_at"] >= recent_start, 0)
    per_product = sales.groupby("product_id").agg(total=("quantity", "sum"), recent=("recent", "sum"))

    products = db.query(Product).filter(
        Product.user_id == owner_id, Product.id.in_([int(i) for i in per_product.index])
    ).all()

    forecasts = []
    for product in products:
        total = int(per_product.at[product.id, "total"])
        recent = int(per_product.at[product.id, "recent"])
        avg_daily = total / days_to_analyze

        days_left = None
        stockout_date = None
        if avg_daily > 0 and product.quantity > 0:
            days_left = math.floor(product.quantity / avg_daily)
            stockout_date = now + timedelta(days=days_left)
        elif product.quantity == 0:
            days_left = 0
            stockout_date = now

        forecasts.append({
            "product_id": product.id,
            "product_name": product.name,
            "current_stock": product.quantity,
            "average_daily_sales": round(avg_daily, 2),
            "estimated_stockout_date": stockout_date,
            "days_until_stockout": days_left,
            "recommended_reorder_point": math.ceil(avg_daily * (LEAD_TIME_DAYS + BUFFER_DAYS)),
            "recommended_reorder_quantity": max(
                math.ceil(avg_daily * days_to_forecast), product.low_stock_at or MIN_REORDER_QUANTITY
            ),
            "trend": classify_trend((total - recent) / midpoint, recent / midpoint),
        })

    # Soonest stockout first, products that never run out last
    forecasts.sort(key=lambda f: (f["days_until_stockout"] is None, f["days_until_stockout"] or 0))
    return forecasts


@action_boundary("Failed to calculate inventory forecast")
def get_inventory_forecast(
    db: Session,
    user: Optional[User],
    days_to_analyze: int = 30,
    days_to_forecast: int = 30,
    now: Optional[datetime] = None,
    cache: ReadCache = read_cache,
) -> ActionResult:
    scope = require_authed_user(user)
    if days_to_analyze <= 0 or days_to_forecast <= 0:
        raise ValidationFailed(
            "Forecast windows must be positive.", {"days_to_analyze": ["Must be greater than 0"]}
        )
    as_of = as_naive_utc(now) or utcnow()
    key = cache_key(
        scope.owner_id, "forecast", "inventory", days_to_analyze, days_to_forecast,
        now.isoformat() if now else "live",
    )
    data = cached(
        cache, key,
        lambda: build_inventory_forecast(db, scope.owner_id, days_to_analyze, days_to_forecast, as_of),
    )
    return success_result("Inventory forecast calculated", data)


def weekly_buckets(sales: pd.DataFrame, now: datetime, weeks: int) -> pd.Series:
    """Quantity per 7-day window counted back from ``now``; index 0 is the latest week."""
    if sales.empty:
        return pd.Series([0] * weeks, index=range(weeks), dtype="int64")
    age = pd.Timestamp(now) - sales["created_at"]
    # A sale exactly at the window start belongs to the oldest week
    week = (age // pd.Timedelta(days=7)).astype(int).clip(upper=weeks - 1)
    return sales["quantity"].groupby(week).sum().reindex(range(weeks), fill_value=0).astype("int64")


@action_boundary("Failed to calculate demand forecast")
def get_product_demand_forecast(
    db: Session,
    user: Optional[User],
    product_id: int,
    days_to_analyze: int = 90,
    now: Optional[datetime] = None,
) -> ActionResult:
    scope = require_authed_user(user)
    if days_to_analyze <= 0:
        raise ValidationFailed(
            "Forecast window must be positive.", {"days_to_analyze": ["Must be greater than 0"]}
        )
    product = get_owned(db, Product, product_id, scope.owner_id, "Product")
    now = as_naive_utc(now) or utcnow()

    sales = load_sales_frame(
        db, scope.owner_id, now - timedelta(days=days_to_analyze), now, product_id=product.id
    )
    total = int(sales["quantity"].sum()) if not sales.empty else 0
    avg_daily = total / days_to_analyze

    weeks = math.ceil(days_to_analyze / 7)
    buckets = weekly_buckets(sales, now, weeks)
    by_week = []
    for index in reversed(range(weeks)):
        week_end = now - timedelta(days=7 * index)
        by_week.append({
            "week_start": (week_end - timedelta(days=7)).date().isoformat(),
            "week_end": week_end.date().isoformat(),
            "quantity_sold": int(buckets[index]),
        })

    # Chronological halves: older weeks first
    half = weeks // 2
    quantities = [w["quantity_sold"] for w in by_week]
    first, second = quantities[:half], quantities[half:]
    trend = "stable"
    if first:
        trend = classify_trend(sum(first) / len(first), sum(second) / len(second))

    peak = max(by_week, key=lambda w: w["quantity_sold"])
    mean = sum(quantities) / len(quantities)
    has_seasonality = peak["quantity_sold"] > mean * SEASONALITY_FACTOR

    return success_result("Demand forecast calculated", {
        "product_id": product.id,
        "product_name": product.name,
        "current_stock": product.quantity,
        "total_sales": total,
        "average_daily_sales": round(avg_daily, 2),
        "average_weekly_sales": round(avg_daily * 7, 2),
        "average_monthly_sales": round(avg_daily * 30, 2),
        "sales_by_week": by_week,
        "trend": trend,
        "seasonality": {
            "has_seasonality": has_seasonality,
            "peak_period": f"{peak['week_start']} to {peak['week_end']}" if has_seasonality else None,
        },
    })
