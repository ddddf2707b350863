"""
Sales-based forecasting.
"""
from datetime import datetime, timedelta

import pytest

from models.sale import SALE_CANCELLED, SALE_COMPLETED, Sale, SaleItem
from services import forecast

NOW = datetime(2026, 3, 31, 12, 0)


@pytest.fixture
def add_sale(db, owner):
    counter = iter(range(1, 1000))

    def _add(product, quantity, days_ago, status=SALE_COMPLETED, user=None):
        sale = Sale(
            user_id=(user or owner).id,
            sale_number=f"SALE-TEST-{next(counter):04d}",
            status=status,
            subtotal=quantity,
            total_amount=quantity,
            created_at=NOW - timedelta(days=days_ago),
        )
        sale.items.append(SaleItem(
            product_id=product.id, product_name=product.name, quantity=quantity, price=1, total=quantity,
        ))
        db.add(sale)
        db.commit()
        return sale
    return _add


class TestClassifyTrend:

    def test_thresholds(self):
        assert forecast.classify_trend(10, 12.5) == "increasing"
        assert forecast.classify_trend(10, 12) == "stable"
        assert forecast.classify_trend(10, 7.9) == "decreasing"
        assert forecast.classify_trend(0, 0) == "stable"


class TestInventoryForecast:

    def test_projection_per_product(self, db, owner, other_owner, make_product, add_sale):
        fast = make_product("Fast", quantity=20)
        gone = make_product("Gone", quantity=0)
        make_product("Unsold", quantity=7)
        add_sale(fast, 10, days_ago=20)
        add_sale(fast, 20, days_ago=5)
        add_sale(fast, 100, days_ago=3, status=SALE_CANCELLED)
        add_sale(fast, 100, days_ago=40)
        add_sale(gone, 3, days_ago=2)

        result = forecast.get_inventory_forecast(db, owner, 30, 30, now=NOW)

        assert result.success
        assert [f["product_name"] for f in result.data] == ["Gone", "Fast"]
        gone_row, fast_row = result.data
        assert gone_row["days_until_stockout"] == 0
        assert fast_row["average_daily_sales"] == 1.0
        assert fast_row["days_until_stockout"] == 20
        assert fast_row["estimated_stockout_date"] == NOW + timedelta(days=20)
        assert fast_row["recommended_reorder_point"] == 14
        assert fast_row["recommended_reorder_quantity"] == 30
        assert fast_row["trend"] == "increasing"

    def test_no_sales(self, db, owner, make_product):
        make_product("Idle", quantity=3)
        assert forecast.get_inventory_forecast(db, owner, now=NOW).data == []

    def test_window_must_be_positive(self, db, owner):
        result = forecast.get_inventory_forecast(db, owner, days_to_analyze=0, now=NOW)
        assert result.error_code == "VALIDATION_FAILED"


class TestProductDemandForecast:

    def test_weekly_buckets_trend_and_seasonality(self, db, owner, make_product, add_sale):
        product = make_product("Seasonal", quantity=40)
        add_sale(product, 2, days_ago=24)
        add_sale(product, 10, days_ago=1)

        result = forecast.get_product_demand_forecast(db, owner, product.id, days_to_analyze=28, now=NOW)

        data = result.data
        assert data["total_sales"] == 12
        assert [w["quantity_sold"] for w in data["sales_by_week"]] == [2, 0, 0, 10]
        assert data["sales_by_week"][-1]["week_end"] == "2026-03-31"
        assert data["average_daily_sales"] == 0.43
        assert data["trend"] == "increasing"
        assert data["seasonality"]["has_seasonality"] is True
        assert data["seasonality"]["peak_period"] == "2026-03-24 to 2026-03-31"

    def test_sale_at_window_start_lands_in_oldest_week(self, db, owner, make_product, add_sale):
        product = make_product("Edge", quantity=10)
        add_sale(product, 5, days_ago=28)
        add_sale(product, 1, days_ago=1)

        data = forecast.get_product_demand_forecast(db, owner, product.id, days_to_analyze=28, now=NOW).data

        assert data["total_sales"] == 6
        assert [w["quantity_sold"] for w in data["sales_by_week"]] == [5, 0, 0, 1]

    def test_no_history(self, db, owner, make_product):
        product = make_product("New", quantity=1)

        data = forecast.get_product_demand_forecast(db, owner, product.id, days_to_analyze=14, now=NOW).data

        assert data["total_sales"] == 0
        assert data["trend"] == "stable"
        assert data["seasonality"] == {"has_seasonality": False, "peak_period": None}

    def test_unknown_product(self, db, owner):
        result = forecast.get_product_demand_forecast(db, owner, 12345, now=NOW)
        assert result.error_code == "NOT_FOUND"
