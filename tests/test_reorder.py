"""
Reorder rules and the suggestion engine.
"""
import pytest

from models.reorder import ReorderRule
from services import reorder
from services.cache import cache_key, read_cache
from services.stock import adjust_stock


class TestCalculateUrgency:

    @pytest.mark.parametrize("quantity, expected", [(0, "critical"), (5, "critical"), (6, "warning"), (10, "warning"), (15, "normal")])
    def test_reorder_point_ten(self, quantity, expected):
        assert reorder.calculate_urgency(quantity, 10) == expected

    def test_zero_reorder_point(self):
        assert reorder.calculate_urgency(3, 0) == "normal"
        assert reorder.calculate_urgency(0, 0) == "critical"


class TestSuggestions:

    def test_rules_and_default_heuristic(self, db, owner, supplier, make_product):
        ruled = make_product("Ruled", quantity=6)
        low = make_product("Low", quantity=2, low_stock_at=4)
        make_product("Healthy", quantity=50, low_stock_at=4)
        reorder.create_reorder_rule(db, owner, {
            "product_id": ruled.id, "reorder_point": 10, "reorder_quantity": 30, "supplier_id": supplier.id,
        })

        result = reorder.get_reorder_suggestions(db, owner)

        assert [(s["product_name"], s["urgency"], s["suggested_quantity"]) for s in result.data] == [
            ("Low", "critical", 10),
            ("Ruled", "warning", 30),
        ]
        assert result.data[1]["supplier_name"] == "Acme Supply"

    def test_inactive_rule_suppresses_default(self, db, owner, make_product):
        product = make_product("Quiet", quantity=0, low_stock_at=5)
        rule_id = reorder.create_reorder_rule(
            db, owner, {"product_id": product.id, "reorder_point": 5, "reorder_quantity": 10}
        ).data["id"]

        toggled = reorder.toggle_reorder_rule(db, owner, rule_id)

        assert toggled.message == "Reorder rule deactivated"
        assert reorder.get_reorder_suggestions(db, owner).data == []

    def test_write_invalidates_cached_suggestions(self, db, owner, make_product):
        product = make_product("Cached", quantity=1, low_stock_at=3)
        assert len(reorder.get_reorder_suggestions(db, owner).data) == 1
        assert read_cache.get(cache_key(owner.id, "reorder", "suggestions")) is not None

        adjust_stock(db, owner, {"product_id": product.id, "adjustment": 10})

        assert read_cache.get(cache_key(owner.id, "reorder", "suggestions")) is None
        assert reorder.get_reorder_suggestions(db, owner).data == []

    def test_stats(self, db, owner, make_product):
        a = make_product("A", quantity=0)
        b = make_product("B", quantity=9)
        reorder.create_reorder_rule(db, owner, {"product_id": a.id, "reorder_point": 5, "reorder_quantity": 10})
        reorder.create_reorder_rule(
            db, owner, {"product_id": b.id, "reorder_point": 5, "reorder_quantity": 10, "is_active": False}
        )

        result = reorder.get_reorder_stats(db, owner)

        assert result.data == {"total_rules": 2, "active_rules": 1, "pending_suggestions": 1, "critical_items": 1}


class TestRules:

    def test_one_rule_per_product(self, db, owner, make_product):
        product = make_product()
        payload = {"product_id": product.id, "reorder_point": 5, "reorder_quantity": 10}
        assert reorder.create_reorder_rule(db, owner, payload).success
        assert reorder.create_reorder_rule(db, owner, payload).error_code == "DUPLICATE_KEY"

    def test_update_and_delete(self, db, owner, make_product):
        product = make_product()
        rule_id = reorder.create_reorder_rule(
            db, owner, {"product_id": product.id, "reorder_point": 5, "reorder_quantity": 10}
        ).data["id"]

        assert reorder.update_reorder_rule(db, owner, rule_id, {"reorder_point": 8}).success
        rule = db.get(ReorderRule, rule_id)
        db.refresh(rule)
        assert (rule.reorder_point, rule.reorder_quantity) == (8, 10)

        assert reorder.delete_reorder_rule(db, owner, rule_id).success
        assert reorder.get_reorder_rules(db, owner).data == []

    def test_rules_of_other_tenants_are_hidden(self, db, owner, other_owner, make_product):
        product = make_product()
        rule_id = reorder.create_reorder_rule(
            db, owner, {"product_id": product.id, "reorder_point": 5, "reorder_quantity": 10}
        ).data["id"]
        assert reorder.delete_reorder_rule(db, other_owner, rule_id).error_code == "NOT_FOUND"
