"""
Quantity guard: pure functions, no database.
"""
import pytest

from services.exceptions import NegativeStockError
from services.guard import ensure_available, ensure_non_negative


class TestEnsureNonNegative:

    def test_returns_new_quantity(self):
        assert ensure_non_negative("Widget", 10, -4) == 6
        assert ensure_non_negative("Widget", 10, 5) == 15

    def test_exactly_zero_is_allowed(self):
        assert ensure_non_negative("Widget", 3, -3) == 0

    def test_negative_result_carries_entity_and_deficit(self):
        with pytest.raises(NegativeStockError) as excinfo:
            ensure_non_negative("Widget", 10, -15)
        assert excinfo.value.entity == "Widget"
        assert excinfo.value.deficit == 5
        assert excinfo.value.code == "NEGATIVE_STOCK"


class TestEnsureAvailable:

    def test_remaining_quantity(self):
        assert ensure_available("Widget", 5, 5) == 0

    def test_short_stock_names_the_place(self):
        with pytest.raises(NegativeStockError) as excinfo:
            ensure_available("Widget", 2, 5, where="Shelf A")
        assert "at Shelf A" in excinfo.value.message
        assert "Available: 2" in excinfo.value.message
        assert excinfo.value.deficit == 3
