"""
Purchase order lifecycle table.
"""
import pytest

from models.purchase_order import PurchaseOrderStatus as S
from services.order_status import (
    ALLOWED_TRANSITIONS, TERMINAL_STATUSES, status_after_receipt, validate_transition,
)

ALLOWED = {
    ("draft", "ordered"), ("draft", "cancelled"),
    ("ordered", "partial"), ("ordered", "received"), ("ordered", "cancelled"),
    ("partial", "received"), ("partial", "cancelled"),
}


class TestValidateTransition:

    @pytest.mark.parametrize("current", [s.value for s in S])
    @pytest.mark.parametrize("target", [s.value for s in S])
    def test_only_table_moves_are_allowed(self, current, target):
        result = validate_transition(current, target)
        assert result.ok is ((current, target) in ALLOWED)
        if not result.ok:
            assert result.error == f'Cannot change status from "{current}" to "{target}".'

    def test_accepts_enum_members(self):
        assert validate_transition(S.DRAFT, S.ORDERED).ok

    def test_unknown_status_is_rejected(self):
        result = validate_transition("draft", "shipped")
        assert not result.ok
        assert "shipped" in result.error

    def test_terminal_statuses(self):
        assert TERMINAL_STATUSES == {S.RECEIVED, S.CANCELLED}
        assert all(not ALLOWED_TRANSITIONS[s] for s in TERMINAL_STATUSES)


class TestStatusAfterReceipt:

    def test_all_lines_complete(self):
        assert status_after_receipt(S.ORDERED, [(20, 20), (5, 5)]) is S.RECEIVED

    def test_some_received(self):
        assert status_after_receipt(S.ORDERED, [(20, 12), (5, 0)]) is S.PARTIAL

    def test_nothing_received_keeps_status(self):
        assert status_after_receipt(S.ORDERED, [(20, 0)]) is S.ORDERED
