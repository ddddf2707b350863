# backend/services/order_status.py
"""
Purchase order lifecycle.

    draft -> ordered -> partial -> received

Any non-terminal order may also be cancelled.
``received`` and ``cancelled`` are terminal. Receiving goods moves an order to
``partial`` or ``received`` through ``status_after_receipt``; it is never requested
directly by the receive operation.
"""
from typing import Dict, FrozenSet, Iterable, NamedTuple, Optional, Tuple, Union

from models.purchase_order import PurchaseOrderStatus

S = PurchaseOrderStatus

ALLOWED_TRANSITIONS: Dict[PurchaseOrderStatus, FrozenSet[PurchaseOrderStatus]] = {
    S.DRAFT: frozenset({S.ORDERED, S.CANCELLED}),
    S.ORDERED: frozenset({S.PARTIAL, S.RECEIVED, S.CANCELLED}),
    S.PARTIAL: frozenset({S.RECEIVED, S.CANCELLED}),
    S.RECEIVED: frozenset(),
    S.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, targets in ALLOWED_TRANSITIONS.items() if not targets)


class TransitionResult(NamedTuple):
    ok: bool
    error: Optional[str] = None


def _coerce(status: Union[str, PurchaseOrderStatus]) -> Optional[PurchaseOrderStatus]:
    try:
        return PurchaseOrderStatus(status)
    except ValueError:
        return None


def _label(status: Union[str, PurchaseOrderStatus]) -> str:
    return status.value if isinstance(status, PurchaseOrderStatus) else str(status)


def validate_transition(
    current: Union[str, PurchaseOrderStatus], target: Union[str, PurchaseOrderStatus]
) -> TransitionResult:
    src, dst = _coerce(current), _coerce(target)
    if src is None or dst is None or dst not in ALLOWED_TRANSITIONS[src]:
        return TransitionResult(
            False, f'Cannot change status from "{_label(current)}" to "{_label(target)}".'
        )
    return TransitionResult(True)


def status_after_receipt(
    current: PurchaseOrderStatus, lines: Iterable[Tuple[int, int]]
) -> PurchaseOrderStatus:
    """Status implied by ``(ordered, received)`` quantities of every line."""
    lines = list(lines)
    if lines and all(received >= ordered for ordered, received in lines):
        return S.RECEIVED
    if any(received > 0 for _, received in lines):
        return S.PARTIAL
    return current
