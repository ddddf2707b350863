# backend/services/guard.py
from typing import Optional

from services.exceptions import NegativeStockError


def ensure_non_negative(entity: str, current: int, delta: int) -> int:
    """Return ``current + delta``, or raise NegativeStockError if that would be below zero.

    ``current`` must be the value read inside the transaction that will write the result.
    """
    result = current + delta
    if result < 0:
        raise NegativeStockError(entity, -result)
    return result


def ensure_available(entity: str, available: int, requested: int, where: Optional[str] = None) -> int:
    """Strict availability check for removals: ``available < requested`` is rejected.

    Returns the remaining quantity.
    """
    if available < requested:
        place = f" at {where}" if where else ""
        raise NegativeStockError(
            entity,
            requested - available,
            f"Insufficient stock of {entity}{place}. Available: {available}",
        )
    return available - requested
