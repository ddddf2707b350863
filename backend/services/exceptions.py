"""
Typed errors raised by the stock services.

Every error carries a machine-readable ``code`` and, where it makes sense, a per-field
``errors`` map. The services never let these escape to callers: ``services.results.action_boundary``
turns them into a failed ``ActionResult``.

    StockEngineError
    +-- AuthenticationRequired
    +-- NotFoundError
    +-- ValidationFailed
    +-- NegativeStockError
    +-- OverReceiveError
    +-- DuplicateKeyError
    +-- InvalidStateTransition
    +-- UnexpectedError
"""
from typing import Dict, List, Optional


class StockEngineError(Exception):
    code = "STOCK_ENGINE_ERROR"

    def __init__(self, message: str, errors: Optional[Dict[str, List[str]]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or {}


class AuthenticationRequired(StockEngineError):
    code = "AUTHENTICATION_REQUIRED"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class NotFoundError(StockEngineError):
    """Referenced entity is missing or belongs to another tenant."""
    code = "NOT_FOUND"


class ValidationFailed(StockEngineError):
    code = "VALIDATION_FAILED"


class NegativeStockError(StockEngineError):
    code = "NEGATIVE_STOCK"

    def __init__(self, entity: str, deficit: int, message: Optional[str] = None):
        self.entity = entity
        self.deficit = deficit
        super().__init__(
            message or f"Cannot reduce stock of {entity} below zero (short by {deficit})."
        )


class OverReceiveError(StockEngineError):
    code = "OVER_RECEIVE"

    def __init__(self, item_name: str, ordered: int, requested: int):
        self.item_name = item_name
        self.ordered = ordered
        self.requested = requested
        super().__init__(
            f'Cannot receive more than ordered for "{item_name}" '
            f"({requested} > {ordered})."
        )


class DuplicateKeyError(StockEngineError):
    code = "DUPLICATE_KEY"


class InvalidStateTransition(StockEngineError):
    code = "INVALID_STATE_TRANSITION"

    def __init__(self, message: str, current: Optional[str] = None, target: Optional[str] = None):
        self.current = current
        self.target = target
        super().__init__(message)


class UnexpectedError(StockEngineError):
    code = "UNEXPECTED_ERROR"
