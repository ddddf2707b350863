# backend/services/results.py
import functools
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from config import settings
from schemas.common import ActionResult
from services.exceptions import StockEngineError, UnexpectedError, ValidationFailed

logger = logging.getLogger(__name__)


def success_result(message: str, data: Any = None) -> ActionResult:
    return ActionResult(success=True, message=message, data=data)


def failure_result(
    message: str,
    errors: Optional[Dict[str, List[str]]] = None,
    code: Optional[str] = None,
) -> ActionResult:
    return ActionResult(success=False, message=message, errors=errors or {}, error_code=code)


def format_validation_errors(exc: ValidationError) -> Dict[str, List[str]]:
    """Group pydantic issues by dotted field path; model-level issues go under "form"."""
    errors: Dict[str, List[str]] = {}
    for issue in exc.errors():
        path = ".".join(str(part) for part in issue.get("loc", ())) or "form"
        errors.setdefault(path, []).append(issue.get("msg", "Invalid value"))
    return errors


def _find_session(args, kwargs) -> Optional[Session]:
    db = kwargs.get("db")
    if db is None and args and isinstance(args[0], Session):
        db = args[0]
    return db


def action_boundary(failure_message: str):
    """Convert everything a primitive raises into a failed ActionResult.

    Business-rule and validation errors keep their message and field errors. Anything else is
    logged with its traceback and reported with ``failure_message`` only (plus the exception text
    in development mode).
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> ActionResult:
            try:
                return func(*args, **kwargs)
            except StockEngineError as e:
                _rollback(args, kwargs)
                logger.info("%s rejected: [%s] %s", func.__name__, e.code, e.message)
                return failure_result(e.message, e.errors, e.code)
            except ValidationError as e:
                _rollback(args, kwargs)
                return failure_result(
                    "Validation failed.", format_validation_errors(e), ValidationFailed.code
                )
            except Exception as e:
                _rollback(args, kwargs)
                logger.exception("Unexpected error in %s: %s", func.__name__, e)
                message = failure_message
                if settings.is_development:
                    message = f"{failure_message}: {e}"
                return failure_result(message, code=UnexpectedError.code)
        return wrapper
    return decorator


def _rollback(args, kwargs) -> None:
    db = _find_session(args, kwargs)
    if db is None:
        return
    try:
        db.rollback()
    except Exception:
        logger.exception("Rollback after failed action also failed")
