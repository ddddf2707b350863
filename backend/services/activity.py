# backend/services/activity.py
"""
Best-effort activity log.

Mutation primitives commit their own transaction first and only then call
``activity_log.record(...)``. Recording uses a separate session, so a failure here
can never undo the stock change it describes. Failed entries wait in an in-memory
outbox until the next successful write or an explicit ``retry_pending()``.
"""
import enum
import logging
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional, Union

from pydantic import BaseModel
from sqlalchemy.orm import Session

from database import SessionLocal
from utils.audit import write_log

logger = logging.getLogger(__name__)

MAX_PENDING = 1000


class EntityType(str, enum.Enum):
    PRODUCT = "product"
    LOCATION = "location"
    BATCH = "batch"
    PURCHASE_ORDER = "purchase_order"
    SALE = "sale"
    REORDER_RULE = "reorder_rule"
    STOCK = "stock"


class ActivityAction(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    STOCK_ADJUSTMENT = "stock_adjustment"
    RECEIVE = "receive"
    TRANSFER = "transfer"


class ActivityEntry(BaseModel):
    user_id: int
    actor_id: Optional[int] = None
    entity_type: EntityType
    entity_id: Optional[Union[int, str]] = None
    action: ActivityAction
    changes: Optional[Dict[str, Any]] = None
    note: Optional[str] = None


class ActivityLogger:
    def __init__(self, session_factory: Callable[[], Session] = SessionLocal, max_pending: int = MAX_PENDING):
        self.session_factory = session_factory
        self._pending: Deque[ActivityEntry] = deque(maxlen=max_pending)

    @property
    def pending(self) -> List[ActivityEntry]:
        return list(self._pending)

    def record(self, entry: ActivityEntry) -> bool:
        """Write one entry. Returns False (and queues the entry) instead of raising.

        A successful write also flushes whatever earlier failures left in the outbox.
        """
        if self._write(entry):
            if self._pending:
                self.retry_pending()
            return True
        if len(self._pending) == self._pending.maxlen:
            logger.warning("Activity outbox full, dropping oldest entry")
        self._pending.append(entry)
        return False

    def retry_pending(self) -> int:
        written = 0
        for _ in range(len(self._pending)):
            entry = self._pending.popleft()
            if self._write(entry):
                written += 1
            else:
                self._pending.append(entry)
        if written:
            logger.info("Flushed %s queued activity entries", written)
        return written

    def _write(self, entry: ActivityEntry) -> bool:
        db = None
        try:
            db = self.session_factory()
            write_log(db, entry)
            return True
        except Exception:
            logger.exception(
                "Failed to write activity log (%s %s %s)",
                entry.action.value, entry.entity_type.value, entry.entity_id,
            )
            return False
        finally:
            # close() also rolls back whatever the failed write left open
            if db is not None:
                try:
                    db.close()
                except Exception:
                    logger.exception("Failed to close activity log session")


activity_log = ActivityLogger()
