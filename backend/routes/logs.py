# backend/routes/logs.py
from datetime import datetime
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from database import get_db
from models.log import ActivityLog
from models.users import User
from utils.tokenJWT import get_current_user

router = APIRouter(prefix="/logs", tags=["Logs"])


class ActivityLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    ts: Optional[datetime] = None
    actor_id: Optional[int] = None
    entity_type: str
    entity_id: Optional[str] = None
    action: str
    changes: Optional[Any] = None
    note: Optional[str] = None


class ActivityLogPage(BaseModel):
    items: List[ActivityLogResponse]
    total: int
    page: int
    page_size: int


@router.get("", response_model=ActivityLogPage)
def get_logs(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    action: Optional[str] = Query(None),
    entity_type: Optional[str] = Query(None),
    entity_id: Optional[str] = Query(None),
    actor_id: Optional[int] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    # Only the caller's own tenant is ever visible
    query = db.query(ActivityLog).filter(ActivityLog.user_id == current_user.owner_id)

    if action:
        query = query.filter(ActivityLog.action == action)
    if entity_type:
        query = query.filter(ActivityLog.entity_type == entity_type)
    if entity_id:
        query = query.filter(ActivityLog.entity_id == entity_id)
    if actor_id is not None:
        query = query.filter(ActivityLog.actor_id == actor_id)
    if date_from:
        query = query.filter(ActivityLog.ts >= date_from)
    if date_to:
        query = query.filter(ActivityLog.ts <= date_to)

    total = query.count()
    logs = (
        query.order_by(ActivityLog.ts.desc(), ActivityLog.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )

    return {
        "items": logs,
        "total": total,
        "page": page,
        "page_size": page_size,
    }
