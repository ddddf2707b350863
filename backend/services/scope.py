# backend/services/scope.py
from typing import Any, Dict, Optional, Union

from sqlalchemy.orm import Query, Session

from services.activity import ActivityAction, ActivityEntry, EntityType, activity_log
from services.cache import read_cache
from services.exceptions import NotFoundError
from utils.tokenJWT import TenantScope


def get_owned(db: Session, model, entity_id: int, owner_id: int, label: str):
    """Load a tenant-owned row, treating rows of other tenants as missing."""
    obj = db.query(model).filter(model.id == entity_id, model.user_id == owner_id).first()
    if obj is None:
        raise NotFoundError(f"{label} not found.")
    return obj


def locked(query: Query) -> Query:
    # Row lock plus a fresh read, so the identity map never hands back a pre-transaction value
    return query.with_for_update().populate_existing()


def lock_row(db: Session, model, entity_id: int):
    return locked(db.query(model).filter(model.id == entity_id)).one()


def after_commit(
    scope: TenantScope,
    entity_type: EntityType,
    entity_id: Optional[Union[int, str]],
    action: ActivityAction,
    changes: Optional[Dict[str, Any]] = None,
    note: Optional[str] = None,
) -> None:
    """Side effects of a committed mutation: audit entry, then tenant cache invalidation."""
    activity_log.record(ActivityEntry(
        user_id=scope.owner_id,
        actor_id=scope.actor_id,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        changes=changes,
        note=note,
    ))
    read_cache.invalidate_tenant(scope.owner_id)
