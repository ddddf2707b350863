from sqlalchemy.orm import Session
from models.log import ActivityLog


def write_log(db: Session, entry) -> ActivityLog:
    row = ActivityLog(
        user_id=entry.user_id,
        actor_id=entry.actor_id,
        entity_type=entry.entity_type.value,
        entity_id=None if entry.entity_id is None else str(entry.entity_id),
        action=entry.action.value,
        changes=entry.changes or {},
        note=entry.note,
    )
    db.add(row)
    db.commit()
    return row
