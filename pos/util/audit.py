import json
from sqlalchemy.orm import Session
from pos.models.core import AuditLog

def audit(db: Session, actor_user_id: str | None, entity: str, entity_id: str,
          action: str, before: dict | None = None, after: dict | None = None):
    """Stage an audit row; it commits (or rolls back) with the caller's transaction."""
    entry = AuditLog(
        actor_user_id=actor_user_id or "-",
        entity=entity, entity_id=entity_id,
        action=action,
        before=json.dumps(before, default=str) if before else None,
        after=json.dumps(after, default=str) if after else None,
    )
    db.add(entry)
