from sqlalchemy.orm import Session
from app.core.security import Actor, Role
from app.models.audit_log import AuditLog


def log_event(
    s: Session,
    actor: Actor | None,
    action: str,
    entity_type: str,
    entity_id: int | None = None,
    details: dict | None = None,
):
    row = AuditLog(
        actor_id=actor.id if actor else None,
        actor_role=Role(actor.role).value if actor else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details,
    )
    s.add(row)
    s.flush()
    return row
