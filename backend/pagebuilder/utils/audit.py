from pagebuilder.extensions import db
from pagebuilder.models.audit_log import AuditLog
from typing import Optional

def log_action(
    *,
    action: str,
    entity_type: str,
    entity_id: str,
    page_id: str,
    payload: dict | None = None,
    actor_id: Optional[str] = None
):
    log = AuditLog()

    log.page_id = page_id
    log.actor_id = actor_id
    log.action = action
    log.entity_type = entity_type
    log.entity_id = entity_id
    log.payload = payload or {}

    db.session.add(log)
    return log
