"""Best-effort notification and audit rows written after a decision commits.

Callers commit the state change before calling these, and each emitter
commits on its own. A failure is logged and rolled back to the last commit;
it never reaches the client.
"""

import json
import logging
from typing import Any

from sqlalchemy.orm import Session

from .models import AuditLog, Notification

logger = logging.getLogger(__name__)


def emit_notification(db: Session, recipient_id: int, type_: str, category: str, message: str) -> None:
    try:
        db.add(Notification(user_id=recipient_id, type=type_, category=category, message=message))
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Failed to emit %s notification for user %s", type_, recipient_id)


def emit_audit_log(
    db: Session,
    actor_id: int,
    action: str,
    entity_type: str,
    entity_id: int,
    metadata: dict[str, Any] | None = None,
) -> None:
    try:
        db.add(
            AuditLog(
                user_id=actor_id,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                details=json.dumps(metadata or {}),
            )
        )
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Failed to write audit log %s for %s %s", action, entity_type, entity_id)
