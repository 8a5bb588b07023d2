from __future__ import annotations

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from contract_assembly.db.session import SessionLocal
from contract_assembly.models.audit import AuditEvent
from contract_assembly.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


def persist_audit_event(db, payload: dict[str, Any]) -> AuditEvent:
    event = AuditEvent(
        tenant_id=UUID(payload["tenant_id"]),
        action=payload["action"],
        object_type=payload["object_type"],
        object_id=UUID(payload["object_id"]),
        details=payload.get("details"),
        timestamp=datetime.fromisoformat(payload["timestamp"]),
    )
    db.add(event)
    db.commit()
    return event


@celery_app.task(
    name="contract_assembly.tasks.record_audit_event",
    autoretry_for=(SQLAlchemyError,),
    retry_backoff=True,
    max_retries=5,
)
def record_audit_event(payload: dict[str, Any]) -> None:
    """Celery entry point that appends one audit event."""
    db = SessionLocal()
    try:
        persist_audit_event(db, payload)
        logger.info("Recorded audit event %s for %s", payload["action"], payload["object_id"])
    except SQLAlchemyError:
        db.rollback()
        raise
    finally:
        db.close()
