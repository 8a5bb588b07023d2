"""
Fire-and-forget audit emission.

Lifecycle transitions hand an ``AuditRecord`` to the dispatcher after their
own transaction has committed. The dispatcher forwards it to the Celery
``record_audit_event`` task; when the broker cannot be reached the record is
kept in a bounded local buffer and re-sent on the next successful dispatch
or an explicit ``flush()``. ``record()`` never raises.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable
from uuid import UUID

from contract_assembly.core.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuditRecord:
    tenant_id: UUID
    action: str
    object_id: UUID
    object_type: str = "contract_instance"
    details: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_payload(self) -> dict[str, Any]:
        return {
            "tenant_id": str(self.tenant_id),
            "action": self.action,
            "object_type": self.object_type,
            "object_id": str(self.object_id),
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


def _send_via_celery(payload: dict[str, Any]) -> None:
    from contract_assembly.tasks.audit import record_audit_event

    record_audit_event.delay(payload)


class AuditDispatcher:
    def __init__(
        self,
        send: Callable[[dict[str, Any]], None] | None = None,
        *,
        buffer_max: int = settings.AUDIT_BUFFER_MAX,
        flush_batch: int = settings.AUDIT_FLUSH_BATCH,
    ) -> None:
        self._send = send or _send_via_celery
        self._buffer: deque[AuditRecord] = deque()
        self._buffer_max = buffer_max
        self._flush_batch = flush_batch
        self._lock = threading.Lock()

    @property
    def pending(self) -> int:
        return len(self._buffer)

    def record(self, event: AuditRecord) -> None:
        try:
            self._send(event.to_payload())
        except Exception:
            logger.warning("Audit dispatch failed for %s; buffering event", event.action, exc_info=True)
            self._enqueue(event)
            return
        if self._buffer:
            self.flush()

    def flush(self) -> int:
        """Re-send buffered events in order. Stops at the first failure."""
        sent = 0
        with self._lock:
            while self._buffer and sent < self._flush_batch:
                event = self._buffer[0]
                try:
                    self._send(event.to_payload())
                except Exception:
                    logger.error("Audit flush failed; %d events still buffered", len(self._buffer), exc_info=True)
                    break
                self._buffer.popleft()
                sent += 1
        if sent:
            logger.info("Flushed %d buffered audit events", sent)
        return sent

    def _enqueue(self, event: AuditRecord) -> None:
        with self._lock:
            if len(self._buffer) >= self._buffer_max:
                logger.error("Audit buffer full; dropping oldest event")
                self._buffer.popleft()
            self._buffer.append(event)


audit_dispatcher = AuditDispatcher()
