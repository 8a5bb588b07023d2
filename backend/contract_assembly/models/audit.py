from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from contract_assembly.db.base_class import Base


class AuditEvent(Base):
    """Append-only record of a lifecycle transition."""

    __tablename__ = "audit_events"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(length=64), nullable=False)
    object_type: Mapped[str] = mapped_column(String(length=64), nullable=False)
    object_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    details: Mapped[dict[str, Any] | None] = mapped_column(JSON)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
