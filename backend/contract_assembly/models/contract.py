from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text, Uuid, event, func, inspect
from sqlalchemy.orm import Mapped, mapped_column, relationship

from contract_assembly.core.exceptions import ImmutabilityViolation
from contract_assembly.db.base_class import Base
from contract_assembly.models.catalog import TemplateVersion
from contract_assembly.models.enums import ContractStatus, ValidationState

FROZEN_FIELDS = ("template_version_id", "clause_version_ids", "answers", "selected_slots")
FROZEN_STATUSES = (ContractStatus.COMPLETED.value, ContractStatus.ARCHIVED.value)


class ContractInstance(Base):
    """A contract under construction, pinned to immutable catalog versions."""

    __tablename__ = "contract_instances"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    client_reference: Mapped[str | None] = mapped_column(String(length=255))
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    template_version_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("template_versions.id", ondelete="RESTRICT"), nullable=False
    )
    # Stored as strings, in pin order.
    clause_version_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    answers: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    selected_slots: Mapped[dict[str, str]] = mapped_column(JSON, nullable=False, default=dict)
    validation_state: Mapped[str] = mapped_column(
        String(length=16), nullable=False, default=ValidationState.VALID.value
    )
    validation_messages: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list
    )
    status: Mapped[str] = mapped_column(
        String(length=16), nullable=False, default=ContractStatus.DRAFT.value, index=True
    )
    revision: Mapped[int] = mapped_column(Integer, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    archived_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    template_version: Mapped[TemplateVersion] = relationship("TemplateVersion")

    # Every UPDATE is guarded by "WHERE revision = <seen>" and bumps the counter.
    __mapper_args__ = {"version_id_col": revision}


@event.listens_for(ContractInstance, "before_update")
def _guard_frozen_fields(mapper, connection, target: ContractInstance) -> None:
    status_history = inspect(target).attrs.status.history
    persisted = status_history.deleted or status_history.unchanged
    if not persisted or persisted[0] not in FROZEN_STATUSES:
        return
    state = inspect(target)
    changed = [name for name in FROZEN_FIELDS if state.attrs[name].history.has_changes()]
    if changed:
        raise ImmutabilityViolation(
            f"Contract instance {target.id} is {persisted[0]}; pinned fields are frozen",
            details={"fields": changed},
        )
