from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid, event, func, inspect
from sqlalchemy.orm import Mapped, mapped_column, relationship

from contract_assembly.core.exceptions import ImmutabilityViolation
from contract_assembly.db.base_class import Base
from contract_assembly.models.enums import VersionStatus


class Clause(Base):
    """Logical clause building block. Content lives on its versions."""

    __tablename__ = "clauses"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    jurisdiction: Mapped[str] = mapped_column(String(length=16), nullable=False)
    # Pointer into clause_versions; the only place "current" is recorded.
    current_published_version_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    versions: Mapped[list["ClauseVersion"]] = relationship(
        "ClauseVersion",
        back_populates="clause",
        order_by="ClauseVersion.version_number",
    )


class ClauseVersion(Base):
    """Immutable revision of a clause: text, parameters and declared rules."""

    __tablename__ = "clause_versions"
    __table_args__ = (
        UniqueConstraint("clause_id", "version_number", name="uq_clause_version_number"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    clause_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("clauses.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(length=16), nullable=False, default=VersionStatus.DRAFT.value
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    parameters: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    rules: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    clause: Mapped[Clause] = relationship("Clause", back_populates="versions")


class Template(Base):
    """Logical template building block."""

    __tablename__ = "templates"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    jurisdiction: Mapped[str] = mapped_column(String(length=16), nullable=False)
    current_published_version_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    versions: Mapped[list["TemplateVersion"]] = relationship(
        "TemplateVersion",
        back_populates="template",
        order_by="TemplateVersion.version_number",
    )


class TemplateVersion(Base):
    """Immutable revision of a template: section/slot structure and interview flow."""

    __tablename__ = "template_versions"
    __table_args__ = (
        UniqueConstraint("template_id", "version_number", name="uq_template_version_number"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    template_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("templates.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(length=16), nullable=False, default=VersionStatus.DRAFT.value
    )
    structure: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    questions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    template: Mapped[Template] = relationship("Template", back_populates="versions")


IMMUTABLE_VERSION_FIELDS = {
    ClauseVersion: ("clause_id", "version_number", "content", "parameters", "rules"),
    TemplateVersion: ("template_id", "version_number", "structure", "questions"),
}


def _reject_content_edits(mapper, connection, target) -> None:
    state = inspect(target)
    changed = [
        name
        for name in IMMUTABLE_VERSION_FIELDS[type(target)]
        if state.attrs[name].history.has_changes()
    ]
    if changed:
        raise ImmutabilityViolation(
            f"{type(target).__name__} {target.id} is append-only",
            details={"fields": changed},
        )


for _model in IMMUTABLE_VERSION_FIELDS:
    event.listen(_model, "before_update", _reject_content_edits)
