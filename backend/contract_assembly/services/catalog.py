"""
Catalog authoring helpers.

Versions are only ever appended; publishing moves the block's
``current_published_version_id`` pointer. These helpers flush but leave the
commit to the caller.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from contract_assembly.core.exceptions import InvalidState
from contract_assembly.models.catalog import Clause, ClauseVersion, Template, TemplateVersion
from contract_assembly.models.enums import VersionStatus
from contract_assembly.schemas.catalog import Question, Rule, Section


def _next_version_number(db: Session, column, block_column, block_id: UUID) -> int:
    current = db.scalar(select(func.max(column)).where(block_column == block_id))
    return (current or 0) + 1


def create_clause(db: Session, *, tenant_id: UUID, title: str, jurisdiction: str = "DE") -> Clause:
    clause = Clause(tenant_id=tenant_id, title=title, jurisdiction=jurisdiction)
    db.add(clause)
    db.flush()
    return clause


def add_clause_version(
    db: Session,
    clause: Clause,
    *,
    content: str,
    parameters: dict[str, Any] | None = None,
    rules: Iterable[Rule | dict[str, Any]] = (),
) -> ClauseVersion:
    version = ClauseVersion(
        clause_id=clause.id,
        version_number=_next_version_number(
            db, ClauseVersion.version_number, ClauseVersion.clause_id, clause.id
        ),
        status=VersionStatus.DRAFT.value,
        content=content,
        parameters=parameters or {},
        rules=[
            Rule.model_validate(rule).model_dump(mode="json", exclude_none=True) for rule in rules
        ],
    )
    db.add(version)
    db.flush()
    return version


def create_template(db: Session, *, tenant_id: UUID, title: str, jurisdiction: str = "DE") -> Template:
    template = Template(tenant_id=tenant_id, title=title, jurisdiction=jurisdiction)
    db.add(template)
    db.flush()
    return template


def add_template_version(
    db: Session,
    template: Template,
    *,
    structure: Iterable[Section | dict[str, Any]],
    questions: Iterable[Question | dict[str, Any]] = (),
) -> TemplateVersion:
    version = TemplateVersion(
        template_id=template.id,
        version_number=_next_version_number(
            db, TemplateVersion.version_number, TemplateVersion.template_id, template.id
        ),
        status=VersionStatus.DRAFT.value,
        structure=[Section.model_validate(s).model_dump(mode="json") for s in structure],
        questions=[Question.model_validate(q).model_dump(mode="json") for q in questions],
    )
    db.add(version)
    db.flush()
    return version


def publish_version(db: Session, version: ClauseVersion | TemplateVersion) -> None:
    if version.status in (VersionStatus.PUBLISHED.value, VersionStatus.DEPRECATED.value):
        raise InvalidState(
            f"Version {version.id} is {version.status} and cannot be published",
            details={"version_id": str(version.id), "status": version.status},
        )
    version.status = VersionStatus.PUBLISHED.value
    version.published_at = datetime.now(timezone.utc)
    block = version.clause if isinstance(version, ClauseVersion) else version.template
    block.current_published_version_id = version.id
    db.flush()


def deprecate_version(db: Session, version: ClauseVersion | TemplateVersion) -> None:
    """Deprecate without moving the pointer; the block has no published version until a replacement is published."""
    version.status = VersionStatus.DEPRECATED.value
    db.flush()
