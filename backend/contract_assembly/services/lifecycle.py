"""
Contract instance lifecycle: draft -> completed -> archived.

Every write loads the instance row ``FOR UPDATE`` and commits through
``write_transaction``; the ``revision`` counter on the row turns a lost race
into ``ConcurrentModification``. Audit records are emitted only after the
transaction has committed.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any, Callable, Mapping
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from contract_assembly.core.exceptions import (
    ConflictBlocking,
    ImmutabilityViolation,
    InvalidSelection,
    InvalidState,
    NoPublishedVersion,
    NotFound,
    PreconditionFailed,
    TargetNotPublished,
)
from contract_assembly.db.session import write_transaction
from contract_assembly.models.contract import FROZEN_STATUSES, ContractInstance
from contract_assembly.models.enums import ContractStatus, QuestionType, VersionStatus
from contract_assembly.schemas.catalog import Question, TemplateVersionPayload
from contract_assembly.schemas.conflict import ConflictReport
from contract_assembly.schemas.contract import ContractCreate, ContractUpdate, ExportSnapshot, VersionInfo
from contract_assembly.schemas.migration import MigrationReport
from contract_assembly.services.audit import AuditDispatcher, AuditRecord, audit_dispatcher
from contract_assembly.services.catalog_reader import CatalogReader, SqlCatalogReader, load_template_version
from contract_assembly.services.pinning import build_selection, fill_default_slots, pin_map, resolve_pins
from contract_assembly.services.rule_engine import evaluate, is_blank
from contract_assembly.services.upgrade import plan_upgrade

logger = logging.getLogger(__name__)


def _is_iso_date(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


ANSWER_CHECKS: dict[QuestionType, Callable[[Question, Any], bool]] = {
    QuestionType.TEXT: lambda q, v: isinstance(v, str),
    QuestionType.NUMBER: lambda q, v: _is_number(v),
    QuestionType.CURRENCY: lambda q, v: _is_number(v),
    QuestionType.YES_NO: lambda q, v: isinstance(v, bool),
    QuestionType.DATE: lambda q, v: _is_iso_date(v),
    QuestionType.SINGLE_CHOICE: lambda q, v: isinstance(v, str) and (not q.options or v in q.options),
    QuestionType.MULTIPLE_CHOICE: lambda q, v: (
        isinstance(v, list)
        and all(isinstance(item, str) for item in v)
        and (not q.options or all(item in q.options for item in v))
    ),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _messages(report: ConflictReport) -> list[dict[str, Any]]:
    return [entry.model_dump(mode="json") for entry in report.conflicts]


class ContractLifecycle:
    """Lifecycle operations on contract instances for one database session."""

    def __init__(
        self,
        db: Session,
        reader: CatalogReader | None = None,
        audit: AuditDispatcher | None = None,
    ) -> None:
        self.db = db
        self.reader = reader or SqlCatalogReader(db)
        self.audit = audit or audit_dispatcher

    # -- reads ---------------------------------------------------------------

    def get(self, instance_id: UUID, *, tenant_id: UUID | None = None) -> ContractInstance:
        stmt = select(ContractInstance).where(ContractInstance.id == instance_id)
        if tenant_id is not None:
            stmt = stmt.where(ContractInstance.tenant_id == tenant_id)
        instance = self.db.scalar(stmt)
        if instance is None:
            raise NotFound("ContractInstance", instance_id)
        return instance

    def list_instances(
        self,
        *,
        tenant_id: UUID,
        status: ContractStatus | None = None,
        limit: int,
        offset: int,
    ) -> tuple[list[ContractInstance], int]:
        filters = [ContractInstance.tenant_id == tenant_id]
        if status is not None:
            filters.append(ContractInstance.status == status.value)
        stmt = (
            select(ContractInstance)
            .where(*filters)
            .order_by(ContractInstance.updated_at.desc(), ContractInstance.id)
            .offset(offset)
            .limit(limit)
        )
        instances = list(self.db.scalars(stmt))
        total = self.db.scalar(select(func.count()).select_from(ContractInstance).where(*filters)) or 0
        return instances, total

    def get_version_info(self, instance_id: UUID, *, tenant_id: UUID | None = None) -> VersionInfo:
        instance = self.get(instance_id, tenant_id=tenant_id)
        pinned = load_template_version(self.reader, instance.template_version_id)
        latest: TemplateVersionPayload | None = None
        try:
            latest = load_template_version(
                self.reader, self.reader.current_published_version(pinned.template_id)
            )
        except NoPublishedVersion:
            logger.info("Template %s currently has no published version", pinned.template_id)
        return VersionInfo(
            instance_id=instance.id,
            status=instance.status,
            template_id=pinned.template_id,
            template_version_id=pinned.id,
            template_version_number=pinned.version_number,
            latest_published_version_id=latest.id if latest else None,
            latest_published_version_number=latest.version_number if latest else None,
            has_newer_version=bool(latest and latest.version_number > pinned.version_number),
        )

    def export_snapshot(self, instance_id: UUID, *, tenant_id: UUID | None = None) -> ExportSnapshot:
        instance = self.get(instance_id, tenant_id=tenant_id)
        if instance.completed_at is None or instance.status not in FROZEN_STATUSES:
            raise InvalidState(
                "Only completed contract instances can be exported",
                details={"instance_id": str(instance.id), "status": instance.status},
            )
        return ExportSnapshot(
            instance_id=instance.id,
            template_version_id=instance.template_version_id,
            clause_version_ids=instance.clause_version_ids,
            answers=instance.answers,
            selected_slots=instance.selected_slots,
            completed_at=instance.completed_at,
        )

    # -- transitions ---------------------------------------------------------

    def create(self, tenant_id: UUID, data: ContractCreate) -> ContractInstance:
        with write_transaction(self.db):
            version_id = self.reader.current_published_version(data.template_id)
            template_version = load_template_version(self.reader, version_id)
            pins = resolve_pins(self.reader, template_version)
            report = evaluate(
                build_selection(
                    self.reader,
                    template_version,
                    clause_version_ids=pins.clause_version_ids,
                    selected_slots={},
                    answers={},
                    tenant_id=tenant_id,
                )
            )
            instance = ContractInstance(
                tenant_id=tenant_id,
                title=data.title,
                client_reference=data.client_reference,
                tags=list(data.tags),
                template_version_id=template_version.id,
                clause_version_ids=[str(v) for v in pins.clause_version_ids],
                answers={},
                selected_slots={},
                validation_state=report.validation_state.value,
                validation_messages=_messages(report),
                status=ContractStatus.DRAFT.value,
            )
            self.db.add(instance)

        self.db.refresh(instance)
        logger.info(
            "Created contract instance %s from template version %s (%d clause pins)",
            instance.id,
            template_version.id,
            len(instance.clause_version_ids),
        )
        self._record(
            "contract.create",
            instance,
            {"title": data.title, "template_version_id": str(template_version.id)},
        )
        return instance

    def update(
        self, instance_id: UUID, data: ContractUpdate, *, tenant_id: UUID | None = None
    ) -> ContractInstance:
        with write_transaction(self.db):
            instance = self._load_for_write(instance_id, tenant_id)
            self._ensure_draft(instance, "update")
            template_version = load_template_version(self.reader, instance.template_version_id)

            answers = dict(instance.answers)
            if data.answers is not None:
                self._check_answers(template_version, data.answers)
                for question_id, value in data.answers.items():
                    if value is None:
                        answers.pop(question_id, None)
                    else:
                        answers[question_id] = value

            selected = dict(instance.selected_slots)
            if data.selected_slots is not None:
                self._check_slots(template_version, instance.clause_version_ids, data.selected_slots)
                for slot_id, version_id in data.selected_slots.items():
                    if version_id is None:
                        selected.pop(slot_id, None)
                    else:
                        selected[slot_id] = str(version_id)

            if data.title is not None:
                instance.title = data.title
            if data.client_reference is not None:
                instance.client_reference = data.client_reference
            if data.tags is not None:
                instance.tags = list(data.tags)

            report = self._evaluate(instance, template_version, answers=answers, selected_slots=selected)
            instance.answers = answers
            instance.selected_slots = selected
            instance.validation_state = report.validation_state.value
            instance.validation_messages = _messages(report)

        self.db.refresh(instance)
        self._record("contract.update", instance, {"updated_fields": sorted(data.model_fields_set)})
        return instance

    def validate(self, instance_id: UUID, *, tenant_id: UUID | None = None) -> ConflictReport:
        """Re-run the rule engine. Drafts store the result; frozen instances only report it."""
        with write_transaction(self.db):
            instance = self._load_for_write(instance_id, tenant_id)
            template_version = load_template_version(self.reader, instance.template_version_id)
            report = self._evaluate(instance, template_version)
            if instance.status == ContractStatus.DRAFT.value:
                instance.validation_state = report.validation_state.value
                instance.validation_messages = _messages(report)
        return report

    def complete(self, instance_id: UUID, *, tenant_id: UUID | None = None) -> ContractInstance:
        with write_transaction(self.db):
            instance = self._load_for_write(instance_id, tenant_id)
            if instance.status != ContractStatus.DRAFT.value:
                raise InvalidState(
                    f"Contract instance is already {instance.status}",
                    details={"instance_id": str(instance.id), "status": instance.status},
                )
            template_version = load_template_version(self.reader, instance.template_version_id)

            # Check and freeze happen under the same row lock and revision.
            report = self._evaluate(instance, template_version)
            if report.hard:
                raise ConflictBlocking(
                    "Cannot complete contract with unresolved hard conflicts",
                    details=report.model_dump(mode="json"),
                )

            missing_answers = [
                q.id
                for q in template_version.questions
                if q.required and is_blank(instance.answers.get(q.id))
            ]
            missing_slots = [
                slot_id
                for slot_id, slot in template_version.slots().items()
                if slot.is_required and slot_id not in instance.selected_slots
            ]
            if missing_answers or missing_slots:
                raise PreconditionFailed(
                    "Contract instance is incomplete",
                    details={"unanswered_questions": missing_answers, "unfilled_slots": missing_slots},
                )

            # Unchosen alternative slots freeze on their default clause.
            instance.selected_slots = fill_default_slots(
                template_version,
                instance.selected_slots,
                pin_map(self.reader, instance.clause_version_ids),
            )
            instance.validation_state = report.validation_state.value
            instance.validation_messages = _messages(report)
            instance.status = ContractStatus.COMPLETED.value
            instance.completed_at = _utcnow()

        self.db.refresh(instance)
        logger.info("Completed contract instance %s", instance.id)
        self._record(
            "contract.complete",
            instance,
            {
                "template_version_id": str(instance.template_version_id),
                "clause_version_count": len(instance.clause_version_ids),
            },
        )
        return instance

    def archive(self, instance_id: UUID, *, tenant_id: UUID | None = None) -> ContractInstance:
        with write_transaction(self.db):
            instance = self._load_for_write(instance_id, tenant_id)
            if instance.status == ContractStatus.ARCHIVED.value:
                raise InvalidState(
                    "Contract instance is already archived",
                    details={"instance_id": str(instance.id), "status": instance.status},
                )
            previous = instance.status
            instance.status = ContractStatus.ARCHIVED.value
            instance.archived_at = _utcnow()

        self.db.refresh(instance)
        self._record("contract.archive", instance, {"previous_status": previous})
        return instance

    def upgrade(
        self,
        instance_id: UUID,
        target_template_version_id: UUID | None = None,
        *,
        tenant_id: UUID | None = None,
    ) -> tuple[ContractInstance, MigrationReport]:
        with write_transaction(self.db):
            instance = self._load_for_write(instance_id, tenant_id)
            self._ensure_draft(instance, "upgrade")
            old_version = load_template_version(self.reader, instance.template_version_id)

            if target_template_version_id is None:
                target_template_version_id = self.reader.current_published_version(old_version.template_id)
            new_version = load_template_version(self.reader, target_template_version_id)
            if new_version.template_id != old_version.template_id:
                raise InvalidSelection(
                    "Target version belongs to a different template",
                    details={
                        "template_id": str(old_version.template_id),
                        "target_template_id": str(new_version.template_id),
                    },
                )
            target_status = self.reader.version_status(new_version.id)
            if target_status != VersionStatus.PUBLISHED:
                raise TargetNotPublished(
                    f"Template version {new_version.id} is {target_status.value}, not published",
                    details={"template_version_id": str(new_version.id), "status": target_status.value},
                )

            plan = plan_upgrade(
                self.reader,
                old_version=old_version,
                new_version=new_version,
                clause_version_ids=instance.clause_version_ids,
                selected_slots=instance.selected_slots,
                answers=instance.answers,
                tenant_id=instance.tenant_id,
            )
            instance.template_version_id = new_version.id
            instance.clause_version_ids = [str(v) for v in plan.pins.clause_version_ids]
            instance.selected_slots = plan.selected_slots
            instance.answers = plan.answers
            instance.validation_state = plan.conflicts.validation_state.value
            instance.validation_messages = _messages(plan.conflicts)

        self.db.refresh(instance)
        logger.info("Upgraded contract instance %s to template version %s", instance.id, new_version.id)
        self._record(
            "contract.upgrade",
            instance,
            {
                "from_template_version_id": str(old_version.id),
                "to_template_version_id": str(new_version.id),
                "report": plan.report.model_dump(mode="json"),
            },
        )
        return instance, plan.report

    # -- helpers -------------------------------------------------------------

    def _load_for_write(self, instance_id: UUID, tenant_id: UUID | None) -> ContractInstance:
        stmt = select(ContractInstance).where(ContractInstance.id == instance_id).with_for_update()
        if tenant_id is not None:
            stmt = stmt.where(ContractInstance.tenant_id == tenant_id)
        instance = self.db.scalar(stmt)
        if instance is None:
            raise NotFound("ContractInstance", instance_id)
        return instance

    @staticmethod
    def _ensure_draft(instance: ContractInstance, action: str) -> None:
        if instance.status in FROZEN_STATUSES:
            raise ImmutabilityViolation(
                f"Cannot {action} a {instance.status} contract instance",
                details={"instance_id": str(instance.id), "status": instance.status},
            )

    def _evaluate(
        self,
        instance: ContractInstance,
        template_version: TemplateVersionPayload,
        *,
        answers: Mapping[str, Any] | None = None,
        selected_slots: Mapping[str, str] | None = None,
    ) -> ConflictReport:
        return evaluate(
            build_selection(
                self.reader,
                template_version,
                clause_version_ids=instance.clause_version_ids,
                selected_slots=instance.selected_slots if selected_slots is None else selected_slots,
                answers=instance.answers if answers is None else answers,
                tenant_id=instance.tenant_id,
            )
        )

    @staticmethod
    def _check_answers(template_version: TemplateVersionPayload, answers: Mapping[str, Any]) -> None:
        questions = template_version.question_map()
        errors: dict[str, str] = {}
        for question_id, value in answers.items():
            question = questions.get(question_id)
            if question is None:
                errors[question_id] = "unknown question"
            elif value is not None and not ANSWER_CHECKS[question.type](question, value):
                errors[question_id] = f"expected a {question.type.value} answer"
        if errors:
            raise InvalidSelection("Answers do not match the interview flow", details={"answers": errors})

    def _check_slots(
        self,
        template_version: TemplateVersionPayload,
        clause_version_ids: list[str],
        selected: Mapping[str, UUID | None],
    ) -> None:
        slots = template_version.slots()
        pins = pin_map(self.reader, clause_version_ids)
        errors: dict[str, str] = {}
        for slot_id, version_id in selected.items():
            slot = slots.get(slot_id)
            if slot is None:
                errors[slot_id] = "unknown slot"
                continue
            if version_id is None:
                continue
            allowed = {pins[c] for c in slot.candidate_clause_ids if c in pins}
            if UUID(str(version_id)) not in allowed:
                errors[slot_id] = "clause version is not a pinned candidate for this slot"
        if errors:
            raise InvalidSelection("Slot selection outside the candidate set", details={"slots": errors})

    def _record(self, action: str, instance: ContractInstance, details: dict[str, Any]) -> None:
        self.audit.record(
            AuditRecord(
                tenant_id=instance.tenant_id,
                action=action,
                object_id=instance.id,
                details=details,
            )
        )
