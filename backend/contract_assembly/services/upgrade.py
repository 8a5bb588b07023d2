"""
Migration of a draft instance onto another template version.

``plan_upgrade`` computes the migrated pins, slot selections and answers
together with a ``MigrationReport``. It does not touch the database; the
lifecycle service applies the plan inside its write transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Sequence
from uuid import UUID

from contract_assembly.core.exceptions import NoPublishedVersion
from contract_assembly.models.enums import VersionStatus
from contract_assembly.schemas.catalog import TemplateVersionPayload
from contract_assembly.schemas.conflict import ConflictEntry, ConflictReport
from contract_assembly.schemas.migration import (
    DroppedAnswer,
    MigrationReport,
    PinChange,
    SelectionChange,
    UnfilledSlot,
)
from contract_assembly.services.catalog_reader import CatalogReader, load_clause_version
from contract_assembly.services.pinning import PinSet, build_selection, pin_map, resolve_pins
from contract_assembly.services.rule_engine import evaluate, is_blank

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpgradePlan:
    pins: PinSet
    selected_slots: dict[str, str]
    answers: dict[str, Any]
    conflicts: ConflictReport
    report: MigrationReport


def _conflict_key(entry: ConflictEntry) -> tuple[str, str, str]:
    # Version ids change across an upgrade; compare on the logical rule.
    return (entry.kind.value, str(entry.source_clause_id), entry.target or "")


def _diff_pins(old: Mapping[UUID, UUID], new: Mapping[UUID, UUID]) -> tuple[list, list, list]:
    added = [PinChange(clause_id=c, to_version_id=v) for c, v in new.items() if c not in old]
    removed = [PinChange(clause_id=c, from_version_id=v) for c, v in old.items() if c not in new]
    updated = [
        PinChange(clause_id=c, from_version_id=old[c], to_version_id=v)
        for c, v in new.items()
        if c in old and old[c] != v
    ]
    return added, removed, updated


def plan_upgrade(
    reader: CatalogReader,
    *,
    old_version: TemplateVersionPayload,
    new_version: TemplateVersionPayload,
    clause_version_ids: Sequence[str],
    selected_slots: Mapping[str, str],
    answers: Mapping[str, Any],
    tenant_id: UUID,
) -> UpgradePlan:
    new_slots = new_version.slots()

    # Slot choices: keep what is still a valid candidate of the same slot.
    kept_slots: dict[str, str] = {}
    keep_pins: dict[UUID, UUID] = {}
    removed_selections: list[SelectionChange] = []
    unpublished: list[str] = []
    for slot_id in sorted(selected_slots):
        version_id = UUID(str(selected_slots[slot_id]))
        chosen = load_clause_version(reader, version_id)
        if slot_id not in new_slots:
            removed_selections.append(
                SelectionChange(slot_id=slot_id, clause_version_id=version_id, reason="slot_removed")
            )
        elif chosen.clause_id not in new_slots[slot_id].candidate_clause_ids:
            removed_selections.append(
                SelectionChange(slot_id=slot_id, clause_version_id=version_id, reason="no_longer_candidate")
            )
        elif reader.version_status(version_id) != VersionStatus.PUBLISHED:
            unpublished.append(str(version_id))
        else:
            kept_slots[slot_id] = str(version_id)
            keep_pins[chosen.clause_id] = version_id

    if unpublished:
        raise NoPublishedVersion(
            unpublished[0],
            details={
                "unpublished_version_ids": unpublished,
                "hint": "Select a published alternative for these slots before upgrading",
            },
        )

    # Everything else referenced by the new structure moves to its current published version.
    old_pins = pin_map(reader, clause_version_ids)
    new_pins = resolve_pins(reader, new_version, keep=keep_pins)
    added, removed, updated = _diff_pins(old_pins, new_pins.clause_pins)

    unfilled = [
        UnfilledSlot(slot_id=slot_id, required=slot.is_required)
        for slot_id, slot in new_slots.items()
        if slot_id not in kept_slots
    ]

    old_questions = old_version.question_map()
    new_questions = new_version.question_map()
    migrated_answers: dict[str, Any] = {}
    dropped: list[DroppedAnswer] = []
    archived: dict[str, Any] = {}
    reentry: list[str] = []
    for question_id in sorted(answers):
        value = answers[question_id]
        new_question = new_questions.get(question_id)
        if new_question is None:
            archived[question_id] = value
            continue
        old_question = old_questions.get(question_id)
        if old_question is not None and old_question.type != new_question.type:
            dropped.append(DroppedAnswer(question_id=question_id, value=value, reason="type_changed"))
            reentry.append(question_id)
            continue
        migrated_answers[question_id] = value

    unanswered = [
        q.id for q in new_version.questions if q.required and is_blank(migrated_answers.get(q.id))
    ]

    before = evaluate(
        build_selection(
            reader,
            old_version,
            clause_version_ids=clause_version_ids,
            selected_slots=selected_slots,
            answers=answers,
            tenant_id=tenant_id,
        )
    )
    after = evaluate(
        build_selection(
            reader,
            new_version,
            clause_version_ids=new_pins.clause_version_ids,
            selected_slots=kept_slots,
            answers=migrated_answers,
            tenant_id=tenant_id,
        )
    )
    before_keys = {_conflict_key(c) for c in before.conflicts}
    after_keys = {_conflict_key(c) for c in after.conflicts}

    report = MigrationReport(
        from_template_version_id=old_version.id,
        to_template_version_id=new_version.id,
        added_pins=added,
        removed_pins=removed,
        updated_pins=updated,
        kept_selections=sorted(kept_slots),
        removed_selections=removed_selections,
        unfilled_slots=unfilled,
        migrated_answers=sorted(migrated_answers),
        dropped_answers=dropped,
        archived_answers=archived,
        reentry_required=reentry,
        unanswered_required=unanswered,
        new_conflicts=[c for c in after.conflicts if _conflict_key(c) not in before_keys],
        resolved_conflicts=[c for c in before.conflicts if _conflict_key(c) not in after_keys],
        validation_state=after.validation_state,
    )
    logger.info(
        "Planned upgrade %s -> %s: %d pins updated, %d selections removed, %d answers dropped",
        old_version.id,
        new_version.id,
        len(updated),
        len(removed_selections),
        len(dropped) + len(archived),
    )
    return UpgradePlan(
        pins=new_pins,
        selected_slots=kept_slots,
        answers=migrated_answers,
        conflicts=after,
        report=report,
    )
