from __future__ import annotations

from typing import Any
from uuid import UUID

from pydantic import BaseModel

from contract_assembly.models.enums import ValidationState
from contract_assembly.schemas.conflict import ConflictEntry
from contract_assembly.schemas.contract import ContractRead


class PinChange(BaseModel):
    clause_id: UUID
    from_version_id: UUID | None = None
    to_version_id: UUID | None = None


class SelectionChange(BaseModel):
    slot_id: str
    clause_version_id: UUID
    reason: str


class UnfilledSlot(BaseModel):
    slot_id: str
    required: bool


class DroppedAnswer(BaseModel):
    question_id: str
    value: Any = None
    reason: str


class MigrationReport(BaseModel):
    """Advisory summary of an upgrade. Returned to the caller, never persisted."""

    from_template_version_id: UUID
    to_template_version_id: UUID
    added_pins: list[PinChange] = []
    removed_pins: list[PinChange] = []
    updated_pins: list[PinChange] = []
    kept_selections: list[str] = []
    removed_selections: list[SelectionChange] = []
    unfilled_slots: list[UnfilledSlot] = []
    migrated_answers: list[str] = []
    dropped_answers: list[DroppedAnswer] = []
    archived_answers: dict[str, Any] = {}
    reentry_required: list[str] = []
    unanswered_required: list[str] = []
    new_conflicts: list[ConflictEntry] = []
    resolved_conflicts: list[ConflictEntry] = []
    validation_state: ValidationState


class UpgradeResult(BaseModel):
    instance: ContractRead
    report: MigrationReport
