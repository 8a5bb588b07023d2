"""Typed views over catalog payloads (structure, interview flow, rules)."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from contract_assembly.models.enums import (
    PredicateOperator,
    QuestionType,
    RuleKind,
    RuleSeverity,
    SlotType,
    VersionStatus,
)


class Predicate(BaseModel):
    """Comparison applied to an answer value or to a scope context field."""

    field: str | None = None
    operator: PredicateOperator = PredicateOperator.EQUALS
    value: Any = None

    model_config = ConfigDict(frozen=True)


class Rule(BaseModel):
    kind: RuleKind
    target_clause_id: UUID | None = None
    question_id: str | None = None
    predicate: Predicate | None = None
    severity: RuleSeverity | None = None
    message: str
    suggestion: str | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def effective_severity(self) -> RuleSeverity:
        if self.severity is not None:
            return self.severity
        if self.kind == RuleKind.SCOPED_TO:
            return RuleSeverity.SOFT
        return RuleSeverity.HARD


class Slot(BaseModel):
    id: str
    clause_id: UUID
    type: SlotType = SlotType.REQUIRED
    alternative_clause_ids: tuple[UUID, ...] = ()

    model_config = ConfigDict(frozen=True)

    @property
    def candidate_clause_ids(self) -> tuple[UUID, ...]:
        return (self.clause_id, *self.alternative_clause_ids)

    @property
    def is_required(self) -> bool:
        return self.type == SlotType.REQUIRED


class Section(BaseModel):
    title: str
    clauses: tuple[UUID, ...] = Field(default=(), description="Fixed-included clause ids")
    slots: tuple[Slot, ...] = ()

    model_config = ConfigDict(frozen=True)


class Question(BaseModel):
    id: str
    type: QuestionType
    label: str = ""
    required: bool = False
    options: tuple[str, ...] = ()

    model_config = ConfigDict(frozen=True)


class ClauseVersionPayload(BaseModel):
    id: UUID
    clause_id: UUID
    version_number: int
    status: VersionStatus
    content: str
    parameters: dict[str, Any] = {}
    rules: tuple[Rule, ...] = ()
    published_at: datetime | None = None

    model_config = ConfigDict(frozen=True, from_attributes=True)


class TemplateVersionPayload(BaseModel):
    id: UUID
    template_id: UUID
    version_number: int
    status: VersionStatus
    jurisdiction: str
    structure: tuple[Section, ...] = ()
    questions: tuple[Question, ...] = ()
    published_at: datetime | None = None

    model_config = ConfigDict(frozen=True)

    def slots(self) -> dict[str, Slot]:
        return {slot.id: slot for section in self.structure for slot in section.slots}

    def fixed_clause_ids(self) -> list[UUID]:
        seen: dict[UUID, None] = {}
        for section in self.structure:
            for clause_id in section.clauses:
                seen.setdefault(clause_id, None)
        return list(seen)

    def referenced_clause_ids(self) -> list[UUID]:
        """Fixed inclusions and slot candidates, in structure order, without duplicates."""
        seen: dict[UUID, None] = {}
        for section in self.structure:
            for clause_id in section.clauses:
                seen.setdefault(clause_id, None)
            for slot in section.slots:
                for clause_id in slot.candidate_clause_ids:
                    seen.setdefault(clause_id, None)
        return list(seen)

    def question_map(self) -> dict[str, Question]:
        return {question.id: question for question in self.questions}
