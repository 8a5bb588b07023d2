from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, ConfigDict

from contract_assembly.models.enums import RuleKind, RuleSeverity, ValidationState


class ConflictEntry(BaseModel):
    rule_id: str
    kind: RuleKind
    severity: RuleSeverity
    source_clause_id: UUID
    source_version_id: UUID
    target: str | None = None
    message: str
    suggestion: str | None = None

    model_config = ConfigDict(frozen=True)


class ConflictReport(BaseModel):
    validation_state: ValidationState
    conflicts: list[ConflictEntry] = []

    @property
    def hard(self) -> list[ConflictEntry]:
        return [c for c in self.conflicts if c.severity == RuleSeverity.HARD]

    @property
    def soft(self) -> list[ConflictEntry]:
        return [c for c in self.conflicts if c.severity == RuleSeverity.SOFT]
