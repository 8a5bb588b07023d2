from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from contract_assembly.models.enums import ContractStatus, ValidationState
from contract_assembly.schemas.conflict import ConflictEntry


class ContractCreate(BaseModel):
    template_id: UUID
    title: str = Field(min_length=1, max_length=500)
    client_reference: str | None = Field(default=None, max_length=255)
    tags: list[str] = []


class ContractUpdate(BaseModel):
    answers: dict[str, Any] | None = None
    selected_slots: dict[str, UUID | None] | None = Field(
        default=None, description="Slot id to clause version id; null clears the slot"
    )
    title: str | None = Field(default=None, min_length=1, max_length=500)
    client_reference: str | None = Field(default=None, max_length=255)
    tags: list[str] | None = None


class UpgradeRequest(BaseModel):
    target_template_version_id: UUID | None = None


class ContractRead(BaseModel):
    id: UUID
    tenant_id: UUID
    title: str
    client_reference: str | None = None
    tags: list[str] = []
    template_version_id: UUID
    clause_version_ids: list[UUID]
    answers: dict[str, Any]
    selected_slots: dict[str, UUID]
    validation_state: ValidationState
    validation_messages: list[ConflictEntry] = []
    status: ContractStatus
    revision: int
    completed_at: datetime | None = None
    archived_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ContractsPage(BaseModel):
    items: list[ContractRead]
    total: int
    limit: int
    offset: int


class VersionInfo(BaseModel):
    instance_id: UUID
    status: ContractStatus
    template_id: UUID
    template_version_id: UUID
    template_version_number: int
    latest_published_version_id: UUID | None = None
    latest_published_version_number: int | None = None
    has_newer_version: bool = False


class ExportSnapshot(BaseModel):
    """Frozen pins of a completed instance, stable for its remaining lifetime."""

    instance_id: UUID
    template_version_id: UUID
    clause_version_ids: list[UUID]
    answers: dict[str, Any]
    selected_slots: dict[str, UUID]
    completed_at: datetime

    model_config = ConfigDict(frozen=True)
