"""Pydantic schemas package."""
from contract_assembly.schemas.catalog import (
    ClauseVersionPayload,
    Predicate,
    Question,
    Rule,
    Section,
    Slot,
    TemplateVersionPayload,
)
from contract_assembly.schemas.conflict import ConflictEntry, ConflictReport
from contract_assembly.schemas.contract import (
    ContractCreate,
    ContractRead,
    ContractsPage,
    ContractUpdate,
    ExportSnapshot,
    UpgradeRequest,
    VersionInfo,
)
from contract_assembly.schemas.migration import MigrationReport, UpgradeResult

__all__ = [
    "ClauseVersionPayload",
    "ConflictEntry",
    "ConflictReport",
    "ContractCreate",
    "ContractRead",
    "ContractUpdate",
    "ContractsPage",
    "ExportSnapshot",
    "MigrationReport",
    "Predicate",
    "Question",
    "Rule",
    "Section",
    "Slot",
    "TemplateVersionPayload",
    "UpgradeRequest",
    "UpgradeResult",
    "VersionInfo",
]
