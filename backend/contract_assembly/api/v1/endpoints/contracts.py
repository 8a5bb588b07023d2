from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from contract_assembly.api.v1.dependencies import get_lifecycle, get_tenant_id
from contract_assembly.core.config import settings
from contract_assembly.models.enums import ContractStatus
from contract_assembly.schemas.conflict import ConflictReport
from contract_assembly.schemas.contract import (
    ContractCreate,
    ContractRead,
    ContractsPage,
    ContractUpdate,
    ExportSnapshot,
    UpgradeRequest,
    VersionInfo,
)
from contract_assembly.schemas.migration import UpgradeResult
from contract_assembly.services.lifecycle import ContractLifecycle

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/", response_model=ContractRead, status_code=201)
def create_contract(
    payload: ContractCreate,
    tenant_id: UUID = Depends(get_tenant_id),
    lifecycle: ContractLifecycle = Depends(get_lifecycle),
) -> ContractRead:
    instance = lifecycle.create(tenant_id, payload)
    return ContractRead.model_validate(instance, from_attributes=True)


@router.get("/", response_model=ContractsPage)
def list_contracts(
    status: ContractStatus | None = None,
    limit: int = Query(default=settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
    tenant_id: UUID = Depends(get_tenant_id),
    lifecycle: ContractLifecycle = Depends(get_lifecycle),
) -> ContractsPage:
    instances, total = lifecycle.list_instances(
        tenant_id=tenant_id, status=status, limit=limit, offset=offset
    )
    return ContractsPage(
        items=[ContractRead.model_validate(i, from_attributes=True) for i in instances],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{contract_id}", response_model=ContractRead)
def get_contract(
    contract_id: UUID,
    tenant_id: UUID = Depends(get_tenant_id),
    lifecycle: ContractLifecycle = Depends(get_lifecycle),
) -> ContractRead:
    instance = lifecycle.get(contract_id, tenant_id=tenant_id)
    return ContractRead.model_validate(instance, from_attributes=True)


@router.patch("/{contract_id}", response_model=ContractRead)
def update_contract(
    contract_id: UUID,
    payload: ContractUpdate,
    tenant_id: UUID = Depends(get_tenant_id),
    lifecycle: ContractLifecycle = Depends(get_lifecycle),
) -> ContractRead:
    instance = lifecycle.update(contract_id, payload, tenant_id=tenant_id)
    return ContractRead.model_validate(instance, from_attributes=True)


@router.post("/{contract_id}/validate", response_model=ConflictReport)
def validate_contract(
    contract_id: UUID,
    tenant_id: UUID = Depends(get_tenant_id),
    lifecycle: ContractLifecycle = Depends(get_lifecycle),
) -> ConflictReport:
    return lifecycle.validate(contract_id, tenant_id=tenant_id)


@router.post("/{contract_id}/upgrade", response_model=UpgradeResult)
def upgrade_contract(
    contract_id: UUID,
    payload: UpgradeRequest | None = None,
    tenant_id: UUID = Depends(get_tenant_id),
    lifecycle: ContractLifecycle = Depends(get_lifecycle),
) -> UpgradeResult:
    target = payload.target_template_version_id if payload else None
    instance, report = lifecycle.upgrade(contract_id, target, tenant_id=tenant_id)
    return UpgradeResult(
        instance=ContractRead.model_validate(instance, from_attributes=True),
        report=report,
    )


@router.post("/{contract_id}/complete", response_model=ContractRead)
def complete_contract(
    contract_id: UUID,
    tenant_id: UUID = Depends(get_tenant_id),
    lifecycle: ContractLifecycle = Depends(get_lifecycle),
) -> ContractRead:
    instance = lifecycle.complete(contract_id, tenant_id=tenant_id)
    return ContractRead.model_validate(instance, from_attributes=True)


@router.post("/{contract_id}/archive", response_model=ContractRead)
def archive_contract(
    contract_id: UUID,
    tenant_id: UUID = Depends(get_tenant_id),
    lifecycle: ContractLifecycle = Depends(get_lifecycle),
) -> ContractRead:
    instance = lifecycle.archive(contract_id, tenant_id=tenant_id)
    return ContractRead.model_validate(instance, from_attributes=True)


@router.get("/{contract_id}/version-info", response_model=VersionInfo)
def get_version_info(
    contract_id: UUID,
    tenant_id: UUID = Depends(get_tenant_id),
    lifecycle: ContractLifecycle = Depends(get_lifecycle),
) -> VersionInfo:
    return lifecycle.get_version_info(contract_id, tenant_id=tenant_id)


@router.get("/{contract_id}/export", response_model=ExportSnapshot)
def export_contract(
    contract_id: UUID,
    tenant_id: UUID = Depends(get_tenant_id),
    lifecycle: ContractLifecycle = Depends(get_lifecycle),
) -> ExportSnapshot:
    return lifecycle.export_snapshot(contract_id, tenant_id=tenant_id)
