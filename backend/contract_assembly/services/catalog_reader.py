"""
Read-only access to the versioned catalog.

The contract core never touches catalog tables directly; it goes through a
``CatalogReader``. Published versions are immutable, so payloads are cached
for the lifetime of the reader and shared between lookups without locking.
"""

from __future__ import annotations

import logging
from typing import Protocol
from uuid import UUID

from sqlalchemy.orm import Session

from contract_assembly.core.exceptions import NoPublishedVersion, NotFound
from contract_assembly.models.catalog import Clause, ClauseVersion, Template, TemplateVersion
from contract_assembly.models.enums import VersionStatus
from contract_assembly.schemas.catalog import ClauseVersionPayload, TemplateVersionPayload

logger = logging.getLogger(__name__)

VersionPayload = ClauseVersionPayload | TemplateVersionPayload


class CatalogReader(Protocol):
    def current_published_version(self, block_id: UUID) -> UUID:
        ...

    def version_content(self, version_id: UUID) -> VersionPayload:
        ...

    def version_status(self, version_id: UUID) -> VersionStatus:
        ...


class SqlCatalogReader:
    """``CatalogReader`` backed by the catalog tables of the current session."""

    def __init__(self, db: Session) -> None:
        self._db = db
        self._payloads: dict[UUID, VersionPayload] = {}

    def current_published_version(self, block_id: UUID) -> UUID:
        block = self._db.get(Clause, block_id) or self._db.get(Template, block_id)
        if block is None:
            raise NotFound("BuildingBlock", block_id)
        pointer = block.current_published_version_id
        if pointer is None:
            raise NoPublishedVersion(block_id)
        # A pointer left on a deprecated version means there is no replacement yet.
        if self.version_status(pointer) != VersionStatus.PUBLISHED:
            logger.info("Block %s points at non-published version %s", block_id, pointer)
            raise NoPublishedVersion(block_id, details={"version_id": str(pointer)})
        return pointer

    def version_content(self, version_id: UUID) -> VersionPayload:
        cached = self._payloads.get(version_id)
        if cached is not None:
            return cached

        clause_version = self._db.get(ClauseVersion, version_id)
        if clause_version is not None:
            payload: VersionPayload = ClauseVersionPayload(
                id=clause_version.id,
                clause_id=clause_version.clause_id,
                version_number=clause_version.version_number,
                status=clause_version.status,
                content=clause_version.content,
                parameters=clause_version.parameters or {},
                rules=clause_version.rules or [],
                published_at=clause_version.published_at,
            )
        else:
            template_version = self._db.get(TemplateVersion, version_id)
            if template_version is None:
                raise NotFound("Version", version_id)
            payload = TemplateVersionPayload(
                id=template_version.id,
                template_id=template_version.template_id,
                version_number=template_version.version_number,
                status=template_version.status,
                jurisdiction=template_version.template.jurisdiction,
                structure=template_version.structure or [],
                questions=template_version.questions or [],
                published_at=template_version.published_at,
            )

        # payload.status is as of first load; version_status() reads the live value.
        self._payloads[version_id] = payload
        return payload

    def version_status(self, version_id: UUID) -> VersionStatus:
        version = self._db.get(ClauseVersion, version_id) or self._db.get(TemplateVersion, version_id)
        if version is None:
            raise NotFound("Version", version_id)
        return VersionStatus(version.status)


def load_clause_version(reader: CatalogReader, version_id: UUID) -> ClauseVersionPayload:
    payload = reader.version_content(version_id)
    if not isinstance(payload, ClauseVersionPayload):
        raise NotFound("ClauseVersion", version_id)
    return payload


def load_template_version(reader: CatalogReader, version_id: UUID) -> TemplateVersionPayload:
    payload = reader.version_content(version_id)
    if not isinstance(payload, TemplateVersionPayload):
        raise NotFound("TemplateVersion", version_id)
    return payload
