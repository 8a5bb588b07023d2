"""Resolve a template version's referenced clauses to published version ids."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping
from uuid import UUID

from contract_assembly.core.exceptions import NoPublishedVersion
from contract_assembly.models.enums import SlotType
from contract_assembly.schemas.catalog import TemplateVersionPayload
from contract_assembly.services.catalog_reader import CatalogReader, load_clause_version
from contract_assembly.services.rule_engine import ActiveClause, Selection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PinSet:
    template_version_id: UUID
    # clause id -> pinned clause version id, in structure order
    clause_pins: dict[UUID, UUID]

    @property
    def clause_version_ids(self) -> list[UUID]:
        return list(self.clause_pins.values())


def resolve_pins(
    reader: CatalogReader,
    template_version: TemplateVersionPayload,
    keep: Mapping[UUID, UUID] | None = None,
) -> PinSet:
    """
    Walk the template structure and pin every referenced clause.

    Clauses listed in ``keep`` stay on the given version instead of being
    re-resolved. Every other clause gets its current published version; when
    any of them has none the whole resolution fails with a single
    ``NoPublishedVersion`` naming all offending clause ids.
    """
    keep = keep or {}
    pins: dict[UUID, UUID] = {}
    unresolved: list[str] = []

    for clause_id in template_version.referenced_clause_ids():
        if clause_id in keep:
            pins[clause_id] = keep[clause_id]
            continue
        try:
            pins[clause_id] = reader.current_published_version(clause_id)
        except NoPublishedVersion:
            unresolved.append(str(clause_id))

    if unresolved:
        logger.warning(
            "Template version %s references clauses without a published version: %s",
            template_version.id,
            unresolved,
        )
        raise NoPublishedVersion(
            unresolved[0],
            details={"template_version_id": str(template_version.id), "clause_ids": unresolved},
        )

    return PinSet(template_version_id=template_version.id, clause_pins=pins)


def pin_map(reader: CatalogReader, clause_version_ids: Iterable[UUID | str]) -> dict[UUID, UUID]:
    """Map each pinned clause version back to its logical clause id."""
    pins: dict[UUID, UUID] = {}
    for raw in clause_version_ids:
        payload = load_clause_version(reader, UUID(str(raw)))
        pins[payload.clause_id] = payload.id
    return pins


def fill_default_slots(
    template_version: TemplateVersionPayload,
    selected_slots: Mapping[str, UUID | str],
    pins: Mapping[UUID, UUID],
) -> dict[str, str]:
    """Chosen slot versions plus the pinned default of every unchosen ``alternative`` slot."""
    filled = {slot_id: str(version_id) for slot_id, version_id in selected_slots.items()}
    for slot_id, slot in template_version.slots().items():
        if slot_id in filled or slot.type != SlotType.ALTERNATIVE:
            continue
        if slot.clause_id in pins:
            filled[slot_id] = str(pins[slot.clause_id])
    return filled


def build_selection(
    reader: CatalogReader,
    template_version: TemplateVersionPayload,
    *,
    clause_version_ids: Iterable[UUID | str],
    selected_slots: Mapping[str, UUID | str],
    answers: Mapping[str, Any],
    tenant_id: UUID,
) -> Selection:
    """Active clauses are the fixed inclusions plus whatever fills a slot."""
    pins = pin_map(reader, clause_version_ids)
    active: list[ActiveClause] = []
    for clause_id in template_version.fixed_clause_ids():
        if clause_id in pins:
            active.append(ActiveClause.from_payload(load_clause_version(reader, pins[clause_id])))
    filled = fill_default_slots(template_version, selected_slots, pins)
    for slot_id in sorted(filled):
        active.append(ActiveClause.from_payload(load_clause_version(reader, UUID(filled[slot_id]))))
    return Selection(
        clauses=tuple(active),
        answers=dict(answers),
        context={"tenant_id": str(tenant_id), "jurisdiction": template_version.jurisdiction},
    )
