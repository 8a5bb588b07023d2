"""
Tests for the catalog reader, pin resolution and version immutability.
"""

import uuid

import pytest

from conftest import section, slot
from contract_assembly.core.exceptions import ImmutabilityViolation, InvalidState, NoPublishedVersion, NotFound
from contract_assembly.models.enums import RuleKind, VersionStatus
from contract_assembly.schemas.catalog import ClauseVersionPayload, TemplateVersionPayload
from contract_assembly.services import catalog
from contract_assembly.services.catalog_reader import (
    SqlCatalogReader,
    load_clause_version,
    load_template_version,
)
from contract_assembly.services.pinning import build_selection, pin_map, resolve_pins


@pytest.fixture
def reader(db):
    return SqlCatalogReader(db)


class TestCurrentPublishedVersion:
    def test_follows_latest_publication(self, builder, reader):
        clause, v1 = builder.clause("Payment terms")
        assert reader.current_published_version(clause.id) == v1.id

        v2 = builder.clause_version(clause, content="Payment within 14 days")
        assert reader.current_published_version(clause.id) == v2.id
        assert v2.version_number == 2

    def test_draft_only_block(self, builder, reader):
        clause, _ = builder.clause("Unreviewed", publish=False)
        with pytest.raises(NoPublishedVersion) as exc_info:
            reader.current_published_version(clause.id)
        assert exc_info.value.details["block_id"] == str(clause.id)

    def test_deprecated_without_replacement(self, builder, db, reader):
        clause, v1 = builder.clause("Withdrawn")
        catalog.deprecate_version(db, v1)
        db.commit()

        with pytest.raises(NoPublishedVersion):
            reader.current_published_version(clause.id)
        assert reader.version_status(v1.id) == VersionStatus.DEPRECATED

    def test_unknown_block(self, reader):
        with pytest.raises(NotFound):
            reader.current_published_version(uuid.uuid4())

    def test_publishing_twice_is_rejected(self, builder, db):
        _, v1 = builder.clause("Once only")
        with pytest.raises(InvalidState):
            catalog.publish_version(db, v1)


class TestVersionContent:
    def test_clause_payload(self, builder, reader):
        target, _ = builder.clause("Target")
        clause, v1 = builder.clause(
            "Source",
            rules=[{"kind": "forbids", "target_clause_id": str(target.id), "message": "no target"}],
        )

        payload = load_clause_version(reader, v1.id)

        assert isinstance(payload, ClauseVersionPayload)
        assert payload.clause_id == clause.id
        assert payload.status == VersionStatus.PUBLISHED
        assert payload.rules[0].kind == RuleKind.FORBIDS
        assert payload.rules[0].target_clause_id == target.id
        assert reader.version_content(v1.id) is payload

    def test_template_payload(self, builder, reader):
        clause, _ = builder.clause("Fixed")
        template, v1 = builder.template(structure=[section("Only", clauses=[clause])], jurisdiction="AT")

        payload = load_template_version(reader, v1.id)

        assert isinstance(payload, TemplateVersionPayload)
        assert payload.template_id == template.id
        assert payload.jurisdiction == "AT"
        assert payload.fixed_clause_ids() == [clause.id]

    def test_kind_mismatch(self, builder, reader):
        _, v1 = builder.clause("Clause")
        with pytest.raises(NotFound):
            load_template_version(reader, v1.id)

    def test_unknown_version(self, reader):
        with pytest.raises(NotFound):
            reader.version_content(uuid.uuid4())


class TestVersionImmutability:
    def test_published_content_cannot_change(self, builder, db):
        _, v1 = builder.clause("Stable")
        v1.content = "rewritten"

        with pytest.raises(ImmutabilityViolation) as exc_info:
            db.commit()
        db.rollback()

        assert exc_info.value.details == {"fields": ["content"]}
        db.refresh(v1)
        assert v1.content == "Stable text"

    def test_template_structure_cannot_change(self, builder, db):
        clause, _ = builder.clause("Fixed")
        _, v1 = builder.template(structure=[section("Only", clauses=[clause])])
        v1.structure = []

        with pytest.raises(ImmutabilityViolation):
            db.commit()
        db.rollback()

    def test_status_transitions_are_allowed(self, builder, db):
        _, v1 = builder.clause("Aging")
        catalog.deprecate_version(db, v1)
        db.commit()
        assert v1.status == VersionStatus.DEPRECATED.value


class TestPinning:
    def test_pins_fixed_clauses_and_slot_candidates(self, builder, reader):
        fixed, fixed_v1 = builder.clause("Fixed")
        default, default_v1 = builder.clause("Default")
        alternative, alternative_v1 = builder.clause("Alternative")
        _, template_v1 = builder.template(
            structure=[section("S", clauses=[fixed], slots=[slot("choice", default, alternative)])]
        )

        pins = resolve_pins(reader, load_template_version(reader, template_v1.id))

        assert pins.clause_pins == {
            fixed.id: fixed_v1.id,
            default.id: default_v1.id,
            alternative.id: alternative_v1.id,
        }
        assert pin_map(reader, [str(v) for v in pins.clause_version_ids]) == pins.clause_pins

    def test_keep_overrides_current_version(self, builder, reader):
        fixed, fixed_v1 = builder.clause("Fixed")
        _, template_v1 = builder.template(structure=[section("S", clauses=[fixed])])
        builder.clause_version(fixed)

        pins = resolve_pins(reader, load_template_version(reader, template_v1.id), keep={fixed.id: fixed_v1.id})
        assert pins.clause_version_ids == [fixed_v1.id]

    def test_selection_holds_fixed_and_chosen_clauses(self, builder, reader, tenant_id):
        fixed, fixed_v1 = builder.clause("Fixed")
        default, default_v1 = builder.clause("Default")
        alternative, alternative_v1 = builder.clause("Alternative")
        _, template_v1 = builder.template(
            structure=[section("S", clauses=[fixed], slots=[slot("choice", default, alternative)])],
            jurisdiction="CH",
        )
        template = load_template_version(reader, template_v1.id)
        pins = resolve_pins(reader, template)

        selection = build_selection(
            reader,
            template,
            clause_version_ids=pins.clause_version_ids,
            selected_slots={"choice": str(alternative_v1.id)},
            answers={"q": 1},
            tenant_id=tenant_id,
        )

        assert {c.version_id for c in selection.clauses} == {fixed_v1.id, alternative_v1.id}
        assert selection.context == {"tenant_id": str(tenant_id), "jurisdiction": "CH"}
        assert selection.answers == {"q": 1}
