"""
Tests for rule evaluation over a selection of active clause versions.
"""

import uuid

import pytest

from contract_assembly.models.enums import RuleKind, RuleSeverity, ValidationState
from contract_assembly.schemas.catalog import Predicate, Rule
from contract_assembly.services.rule_engine import ActiveClause, Selection, evaluate, predicate_holds


def make_clause(*rules: Rule, clause_id: uuid.UUID | None = None) -> ActiveClause:
    return ActiveClause(version_id=uuid.uuid4(), clause_id=clause_id or uuid.uuid4(), rules=tuple(rules))


A = uuid.UUID("00000000-0000-0000-0010-00000000000a")
B = uuid.UUID("00000000-0000-0000-0010-00000000000b")
C = uuid.UUID("00000000-0000-0000-0010-00000000000c")


class TestClauseRules:
    """requires / forbids / incompatible_with."""

    def test_requires_missing_target_is_hard_conflict(self):
        clause = make_clause(
            Rule(kind=RuleKind.REQUIRES, target_clause_id=B, message="A needs B"), clause_id=A
        )
        report = evaluate(Selection(clauses=(clause,)))

        assert report.validation_state == ValidationState.HAS_CONFLICTS
        assert len(report.conflicts) == 1
        entry = report.conflicts[0]
        assert entry.kind == RuleKind.REQUIRES
        assert entry.severity == RuleSeverity.HARD
        assert entry.source_clause_id == A
        assert entry.target == str(B)
        assert entry.suggestion

    def test_requires_satisfied_when_target_active(self):
        a = make_clause(Rule(kind=RuleKind.REQUIRES, target_clause_id=B, message="A needs B"), clause_id=A)
        b = make_clause(clause_id=B)

        report = evaluate(Selection(clauses=(a, b)))
        assert report.validation_state == ValidationState.VALID
        assert report.conflicts == []

    def test_forbids_present_target(self):
        a = make_clause(Rule(kind=RuleKind.FORBIDS, target_clause_id=B, message="A forbids B"), clause_id=A)
        b = make_clause(clause_id=B)

        report = evaluate(Selection(clauses=(a, b)))
        assert [c.kind for c in report.conflicts] == [RuleKind.FORBIDS]
        assert report.hard and not report.soft

    def test_forbids_absent_target_is_fine(self):
        a = make_clause(Rule(kind=RuleKind.FORBIDS, target_clause_id=B, message="A forbids B"), clause_id=A)
        assert evaluate(Selection(clauses=(a,))).validation_state == ValidationState.VALID

    def test_mutual_incompatibility_reported_once(self):
        a = make_clause(
            Rule(kind=RuleKind.INCOMPATIBLE_WITH, target_clause_id=B, message="A vs B"), clause_id=A
        )
        b = make_clause(
            Rule(kind=RuleKind.INCOMPATIBLE_WITH, target_clause_id=A, message="B vs A"), clause_id=B
        )

        report = evaluate(Selection(clauses=(a, b)))
        assert len(report.conflicts) == 1
        assert report.conflicts[0].rule_id == f"incompatible_with:{A}:{B}"

    def test_declared_soft_severity_only_warns(self):
        a = make_clause(
            Rule(kind=RuleKind.REQUIRES, target_clause_id=B, severity=RuleSeverity.SOFT, message="advice"),
            clause_id=A,
        )
        report = evaluate(Selection(clauses=(a,)))
        assert report.validation_state == ValidationState.HAS_WARNINGS
        assert report.hard == []


class TestScopeAndAnswerRules:
    def test_scoped_to_defaults_to_soft(self):
        a = make_clause(
            Rule(
                kind=RuleKind.SCOPED_TO,
                predicate=Predicate(field="jurisdiction", value="AT"),
                message="Austrian clause only",
            ),
            clause_id=A,
        )
        report = evaluate(Selection(clauses=(a,), context={"jurisdiction": "DE"}))

        assert report.validation_state == ValidationState.HAS_WARNINGS
        assert report.conflicts[0].severity == RuleSeverity.SOFT
        assert report.conflicts[0].target == "jurisdiction"

    def test_scoped_to_can_be_hard(self):
        a = make_clause(
            Rule(
                kind=RuleKind.SCOPED_TO,
                predicate=Predicate(field="jurisdiction", operator="in", value=["AT", "CH"]),
                severity=RuleSeverity.HARD,
                message="not for DE",
            ),
            clause_id=A,
        )
        assert evaluate(Selection(clauses=(a,), context={"jurisdiction": "DE"})).validation_state == (
            ValidationState.HAS_CONFLICTS
        )
        assert evaluate(Selection(clauses=(a,), context={"jurisdiction": "AT"})).conflicts == []

    def test_requires_answer_missing(self):
        a = make_clause(
            Rule(kind=RuleKind.REQUIRES_ANSWER, question_id="price", message="Price needed"), clause_id=A
        )
        report = evaluate(Selection(clauses=(a,), answers={}))
        assert report.conflicts[0].target == "price"
        assert report.validation_state == ValidationState.HAS_CONFLICTS

    def test_requires_answer_predicate(self):
        a = make_clause(
            Rule(
                kind=RuleKind.REQUIRES_ANSWER,
                question_id="warranty_months",
                predicate=Predicate(operator="greater_than", value=12),
                message="Warranty must exceed a year",
            ),
            clause_id=A,
        )
        assert evaluate(Selection(clauses=(a,), answers={"warranty_months": 6})).conflicts
        assert evaluate(Selection(clauses=(a,), answers={"warranty_months": 24})).conflicts == []


class TestDeterminism:
    def test_same_selection_same_report(self):
        rules_a = (
            Rule(kind=RuleKind.REQUIRES, target_clause_id=C, message="A needs C"),
            Rule(kind=RuleKind.FORBIDS, target_clause_id=B, message="A forbids B"),
        )
        a = make_clause(*rules_a, clause_id=A)
        b = make_clause(Rule(kind=RuleKind.REQUIRES_ANSWER, question_id="q", message="q"), clause_id=B)

        first = evaluate(Selection(clauses=(a, b)))
        second = evaluate(Selection(clauses=(a, b)))
        reordered = evaluate(Selection(clauses=(b, a)))

        assert first == second
        assert first.conflicts == reordered.conflicts

    def test_hard_conflicts_sorted_first(self):
        a = make_clause(
            Rule(kind=RuleKind.REQUIRES, target_clause_id=C, severity=RuleSeverity.SOFT, message="soft"),
            clause_id=A,
        )
        b = make_clause(Rule(kind=RuleKind.REQUIRES, target_clause_id=C, message="hard"), clause_id=B)

        report = evaluate(Selection(clauses=(a, b)))
        assert [c.severity for c in report.conflicts] == [RuleSeverity.HARD, RuleSeverity.SOFT]


@pytest.mark.parametrize(
    "operator,expected,value,holds",
    [
        ("equals", "Berlin", "Berlin", True),
        ("not_equals", "Berlin", "Hamburg", True),
        ("less_than", 10, 12, False),
        ("contains", "vat", ["vat", "fees"], True),
        ("in", ["a", "b"], "c", False),
        ("exists", None, "", False),
        ("contains", "b", "abc", True),
        ("contains", 5, "abc", False),
        ("contains", ["vat"], [["vat"], "fees"], True),
        ("in", [["x"], ["y"]], ["x"], True),
        ("in", ["a", "b"], {"k": 1}, False),
        ("in", "abc", "a", False),
        ("greater_than", "2026-01-01", "2026-06-30", True),
        ("less_than", "2026-01-01", "2026-06-30", False),
        ("greater_than", "2026-01-01", "next spring", False),
        ("less_than", 10, "2026-06-30", False),
    ],
)
def test_predicate_operators(operator, expected, value, holds):
    assert predicate_holds(Predicate(operator=operator, value=expected), value, True) is holds


def test_non_string_needle_against_text_answer_is_a_conflict():
    clause = make_clause(
        Rule(
            kind=RuleKind.REQUIRES_ANSWER,
            question_id="notes",
            predicate=Predicate(operator="contains", value=5),
            message="Notes must mention the quantity",
        ),
        clause_id=A,
    )

    report = evaluate(Selection(clauses=(clause,), answers={"notes": "abc"}))

    assert [c.target for c in report.conflicts] == ["notes"]
