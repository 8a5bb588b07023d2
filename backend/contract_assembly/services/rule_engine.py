"""
Consistency rule evaluation.

Evaluates the rules declared on the active clause versions of a selection
and returns a ``ConflictReport``. Evaluation is pure: the same selection
always yields the same entries in the same order, so it can be re-run after
every edit without side effects.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Mapping
from uuid import UUID

from contract_assembly.models.enums import PredicateOperator, RuleKind, RuleSeverity, ValidationState
from contract_assembly.schemas.catalog import ClauseVersionPayload, Predicate, Rule
from contract_assembly.schemas.conflict import ConflictEntry, ConflictReport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActiveClause:
    version_id: UUID
    clause_id: UUID
    rules: tuple[Rule, ...] = ()

    @classmethod
    def from_payload(cls, payload: ClauseVersionPayload) -> "ActiveClause":
        return cls(version_id=payload.id, clause_id=payload.clause_id, rules=payload.rules)


@dataclass(frozen=True)
class Selection:
    """Clause versions in play (fixed inclusions and slot choices) plus answers."""

    clauses: tuple[ActiveClause, ...]
    answers: Mapping[str, Any] = field(default_factory=dict)
    context: Mapping[str, Any] = field(default_factory=dict)


def is_blank(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_date(value: Any) -> date | None:
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def _ordered(value: Any, expected: Any) -> tuple[Any, Any] | None:
    """Comparable pair: both numbers, or both ISO dates."""
    left, right = _as_number(value), _as_number(expected)
    if left is not None and right is not None:
        return left, right
    left_date, right_date = _as_date(value), _as_date(expected)
    if left_date is not None and right_date is not None:
        return left_date, right_date
    return None


def predicate_holds(predicate: Predicate | None, value: Any, present: bool) -> bool:
    """Apply ``predicate`` to ``value``. A missing predicate only checks presence."""
    if not present or predicate is None or predicate.operator == PredicateOperator.EXISTS:
        return present and not is_blank(value)

    expected = predicate.value
    op = predicate.operator
    if op == PredicateOperator.EQUALS:
        return value == expected
    if op == PredicateOperator.NOT_EQUALS:
        return value != expected
    if op in (PredicateOperator.GREATER_THAN, PredicateOperator.LESS_THAN):
        pair = _ordered(value, expected)
        if pair is None:
            return False
        left, right = pair
        return left > right if op == PredicateOperator.GREATER_THAN else left < right
    if op == PredicateOperator.CONTAINS:
        if isinstance(value, str):
            return isinstance(expected, str) and expected in value
        if isinstance(value, (list, tuple)):
            return expected in value
        return False
    if op == PredicateOperator.IN:
        if isinstance(expected, (list, tuple)):
            return value in expected
        return False
    return False


def _default_suggestion(rule: Rule, source: UUID) -> str:
    if rule.kind == RuleKind.REQUIRES:
        return f"Add clause {rule.target_clause_id} or remove clause {source}"
    if rule.kind == RuleKind.FORBIDS:
        return f"Remove clause {rule.target_clause_id}"
    if rule.kind == RuleKind.INCOMPATIBLE_WITH:
        return "Remove one of the two clauses or choose an alternative slot value"
    if rule.kind == RuleKind.SCOPED_TO:
        return "Choose an alternative slot value valid for this scope"
    return f"Answer question '{rule.question_id}'"


def _entry(rule: Rule, clause: ActiveClause, target: str | None, rule_id: str) -> ConflictEntry:
    return ConflictEntry(
        rule_id=rule_id,
        kind=rule.kind,
        severity=rule.effective_severity,
        source_clause_id=clause.clause_id,
        source_version_id=clause.version_id,
        target=target,
        message=rule.message,
        suggestion=rule.suggestion or _default_suggestion(rule, clause.clause_id),
    )


def _conflict_sort_key(entry: ConflictEntry) -> tuple:
    return (
        entry.severity != RuleSeverity.HARD,
        str(entry.source_clause_id),
        entry.kind.value,
        entry.target or "",
        entry.rule_id,
    )


def _dedupe_clauses(clauses: Iterable[ActiveClause]) -> list[ActiveClause]:
    by_version: dict[UUID, ActiveClause] = {}
    for clause in clauses:
        by_version.setdefault(clause.version_id, clause)
    return sorted(by_version.values(), key=lambda c: (str(c.clause_id), str(c.version_id)))


def validation_state_for(conflicts: Iterable[ConflictEntry]) -> ValidationState:
    severities = {c.severity for c in conflicts}
    if RuleSeverity.HARD in severities:
        return ValidationState.HAS_CONFLICTS
    if RuleSeverity.SOFT in severities:
        return ValidationState.HAS_WARNINGS
    return ValidationState.VALID


def evaluate(selection: Selection) -> ConflictReport:
    clauses = _dedupe_clauses(selection.clauses)
    active_ids = {c.clause_id for c in clauses}
    conflicts: list[ConflictEntry] = []
    seen_pairs: set[tuple[str, str]] = set()

    for clause in clauses:
        for rule in clause.rules:
            target = str(rule.target_clause_id) if rule.target_clause_id else None
            rule_id = f"{clause.version_id}:{rule.kind.value}:{target or rule.question_id or ''}"

            if rule.kind == RuleKind.REQUIRES:
                if rule.target_clause_id is not None and rule.target_clause_id not in active_ids:
                    conflicts.append(_entry(rule, clause, target, rule_id))

            elif rule.kind == RuleKind.FORBIDS:
                if (
                    rule.target_clause_id is not None
                    and rule.target_clause_id != clause.clause_id
                    and rule.target_clause_id in active_ids
                ):
                    conflicts.append(_entry(rule, clause, target, rule_id))

            elif rule.kind == RuleKind.INCOMPATIBLE_WITH:
                if (
                    rule.target_clause_id is None
                    or rule.target_clause_id == clause.clause_id
                    or rule.target_clause_id not in active_ids
                ):
                    continue
                pair = tuple(sorted((str(clause.clause_id), target)))
                if pair in seen_pairs:
                    continue
                seen_pairs.add(pair)
                conflicts.append(
                    _entry(rule, clause, target, f"{RuleKind.INCOMPATIBLE_WITH.value}:{pair[0]}:{pair[1]}")
                )

            elif rule.kind == RuleKind.SCOPED_TO:
                predicate = rule.predicate
                scope_field = predicate.field if predicate and predicate.field else "jurisdiction"
                present = scope_field in selection.context
                if not predicate_holds(predicate, selection.context.get(scope_field), present):
                    conflicts.append(_entry(rule, clause, scope_field, f"{rule_id}{scope_field}"))

            elif rule.kind == RuleKind.REQUIRES_ANSWER:
                question_id = rule.question_id or ""
                present = question_id in selection.answers
                if not predicate_holds(rule.predicate, selection.answers.get(question_id), present):
                    conflicts.append(_entry(rule, clause, question_id, rule_id))

    conflicts.sort(key=_conflict_sort_key)
    state = validation_state_for(conflicts)
    logger.debug("Evaluated %d clauses: %s (%d conflicts)", len(clauses), state.value, len(conflicts))
    return ConflictReport(validation_state=state, conflicts=conflicts)
