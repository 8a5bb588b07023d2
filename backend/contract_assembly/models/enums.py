"""Status and kind vocabularies shared by models, schemas and services."""

from enum import Enum


class VersionStatus(str, Enum):
    DRAFT = "draft"
    REVIEW = "review"
    APPROVED = "approved"
    PUBLISHED = "published"
    DEPRECATED = "deprecated"


class ContractStatus(str, Enum):
    DRAFT = "draft"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class ValidationState(str, Enum):
    VALID = "valid"
    HAS_WARNINGS = "has_warnings"
    HAS_CONFLICTS = "has_conflicts"


class RuleKind(str, Enum):
    REQUIRES = "requires"
    FORBIDS = "forbids"
    INCOMPATIBLE_WITH = "incompatible_with"
    SCOPED_TO = "scoped_to"
    REQUIRES_ANSWER = "requires_answer"


class RuleSeverity(str, Enum):
    HARD = "hard"
    SOFT = "soft"


class SlotType(str, Enum):
    REQUIRED = "required"
    OPTIONAL = "optional"
    ALTERNATIVE = "alternative"


class QuestionType(str, Enum):
    SINGLE_CHOICE = "single_choice"
    MULTIPLE_CHOICE = "multiple_choice"
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    CURRENCY = "currency"
    YES_NO = "yes_no"


class PredicateOperator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    CONTAINS = "contains"
    IN = "in"
    EXISTS = "exists"
