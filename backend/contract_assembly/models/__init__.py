"""ORM models."""

# Import all models so they are registered with SQLAlchemy
from contract_assembly.models.audit import AuditEvent  # noqa
from contract_assembly.models.catalog import Clause, ClauseVersion, Template, TemplateVersion  # noqa
from contract_assembly.models.contract import ContractInstance  # noqa

__all__ = [
    "AuditEvent",
    "Clause",
    "ClauseVersion",
    "ContractInstance",
    "Template",
    "TemplateVersion",
]
