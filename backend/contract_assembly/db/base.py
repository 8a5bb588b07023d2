"""Import all models here for Alembic migrations."""
from contract_assembly.db.base_class import Base  # noqa: F401
from contract_assembly.models.audit import AuditEvent  # noqa: F401
from contract_assembly.models.catalog import Clause, ClauseVersion, Template, TemplateVersion  # noqa: F401
from contract_assembly.models.contract import ContractInstance  # noqa: F401
