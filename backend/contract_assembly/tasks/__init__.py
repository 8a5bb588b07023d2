"""Celery tasks package.

Import task modules here so Celery autodiscovery registers them when loading
``contract_assembly.tasks``.
"""

# Explicit imports keep Celery from dropping "unregistered task" messages.
from contract_assembly.tasks import audit  # noqa: F401

__all__ = [
	"audit",
]
