"""Error taxonomy for the contract assembly engine.

Every error carries a stable ``code``, the HTTP status the API layer maps it
to, and a ``details`` mapping with enough structure for a caller to correct
the request (conflict list, missing preconditions, offending ids).
"""

from __future__ import annotations

from typing import Any
from uuid import UUID


class ContractEngineError(Exception):
    """Base class for all errors raised by the engine."""

    code = "ENGINE_ERROR"
    status_code = 400

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class NotFound(ContractEngineError):
    """Raised when a block, version or instance does not exist."""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str, identifier: UUID | str, **kwargs: Any) -> None:
        super().__init__(f"{resource} with id {identifier} not found", **kwargs)
        self.resource = resource
        self.identifier = identifier


class NoPublishedVersion(NotFound):
    """Raised when a building block has no version in ``published`` status."""

    code = "NO_PUBLISHED_VERSION"
    status_code = 409

    def __init__(self, block_id: UUID | str, *, details: dict[str, Any] | None = None) -> None:
        ContractEngineError.__init__(
            self,
            f"Building block {block_id} has no published version",
            details={"block_id": str(block_id), **(details or {})},
        )
        self.resource = "PublishedVersion"
        self.identifier = block_id


class TargetNotPublished(ContractEngineError):
    """Raised when an upgrade targets a template version that is not published."""

    code = "TARGET_NOT_PUBLISHED"
    status_code = 409


class InvalidState(ContractEngineError):
    """Raised when an operation is not valid in the instance's lifecycle state."""

    code = "INVALID_STATE"
    status_code = 409


class PreconditionFailed(InvalidState):
    """Raised when completion preconditions (answers, slots) are not met."""

    code = "PRECONDITION_FAILED"


class ImmutabilityViolation(InvalidState):
    """Raised on any attempt to mutate frozen pins, answers or selections."""

    code = "IMMUTABILITY_VIOLATION"


class ConcurrentModification(ContractEngineError):
    """Raised when the optimistic revision check fails. Safe to retry."""

    code = "CONCURRENT_MODIFICATION"
    status_code = 409


class ConflictBlocking(ContractEngineError):
    """Raised when completion is attempted while hard conflicts exist."""

    code = "CONFLICT_BLOCKING"
    status_code = 422


class InvalidSelection(ContractEngineError):
    """Raised when a slot choice or answer falls outside its declared domain."""

    code = "INVALID_SELECTION"
    status_code = 422
