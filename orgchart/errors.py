"""Error kinds raised by the transaction engine.

Every error is surfaced to the immediate caller with enough context (which
lookup or step failed, for which name) to diagnose it. Nothing here retries or
compensates.
"""
from typing import List, Optional


class OrgChartError(Exception):
    """Base class for all engine errors.

    `saga` is attached by the operation that failed, so callers can see which
    steps were already applied to the store (and undo them if they choose).
    """

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.saga = None

    @property
    def completed_steps(self) -> List[str]:
        return self.saga.step_names if self.saga is not None else []


class ValidationError(OrgChartError, ValueError):
    """Malformed or missing transaction field, or an unparseable date."""


class UnknownKindError(OrgChartError):
    def __init__(self, kind: str) -> None:
        super().__init__(f"unknown child type: {kind}")
        self.kind = kind


class NotFoundError(OrgChartError):
    def __init__(self, message: str, *, name: Optional[str] = None) -> None:
        super().__init__(message)
        self.name = name


class ParentNotFoundError(NotFoundError):
    pass


class AmbiguousMatchError(OrgChartError):
    def __init__(self, message: str, *, name: Optional[str] = None, matches: Optional[List[str]] = None) -> None:
        super().__init__(message)
        self.name = name
        self.matches = matches or []


class BlockedByActiveDependentsError(OrgChartError):
    pass


class NoActiveRelationshipError(OrgChartError):
    pass


class NoActiveMinisterError(NoActiveRelationshipError):
    pass


class StoreError(OrgChartError):
    """Failure reported by the entity store backend, wrapped with the operation name."""

    def __init__(self, operation: str, detail: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(f"{operation} failed: {detail}")
        self.operation = operation
        self.status_code = status_code


class BatchImportError(OrgChartError):
    def __init__(self, row: int, action: str, cause: Exception) -> None:
        super().__init__(f"row {row} ({action or 'unknown action'}) failed: {cause}")
        self.row = row
        self.action = action
        self.cause = cause
        self.saga = getattr(cause, "saga", None)
