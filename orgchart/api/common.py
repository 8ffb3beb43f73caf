import logging
import threading
from typing import Optional

from fastapi import HTTPException

from orgchart.db.store import get_entity_store
from orgchart.errors import (
    AmbiguousMatchError,
    BatchImportError,
    BlockedByActiveDependentsError,
    NoActiveRelationshipError,
    NotFoundError,
    OrgChartError,
    StoreError,
    UnknownKindError,
    ValidationError,
)
from orgchart.services.transactions import TransactionEngine

logger = logging.getLogger(__name__)

_engine: Optional[TransactionEngine] = None
_engine_lock = threading.Lock()


def get_engine() -> TransactionEngine:
    """Process-wide engine over the configured store."""
    global _engine
    with _engine_lock:
        if _engine is None:
            _engine = TransactionEngine(get_entity_store())
        return _engine


def reset_engine() -> None:
    global _engine
    with _engine_lock:
        _engine = None


def error_status(exc: OrgChartError) -> int:
    if isinstance(exc, BatchImportError) and isinstance(exc.cause, OrgChartError):
        return error_status(exc.cause)
    if isinstance(exc, (ValidationError, UnknownKindError)):
        return 400
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, (AmbiguousMatchError, BlockedByActiveDependentsError, NoActiveRelationshipError)):
        return 409
    if isinstance(exc, StoreError):
        return exc.status_code if exc.status_code in (404, 409) else 502
    return 500


def http_error(exc: OrgChartError) -> HTTPException:
    """Translate an engine error; the detail lists the steps that were already applied."""
    status = error_status(exc)
    if status >= 500:
        logger.error("Transaction failed: %s", exc)
    return HTTPException(
        status_code=status,
        detail={"error": type(exc).__name__, "message": str(exc), "completed_steps": exc.completed_steps},
    )
