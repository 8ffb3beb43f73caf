"""Dispatch typed commands to their operations under a single writer lock."""
import logging
import threading
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from orgchart.config import get_counter_kinds
from orgchart.db.store import EntityStore
from orgchart.errors import ValidationError
from orgchart.models.entity import Entity
from orgchart.models.transactions import (
    AddDocumentEntity,
    AddOrgEntity,
    AddPersonEntity,
    MergeMinisters,
    MoveDepartment,
    MovePerson,
    RenameDepartment,
    RenameMinister,
    TerminateOrgEntity,
    TerminatePersonEntity,
    command_from_fields,
)
from orgchart.services.transactions.entities import (
    add_document_entity,
    add_org_entity,
    add_person_entity,
    create_government_node,
    terminate_org_entity,
    terminate_person_entity,
)
from orgchart.services.transactions.identifiers import AllocationContext
from orgchart.services.transactions.merges import merge_ministers
from orgchart.services.transactions.moves import move_department, move_person
from orgchart.services.transactions.renames import rename_department, rename_minister
from orgchart.services.transactions.saga import TransactionResult

logger = logging.getLogger(__name__)

Handler = Callable[[EntityStore, Any, AllocationContext], TransactionResult]

HANDLERS: Dict[type, Handler] = {
    AddOrgEntity: add_org_entity,
    AddPersonEntity: add_person_entity,
    AddDocumentEntity: add_document_entity,
    TerminateOrgEntity: terminate_org_entity,
    TerminatePersonEntity: terminate_person_entity,
    MoveDepartment: move_department,
    MovePerson: move_person,
    RenameMinister: rename_minister,
    RenameDepartment: rename_department,
    MergeMinisters: merge_ministers,
}


def default_context(counters: Optional[Mapping[str, int]] = None) -> AllocationContext:
    """Seed every configured kind at 0, then overlay the given counters."""
    seeded = AllocationContext.seeded(get_counter_kinds()).as_dict()
    seeded.update(counters or {})
    return AllocationContext(seeded)


class TransactionEngine:
    """Applies transactions against one entity store.

    All mutating calls share one lock, so within a process there is a single
    writer. Operations are not atomic; a failed operation raises with its saga
    attached and leaves earlier steps in the store.
    """

    def __init__(self, store: EntityStore, *, lock: Optional[threading.RLock] = None) -> None:
        self.store = store
        self._lock = lock or threading.RLock()

    def bootstrap(self) -> Entity:
        with self._lock:
            return create_government_node(self.store)

    def apply(self, command: Any, context: Optional[AllocationContext] = None) -> TransactionResult:
        handler = HANDLERS.get(type(command))
        if handler is None:
            raise ValidationError(f"unsupported command type: {type(command).__name__}")
        ctx = context if context is not None else default_context()
        with self._lock:
            logger.debug("Applying %s", command.action)
            return handler(self.store, command, ctx)

    def apply_fields(
        self, action: str, fields: Mapping[str, Any], context: Optional[AllocationContext] = None
    ) -> TransactionResult:
        return self.apply(command_from_fields(action, fields), context)

    def apply_batch(
        self, commands: Iterable[Any], context: Optional[AllocationContext] = None
    ) -> Tuple[List[TransactionResult], AllocationContext]:
        """Apply commands in order, threading the context through; stops at the first failure."""
        ctx = context if context is not None else default_context()
        results: List[TransactionResult] = []
        with self._lock:
            for command in commands:
                result = self.apply(command, ctx)
                ctx = result.context
                results.append(result)
        logger.info("Batch applied %d transaction(s)", len(results))
        return results, ctx
