"""Step log for composite transactions.

Each operation runs inside one `Saga`. Every write is recorded as a named step
with an optional undo. Nothing is undone automatically: when the operation
fails, the saga is attached to the raised error so the caller can inspect
`completed_steps` and decide whether to call `compensate()`.

Undo coverage follows the store's append-only rules: an attach is undone by
closing the new edge at its own start time, while entity creation and detach
have no undo (entities are never deleted, and a partial update cannot clear an
end time).
"""
from dataclasses import dataclass, field
import logging
from typing import Any, Callable, List, Optional

from orgchart.db.store import EntityStore
from orgchart.errors import OrgChartError
from orgchart.models.entity import Entity, Relationship
from orgchart.services.transactions.identifiers import AllocationContext
from orgchart.services.transactions.primitives import attach, detach

logger = logging.getLogger(__name__)


@dataclass
class Step:
    name: str
    undo: Optional[Callable[[], Any]] = None


@dataclass
class TransactionResult:
    """Outcome of one applied transaction.

    `counter` is the counter value used for the entity the transaction created
    (0 when nothing new was created or an existing entity was reused).
    """

    action: str
    context: AllocationContext
    counter: int = 0
    entity_id: Optional[str] = None
    steps: List[str] = field(default_factory=list)


class Saga:
    def __init__(self, name: str) -> None:
        self.name = name
        self.completed: List[Step] = []

    def __enter__(self) -> "Saga":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if isinstance(exc, OrgChartError) and exc.saga is None:
            exc.saga = self
            if self.completed:
                logger.error(
                    "%s failed after %d step(s): %s",
                    self.name,
                    len(self.completed),
                    ", ".join(self.step_names),
                )
        return False

    @property
    def step_names(self) -> List[str]:
        return [s.name for s in self.completed]

    def record(self, name: str, undo: Optional[Callable[[], Any]] = None) -> None:
        self.completed.append(Step(name, undo))

    def create_entity(self, store: EntityStore, entity: Entity) -> Entity:
        created = store.create_entity(entity)
        self.record(f"create {entity.kind.major}/{entity.kind.minor} {entity.id}")
        return created

    def attach(self, store: EntityStore, source_id: str, target_id: str, rel_type: str, start_time: str) -> Relationship:
        rel = attach(store, source_id, target_id, rel_type, start_time)
        self.record(
            f"attach {rel_type} {source_id} -> {target_id}",
            undo=lambda: detach(store, source_id, rel.id, start_time),
        )
        return rel

    def detach(self, store: EntityStore, source_id: str, rel_id: str, end_time: str) -> Relationship:
        rel = detach(store, source_id, rel_id, end_time)
        self.record(f"detach {rel.name or rel_id} {source_id} -> {rel.related_entity_id or '?'}")
        return rel

    def result(self, context: AllocationContext, *, counter: int = 0, entity_id: Optional[str] = None) -> TransactionResult:
        return TransactionResult(
            action=self.name,
            context=context,
            counter=counter,
            entity_id=entity_id,
            steps=self.step_names,
        )

    def compensate(self) -> List[str]:
        """Run available undos in reverse order; returns the names of the undone steps.

        Steps without an undo are skipped with a warning. An undo that fails
        stops compensation and propagates.
        """
        undone: List[str] = []
        for step in reversed(self.completed):
            if step.undo is None:
                logger.warning("%s: step '%s' has no undo, skipping", self.name, step.name)
                continue
            step.undo()
            undone.append(step.name)
        return undone
