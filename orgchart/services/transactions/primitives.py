"""Attach and detach: the two primitives every transaction is built from.

Neither enforces the single-active-edge rule; callers detach conflicting edges
themselves.
"""
import logging

from orgchart.db.store import EntityStore
from orgchart.errors import NoActiveRelationshipError
from orgchart.models.entity import Entity, Relationship
from orgchart.services.transactions.identifiers import relationship_id

logger = logging.getLogger(__name__)


def attach(store: EntityStore, source_id: str, target_id: str, rel_type: str, start_time: str) -> Relationship:
    """Add one active relationship source -> target through a partial update of the source."""
    rid = relationship_id(source_id, target_id)
    rel = Relationship(id=rid, related_entity_id=target_id, name=rel_type, start_time=start_time, end_time="")
    store.update_entity(source_id, Entity(id=source_id, relationships={rid: rel}))
    logger.debug("Attached %s %s -> %s from %s", rel_type, source_id, target_id, start_time)
    return rel


def detach(store: EntityStore, source_id: str, rel_id: str, end_time: str) -> Relationship:
    """Close the active relationship `rel_id` owned by `source_id` at `end_time`.

    The active check is a separate read before the update, not an atomic
    compare-and-set.
    """
    current = next(
        (r for r in store.get_all_related_entities(source_id) if r.id == rel_id and r.is_active),
        None,
    )
    if current is None:
        raise NoActiveRelationshipError(f"no active relationship {rel_id} on {source_id}")
    closing = Relationship(id=rel_id, end_time=end_time)
    store.update_entity(source_id, Entity(id=source_id, relationships={rel_id: closing}))
    logger.debug("Detached %s on %s at %s", rel_id, source_id, end_time)
    return current.model_copy(update={"end_time": end_time})
