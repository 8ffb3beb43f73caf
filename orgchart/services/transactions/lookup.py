import logging
from typing import List, Optional

from orgchart.db.store import EntityStore
from orgchart.errors import AmbiguousMatchError, NotFoundError, ParentNotFoundError
from orgchart.models.entity import Entity, Kind, Relationship, RelationshipFilter, SearchCriteria

logger = logging.getLogger(__name__)


def find_one(
    store: EntityStore,
    major: Optional[str] = None,
    minor: Optional[str] = None,
    name: Optional[str] = None,
    entity_id: Optional[str] = None,
    *,
    role: str = "entity",
) -> Entity:
    """Resolve search criteria to exactly one entity.

    Names are unique within a (major, minor) scope, so more than one match is a
    data-integrity problem upstream and is never resolved silently.
    Raises NotFoundError (ParentNotFoundError when role is "parent") or
    AmbiguousMatchError.
    """
    kind = Kind(major=major or "", minor=minor or "") if (major or minor) else None
    criteria = SearchCriteria(kind=kind, name=name or None, id=entity_id or None)
    results = store.search_entities(criteria)
    label = name or entity_id or ""
    if not results:
        err_cls = ParentNotFoundError if role == "parent" else NotFoundError
        raise err_cls(f"{role} entity not found: {label}", name=label)
    if len(results) > 1:
        raise AmbiguousMatchError(
            f"multiple entities found for {role}: {label}",
            name=label,
            matches=[e.id for e in results],
        )
    return results[0]


def find_optional(store: EntityStore, major: str, minor: Optional[str], name: str, *, role: str = "entity") -> Optional[Entity]:
    """Like find_one, but returns None when nothing matches."""
    try:
        return find_one(store, major, minor, name, role=role)
    except NotFoundError:
        return None


def get_all_relationships(store: EntityStore, entity_id: str) -> List[Relationship]:
    return store.get_all_related_entities(entity_id)


def get_active_relationships(store: EntityStore, entity_id: str, rel_type: Optional[str] = None) -> List[Relationship]:
    return [
        r
        for r in store.get_all_related_entities(entity_id)
        if r.is_active and (rel_type is None or r.name == rel_type)
    ]


def pick_active(relations: List[Relationship], child_id: str) -> Optional[Relationship]:
    """Pick the active relationship pointing at child_id.

    When several are active the most recent start_time wins (ties broken by
    relationship id) so the choice never depends on store iteration order.
    """
    active = [r for r in relations if r.related_entity_id == child_id and r.is_active]
    if not active:
        return None
    if len(active) > 1:
        logger.warning(
            "%d active relationships found for %s; choosing the most recent",
            len(active),
            child_id,
        )
    return max(active, key=lambda r: (r.start_time, r.id))


def find_active_relationship(
    store: EntityStore, parent_id: str, child_id: str, rel_type: str, at_time: str
) -> Optional[Relationship]:
    relations = store.get_related_entities(
        parent_id,
        RelationshipFilter(related_entity_id=child_id, name=rel_type, start_time=at_time),
    )
    return pick_active(relations, child_id)
