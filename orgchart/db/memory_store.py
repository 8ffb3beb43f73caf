import threading
from typing import Dict, List

from orgchart.db.store import EntityStore
from orgchart.errors import StoreError
from orgchart.models.entity import Entity, Relationship, RelationshipFilter, SearchCriteria


class InMemoryEntityStore(EntityStore):
    """Dict-backed store with the same merge semantics as the remote entity service.

    Returned objects are copies; mutating them never changes stored state.
    """

    def __init__(self) -> None:
        self._entities: Dict[str, Entity] = {}
        self._lock = threading.Lock()

    def create_entity(self, entity: Entity) -> Entity:
        with self._lock:
            if not entity.id:
                raise StoreError("create entity", "entity id is required")
            if entity.id in self._entities:
                raise StoreError("create entity", f"entity already exists: {entity.id}", status_code=409)
            self._entities[entity.id] = entity.model_copy(deep=True)
            return entity.model_copy(deep=True)

    def update_entity(self, entity_id: str, partial: Entity) -> Entity:
        with self._lock:
            current = self._entities.get(entity_id)
            if current is None:
                raise StoreError("update entity", f"entity not found: {entity_id}", status_code=404)
            updated = current.model_copy(deep=True)
            if partial.kind.major:
                updated.kind.major = partial.kind.major
            if partial.kind.minor:
                updated.kind.minor = partial.kind.minor
            if partial.created:
                updated.created = partial.created
            if partial.terminated:
                updated.terminated = partial.terminated
            if partial.name.value:
                updated.name = partial.name.model_copy()
            updated.metadata.update(partial.metadata)
            updated.attributes.update(partial.attributes)
            for key, rel in partial.relationships.items():
                existing = updated.relationships.get(key)
                if existing is None or (rel.related_entity_id and rel.name):
                    # a full entry (attach) replaces the stored one, reopening a closed edge
                    updated.relationships[key] = rel.model_copy()
                    continue
                # partial entry (detach): only non-empty values overwrite
                changes = {k: v for k, v in rel.model_dump().items() if v}
                updated.relationships[key] = existing.model_copy(update=changes)
            self._entities[entity_id] = updated
            return updated.model_copy(deep=True)

    def search_entities(self, criteria: SearchCriteria) -> List[Entity]:
        with self._lock:
            return [e.model_copy(deep=True) for e in self._entities.values() if criteria.matches(e)]

    def get_related_entities(self, entity_id: str, rel_filter: RelationshipFilter) -> List[Relationship]:
        return [r for r in self.get_all_related_entities(entity_id) if rel_filter.matches(r)]

    def get_all_related_entities(self, entity_id: str) -> List[Relationship]:
        with self._lock:
            entity = self._entities.get(entity_id)
            if entity is None:
                raise StoreError("get relationships", f"entity not found: {entity_id}", status_code=404)
            return [r.model_copy() for r in entity.relationships.values()]

    def get_entity(self, entity_id: str) -> Entity:
        with self._lock:
            entity = self._entities.get(entity_id)
            if entity is None:
                raise StoreError("get entity", f"entity not found: {entity_id}", status_code=404)
            return entity.model_copy(deep=True)
