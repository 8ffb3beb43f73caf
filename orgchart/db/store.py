"""Entity store client contract and process-wide accessor.

The engine only talks to the graph through this interface. Backends:

- http: the remote entity update/query services (`HttpEntityStore`)
- neo4j: a Neo4j database through the shared driver (`Neo4jEntityStore`)
- memory: process-local dict store for tests and offline runs (`InMemoryEntityStore`)
"""
from abc import ABC, abstractmethod
import logging
import threading
from typing import List, Optional

from orgchart.config import get_store_backend
from orgchart.models.entity import Entity, Relationship, RelationshipFilter, SearchCriteria

logger = logging.getLogger(__name__)


class EntityStore(ABC):
    @abstractmethod
    def create_entity(self, entity: Entity) -> Entity:
        """Create an entity. Fails with StoreError if the id already exists."""

    @abstractmethod
    def update_entity(self, entity_id: str, partial: Entity) -> Entity:
        """Merge only the non-empty fields of `partial` into the stored entity.

        A full relationship entry (target and type set) replaces the stored
        entry with the same id, so attaching a closed pair reopens it. A partial
        entry (only id and end time, as sent by detach) is merged field by
        field. Sibling relationships are left untouched.
        """

    @abstractmethod
    def search_entities(self, criteria: SearchCriteria) -> List[Entity]:
        ...

    @abstractmethod
    def get_related_entities(self, entity_id: str, rel_filter: RelationshipFilter) -> List[Relationship]:
        ...

    @abstractmethod
    def get_all_related_entities(self, entity_id: str) -> List[Relationship]:
        ...

    def close(self) -> None:
        return None


_store: Optional[EntityStore] = None
_store_lock = threading.Lock()


def get_entity_store() -> EntityStore:
    """Return the configured store, creating it on first use."""
    global _store
    with _store_lock:
        if _store is None:
            backend = get_store_backend()
            if backend == "neo4j":
                from orgchart.db.neo4j_store import Neo4jEntityStore
                _store = Neo4jEntityStore()
            elif backend == "memory":
                from orgchart.db.memory_store import InMemoryEntityStore
                _store = InMemoryEntityStore()
            else:
                from orgchart.db.http_store import HttpEntityStore
                _store = HttpEntityStore.from_env()
            logger.info("Entity store backend: %s", backend)
        return _store


def close_entity_store() -> None:
    global _store
    with _store_lock:
        if _store is not None:
            _store.close()
            _store = None
