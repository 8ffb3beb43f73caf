"""Entity store on Neo4j.

Entities are `:Entity` nodes; relationships are edges typed by their
relationship name and carrying `id`, `start_time` and `end_time` properties.
Metadata and attribute maps are stored as JSON strings because Neo4j
properties cannot hold nested maps.
"""
import json
import logging
from typing import Any, Dict, List, Optional

from neo4j.exceptions import DriverError, Neo4jError

from orgchart.db.neo4j_connector import close_driver, run_cypher
from orgchart.db.store import EntityStore
from orgchart.errors import StoreError
from orgchart.models.entity import (
    RELATIONSHIP_TYPES,
    Entity,
    Kind,
    Relationship,
    RelationshipFilter,
    SearchCriteria,
    TimeBasedValue,
)

logger = logging.getLogger(__name__)

_ENTITY_COLUMNS = (
    "e.id AS id, e.kind_major AS kind_major, e.kind_minor AS kind_minor, "
    "e.name AS name, e.name_start AS name_start, e.created AS created, "
    "e.terminated AS terminated, e.metadata_json AS metadata_json, e.attributes_json AS attributes_json"
)

_RELATION_COLUMNS = (
    "r.id AS id, b.id AS related_entity_id, type(r) AS name, "
    "coalesce(r.start_time, '') AS start_time, coalesce(r.end_time, '') AS end_time"
)


def _json_or_none(val: Optional[Dict[str, Any]]) -> Optional[str]:
    if not val:
        return None
    return json.dumps(val, ensure_ascii=False)


def _parse_json(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _none_if_empty(v: str) -> Optional[str]:
    return v or None


def _row_to_entity(row: Dict[str, Any]) -> Entity:
    return Entity(
        id=row.get("id") or "",
        kind=Kind(major=row.get("kind_major") or "", minor=row.get("kind_minor") or ""),
        created=row.get("created") or "",
        terminated=row.get("terminated") or "",
        name=TimeBasedValue(start_time=row.get("name_start") or "", value=row.get("name") or ""),
        metadata=_parse_json(row.get("metadata_json")),
        attributes=_parse_json(row.get("attributes_json")),
    )


class Neo4jEntityStore(EntityStore):
    def _run(self, operation: str, query: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        try:
            return run_cypher(query, params) or []
        except (Neo4jError, DriverError) as exc:
            raise StoreError(operation, f"{type(exc).__name__}: {exc}") from exc

    def create_entity(self, entity: Entity) -> Entity:
        if not entity.id:
            raise StoreError("create entity", "entity id is required")
        existing = self._run("create entity", "MATCH (e:Entity {id: $id}) RETURN count(e) AS cnt", {"id": entity.id})
        if existing and (existing[0].get("cnt") or 0) > 0:
            raise StoreError("create entity", f"entity already exists: {entity.id}", status_code=409)
        query = (
            "CREATE (e:Entity {id: $id}) "
            "SET e.kind_major = $kind_major, e.kind_minor = $kind_minor, "
            "    e.name = $name, e.name_start = $name_start, "
            "    e.created = $created, e.terminated = $terminated, "
            "    e.metadata_json = $metadata_json, e.attributes_json = $attributes_json "
            f"RETURN {_ENTITY_COLUMNS}"
        )
        rows = self._run(
            "create entity",
            query,
            {
                "id": entity.id,
                "kind_major": entity.kind.major,
                "kind_minor": entity.kind.minor,
                "name": entity.name.value,
                "name_start": entity.name.start_time,
                "created": entity.created,
                "terminated": entity.terminated,
                "metadata_json": _json_or_none(entity.metadata),
                "attributes_json": _json_or_none(entity.attributes),
            },
        )
        if not rows:
            raise StoreError("create entity", f"no row returned for {entity.id}")
        for key, rel in entity.relationships.items():
            self._upsert_relationship(entity.id, key, rel)
        return _row_to_entity(rows[0])

    def update_entity(self, entity_id: str, partial: Entity) -> Entity:
        query = (
            "MATCH (e:Entity {id: $id}) "
            "SET e.kind_major = coalesce($kind_major, e.kind_major), "
            "    e.kind_minor = coalesce($kind_minor, e.kind_minor), "
            "    e.name = coalesce($name, e.name), "
            "    e.name_start = coalesce($name_start, e.name_start), "
            "    e.created = coalesce($created, e.created), "
            "    e.terminated = coalesce($terminated, e.terminated) "
            f"RETURN {_ENTITY_COLUMNS}"
        )
        rows = self._run(
            "update entity",
            query,
            {
                "id": entity_id,
                "kind_major": _none_if_empty(partial.kind.major),
                "kind_minor": _none_if_empty(partial.kind.minor),
                "name": _none_if_empty(partial.name.value),
                "name_start": _none_if_empty(partial.name.start_time),
                "created": _none_if_empty(partial.created),
                "terminated": _none_if_empty(partial.terminated),
            },
        )
        if not rows:
            raise StoreError("update entity", f"entity not found: {entity_id}", status_code=404)
        current = _row_to_entity(rows[0])
        if partial.metadata or partial.attributes:
            merged_meta = {**current.metadata, **partial.metadata}
            merged_attrs = {**current.attributes, **partial.attributes}
            self._run(
                "update entity",
                "MATCH (e:Entity {id: $id}) SET e.metadata_json = $metadata_json, e.attributes_json = $attributes_json",
                {"id": entity_id, "metadata_json": _json_or_none(merged_meta), "attributes_json": _json_or_none(merged_attrs)},
            )
            current.metadata, current.attributes = merged_meta, merged_attrs
        for key, rel in partial.relationships.items():
            self._upsert_relationship(entity_id, key, rel)
        return current

    def _upsert_relationship(self, source_id: str, key: str, rel: Relationship) -> None:
        rel_id = rel.id or key
        params = {
            "source": source_id,
            "target": rel.related_entity_id,
            "rid": rel_id,
            "start_time": _none_if_empty(rel.start_time),
            "end_time": _none_if_empty(rel.end_time),
        }
        if rel.related_entity_id and rel.name:
            if rel.name not in RELATIONSHIP_TYPES:
                raise StoreError("update entity", f"unsupported relationship type: {rel.name}")
            # Relationship type must be inlined (not parameterized).
            query = (
                f"MATCH (a:Entity {{id: $source}}), (b:Entity {{id: $target}}) "
                f"MERGE (a)-[r:{rel.name} {{id: $rid}}]->(b) "
                f"SET r.start_time = coalesce($start_time, r.start_time), "
                f"    r.end_time = $end_time "
                f"RETURN r.id AS id"
            )
        else:
            query = (
                "MATCH (a:Entity {id: $source})-[r {id: $rid}]->(:Entity) "
                "SET r.start_time = coalesce($start_time, r.start_time), "
                "    r.end_time = coalesce($end_time, r.end_time) "
                "RETURN r.id AS id"
            )
        rows = self._run("update entity", query, params)
        if not rows:
            raise StoreError("update entity", f"relationship not found: {rel_id}", status_code=404)
        logger.debug("Upserted relationship %s on %s", rel_id, source_id)

    def search_entities(self, criteria: SearchCriteria) -> List[Entity]:
        query = (
            "MATCH (e:Entity) "
            "WHERE ($id IS NULL OR e.id = $id) "
            "  AND ($name IS NULL OR e.name = $name) "
            "  AND ($major IS NULL OR e.kind_major = $major) "
            "  AND ($minor IS NULL OR e.kind_minor = $minor) "
            f"RETURN {_ENTITY_COLUMNS} "
            "ORDER BY e.id"
        )
        kind = criteria.kind or Kind()
        rows = self._run(
            "search entities",
            query,
            {
                "id": criteria.id or None,
                "name": criteria.name or None,
                "major": kind.major or None,
                "minor": kind.minor or None,
            },
        )
        return [_row_to_entity(r) for r in rows if r.get("id")]

    def get_related_entities(self, entity_id: str, rel_filter: RelationshipFilter) -> List[Relationship]:
        query = (
            "MATCH (a:Entity {id: $id})-[r]->(b:Entity) "
            "WHERE ($related IS NULL OR b.id = $related) "
            "  AND ($name IS NULL OR type(r) = $name) "
            "  AND ($start IS NULL OR r.start_time <= $start) "
            f"RETURN {_RELATION_COLUMNS} "
            "ORDER BY r.start_time, r.id"
        )
        rows = self._run(
            "get related entities",
            query,
            {
                "id": entity_id,
                "related": rel_filter.related_entity_id or None,
                "name": rel_filter.name or None,
                "start": rel_filter.start_time or None,
            },
        )
        return [Relationship(**r) for r in rows if r.get("id")]

    def get_all_related_entities(self, entity_id: str) -> List[Relationship]:
        return self.get_related_entities(entity_id, RelationshipFilter())

    def close(self) -> None:
        close_driver()
