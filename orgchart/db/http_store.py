"""Entity store backed by the remote entity services over HTTP (httpx).

Two services are involved:

- update service: POST /entities, PUT /entities/{id}
- query service:  POST /v1/entities/search, POST /v1/entities/{id}/relations

Relationship, metadata and attribute maps travel as [{"key": ..., "value": ...}]
lists. Every failure is raised as StoreError naming the operation; there are no
retries.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from orgchart.config import get_http_store_config
from orgchart.db.store import EntityStore
from orgchart.errors import StoreError
from orgchart.models.entity import Entity, Relationship, RelationshipFilter, SearchCriteria

logger = logging.getLogger(__name__)


class HttpEntityStore(EntityStore):
    def __init__(
        self,
        update_url: str,
        query_url: str,
        *,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.update_url = update_url.rstrip("/")
        self.query_url = query_url.rstrip("/")
        self._client = httpx.Client(
            timeout=timeout,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            transport=transport,
        )

    @classmethod
    def from_env(cls) -> "HttpEntityStore":
        update_url, query_url, timeout = get_http_store_config()
        return cls(update_url, query_url, timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def _request(self, operation: str, method: str, url: str, body: Dict[str, Any]) -> Any:
        logger.debug("%s: %s %s", operation, method, url)
        try:
            r = self._client.request(method, url, json=body)
            r.raise_for_status()
        except httpx.HTTPStatusError as exc:
            detail = exc.response.text.strip() or exc.response.reason_phrase
            raise StoreError(operation, f"HTTP {exc.response.status_code}: {detail}", status_code=exc.response.status_code) from exc
        except httpx.HTTPError as exc:
            raise StoreError(operation, f"{type(exc).__name__}: {exc}") from exc
        if not r.content:
            return None
        try:
            return r.json()
        except ValueError as exc:
            raise StoreError(operation, "response is not valid JSON") from exc

    @staticmethod
    def _unwrap_list(payload: Any) -> List[Dict[str, Any]]:
        # query service wraps results as {"body": [...]}
        if isinstance(payload, dict):
            payload = payload.get("body") or payload.get("relations") or []
        return list(payload or [])

    def create_entity(self, entity: Entity) -> Entity:
        data = self._request("create entity", "POST", f"{self.update_url}/entities", entity.to_wire())
        return Entity.from_wire(data) if data else entity

    def update_entity(self, entity_id: str, partial: Entity) -> Entity:
        data = self._request("update entity", "PUT", f"{self.update_url}/entities/{entity_id}", partial.to_wire())
        return Entity.from_wire(data) if data else partial

    def search_entities(self, criteria: SearchCriteria) -> List[Entity]:
        payload = self._request("search entities", "POST", f"{self.query_url}/v1/entities/search", criteria.to_wire())
        return [Entity.from_wire(item) for item in self._unwrap_list(payload)]

    def get_related_entities(self, entity_id: str, rel_filter: RelationshipFilter) -> List[Relationship]:
        payload = self._request(
            "get related entities",
            "POST",
            f"{self.query_url}/v1/entities/{entity_id}/relations",
            rel_filter.to_wire(),
        )
        return [Relationship(**item) for item in self._unwrap_list(payload)]

    def get_all_related_entities(self, entity_id: str) -> List[Relationship]:
        return self.get_related_entities(entity_id, RelationshipFilter())
