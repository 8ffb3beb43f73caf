from typing import Any, Dict, Optional
from pydantic import BaseModel, Field

GOVERNMENT_ID = "gov_01"
GOVERNMENT_NAME = "Government of Sri Lanka"
GOVERNMENT_CREATED = "2024-01-01T00:00:00Z"

ORGANISATION = "Organisation"
PERSON = "Person"
DOCUMENT = "Document"

AS_MINISTER = "AS_MINISTER"
AS_DEPARTMENT = "AS_DEPARTMENT"
AS_APPOINTED = "AS_APPOINTED"
AS_DOCUMENT = "AS_DOCUMENT"
RENAMED_TO = "RENAMED_TO"
MERGED_INTO = "MERGED_INTO"

RELATIONSHIP_TYPES = {
    AS_MINISTER,
    AS_DEPARTMENT,
    AS_APPOINTED,
    AS_DOCUMENT,
    RENAMED_TO,
    MERGED_INTO,
}


class Kind(BaseModel):
    """(major, minor) classification, e.g. (Organisation, minister)."""

    major: str = ""
    minor: str = ""


class TimeBasedValue(BaseModel):
    start_time: str = Field(default="", alias="startTime")
    end_time: str = Field(default="", alias="endTime")
    value: str = ""

    class Config:
        populate_by_name = True


class Relationship(BaseModel):
    """A directed, typed, time-bounded edge owned by its source entity.

    An empty end_time means the relationship is still active.
    """

    id: str = ""
    related_entity_id: str = Field(default="", alias="relatedEntityId")
    name: str = ""
    start_time: str = Field(default="", alias="startTime")
    end_time: str = Field(default="", alias="endTime")

    class Config:
        populate_by_name = True

    @property
    def is_active(self) -> bool:
        return not self.end_time


class Entity(BaseModel):
    """A graph node. Partial entities (for updates) leave every field but id empty."""

    id: str
    kind: Kind = Field(default_factory=Kind)
    created: str = ""
    terminated: str = ""
    name: TimeBasedValue = Field(default_factory=TimeBasedValue)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    attributes: Dict[str, Any] = Field(default_factory=dict)
    relationships: Dict[str, Relationship] = Field(default_factory=dict)

    @property
    def name_value(self) -> str:
        return self.name.value

    def to_wire(self) -> Dict[str, Any]:
        """Serialize to the entity service JSON shape (maps travel as key/value lists)."""
        return {
            "id": self.id,
            "kind": self.kind.model_dump(),
            "created": self.created,
            "terminated": self.terminated,
            "name": self.name.model_dump(by_alias=True),
            "metadata": [{"key": k, "value": v} for k, v in self.metadata.items()],
            "attributes": [{"key": k, "value": v} for k, v in self.attributes.items()],
            "relationships": [
                {"key": k, "value": rel.model_dump(by_alias=True)} for k, rel in self.relationships.items()
            ],
        }

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> "Entity":
        """Parse an entity service payload; tolerates dict or key/value-list maps and bare-string names."""
        name = data.get("name") or {}
        if isinstance(name, str):
            name = {"value": name}
        return cls(
            id=data.get("id") or "",
            kind=Kind(**(data.get("kind") or {})),
            created=data.get("created") or "",
            terminated=data.get("terminated") or "",
            name=TimeBasedValue(**name),
            metadata=_entries_to_dict(data.get("metadata")),
            attributes=_entries_to_dict(data.get("attributes")),
            relationships={
                k: v if isinstance(v, Relationship) else Relationship(**v)
                for k, v in _entries_to_dict(data.get("relationships")).items()
            },
        )


def _entries_to_dict(raw: Any) -> Dict[str, Any]:
    if not raw:
        return {}
    if isinstance(raw, dict):
        return dict(raw)
    out: Dict[str, Any] = {}
    for item in raw:
        key = item.get("key")
        if key:
            out[key] = item.get("value")
    return out


class SearchCriteria(BaseModel):
    """Entity search criteria; set fields are ANDed, unset fields are wildcards."""

    kind: Optional[Kind] = None
    name: Optional[str] = None
    id: Optional[str] = None

    def matches(self, entity: Entity) -> bool:
        if self.id and entity.id != self.id:
            return False
        if self.name and entity.name_value != self.name:
            return False
        if self.kind:
            if self.kind.major and entity.kind.major != self.kind.major:
                return False
            if self.kind.minor and entity.kind.minor != self.kind.minor:
                return False
        return True

    def to_wire(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {}
        if self.id:
            body["id"] = self.id
        if self.name:
            body["name"] = self.name
        if self.kind and (self.kind.major or self.kind.minor):
            body["kind"] = {k: v for k, v in self.kind.model_dump().items() if v}
        return body


class RelationshipFilter(BaseModel):
    """Filter for a source entity's relationships.

    start_time selects relationships that had started on or before that instant.
    """

    related_entity_id: Optional[str] = Field(default=None, alias="relatedEntityId")
    name: Optional[str] = None
    start_time: Optional[str] = Field(default=None, alias="startTime")

    class Config:
        populate_by_name = True

    def matches(self, rel: Relationship) -> bool:
        if self.related_entity_id and rel.related_entity_id != self.related_entity_id:
            return False
        if self.name and rel.name != self.name:
            return False
        # ISO-8601 timestamps in one format compare correctly as strings
        if self.start_time and rel.start_time > self.start_time:
            return False
        return True

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

