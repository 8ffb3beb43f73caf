from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from orgchart.models.transactions import Command


class TransactionRequest(BaseModel):
    command: Command
    counters: Dict[str, int] = Field(default_factory=dict, description="Last used counter per kind")


class BatchRequest(BaseModel):
    commands: List[Command] = Field(..., min_length=1)
    counters: Dict[str, int] = Field(default_factory=dict)


class ImportRequest(BaseModel):
    path: str = Field(..., description="CSV path, absolute or relative to the project root")
    counters: Optional[Dict[str, int]] = None


class TransactionOut(BaseModel):
    action: str
    entity_id: Optional[str] = None
    counter: int = 0
    counters: Dict[str, int]
    steps: List[str] = Field(default_factory=list)


class BatchOut(BaseModel):
    results: List[TransactionOut]
    counters: Dict[str, int]


class RelationshipOut(BaseModel):
    id: str
    related_entity_id: str
    name: str
    start_time: str
    end_time: str = ""
    active: bool


class EntityOut(BaseModel):
    id: str
    name: str
    kind: Dict[str, Any]
    created: str
