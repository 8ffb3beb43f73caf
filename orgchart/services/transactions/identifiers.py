from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Tuple

from orgchart.errors import UnknownKindError, ValidationError
from orgchart.models.transactions import TRANSACTION_PREFIX_LEN


@dataclass(frozen=True)
class AllocationContext:
    """Per-kind counters (kind label -> last used integer) threaded through a batch.

    Immutable: allocating returns a new context, so two batches can never share
    counter state by accident.
    """

    counters: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "counters", MappingProxyType(dict(self.counters)))

    @classmethod
    def seeded(cls, kinds: Iterable[str], start: int = 0) -> "AllocationContext":
        return cls({k: start for k in kinds})

    def knows(self, kind: str) -> bool:
        return kind in self.counters

    def last(self, kind: str) -> int:
        if kind not in self.counters:
            raise UnknownKindError(kind)
        return self.counters[kind]

    def allocate(self, kind: str) -> Tuple[int, "AllocationContext"]:
        """Return the next counter for `kind` and the context that records it."""
        value = self.last(kind) + 1
        updated = dict(self.counters)
        updated[kind] = value
        return value, AllocationContext(updated)

    def as_dict(self) -> Dict[str, int]:
        return dict(self.counters)


def kind_code(kind: str) -> str:
    return kind[:3].lower()


def transaction_prefix(transaction_id: str) -> str:
    tid = (transaction_id or "").strip()
    if len(tid) < TRANSACTION_PREFIX_LEN:
        raise ValidationError(
            f"transaction id '{transaction_id}' must have at least {TRANSACTION_PREFIX_LEN} characters"
        )
    return tid[:TRANSACTION_PREFIX_LEN]


def format_entity_id(transaction_id: str, kind: str, counter: int) -> str:
    """`<first 7 chars of transaction id>_<3-letter kind code>_<counter>`; pure."""
    return f"{transaction_prefix(transaction_id)}_{kind_code(kind)}_{counter}"


def allocate_entity_id(
    transaction_id: str, kind: str, context: AllocationContext
) -> Tuple[str, int, AllocationContext]:
    """Allocate the next entity id for `kind`.

    Returns (entity_id, counter, new_context). Raises UnknownKindError when the
    context has no counter seeded for the kind.
    """
    counter, new_context = context.allocate(kind)
    return format_entity_id(transaction_id, kind, counter), counter, new_context


def relationship_id(source_id: str, target_id: str) -> str:
    return f"{source_id}_{target_id}"
