import pytest

from orgchart.db.memory_store import InMemoryEntityStore
from orgchart.models.entity import AS_DEPARTMENT, AS_MINISTER, GOVERNMENT_NAME
from orgchart.models.transactions import AddOrgEntity
from orgchart.services.transactions import AllocationContext, TransactionEngine, create_government_node


@pytest.fixture
def store():
    s = InMemoryEntityStore()
    create_government_node(s)
    return s


@pytest.fixture
def ctx():
    return AllocationContext.seeded(["minister", "department", "citizen", "document"])


@pytest.fixture
def engine(store):
    return TransactionEngine(store)


@pytest.fixture
def add_minister(engine):
    """Add a minister under the government; returns (entity_id, context)."""

    def _add(name, context, date="2024-01-10", tx="TX00001"):
        cmd = AddOrgEntity(
            parent=GOVERNMENT_NAME,
            child=name,
            date=date,
            parent_type="government",
            child_type="minister",
            rel_type=AS_MINISTER,
            transaction_id=tx,
        )
        res = engine.apply(cmd, context)
        return res.entity_id, res.context

    return _add


@pytest.fixture
def add_department(engine):
    def _add(minister, name, context, date="2024-01-15", tx="TX00002"):
        cmd = AddOrgEntity(
            parent=minister,
            child=name,
            date=date,
            parent_type="minister",
            child_type="department",
            rel_type=AS_DEPARTMENT,
            transaction_id=tx,
        )
        res = engine.apply(cmd, context)
        return res.entity_id, res.context

    return _add


@pytest.fixture
def active_targets(store):
    """Sorted ids of the entities source_id actively points at with rel_type."""

    def _targets(source_id, rel_type):
        return sorted(
            r.related_entity_id
            for r in store.get_all_related_entities(source_id)
            if r.name == rel_type and r.is_active
        )

    return _targets
