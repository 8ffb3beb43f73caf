import pytest

from orgchart.errors import AmbiguousMatchError, NoActiveRelationshipError, NotFoundError, ParentNotFoundError
from orgchart.models.entity import GOVERNMENT_ID, GOVERNMENT_NAME, Entity, Kind, TimeBasedValue
from orgchart.services.transactions import Saga, attach, detach, find_one, find_optional


def _entity(eid, name, minor="minister"):
    return Entity(id=eid, kind=Kind(major="Organisation", minor=minor), name=TimeBasedValue(value=name))


def test_attach_then_detach(store):
    store.create_entity(_entity("m1", "Ministry of Health"))
    rel = attach(store, GOVERNMENT_ID, "m1", "AS_MINISTER", "2024-01-01T00:00:00Z")
    assert rel.id == "gov_01_m1"

    closed = detach(store, GOVERNMENT_ID, rel.id, "2024-02-01T00:00:00Z")
    assert closed.end_time == "2024-02-01T00:00:00Z"
    assert closed.start_time == "2024-01-01T00:00:00Z"

    with pytest.raises(NoActiveRelationshipError):
        detach(store, GOVERNMENT_ID, rel.id, "2024-03-01T00:00:00Z")


def test_find_one(store):
    assert find_one(store, "Organisation", "government", GOVERNMENT_NAME).id == GOVERNMENT_ID
    with pytest.raises(ParentNotFoundError):
        find_one(store, "Organisation", "minister", "Nope", role="parent")
    with pytest.raises(NotFoundError) as exc:
        find_one(store, "Organisation", "minister", "Nope", role="child")
    assert str(exc.value) == "child entity not found: Nope"
    assert find_optional(store, "Organisation", "minister", "Nope") is None


def test_find_one_refuses_to_guess(store):
    store.create_entity(_entity("m1", "Ministry of Health"))
    store.create_entity(_entity("m2", "Ministry of Health"))
    with pytest.raises(AmbiguousMatchError) as exc:
        find_one(store, "Organisation", "minister", "Ministry of Health")
    assert exc.value.matches == ["m1", "m2"]


def test_saga_attaches_itself_to_errors(store):
    store.create_entity(_entity("m1", "Ministry of Health"))
    with pytest.raises(NotFoundError) as exc:
        with Saga("demo") as saga:
            saga.attach(store, GOVERNMENT_ID, "m1", "AS_MINISTER", "2024-01-01T00:00:00Z")
            find_one(store, name="missing")
    assert exc.value.saga is saga
    assert exc.value.completed_steps == ["attach AS_MINISTER gov_01 -> m1"]


def test_compensate_skips_steps_without_undo(store):
    saga = Saga("demo")
    saga.create_entity(store, _entity("m1", "Ministry of Health"))
    saga.attach(store, GOVERNMENT_ID, "m1", "AS_MINISTER", "2024-01-01T00:00:00Z")
    assert saga.compensate() == ["attach AS_MINISTER gov_01 -> m1"]
    assert all(not r.is_active for r in store.get_all_related_entities(GOVERNMENT_ID))
