import pytest

from orgchart.db.memory_store import InMemoryEntityStore
from orgchart.errors import StoreError
from orgchart.models.entity import Entity, Kind, Relationship, RelationshipFilter, SearchCriteria, TimeBasedValue


def _seeded():
    store = InMemoryEntityStore()
    store.create_entity(
        Entity(
            id="m1",
            kind=Kind(major="Organisation", minor="minister"),
            name=TimeBasedValue(start_time="2024-01-01T00:00:00Z", value="Ministry of Health"),
        )
    )
    return store


def test_relationship_merge_is_field_level():
    store = _seeded()
    opened = Relationship(id="m1_d1", related_entity_id="d1", name="AS_DEPARTMENT", start_time="2024-01-01T00:00:00Z")
    other = Relationship(id="m1_d2", related_entity_id="d2", name="AS_DEPARTMENT", start_time="2024-01-05T00:00:00Z")
    store.update_entity("m1", Entity(id="m1", relationships={opened.id: opened}))
    store.update_entity("m1", Entity(id="m1", relationships={other.id: other}))
    store.update_entity("m1", Entity(id="m1", relationships={"m1_d1": Relationship(id="m1_d1", end_time="2024-02-01T00:00:00Z")}))

    rels = {r.id: r for r in store.get_all_related_entities("m1")}
    assert rels["m1_d1"].start_time == "2024-01-01T00:00:00Z"
    assert rels["m1_d1"].end_time == "2024-02-01T00:00:00Z"
    assert rels["m1_d1"].related_entity_id == "d1"
    assert rels["m1_d2"].is_active
    # partial update leaves the name alone
    assert store.get_entity("m1").name_value == "Ministry of Health"


def test_full_entry_reopens_closed_relationship():
    store = _seeded()
    opened = Relationship(id="m1_d1", related_entity_id="d1", name="AS_DEPARTMENT", start_time="2024-01-01T00:00:00Z")
    store.update_entity("m1", Entity(id="m1", relationships={opened.id: opened}))
    store.update_entity("m1", Entity(id="m1", relationships={"m1_d1": Relationship(id="m1_d1", end_time="2024-02-01T00:00:00Z")}))

    reopened = opened.model_copy(update={"start_time": "2024-04-01T00:00:00Z"})
    store.update_entity("m1", Entity(id="m1", relationships={reopened.id: reopened}))

    (rel,) = store.get_all_related_entities("m1")
    assert rel.start_time == "2024-04-01T00:00:00Z"
    assert rel.end_time == ""
    assert rel.is_active


def test_start_time_filter_means_started_on_or_before():
    store = _seeded()
    rel = Relationship(id="m1_d1", related_entity_id="d1", name="AS_DEPARTMENT", start_time="2024-02-01T00:00:00Z")
    store.update_entity("m1", Entity(id="m1", relationships={rel.id: rel}))
    assert store.get_related_entities("m1", RelationshipFilter(start_time="2024-01-31T00:00:00Z")) == []
    assert len(store.get_related_entities("m1", RelationshipFilter(start_time="2024-02-01T00:00:00Z"))) == 1


def test_returned_objects_are_copies():
    store = _seeded()
    found = store.search_entities(SearchCriteria(name="Ministry of Health"))[0]
    found.name.value = "changed"
    assert store.get_entity("m1").name_value == "Ministry of Health"


def test_errors():
    store = _seeded()
    with pytest.raises(StoreError) as exc:
        store.create_entity(Entity(id="m1"))
    assert exc.value.status_code == 409
    with pytest.raises(StoreError) as exc:
        store.update_entity("nope", Entity(id="nope"))
    assert exc.value.status_code == 404
