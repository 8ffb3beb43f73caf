import pytest

from orgchart.errors import AmbiguousMatchError, NotFoundError, ParentNotFoundError, StoreError, UnknownKindError
from orgchart.models.entity import AS_APPOINTED, AS_DOCUMENT, AS_MINISTER, GOVERNMENT_ID, GOVERNMENT_NAME, Entity, Kind, TimeBasedValue
from orgchart.models.transactions import AddDocumentEntity, AddOrgEntity, AddPersonEntity
from orgchart.services.transactions import AllocationContext, add_org_entity, find_one


def _minister_cmd(name="Ministry of Health", date="2024-02-01"):
    return AddOrgEntity(
        parent=GOVERNMENT_NAME,
        child=name,
        date=date,
        parent_type="government",
        child_type="minister",
        rel_type=AS_MINISTER,
        transaction_id="TX00001",
    )


def test_add_minister_under_government(store):
    res = add_org_entity(store, _minister_cmd(), AllocationContext({"minister": 0}))
    assert res.entity_id == "TX00001_min_1"
    assert res.counter == 1
    assert res.context.last("minister") == 1

    minister = store.get_entity("TX00001_min_1")
    assert minister.name_value == "Ministry of Health"
    assert minister.kind == Kind(major="Organisation", minor="minister")
    assert minister.created == "2024-02-01T00:00:00Z"

    rels = store.get_all_related_entities(GOVERNMENT_ID)
    assert len(rels) == 1
    rel = rels[0]
    assert rel.id == "gov_01_TX00001_min_1"
    assert rel.name == AS_MINISTER
    assert rel.related_entity_id == "TX00001_min_1"
    assert rel.start_time == "2024-02-01T00:00:00Z"
    assert rel.is_active


def test_organisations_are_never_deduplicated(store, ctx):
    first = add_org_entity(store, _minister_cmd(), ctx)
    second = add_org_entity(store, _minister_cmd(), first.context)
    assert first.entity_id != second.entity_id
    with pytest.raises(AmbiguousMatchError):
        find_one(store, "Organisation", "minister", "Ministry of Health")


def test_missing_parent(store, ctx):
    cmd = AddOrgEntity(
        parent="Ministry of Nowhere",
        child="Dept",
        date="2024-02-01",
        parent_type="minister",
        child_type="department",
        rel_type="AS_DEPARTMENT",
        transaction_id="TX00001",
    )
    with pytest.raises(ParentNotFoundError) as exc:
        add_org_entity(store, cmd, ctx)
    assert "Ministry of Nowhere" in str(exc.value)


def test_unknown_kind_creates_nothing(store):
    with pytest.raises(UnknownKindError):
        add_org_entity(store, _minister_cmd(), AllocationContext({"department": 0}))
    with pytest.raises(NotFoundError):
        find_one(store, "Organisation", "minister", "Ministry of Health")


def test_person_is_reused_by_name(engine, store, ctx, add_minister, active_targets):
    health, ctx = add_minister("Ministry of Health", ctx)
    wellness, ctx = add_minister("Ministry of Wellness", ctx)

    def appoint(minister):
        return engine.apply(
            AddPersonEntity(
                parent=minister,
                child="Jane Perera",
                date="2024-02-01",
                parent_type="minister",
                child_type="citizen",
                rel_type=AS_APPOINTED,
                transaction_id="TX00009",
            ),
            ctx,
        )

    first = appoint("Ministry of Health")
    second = appoint("Ministry of Wellness")
    assert first.entity_id == "TX00009_cit_1"
    assert first.counter == 1
    assert second.entity_id == first.entity_id
    assert second.counter == 0
    assert active_targets(health, AS_APPOINTED) == [first.entity_id]
    assert active_targets(wellness, AS_APPOINTED) == [first.entity_id]


def test_person_reuse_refuses_ambiguous_name(engine, store, ctx, add_minister, active_targets):
    minister_id, ctx = add_minister("Ministry of Health", ctx)
    for pid in ("p1", "p2"):
        store.create_entity(
            Entity(id=pid, kind=Kind(major="Person", minor="citizen"), name=TimeBasedValue(value="Jane Perera"))
        )

    with pytest.raises(AmbiguousMatchError) as exc:
        engine.apply(
            AddPersonEntity(
                parent="Ministry of Health",
                child="Jane Perera",
                date="2024-02-01",
                parent_type="minister",
                child_type="citizen",
                rel_type=AS_APPOINTED,
                transaction_id="TX00009",
            ),
            ctx,
        )
    assert exc.value.matches == ["p1", "p2"]
    assert exc.value.completed_steps == []
    assert active_targets(minister_id, AS_APPOINTED) == []


def test_document_uses_document_counter(engine, store, ctx, add_minister):
    add_minister("Ministry of Health", ctx)
    res = engine.apply(
        AddDocumentEntity(
            parent="Ministry of Health",
            child="Gazette 2024/01",
            date="2024-02-01",
            parent_type="minister",
            child_type="gazette",
            transaction_id="TX00010",
        ),
        ctx,
    )
    assert res.entity_id == "TX00010_doc_1"
    doc = store.get_entity(res.entity_id)
    assert doc.kind == Kind(major="Document", minor="gazette")
    rel = store.get_all_related_entities(find_one(store, "Organisation", "minister", "Ministry of Health").id)
    assert [r.name for r in rel] == [AS_DOCUMENT]


def test_create_failure_carries_saga(store, ctx):
    # occupy the id the next minister would get
    store.create_entity(Entity(id="TX00001_min_1"))
    with pytest.raises(StoreError) as exc:
        add_org_entity(store, _minister_cmd(), ctx)
    assert exc.value.saga is not None
    assert exc.value.completed_steps == []
