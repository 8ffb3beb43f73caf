import logging
from typing import Optional, Tuple

from orgchart.db.store import EntityStore
from orgchart.errors import BlockedByActiveDependentsError, NoActiveRelationshipError
from orgchart.models.entity import (
    AS_DEPARTMENT,
    DOCUMENT,
    GOVERNMENT_CREATED,
    GOVERNMENT_ID,
    GOVERNMENT_NAME,
    ORGANISATION,
    PERSON,
    Entity,
    Kind,
    Relationship,
    TimeBasedValue,
)
from orgchart.models.transactions import (
    AddDocumentEntity,
    AddOrgEntity,
    AddPersonEntity,
    TerminateOrgEntity,
    TerminatePersonEntity,
)
from orgchart.services.transactions.identifiers import AllocationContext, allocate_entity_id
from orgchart.services.transactions.lookup import (
    find_active_relationship,
    find_one,
    find_optional,
    get_all_relationships,
)
from orgchart.services.transactions.saga import Saga, TransactionResult

logger = logging.getLogger(__name__)

MINISTER = "minister"
DEPARTMENT = "department"
GOVERNMENT = "government"
CITIZEN = "citizen"
DOCUMENT_COUNTER = "document"


def create_government_node(store: EntityStore) -> Entity:
    """Create the root government entity every minister hangs off."""
    government = Entity(
        id=GOVERNMENT_ID,
        kind=Kind(major=ORGANISATION, minor=GOVERNMENT),
        created=GOVERNMENT_CREATED,
        name=TimeBasedValue(start_time=GOVERNMENT_CREATED, value=GOVERNMENT_NAME),
    )
    created = store.create_entity(government)
    logger.info("Created government node %s", created.id)
    return created


def new_entity(entity_id: str, major: str, minor: str, name: str, date_iso: str) -> Entity:
    return Entity(
        id=entity_id,
        kind=Kind(major=major, minor=minor),
        created=date_iso,
        terminated="",
        name=TimeBasedValue(start_time=date_iso, value=name),
    )


def add_child(
    store: EntityStore,
    saga: Saga,
    *,
    parent_id: str,
    child_name: str,
    child_major: str,
    child_type: str,
    rel_type: str,
    date_iso: str,
    transaction_id: str,
    context: AllocationContext,
    counter_kind: Optional[str] = None,
    reuse_existing: bool = False,
) -> Tuple[str, int, AllocationContext]:
    """Create (or reuse) a child entity and attach it to an already resolved parent.

    Returns (child_id, counter, context); counter is 0 when an existing entity
    was reused.
    """
    if reuse_existing:
        existing = find_optional(store, child_major, None, child_name, role=child_major.lower())
        if existing is not None:
            logger.info("Reusing existing %s %s (%s)", child_major, child_name, existing.id)
            saga.attach(store, parent_id, existing.id, rel_type, date_iso)
            return existing.id, 0, context

    entity_id, counter, context = allocate_entity_id(transaction_id, counter_kind or child_type, context)
    created = saga.create_entity(store, new_entity(entity_id, child_major, child_type, child_name, date_iso))
    child_id = created.id or entity_id
    saga.attach(store, parent_id, child_id, rel_type, date_iso)
    return child_id, counter, context


def terminate_child(
    store: EntityStore,
    saga: Saga,
    *,
    parent_id: str,
    child_id: str,
    child_type: str,
    rel_type: str,
    date_iso: str,
) -> Relationship:
    """Close the one active parent -> child relationship of rel_type.

    A minister that still has active departments cannot be terminated.
    """
    if child_type == MINISTER:
        for rel in get_all_relationships(store, child_id):
            if rel.name == AS_DEPARTMENT and rel.is_active:
                raise BlockedByActiveDependentsError("cannot terminate minister with active departments")

    active = find_active_relationship(store, parent_id, child_id, rel_type, date_iso)
    if active is None:
        raise NoActiveRelationshipError(
            f"no active relationship found between {parent_id} and {child_id} with type {rel_type}"
        )
    return saga.detach(store, parent_id, active.id, date_iso)


def _add(store, command, context, *, child_major, counter_kind=None, reuse_existing=False) -> TransactionResult:
    with Saga(command.action) as saga:
        parent = find_one(store, ORGANISATION, command.parent_type, command.parent, role="parent")
        child_id, counter, context = add_child(
            store,
            saga,
            parent_id=parent.id,
            child_name=command.child,
            child_major=child_major,
            child_type=command.child_type,
            rel_type=command.rel_type,
            date_iso=command.iso_date,
            transaction_id=command.transaction_id,
            context=context,
            counter_kind=counter_kind,
            reuse_existing=reuse_existing,
        )
        logger.info("%s: %s -[%s]-> %s (%s)", command.action, command.parent, command.rel_type, command.child, child_id)
        return saga.result(context, counter=counter, entity_id=child_id)


def add_org_entity(store: EntityStore, command: AddOrgEntity, context: AllocationContext) -> TransactionResult:
    """Always creates a new organisation entity; distinct instances may share a name after renames."""
    return _add(store, command, context, child_major=ORGANISATION)


def add_person_entity(store: EntityStore, command: AddPersonEntity, context: AllocationContext) -> TransactionResult:
    return _add(store, command, context, child_major=PERSON, reuse_existing=True)


def add_document_entity(store: EntityStore, command: AddDocumentEntity, context: AllocationContext) -> TransactionResult:
    return _add(
        store,
        command,
        context,
        child_major=DOCUMENT,
        counter_kind=DOCUMENT_COUNTER,
        reuse_existing=True,
    )


def _terminate(store, command, context, *, child_major) -> TransactionResult:
    with Saga(command.action) as saga:
        parent = find_one(store, ORGANISATION, command.parent_type, command.parent, role="parent")
        child = find_one(store, child_major, command.child_type, command.child, role="child")
        terminate_child(
            store,
            saga,
            parent_id=parent.id,
            child_id=child.id,
            child_type=command.child_type,
            rel_type=command.rel_type,
            date_iso=command.iso_date,
        )
        logger.info("%s: closed %s %s -> %s at %s", command.action, command.rel_type, command.parent, command.child, command.iso_date)
        return saga.result(context, entity_id=child.id)


def terminate_org_entity(
    store: EntityStore, command: TerminateOrgEntity, context: Optional[AllocationContext] = None
) -> TransactionResult:
    return _terminate(store, command, context or AllocationContext(), child_major=ORGANISATION)


def terminate_person_entity(
    store: EntityStore, command: TerminatePersonEntity, context: Optional[AllocationContext] = None
) -> TransactionResult:
    return _terminate(store, command, context or AllocationContext(), child_major=PERSON)
