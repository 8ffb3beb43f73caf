import logging
from typing import Optional

from orgchart.db.store import EntityStore
from orgchart.models.entity import AS_APPOINTED, AS_DEPARTMENT, ORGANISATION, PERSON
from orgchart.models.transactions import MoveDepartment, MovePerson
from orgchart.services.transactions.entities import CITIZEN, DEPARTMENT, MINISTER, terminate_child
from orgchart.services.transactions.identifiers import AllocationContext
from orgchart.services.transactions.lookup import find_one, get_active_relationships, pick_active
from orgchart.services.transactions.saga import Saga, TransactionResult

logger = logging.getLogger(__name__)


def close_department_edge(
    store: EntityStore, saga: Saga, *, minister_id: str, department_id: str, date_iso: str
) -> bool:
    """Close minister -> department if it is still active; returns whether it was."""
    active = pick_active(get_active_relationships(store, minister_id, AS_DEPARTMENT), department_id)
    if active is None:
        logger.info("Department %s no longer active under %s; nothing to close", department_id, minister_id)
        return False
    terminate_child(
        store,
        saga,
        parent_id=minister_id,
        child_id=department_id,
        child_type=DEPARTMENT,
        rel_type=AS_DEPARTMENT,
        date_iso=date_iso,
    )
    return True


def move_department_between(
    store: EntityStore,
    saga: Saga,
    *,
    old_minister_id: str,
    new_minister_id: str,
    department_id: str,
    date_iso: str,
) -> bool:
    """Hang a department under the new minister, then close its edge to the old one."""
    saga.attach(store, new_minister_id, department_id, AS_DEPARTMENT, date_iso)
    return close_department_edge(store, saga, minister_id=old_minister_id, department_id=department_id, date_iso=date_iso)


def move_department(
    store: EntityStore, command: MoveDepartment, context: Optional[AllocationContext] = None
) -> TransactionResult:
    """Move a department between ministers.

    The new edge is attached unconditionally; a department already detached
    from the old minister still counts as a successful move.
    """
    with Saga(command.action) as saga:
        new_minister = find_one(store, ORGANISATION, MINISTER, command.new_parent, role="new parent")
        department = find_one(store, ORGANISATION, DEPARTMENT, command.child, role="child")
        saga.attach(store, new_minister.id, department.id, AS_DEPARTMENT, command.iso_date)
        old_minister = find_one(store, ORGANISATION, MINISTER, command.old_parent, role="old parent")
        close_department_edge(store, saga, minister_id=old_minister.id, department_id=department.id, date_iso=command.iso_date)
        logger.info("move_department: %s from %s to %s", command.child, command.old_parent, command.new_parent)
        return saga.result(context or AllocationContext(), entity_id=department.id)


def move_person(
    store: EntityStore, command: MovePerson, context: Optional[AllocationContext] = None
) -> TransactionResult:
    """Reappoint a citizen from one minister to another; the old appointment must be active."""
    with Saga(command.action) as saga:
        new_minister = find_one(store, ORGANISATION, MINISTER, command.new_parent, role="new parent")
        person = find_one(store, PERSON, CITIZEN, command.child, role="child")
        saga.attach(store, new_minister.id, person.id, AS_APPOINTED, command.iso_date)
        old_minister = find_one(store, ORGANISATION, MINISTER, command.old_parent, role="old parent")
        terminate_child(
            store,
            saga,
            parent_id=old_minister.id,
            child_id=person.id,
            child_type=CITIZEN,
            rel_type=AS_APPOINTED,
            date_iso=command.iso_date,
        )
        logger.info("move_person: %s from %s to %s", command.child, command.old_parent, command.new_parent)
        return saga.result(context or AllocationContext(), entity_id=person.id)
