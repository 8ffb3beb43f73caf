"""Renames create a successor entity and link it with a permanent RENAMED_TO edge.

Neither rename is atomic: a failure part-way leaves the steps already taken in
place (see the saga attached to the raised error).
"""
import logging
from typing import Optional

from orgchart.db.store import EntityStore
from orgchart.errors import NoActiveMinisterError
from orgchart.models.entity import (
    AS_DEPARTMENT,
    AS_MINISTER,
    GOVERNMENT_NAME,
    ORGANISATION,
    RENAMED_TO,
    Entity,
    Kind,
    SearchCriteria,
)
from orgchart.models.transactions import RenameDepartment, RenameMinister
from orgchart.services.transactions.entities import (
    DEPARTMENT,
    GOVERNMENT,
    MINISTER,
    add_child,
    terminate_child,
)
from orgchart.services.transactions.identifiers import AllocationContext
from orgchart.services.transactions.lookup import find_one, get_active_relationships, pick_active
from orgchart.services.transactions.saga import Saga, TransactionResult

logger = logging.getLogger(__name__)


def rename_minister(store: EntityStore, command: RenameMinister, context: AllocationContext) -> TransactionResult:
    """Replace a minister with a newly named one, carrying over every active department."""
    date_iso = command.iso_date
    with Saga(command.action) as saga:
        old_minister = find_one(store, ORGANISATION, MINISTER, command.old, role="old minister")
        government = find_one(store, ORGANISATION, GOVERNMENT, GOVERNMENT_NAME, role="parent")
        new_id, counter, context = add_child(
            store,
            saga,
            parent_id=government.id,
            child_name=command.new,
            child_major=ORGANISATION,
            child_type=MINISTER,
            rel_type=AS_MINISTER,
            date_iso=date_iso,
            transaction_id=command.transaction_id,
            context=context,
        )

        departments = get_active_relationships(store, old_minister.id, AS_DEPARTMENT)
        for rel in departments:
            saga.attach(store, new_id, rel.related_entity_id, AS_DEPARTMENT, date_iso)
            terminate_child(
                store,
                saga,
                parent_id=old_minister.id,
                child_id=rel.related_entity_id,
                child_type=DEPARTMENT,
                rel_type=AS_DEPARTMENT,
                date_iso=date_iso,
            )

        terminate_child(
            store,
            saga,
            parent_id=government.id,
            child_id=old_minister.id,
            child_type=MINISTER,
            rel_type=AS_MINISTER,
            date_iso=date_iso,
        )
        saga.attach(store, old_minister.id, new_id, RENAMED_TO, date_iso)
        logger.info(
            "rename_minister: %s -> %s (%s), %d department(s) transferred",
            command.old,
            command.new,
            new_id,
            len(departments),
        )
        return saga.result(context, counter=counter, entity_id=new_id)


def find_department_holder(store: EntityStore, department_id: str) -> Optional[Entity]:
    """Return the minister currently holding the department, or None.

    A department does not record its parent, so every minister is scanned.
    """
    ministers = store.search_entities(SearchCriteria(kind=Kind(major=ORGANISATION, minor=MINISTER)))
    for minister in sorted(ministers, key=lambda m: m.id):
        if pick_active(get_active_relationships(store, minister.id, AS_DEPARTMENT), department_id):
            return minister
    return None


def rename_department(store: EntityStore, command: RenameDepartment, context: AllocationContext) -> TransactionResult:
    date_iso = command.iso_date
    with Saga(command.action) as saga:
        old_department = find_one(store, ORGANISATION, DEPARTMENT, command.old, role="old department")
        minister = find_department_holder(store, old_department.id)
        if minister is None:
            raise NoActiveMinisterError(f"no active minister relationship found for department: {command.old}")

        new_id, counter, context = add_child(
            store,
            saga,
            parent_id=minister.id,
            child_name=command.new,
            child_major=ORGANISATION,
            child_type=DEPARTMENT,
            rel_type=AS_DEPARTMENT,
            date_iso=date_iso,
            transaction_id=command.transaction_id,
            context=context,
        )
        terminate_child(
            store,
            saga,
            parent_id=minister.id,
            child_id=old_department.id,
            child_type=DEPARTMENT,
            rel_type=AS_DEPARTMENT,
            date_iso=date_iso,
        )
        saga.attach(store, old_department.id, new_id, RENAMED_TO, date_iso)
        logger.info("rename_department: %s -> %s (%s) under %s", command.old, command.new, new_id, minister.name_value)
        return saga.result(context, counter=counter, entity_id=new_id)
