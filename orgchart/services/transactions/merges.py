import logging

from orgchart.db.store import EntityStore
from orgchart.models.entity import AS_DEPARTMENT, AS_MINISTER, GOVERNMENT_NAME, MERGED_INTO, ORGANISATION
from orgchart.models.transactions import MergeMinisters
from orgchart.services.transactions.entities import GOVERNMENT, MINISTER, add_child, terminate_child
from orgchart.services.transactions.identifiers import AllocationContext
from orgchart.services.transactions.lookup import find_one, get_active_relationships
from orgchart.services.transactions.moves import move_department_between
from orgchart.services.transactions.saga import Saga, TransactionResult

logger = logging.getLogger(__name__)


def merge_ministers(store: EntityStore, command: MergeMinisters, context: AllocationContext) -> TransactionResult:
    """Fold several ministers into one new minister.

    Old ministers are processed in the order given. Each is fully merged
    (departments moved, government edge closed, MERGED_INTO attached) before
    the next starts, so a failure leaves earlier ones merged and later ones
    untouched.
    """
    date_iso = command.iso_date
    with Saga(command.action) as saga:
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

        for name in command.old:
            old_minister = find_one(store, ORGANISATION, MINISTER, name, role="old minister")
            departments = get_active_relationships(store, old_minister.id, AS_DEPARTMENT)
            for rel in departments:
                move_department_between(
                    store,
                    saga,
                    old_minister_id=old_minister.id,
                    new_minister_id=new_id,
                    department_id=rel.related_entity_id,
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
            saga.attach(store, old_minister.id, new_id, MERGED_INTO, date_iso)
            logger.info("merge_ministers: %s merged into %s (%d department(s))", name, command.new, len(departments))

        return saga.result(context, counter=counter, entity_id=new_id)
