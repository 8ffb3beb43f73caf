"""Organisation-chart transaction package.

Each operation lives in its own module; everything is re-exported here so
callers can import from the package directly.
"""
from .identifiers import (
    AllocationContext,
    allocate_entity_id,
    format_entity_id,
    relationship_id,
)
from .lookup import (
    find_one,
    find_optional,
    get_active_relationships,
    get_all_relationships,
    find_active_relationship,
    pick_active,
)
from .primitives import attach, detach
from .saga import Saga, TransactionResult
from .entities import (
    create_government_node,
    add_org_entity,
    add_person_entity,
    add_document_entity,
    terminate_org_entity,
    terminate_person_entity,
)
from .moves import move_department, move_person
from .renames import rename_minister, rename_department
from .merges import merge_ministers
from .engine import TransactionEngine, default_context

__all__ = [
    # identifiers
    'AllocationContext','allocate_entity_id','format_entity_id','relationship_id',
    # lookup
    'find_one','find_optional','get_active_relationships','get_all_relationships','find_active_relationship','pick_active',
    # primitives
    'attach','detach',
    # saga
    'Saga','TransactionResult',
    # add / terminate
    'create_government_node','add_org_entity','add_person_entity','add_document_entity',
    'terminate_org_entity','terminate_person_entity',
    # moves
    'move_department','move_person',
    # renames
    'rename_minister','rename_department',
    # merges
    'merge_ministers',
    # engine
    'TransactionEngine','default_context',
]
