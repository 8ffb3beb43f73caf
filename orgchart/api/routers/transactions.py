from typing import List

from fastapi import APIRouter, HTTPException

from orgchart.api.common import get_engine, http_error
from orgchart.errors import OrgChartError
from orgchart.models.entity import SearchCriteria
from orgchart.models.api import BatchOut, BatchRequest, RelationshipOut, TransactionOut, TransactionRequest
from orgchart.services.transactions import TransactionResult, default_context

router = APIRouter(tags=["transactions"])


def _result_out(result: TransactionResult) -> TransactionOut:
    return TransactionOut(
        action=result.action,
        entity_id=result.entity_id,
        counter=result.counter,
        counters=result.context.as_dict(),
        steps=result.steps,
    )


@router.post("/transactions", response_model=TransactionOut)
def api_apply_transaction(payload: TransactionRequest):
    """Apply one transaction.

    The caller owns the counters: send the last used value per kind and keep the
    returned `counters` for the next call.
    """
    engine = get_engine()
    try:
        result = engine.apply(payload.command, default_context(payload.counters))
    except OrgChartError as exc:
        raise http_error(exc)
    return _result_out(result)


@router.post("/transactions/batch", response_model=BatchOut)
def api_apply_batch(payload: BatchRequest):
    engine = get_engine()
    try:
        results, ctx = engine.apply_batch(payload.commands, default_context(payload.counters))
    except OrgChartError as exc:
        raise http_error(exc)
    return BatchOut(results=[_result_out(r) for r in results], counters=ctx.as_dict())


@router.get("/entities/{entity_id}/relationships", response_model=List[RelationshipOut])
def api_get_relationships(entity_id: str, active_only: bool = False):
    engine = get_engine()
    try:
        relations = engine.store.get_all_related_entities(entity_id)
    except OrgChartError as exc:
        raise http_error(exc)
    if active_only:
        relations = [r for r in relations if r.is_active]
    if not relations and not active_only:
        # distinguish "no edges" from "no such entity" for stores that return []
        if not engine.store.search_entities(SearchCriteria(id=entity_id)):
            raise HTTPException(status_code=404, detail="Entity not found")
    return [
        RelationshipOut(
            id=r.id,
            related_entity_id=r.related_entity_id,
            name=r.name,
            start_time=r.start_time,
            end_time=r.end_time,
            active=r.is_active,
        )
        for r in sorted(relations, key=lambda r: (r.start_time, r.id))
    ]
