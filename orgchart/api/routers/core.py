import os

from fastapi import APIRouter, HTTPException

from orgchart.api.common import get_engine, http_error
from orgchart.errors import OrgChartError
from orgchart.models.api import EntityOut, ImportRequest
from orgchart.services.import_service import import_transactions_from_csv
from orgchart.services.transactions import default_context

router = APIRouter(tags=["core"])


@router.post("/government", status_code=201, response_model=EntityOut)
def api_bootstrap_government():
    """Create the root government entity. Fails with 409 if it already exists."""
    try:
        gov = get_engine().bootstrap()
    except OrgChartError as exc:
        raise http_error(exc)
    return EntityOut(id=gov.id, name=gov.name_value, kind=gov.kind.model_dump(), created=gov.created)


@router.post("/transactions/import")
def api_import_transactions(payload: ImportRequest):
    """Apply a transactions CSV in file order."""
    base_dir = os.path.dirname(os.path.abspath(__file__))
    # project_root: three levels up (routers -> api -> orgchart)
    project_root = os.path.abspath(os.path.join(base_dir, "..", "..", ".."))
    try:
        summary = import_transactions_from_csv(
            payload.path,
            project_root=project_root,
            engine=get_engine(),
            context=default_context(payload.counters),
        )
    except FileNotFoundError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except OrgChartError as exc:
        raise http_error(exc)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {"status": "ok", **summary}
