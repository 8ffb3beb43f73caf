import csv
import logging
import os
from typing import Dict, Optional

from orgchart.errors import BatchImportError, OrgChartError
from orgchart.services.transactions import AllocationContext, TransactionEngine, default_context

logger = logging.getLogger(__name__)

RequiredTransactionHeaders = {"action", "date"}


def _resolve_path(path: str, project_root: str) -> str:
    """Resolve a possibly relative path against the project root.

    If path is absolute, return it unchanged. Otherwise, join to project_root.
    """
    if os.path.isabs(path):
        return path
    return os.path.join(project_root, path)


def import_transactions_from_csv(
    transactions_csv: str,
    *,
    project_root: str,
    engine: TransactionEngine,
    context: Optional[AllocationContext] = None,
) -> Dict:
    """Apply a CSV of transactions, one row per transaction, in file order.

    Contract:
    - Inputs: CSV path (may be relative to project_root) with `action` and `date`
      columns plus whatever fields each action needs; the engine to apply rows with
    - Outputs: summary dict with row counts, per-action counts and the final counters
    - Errors: FileNotFoundError for a missing file; ValueError for missing headers;
      BatchImportError for the first failing row (earlier rows stay applied)
    """
    pr = os.path.abspath(project_root)
    t_path = _resolve_path(transactions_csv, pr)
    if not os.path.isfile(t_path):
        raise FileNotFoundError(f"Transactions CSV not found: {t_path}")

    ctx = context if context is not None else default_context()
    processed = 0
    applied = 0
    by_action: Dict[str, int] = {}
    with open(t_path, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        headers = {h.strip() for h in (reader.fieldnames or [])}
        if not RequiredTransactionHeaders.issubset(headers):
            missing = RequiredTransactionHeaders - headers
            raise ValueError(f"Transactions CSV missing required columns: {', '.join(sorted(missing))}")
        # row 1 is the header line
        for row_number, row in enumerate(reader, start=2):
            fields = {(k or "").strip(): (v or "").strip() for k, v in row.items() if k}
            action = fields.pop("action", "")
            if not action and not any(fields.values()):
                continue
            processed += 1
            try:
                result = engine.apply_fields(action, fields, ctx)
            except OrgChartError as exc:
                logger.error("Import stopped at row %d (%s): %s", row_number, action, exc)
                raise BatchImportError(row_number, action, exc) from exc
            ctx = result.context
            applied += 1
            by_action[result.action] = by_action.get(result.action, 0) + 1

    logger.info("Imported %d transaction(s) from %s", applied, t_path)
    return {
        "transactions": {
            "processed_rows": processed,
            "applied": applied,
            "by_action": by_action,
        },
        "counters": ctx.as_dict(),
    }
