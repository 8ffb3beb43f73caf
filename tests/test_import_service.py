import os
import tempfile

import pytest

from orgchart.errors import BatchImportError, NotFoundError
from orgchart.models.entity import AS_DEPARTMENT, AS_MINISTER, GOVERNMENT_ID
from orgchart.services.import_service import import_transactions_from_csv
from orgchart.services.transactions import AllocationContext

HEADER = "action,date,transaction_id,parent,child,parent_type,child_type,rel_type,old_parent,new_parent,old,new\n"


def _write(tmp, text, name="transactions.csv"):
    path = os.path.join(tmp, name)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
    return name


def test_import_applies_rows_in_order(engine, active_targets):
    rows = (
        HEADER
        + "add_organisation,2024-01-10,TX00001,Government of Sri Lanka,Ministry of Health,government,minister,AS_MINISTER,,,,\n"
        + "add_organisation,2024-01-10,TX00002,Government of Sri Lanka,Ministry of Wellness,government,minister,AS_MINISTER,,,,\n"
        + "add_organisation,2024-01-15,TX00003,Ministry of Health,Health Planning,minister,department,AS_DEPARTMENT,,,,\n"
        + ",,,,,,,,,,,\n"
        + 'move_department,2024-03-01,,,Health Planning,,,,Ministry of Health,Ministry of Wellness,,\n'
        + 'merge_ministers,2024-06-01,TX00004,,,,,,,,"[Ministry of Health, Ministry of Wellness]",Ministry of Everything\n'
    )
    with tempfile.TemporaryDirectory() as tmp:
        csv_name = _write(tmp, rows)
        summary = import_transactions_from_csv(
            csv_name, project_root=tmp, engine=engine, context=AllocationContext({"minister": 0, "department": 0})
        )

    assert summary["transactions"]["processed_rows"] == 5
    assert summary["transactions"]["applied"] == 5
    assert summary["transactions"]["by_action"] == {
        "add_organisation": 3,
        "move_department": 1,
        "merge_ministers": 1,
    }
    assert summary["counters"] == {"minister": 3, "department": 1}
    assert active_targets(GOVERNMENT_ID, AS_MINISTER) == ["TX00004_min_3"]
    assert active_targets("TX00004_min_3", AS_DEPARTMENT) == ["TX00003_dep_1"]


def test_import_failing_row_names_row_and_keeps_earlier_rows(engine, store):
    rows = (
        HEADER
        + "add_organisation,2024-01-10,TX00001,Government of Sri Lanka,Ministry of Health,government,minister,AS_MINISTER,,,,\n"
        + "add_organisation,2024-01-15,TX00003,Ministry of Nothing,Health Planning,minister,department,AS_DEPARTMENT,,,,\n"
    )
    with tempfile.TemporaryDirectory() as tmp:
        csv_name = _write(tmp, rows)
        with pytest.raises(BatchImportError) as exc:
            import_transactions_from_csv(csv_name, project_root=tmp, engine=engine)
    assert exc.value.row == 3
    assert exc.value.action == "add_organisation"
    assert isinstance(exc.value.cause, NotFoundError)
    assert store.get_entity("TX00001_min_1").name_value == "Ministry of Health"


def test_import_missing_file(engine):
    with tempfile.TemporaryDirectory() as tmp:
        with pytest.raises(FileNotFoundError):
            import_transactions_from_csv("missing.csv", project_root=tmp, engine=engine)


def test_import_missing_headers(engine):
    with tempfile.TemporaryDirectory() as tmp:
        csv_name = _write(tmp, "action,parent\nadd_organisation,X\n")
        with pytest.raises(ValueError) as exc:
            import_transactions_from_csv(csv_name, project_root=tmp, engine=engine)
    assert "date" in str(exc.value)
