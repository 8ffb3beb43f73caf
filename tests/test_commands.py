import pydantic
import pytest

from orgchart.errors import ValidationError
from orgchart.models.entity import AS_DOCUMENT
from orgchart.models.transactions import (
    AddDocumentEntity,
    MoveDepartment,
    RenameMinister,
    command_from_fields,
    to_iso_date,
)


def test_to_iso_date():
    assert to_iso_date("2024-03-01") == "2024-03-01T00:00:00Z"
    with pytest.raises(ValidationError):
        to_iso_date("2024/03/01")
    with pytest.raises(ValidationError):
        to_iso_date("2024-02-30")
    with pytest.raises(ValidationError):
        to_iso_date("2024-3-1")


def test_fields_resolve_to_typed_command():
    cmd = command_from_fields(
        "move_department",
        {"old_parent": " Ministry of Health ", "new_parent": "Ministry of Wellness", "child": "Health Planning", "date": "2024-03-01"},
    )
    assert isinstance(cmd, MoveDepartment)
    assert cmd.old_parent == "Ministry of Health"
    assert cmd.iso_date == "2024-03-01T00:00:00Z"


def test_empty_values_count_as_missing():
    with pytest.raises(ValidationError) as exc:
        command_from_fields("rename_minister", {"old": "A", "new": "", "date": "2024-03-01", "transaction_id": "TX00001"})
    assert "new" in str(exc.value)


def test_document_rel_type_defaults():
    cmd = command_from_fields(
        "add_document",
        {"parent": "M", "child": "Gazette", "parent_type": "minister", "child_type": "gazette", "date": "2024-03-01", "transaction_id": "TX00001"},
    )
    assert isinstance(cmd, AddDocumentEntity)
    assert cmd.rel_type == AS_DOCUMENT


def test_short_transaction_id():
    with pytest.raises(ValidationError):
        command_from_fields("rename_minister", {"old": "A", "new": "B", "date": "2024-03-01", "transaction_id": "TX1"})


def test_merge_rejects_duplicates_and_empty_names():
    base = {"new": "X", "date": "2024-03-01", "transaction_id": "TX00001"}
    with pytest.raises(ValidationError):
        command_from_fields("merge_ministers", {**base, "old": "[A, A]"})
    with pytest.raises(ValidationError):
        command_from_fields("merge_ministers", {**base, "old": "[A, ]"})


def test_commands_are_frozen():
    cmd = RenameMinister(old="A", new="B", date="2024-03-01", transaction_id="TX00001")
    with pytest.raises(pydantic.ValidationError):
        cmd.new = "C"


def test_dates_must_be_zero_padded():
    with pytest.raises(ValidationError) as exc:
        command_from_fields(
            "move_department",
            {"old_parent": "Ministry of Health", "new_parent": "Ministry of Wellness", "child": "Health Planning", "date": "2024-3-1"},
        )
    assert "date" in str(exc.value)
