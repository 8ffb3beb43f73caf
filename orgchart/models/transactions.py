"""Typed transaction commands.

One model per engine operation, each carrying only the fields it needs and
validated at construction. `action` is the discriminator, which lets FastAPI
bodies and CSV rows resolve to the right variant.
"""
from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Mapping, Union

import pydantic
from pydantic import BaseModel, Field, field_validator, model_validator

from orgchart.errors import ValidationError
from orgchart.models.entity import AS_DOCUMENT

DATE_FORMAT = "%Y-%m-%d"
ISO_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
TRANSACTION_PREFIX_LEN = 7


def _parse_date(value: str) -> datetime:
    """Parse a zero-padded YYYY-MM-DD date; strptime alone also takes 2024-3-1."""
    parsed = datetime.strptime(value, DATE_FORMAT)
    if parsed.strftime(DATE_FORMAT) != value:
        raise ValueError(f"date '{value}' is not zero-padded")
    return parsed


def to_iso_date(value: str) -> str:
    """Normalise a YYYY-MM-DD date to ISO-8601 midnight UTC."""
    try:
        parsed = _parse_date((value or "").strip())
    except ValueError as exc:
        raise ValidationError(f"failed to parse date '{value}': expected YYYY-MM-DD") from exc
    return parsed.strftime(ISO_FORMAT)


class _Command(BaseModel):
    date: str = Field(..., description="Effective date, YYYY-MM-DD")

    class Config:
        str_strip_whitespace = True
        extra = "ignore"
        frozen = True

    @field_validator("date")
    @classmethod
    def _check_date(cls, v: str) -> str:
        try:
            _parse_date(v)
        except ValueError:
            raise ValueError(f"date must be YYYY-MM-DD, got '{v}'")
        return v

    @property
    def iso_date(self) -> str:
        return to_iso_date(self.date)


class _Allocating(_Command):
    transaction_id: str = Field(..., min_length=TRANSACTION_PREFIX_LEN, description="Transaction identifier")


class AddOrgEntity(_Allocating):
    """Create a minister/department (never deduplicated by name) under an organisation."""

    action: Literal["add_organisation"] = "add_organisation"
    parent: str = Field(..., min_length=1)
    child: str = Field(..., min_length=1)
    parent_type: str = Field(..., min_length=1)
    child_type: str = Field(..., min_length=1)
    rel_type: str = Field(..., min_length=1)


class AddPersonEntity(_Allocating):
    """Attach a person to an organisation, reusing the person if the name already exists."""

    action: Literal["add_person"] = "add_person"
    parent: str = Field(..., min_length=1)
    child: str = Field(..., min_length=1)
    parent_type: str = Field(..., min_length=1)
    child_type: str = Field(..., min_length=1)
    rel_type: str = Field(..., min_length=1)


class AddDocumentEntity(_Allocating):
    action: Literal["add_document"] = "add_document"
    parent: str = Field(..., min_length=1)
    child: str = Field(..., min_length=1)
    parent_type: str = Field(..., min_length=1)
    child_type: str = Field(..., min_length=1)
    rel_type: str = AS_DOCUMENT


class TerminateOrgEntity(_Command):
    action: Literal["terminate_organisation"] = "terminate_organisation"
    parent: str = Field(..., min_length=1)
    child: str = Field(..., min_length=1)
    parent_type: str = Field(..., min_length=1)
    child_type: str = Field(..., min_length=1)
    rel_type: str = Field(..., min_length=1)


class TerminatePersonEntity(_Command):
    action: Literal["terminate_person"] = "terminate_person"
    parent: str = Field(..., min_length=1)
    child: str = Field(..., min_length=1)
    parent_type: str = Field(..., min_length=1)
    child_type: str = Field(..., min_length=1)
    rel_type: str = Field(..., min_length=1)


class _Move(_Command):
    old_parent: str = Field(..., min_length=1)
    new_parent: str = Field(..., min_length=1)
    child: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def _distinct_parents(self):
        # both edges share the id <parent>_<child>, so a self-move would close the new edge
        if self.old_parent == self.new_parent:
            raise ValueError(f"old_parent and new_parent are the same: '{self.old_parent}'")
        return self


class MoveDepartment(_Move):
    action: Literal["move_department"] = "move_department"


class MovePerson(_Move):
    action: Literal["move_person"] = "move_person"


class RenameMinister(_Allocating):
    action: Literal["rename_minister"] = "rename_minister"
    old: str = Field(..., min_length=1)
    new: str = Field(..., min_length=1)


class RenameDepartment(_Allocating):
    action: Literal["rename_department"] = "rename_department"
    old: str = Field(..., min_length=1)
    new: str = Field(..., min_length=1)


class MergeMinisters(_Allocating):
    """Merge several ministers into a new one.

    `old` accepts a list or the bracketed form "[Minister A, Minister B]".
    """

    action: Literal["merge_ministers"] = "merge_ministers"
    old: List[str] = Field(..., min_length=1)
    new: str = Field(..., min_length=1)

    @field_validator("old", mode="before")
    @classmethod
    def _split_names(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip().strip("[]").split(",")
        if isinstance(v, (list, tuple)):
            names = [str(x).strip() for x in v]
            if any(not n for n in names):
                raise ValueError("old minister list contains an empty name")
            if len(set(names)) != len(names):
                raise ValueError("old minister list contains duplicates")
            return names
        return v


Command = Annotated[
    Union[
        AddOrgEntity,
        AddPersonEntity,
        AddDocumentEntity,
        TerminateOrgEntity,
        TerminatePersonEntity,
        MoveDepartment,
        MovePerson,
        RenameMinister,
        RenameDepartment,
        MergeMinisters,
    ],
    Field(discriminator="action"),
]

COMMAND_ACTIONS = (
    "add_organisation",
    "add_person",
    "add_document",
    "terminate_organisation",
    "terminate_person",
    "move_department",
    "move_person",
    "rename_minister",
    "rename_department",
    "merge_ministers",
)

_command_adapter = pydantic.TypeAdapter(Command)


def command_from_fields(action: str, fields: Mapping[str, Any]) -> Any:
    """Build a typed command from an untyped transaction field bag.

    Empty values are dropped so that defaults apply and required fields are
    reported as missing. Raises ValidationError on any problem.
    """
    action = (action or "").strip().lower()
    if action not in COMMAND_ACTIONS:
        raise ValidationError(f"unknown transaction action: '{action}'")
    payload: Dict[str, Any] = {k: v for k, v in fields.items() if v not in (None, "")}
    payload["action"] = action
    try:
        return _command_adapter.validate_python(payload)
    except pydantic.ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'][1:]) or err['loc'][0]}: {err['msg']}" for err in exc.errors()
        )
        raise ValidationError(f"invalid {action} transaction: {problems}") from exc
