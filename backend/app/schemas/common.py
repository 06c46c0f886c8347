"""Schema Building Blocks — camelCase base model and shared field types.

Invariants:
    - Every request/response model speaks camelCase on the wire, snake_case in Python
    - Response models read straight from ORM rows (from_attributes)
    - UpdateModel bodies reject an explicit null unless the column may be cleared
    - Phone numbers contain digits, spaces and + - ( ) only

Design Decisions:
    - alias_generator over per-field aliases: one rule for the whole API
    - populate_by_name: services and tests may build models with Python names
"""

import re
from typing import Annotated, Any, ClassVar

from pydantic import (
    AfterValidator, BaseModel, ConfigDict, StringConstraints, ValidationInfo, field_validator,
)
from pydantic.alias_generators import to_camel

_PHONE_RE = re.compile(r"^[\d\s\-+()]+$")


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True,
    )


class UpdateModel(CamelModel):
    """Partial update body: omitted fields are left alone.

    An explicit null is only accepted for fields listed in `nullable_fields`
    (columns that may be cleared); anything else is a 400 on that field.
    """

    nullable_fields: ClassVar[frozenset[str]] = frozenset()

    @field_validator("*", mode="before")
    @classmethod
    def reject_null(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None and info.field_name not in cls.nullable_fields:
            raise ValueError("Field cannot be null")
        return value


def _check_phone(value: str) -> str:
    if not _PHONE_RE.match(value):
        raise ValueError("Invalid phone number")
    return value


RequiredStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
Phone = Annotated[str, StringConstraints(strip_whitespace=True), AfterValidator(_check_phone)]


class CountResult(CamelModel):
    message: str
    count: int
