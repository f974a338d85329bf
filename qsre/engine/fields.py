"""Contributor Project field metadata used by condition-based rules.

Each queryable field carries a closed type tag. The type decides which
operators a condition may use and how values are coerced before comparison.
"""

from collections.abc import Iterator
from enum import Enum

from pydantic import BaseModel, Field


class FieldType(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"
    PICKLIST = "picklist"


class Operator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"


PERMITTED_OPERATORS: dict[FieldType, tuple[Operator, ...]] = {
    FieldType.TEXT: (Operator.EQUALS, Operator.NOT_EQUALS, Operator.CONTAINS),
    FieldType.PICKLIST: (Operator.EQUALS, Operator.NOT_EQUALS, Operator.CONTAINS),
    FieldType.NUMBER: (
        Operator.EQUALS,
        Operator.NOT_EQUALS,
        Operator.GREATER_THAN,
        Operator.LESS_THAN,
    ),
    FieldType.DATE: (Operator.EQUALS, Operator.NOT_EQUALS),
    # Shown as "Is True" / "Is False"
    FieldType.BOOLEAN: (Operator.EQUALS, Operator.NOT_EQUALS),
}


class FieldDefinition(BaseModel):
    """One queryable Contributor Project attribute."""

    name: str
    label: str
    type: FieldType
    picklist_values: list[str] = Field(default_factory=list)

    @property
    def operators(self) -> tuple[Operator, ...]:
        return PERMITTED_OPERATORS[self.type]


class FieldCatalog:
    """Static lookup table of condition fields keyed by name."""

    def __init__(self, fields: list[FieldDefinition]) -> None:
        self._fields = {f.name: f for f in fields}

    def get(self, name: str) -> FieldDefinition | None:
        return self._fields.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._fields

    def __iter__(self) -> Iterator[FieldDefinition]:
        return iter(self._fields.values())

    def allows(self, name: str, operator: Operator) -> bool:
        field = self.get(name)
        return field is not None and operator in field.operators


DEFAULT_FIELD_CATALOG = FieldCatalog(
    [
        FieldDefinition(name="name", label="Contributor Project Name", type=FieldType.TEXT),
        FieldDefinition(
            name="status",
            label="Status",
            type=FieldType.PICKLIST,
            picklist_values=["Applied", "Qualified", "Active", "Inactive", "Removed"],
        ),
        FieldDefinition(name="country", label="Country", type=FieldType.TEXT),
        FieldDefinition(name="qualification_score", label="Qualification Score", type=FieldType.NUMBER),
        FieldDefinition(name="tasks_completed", label="Tasks Completed", type=FieldType.NUMBER),
        FieldDefinition(name="onboarding_completed", label="Onboarding Completed", type=FieldType.BOOLEAN),
        FieldDefinition(name="application_date", label="Application Date", type=FieldType.DATE),
        FieldDefinition(name="last_activity_date", label="Last Activity Date", type=FieldType.DATE),
    ]
)
