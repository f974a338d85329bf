"""Rule definition validation, applied by the rule store on every save."""

import re
from datetime import date, datetime

from qsre.engine.errors import RuleValidationError
from qsre.engine.fields import DEFAULT_FIELD_CATALOG, FieldCatalog, FieldType
from qsre.engine.transitions import QUEUE_STATUSES, is_valid_transition, normalize_status
from qsre.schemas.rule import Condition, RuleDefinition, RuleType, TimeType

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

DEFAULT_DAYS = 7
DEFAULT_SPECIFIC_TIME = "09:00"


def parse_specific_time(value: str) -> tuple[int, int]:
    """Parse HH:MM into (hours, minutes)."""
    match = _TIME_RE.match(value.strip())
    if not match:
        raise RuleValidationError(f"specific_time must be HH:MM, got {value!r}")
    return int(match.group(1)), int(match.group(2))


def _validate_condition_value(condition: Condition, field_type: FieldType) -> None:
    value = condition.value
    if field_type == FieldType.NUMBER:
        if isinstance(value, bool):
            raise RuleValidationError("Condition value must be a number")
        try:
            float(value)
        except (TypeError, ValueError):
            raise RuleValidationError(f"Condition value {value!r} is not a number")
    elif field_type == FieldType.DATE:
        try:
            date.fromisoformat(str(value)[:10])
        except ValueError:
            raise RuleValidationError(f"Condition value {value!r} is not an ISO date")
    elif field_type == FieldType.BOOLEAN:
        if not isinstance(value, bool) and str(value).strip().lower() not in ("true", "false"):
            raise RuleValidationError("Condition value must be true or false")
    elif str(value).strip() == "":
        raise RuleValidationError("Condition value is required")


def validate_rule(
    definition: RuleDefinition,
    field_catalog: FieldCatalog = DEFAULT_FIELD_CATALOG,
) -> RuleDefinition:
    """
    Validate a rule definition and return its normalized form.
    Trigger payload of the other rule type is dropped.
    """
    if not definition.name or not definition.name.strip():
        raise RuleValidationError("Name is required")

    from_status = normalize_status(definition.from_status)
    to_status = normalize_status(definition.to_status)
    for label, status in (("from_status", from_status), ("to_status", to_status)):
        if status not in QUEUE_STATUSES:
            raise RuleValidationError(f"Unknown {label}: {status!r}")
    if from_status == to_status:
        raise RuleValidationError("from_status and to_status must differ")
    if not is_valid_transition(from_status, to_status):
        raise RuleValidationError(f"Invalid transition from {from_status!r} to {to_status!r}")

    updates: dict = {
        "name": definition.name.strip(),
        "from_status": from_status,
        "to_status": to_status,
    }

    if definition.type == RuleType.TIME_BASED:
        time_type = definition.time_type or TimeType.DAYS
        updates.update(time_type=time_type, condition=None)
        if time_type == TimeType.DAYS:
            days = DEFAULT_DAYS if definition.days is None else definition.days
            if days < 1:
                raise RuleValidationError("Days must be at least 1 for time-based rules")
            updates.update(days=days, specific_date=None, specific_time=None)
        else:
            if definition.specific_date is None:
                raise RuleValidationError("specific_date is required for date-based rules")
            specific_time = definition.specific_time or DEFAULT_SPECIFIC_TIME
            hours, minutes = parse_specific_time(specific_time)
            updates.update(
                days=None,
                specific_time=f"{hours:02d}:{minutes:02d}",
            )
    else:
        condition = definition.condition
        if condition is None:
            raise RuleValidationError("Condition-based rules require a condition")
        field = field_catalog.get(condition.field)
        if field is None:
            raise RuleValidationError(f"Unknown condition field: {condition.field!r}")
        if condition.operator not in field.operators:
            raise RuleValidationError(
                f"Operator {condition.operator.value!r} not allowed for {field.type.value} field "
                f"{field.name!r}"
            )
        _validate_condition_value(condition, field.type)
        updates.update(time_type=None, days=None, specific_date=None, specific_time=None)

    return definition.model_copy(update=updates)


def combine_specific(specific_date: date, specific_time: str | None, tzinfo) -> datetime:
    """Target instant of a date-based rule."""
    hours, minutes = parse_specific_time(specific_time or DEFAULT_SPECIFIC_TIME)
    return datetime(
        specific_date.year, specific_date.month, specific_date.day, hours, minutes, tzinfo=tzinfo
    )
