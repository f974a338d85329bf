"""Trigger evaluator - decides whether a rule fires for one record.

Read-only: records are never mutated here. Records whose condition field is
missing or cannot be coerced are reported as SKIPPED (fail-closed), never
raised to the caller.
"""

import logging
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any
from zoneinfo import ZoneInfo

from qsre.config import settings
from qsre.engine.errors import EvaluationSkip
from qsre.engine.fields import DEFAULT_FIELD_CATALOG, FieldCatalog, FieldType, Operator
from qsre.engine.transitions import statuses_match
from qsre.engine.validation import combine_specific
from qsre.records.base import ContributorProjectRecord
from qsre.schemas.rule import Condition, Rule, RuleType, TimeType

logger = logging.getLogger(__name__)

_TRUE = {"true", "1", "yes"}
_FALSE = {"false", "0", "no"}


class TriggerOutcome(str, Enum):
    FIRED = "fired"
    NOT_FIRED = "not_fired"
    SKIPPED = "skipped"


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _reference_time(record: ContributorProjectRecord) -> datetime:
    """When the record entered its current status, or the closest proxy we have."""
    ts = record.status_changed_at or record.last_modified_at or record.created_at
    if ts is None:
        raise EvaluationSkip("no_status_timestamp")
    return _as_utc(ts)


def _coerce(value: Any, field_type: FieldType) -> Any:
    if field_type == FieldType.NUMBER:
        if isinstance(value, bool):
            raise EvaluationSkip("not_a_number")
        try:
            return Decimal(str(value).strip())
        except InvalidOperation:
            raise EvaluationSkip("not_a_number")
    if field_type == FieldType.DATE:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        try:
            return date.fromisoformat(str(value).strip()[:10])
        except ValueError:
            raise EvaluationSkip("not_a_date")
    if field_type == FieldType.BOOLEAN:
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise EvaluationSkip("not_a_boolean")
    return str(value)


def _lookup(record: ContributorProjectRecord, field_name: str) -> Any:
    if field_name in record.fields:
        value = record.fields[field_name]
    elif field_name in ("name", "status"):
        value = getattr(record, field_name)
    else:
        raise EvaluationSkip("field_missing")
    if value is None:
        raise EvaluationSkip("field_null")
    return value


def evaluate_condition(
    condition: Condition,
    record: ContributorProjectRecord,
    field_catalog: FieldCatalog = DEFAULT_FIELD_CATALOG,
) -> bool:
    """Compare record[condition.field] with condition.value. Raises EvaluationSkip."""
    field = field_catalog.get(condition.field)
    if field is None:
        raise EvaluationSkip("unknown_field")
    if condition.operator not in field.operators:
        raise EvaluationSkip("operator_not_permitted")

    actual = _coerce(_lookup(record, condition.field), field.type)
    expected = _coerce(condition.value, field.type)

    op = condition.operator
    if op == Operator.EQUALS:
        return actual == expected
    if op == Operator.NOT_EQUALS:
        return actual != expected
    if op == Operator.CONTAINS:
        return str(expected).lower() in str(actual).lower()
    if op == Operator.GREATER_THAN:
        return actual > expected
    if op == Operator.LESS_THAN:
        return actual < expected
    raise EvaluationSkip("unknown_operator")


def evaluate_trigger(
    rule: Rule,
    record: ContributorProjectRecord,
    now: datetime,
    *,
    field_catalog: FieldCatalog = DEFAULT_FIELD_CATALOG,
    timezone_name: str | None = None,
) -> tuple[TriggerOutcome, str | None]:
    """
    Evaluate rule's trigger for record at now.
    Returns (outcome, reason); reason is set for skips.
    """
    if not statuses_match(rule.from_status, record.queue_status):
        return TriggerOutcome.NOT_FIRED, None

    now = _as_utc(now)
    try:
        if rule.type == RuleType.TIME_BASED:
            if rule.time_type == TimeType.DATE:
                if rule.specific_date is None:
                    raise EvaluationSkip("missing_specific_date")
                tz = ZoneInfo(timezone_name or settings.schedule_timezone)
                target = combine_specific(rule.specific_date, rule.specific_time, tz)
                fired = now >= target
            else:
                if not rule.days:
                    raise EvaluationSkip("missing_days")
                elapsed = now - _reference_time(record)
                fired = elapsed >= timedelta(days=rule.days)
        else:
            if rule.condition is None:
                raise EvaluationSkip("missing_condition")
            fired = evaluate_condition(rule.condition, record, field_catalog)
    except EvaluationSkip as skip:
        logger.debug("Rule %s: record %s skipped (%s)", rule.id, record.id, skip.reason)
        return TriggerOutcome.SKIPPED, skip.reason

    return (TriggerOutcome.FIRED if fired else TriggerOutcome.NOT_FIRED), None


def fires(rule: Rule, record: ContributorProjectRecord, now: datetime, **kwargs: Any) -> bool:
    """True iff the rule's trigger fires for record now."""
    outcome, _ = evaluate_trigger(rule, record, now, **kwargs)
    return outcome == TriggerOutcome.FIRED
