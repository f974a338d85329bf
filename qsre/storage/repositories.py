"""Repository functions for schedule rules and execution history."""

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from pydantic import ValidationError
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from qsre.engine.errors import RuleNotFound, RuleValidationError
from qsre.engine.fields import DEFAULT_FIELD_CATALOG, FieldCatalog
from qsre.engine.transitions import CALIBRATION_QUEUE, PRODUCTION_QUEUE, TEST_QUEUE
from qsre.engine.validation import validate_rule
from qsre.models import ExecutionHistory, ScheduleRule
from qsre.schemas.rule import Rule, RuleDefinition, RuleFilters, RuleType, TimeType

logger = logging.getLogger(__name__)

_TRIGGER_FIELDS = ("time_type", "days", "specific_date", "specific_time", "condition")
_TIME_FIELDS = ("time_type", "days", "specific_date", "specific_time")

DEFAULT_RULES = [
    {
        "id": "auto_production_after_days",
        "name": "Auto-move to Production after X days",
        "type": RuleType.TIME_BASED,
        "enabled": False,
        "from_status": CALIBRATION_QUEUE,
        "to_status": PRODUCTION_QUEUE,
        "time_type": TimeType.DAYS,
        "days": 7,
    },
    {
        "id": "auto_test_after_days",
        "name": "Auto-move to Test Queue after X days",
        "type": RuleType.TIME_BASED,
        "enabled": False,
        "from_status": CALIBRATION_QUEUE,
        "to_status": TEST_QUEUE,
        "time_type": TimeType.DAYS,
        "days": 14,
    },
]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_rule_id() -> str:
    return f"rule_{uuid4().hex[:16]}"


def to_rule(row: ScheduleRule) -> Rule:
    """Convert a stored row into the engine's Rule."""
    trigger = row.trigger_json or {}
    return Rule(
        id=row.id,
        name=row.name,
        type=row.type,
        enabled=row.enabled,
        from_status=row.from_status,
        to_status=row.to_status,
        time_type=trigger.get("time_type"),
        days=trigger.get("days"),
        specific_date=trigger.get("specific_date"),
        specific_time=trigger.get("specific_time"),
        condition=trigger.get("condition"),
        filters=RuleFilters.model_validate(row.filters_json or {}),
        created_at=row.created_at,
        created_by=row.created_by,
        updated_at=row.updated_at,
        last_executed_at=row.last_executed_at,
        last_execution_count=row.last_execution_count,
    )


def _apply_definition(row: ScheduleRule, definition: RuleDefinition) -> None:
    data = definition.model_dump(mode="json")
    row.name = definition.name
    row.type = definition.type.value
    row.enabled = definition.enabled
    row.from_status = definition.from_status
    row.to_status = definition.to_status
    row.trigger_json = {k: data[k] for k in _TRIGGER_FIELDS}
    row.filters_json = data["filters"]


async def list_rules(db: AsyncSession) -> list[ScheduleRule]:
    result = await db.execute(select(ScheduleRule).order_by(ScheduleRule.created_at, ScheduleRule.id))
    return list(result.scalars().all())


async def list_enabled_rules(db: AsyncSession) -> list[ScheduleRule]:
    result = await db.execute(
        select(ScheduleRule)
        .where(ScheduleRule.enabled.is_(True))
        .order_by(ScheduleRule.created_at, ScheduleRule.id)
    )
    return list(result.scalars().all())


async def get_rule(db: AsyncSession, rule_id: str) -> ScheduleRule | None:
    return await db.get(ScheduleRule, rule_id)


async def get_rules_by_ids(db: AsyncSession, rule_ids: list[str]) -> list[ScheduleRule]:
    """Load rules in the requested order. Raises RuleNotFound for unknown ids."""
    wanted = list(dict.fromkeys(rule_ids))
    result = await db.execute(select(ScheduleRule).where(ScheduleRule.id.in_(wanted)))
    found = {r.id: r for r in result.scalars().all()}
    missing = [rid for rid in wanted if rid not in found]
    if missing:
        raise RuleNotFound(missing)
    return [found[rid] for rid in wanted]


async def create_rule(
    db: AsyncSession,
    definition: RuleDefinition,
    *,
    created_by: str | None = None,
    rule_id: str | None = None,
    field_catalog: FieldCatalog = DEFAULT_FIELD_CATALOG,
) -> ScheduleRule:
    """Validate and insert a new rule."""
    definition = validate_rule(definition, field_catalog)
    row = ScheduleRule(
        id=rule_id or _new_rule_id(),
        created_by=created_by,
        created_at=_utcnow(),
        updated_at=None,
    )
    _apply_definition(row, definition)
    db.add(row)
    await db.flush()
    logger.info("Created schedule rule %s (%r)", row.id, row.name)
    return row


async def update_rule(
    db: AsyncSession,
    rule_id: str,
    updates: dict[str, Any],
    *,
    field_catalog: FieldCatalog = DEFAULT_FIELD_CATALOG,
) -> ScheduleRule | None:
    """
    Merge updates into an existing rule and re-validate.
    Switching type drops the previous type's trigger payload.
    """
    row = await get_rule(db, rule_id)
    if row is None:
        return None
    current = to_rule(row).model_dump(include=set(RuleDefinition.model_fields))
    new_type = updates.get("type")
    if new_type is not None and RuleType(new_type).value != row.type:
        reset = _TIME_FIELDS if RuleType(new_type) == RuleType.CONDITION_BASED else ("condition",)
        for key in reset:
            current[key] = None
    merged = {**current, **updates}
    try:
        definition = RuleDefinition.model_validate(merged)
    except ValidationError as exc:
        raise RuleValidationError(str(exc)) from exc
    definition = validate_rule(definition, field_catalog)
    _apply_definition(row, definition)
    row.updated_at = _utcnow()
    await db.flush()
    logger.info("Updated schedule rule %s", rule_id)
    return row


async def set_enabled(db: AsyncSession, rule_id: str, enabled: bool) -> ScheduleRule | None:
    row = await get_rule(db, rule_id)
    if row is None:
        return None
    row.enabled = enabled
    row.updated_at = _utcnow()
    await db.flush()
    logger.info("Schedule rule %s %s", rule_id, "enabled" if enabled else "disabled")
    return row


async def delete_rule(db: AsyncSession, rule_id: str) -> bool:
    """Hard delete. History rows keep their rule_id."""
    row = await get_rule(db, rule_id)
    if row is None:
        return False
    await db.delete(row)
    await db.flush()
    logger.info("Deleted schedule rule %s", rule_id)
    return True


async def mark_rule_executed(
    db: AsyncSession, rule_id: str, updated_count: int, executed_at: datetime
) -> None:
    row = await get_rule(db, rule_id)
    if row is None:
        return
    row.last_executed_at = executed_at
    row.last_execution_count = updated_count
    await db.flush()


async def seed_default_rules(db: AsyncSession) -> list[ScheduleRule]:
    """Insert the built-in (disabled) rules when the store is empty."""
    count = await db.scalar(select(func.count()).select_from(ScheduleRule))
    if count:
        return []
    created = []
    for entry in DEFAULT_RULES:
        data = dict(entry)
        rule_id = data.pop("id")
        created.append(
            await create_rule(db, RuleDefinition(**data), rule_id=rule_id, created_by="system")
        )
    return created


async def create_history_entry(
    db: AsyncSession,
    *,
    batch_id: str,
    rule_id: str | None,
    rule_name: str | None,
    rule_hash: str | None,
    execution_time: datetime,
    triggered_by: str,
    processed: int,
    updated: int,
    skipped: int,
    duration_ms: int,
    errors: list[dict],
    updates: list[dict],
    cancelled: bool = False,
) -> ExecutionHistory:
    """Create execution history record."""
    entry = ExecutionHistory(
        id=f"exec_{uuid4().hex}",
        batch_id=batch_id,
        rule_id=rule_id,
        rule_name=rule_name,
        rule_hash=rule_hash,
        execution_time=execution_time,
        triggered_by=triggered_by,
        rules_processed=processed,
        rules_updated=updated,
        rules_skipped=skipped,
        duration_ms=duration_ms,
        errors=errors,
        updates=updates,
        cancelled=cancelled,
    )
    db.add(entry)
    await db.flush()
    return entry


async def list_history(
    db: AsyncSession,
    *,
    rule_id: str | None = None,
    limit: int = 100,
    offset: int = 0,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> tuple[list[ExecutionHistory], int]:
    """History entries newest first, plus the unpaginated total."""
    conditions = []
    if rule_id:
        conditions.append(ExecutionHistory.rule_id == rule_id)
    if start_date:
        conditions.append(ExecutionHistory.execution_time >= start_date)
    if end_date:
        conditions.append(ExecutionHistory.execution_time <= end_date)

    total = await db.scalar(
        select(func.count()).select_from(ExecutionHistory).where(*conditions)
    )
    result = await db.execute(
        select(ExecutionHistory)
        .where(*conditions)
        .order_by(ExecutionHistory.execution_time.desc(), ExecutionHistory.id)
        .offset(offset)
        .limit(limit)
    )
    return list(result.scalars().all()), total or 0


async def prune_history(db: AsyncSession, older_than: datetime) -> int:
    """Drop history entries executed before older_than."""
    result = await db.execute(
        delete(ExecutionHistory).where(ExecutionHistory.execution_time < older_than)
    )
    await db.flush()
    return result.rowcount or 0
