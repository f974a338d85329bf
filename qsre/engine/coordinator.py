"""Execution coordinator - applies transition plans and records history.

Invariants:
- Rules in one batch run strictly one after another; each rule is planned
  against a freshly loaded catalog, so it sees earlier rules' mutations.
- Disabled rules never run unless the caller confirmed enabling them.
- A failing record never stops the rest of its plan.
- Every rule that started gets a history entry, even when the record store
  fails mid-batch.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from qsre.config import settings
from qsre.engine.errors import MutationsInterrupted, RecordStoreError, RecordStoreUnavailable
from qsre.engine.fields import DEFAULT_FIELD_CATALOG, FieldCatalog
from qsre.engine.planner import plan as plan_transitions
from qsre.engine.transitions import is_valid_transition, normalize_status
from qsre.records.base import ContributorProjectRecord, RecordStore, load_catalog
from qsre.schemas.execution import (
    AppliedUpdate,
    ConfirmationRequired,
    ExecutionError,
    ExecutionResult,
    RuleExecutionSummary,
    TransitionPlan,
    TriggeredBy,
)
from qsre.schemas.rule import Rule, RuleSummary
from qsre.storage import repositories
from qsre.utils.canonical import rule_hash

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


async def _apply_one(
    store: RecordStore,
    record: ContributorProjectRecord | None,
    record_id: str,
    to_status: str,
    timeout: float,
) -> str | None:
    """
    Apply one mutation; returns an error message or None on success.
    RecordStoreUnavailable propagates.
    """
    current = record.queue_status if record else None
    if not is_valid_transition(current, to_status):
        return (
            f"Invalid transition from {normalize_status(current)!r} "
            f"to {normalize_status(to_status)!r}"
        )
    try:
        await asyncio.wait_for(store.update_queue_status(record_id, to_status), timeout)
    except RecordStoreUnavailable:
        raise
    except RecordStoreError as exc:
        return str(exc) or exc.__class__.__name__
    except asyncio.TimeoutError:
        return f"Update timed out after {timeout:g}s"
    return None


async def apply_plan(
    store: RecordStore,
    transition_plan: TransitionPlan,
    records: dict[str, ContributorProjectRecord],
    *,
    concurrency: int | None = None,
    timeout: float | None = None,
    cancel_event: asyncio.Event | None = None,
) -> list[tuple[str, str | None] | None]:
    """
    Mutate every record in the plan. Returns one entry per planned record in
    plan order: (record_id, error-or-None), or None when the mutation was not
    applied because of cancellation or a store outage.

    Raises MutationsInterrupted (carrying the outcomes) once every in-flight
    mutation has settled if the store became unavailable mid-plan.
    """
    semaphore = asyncio.Semaphore(max(1, concurrency or settings.mutation_concurrency))
    timeout = timeout or settings.execution_timeout_seconds
    outages: list[RecordStoreUnavailable] = []

    async def run(record_id: str) -> tuple[str, str | None] | None:
        async with semaphore:
            if outages or (cancel_event is not None and cancel_event.is_set()):
                return None
            try:
                error = await _apply_one(
                    store, records.get(record_id), record_id, transition_plan.to_status, timeout
                )
            except RecordStoreUnavailable as exc:
                outages.append(exc)
                return None
            if error:
                logger.warning(
                    "Rule %s: update of %s failed: %s", transition_plan.rule_id, record_id, error
                )
            return record_id, error

    outcomes = list(await asyncio.gather(*(run(rid) for rid in transition_plan.records)))
    if outages:
        raise MutationsInterrupted(str(outages[0]), outcomes) from outages[0]
    return outcomes


async def _run_rule(
    db: AsyncSession,
    store: RecordStore,
    rule: Rule,
    result: ExecutionResult,
    *,
    now: datetime,
    cancel_event: asyncio.Event | None,
    field_catalog: FieldCatalog,
) -> None:
    started = time.monotonic()
    executed_at = _utcnow()
    summary = RuleExecutionSummary(rule_id=rule.id, rule_name=rule.name)
    rule_errors: list[ExecutionError] = []
    rule_updates: list[AppliedUpdate] = []
    cancelled = False

    async def record_history() -> None:
        entry = await repositories.create_history_entry(
            db,
            batch_id=result.batch_id,
            rule_id=rule.id,
            rule_name=rule.name,
            rule_hash=rule_hash(rule),
            execution_time=executed_at,
            triggered_by=result.triggered_by.value,
            processed=summary.processed,
            updated=summary.updated,
            skipped=summary.skipped,
            duration_ms=_elapsed_ms(started),
            errors=[e.model_dump() for e in rule_errors],
            updates=[u.model_dump() for u in rule_updates],
            cancelled=cancelled,
        )
        summary.history_id = entry.id
        summary.errors = len(rule_errors)
        result.executed_rules.append(summary)
        result.errors.extend(rule_errors)
        result.updates.extend(rule_updates)
        result.processed += summary.processed
        result.updated += summary.updated
        result.skipped += summary.skipped
        await db.commit()

    try:
        catalog = await load_catalog(
            store, queue_status=rule.from_status, page_size=settings.catalog_page_size
        )
    except RecordStoreUnavailable as exc:
        logger.exception("Rule %s: record store unavailable", rule.id)
        rule_errors.append(ExecutionError(rule_id=rule.id, error=f"Record store unavailable: {exc}"))
        await record_history()
        raise

    transition_plan = plan_transitions(rule, catalog, now, field_catalog=field_catalog)
    summary.processed = transition_plan.evaluated
    summary.skipped = len(transition_plan.skipped)

    records = catalog.by_id()
    outage: MutationsInterrupted | None = None
    try:
        outcomes = await apply_plan(store, transition_plan, records, cancel_event=cancel_event)
    except MutationsInterrupted as exc:
        logger.exception("Rule %s: record store unavailable while applying plan", rule.id)
        outage = exc
        outcomes = exc.outcomes
    for outcome in outcomes:
        if outcome is None:
            if outage is None:
                cancelled = True
            continue
        record_id, error = outcome
        if error:
            rule_errors.append(ExecutionError(rule_id=rule.id, record_id=record_id, error=error))
            continue
        summary.updated += 1
        record = records.get(record_id)
        rule_updates.append(
            AppliedUpdate(
                rule_id=rule.id,
                record_id=record_id,
                record_name=record.name if record else "",
                from_status=normalize_status(record.queue_status if record else None),
                to_status=normalize_status(rule.to_status),
            )
        )

    if outage is not None:
        rule_errors.append(
            ExecutionError(rule_id=rule.id, error=f"Record store unavailable: {outage}")
        )
    await repositories.mark_rule_executed(db, rule.id, summary.updated, executed_at)
    await record_history()
    if outage is not None:
        raise outage
    if cancelled:
        result.cancelled = True
    logger.info(
        "Rule %r (%s): processed %d, updated %d, errors %d in %dms",
        rule.name,
        rule.id,
        summary.processed,
        summary.updated,
        len(rule_errors),
        _elapsed_ms(started),
    )


async def execute(
    db: AsyncSession,
    store: RecordStore,
    rule_ids: list[str] | None,
    triggered_by: TriggeredBy = TriggeredBy.MANUAL,
    *,
    confirm_enable: bool = False,
    now: datetime | None = None,
    cancel_event: asyncio.Event | None = None,
    field_catalog: FieldCatalog = DEFAULT_FIELD_CATALOG,
) -> ExecutionResult | ConfirmationRequired:
    """
    Run a batch of rules. Empty rule_ids means every enabled rule.
    Callers must serialize execute() calls (see app.state.execution_lock).
    """
    started = time.monotonic()
    if rule_ids:
        rows = await repositories.get_rules_by_ids(db, rule_ids)
    else:
        rows = await repositories.list_enabled_rules(db)

    disabled = [r for r in rows if not r.enabled]
    if disabled:
        if not confirm_enable:
            logger.info(
                "Execution deferred: %d disabled rule(s) need confirmation", len(disabled)
            )
            return ConfirmationRequired(
                disabled_rules=[
                    RuleSummary(id=r.id, name=r.name, enabled=r.enabled) for r in disabled
                ]
            )
        for row in disabled:
            await repositories.set_enabled(db, row.id, True)
        await db.commit()
        logger.info("Enabled %d rule(s) before execution", len(disabled))

    result = ExecutionResult(batch_id=f"batch_{uuid4().hex}", triggered_by=triggered_by)
    logger.info(
        "Executing %d rule(s), triggered by %s (batch %s)",
        len(rows),
        triggered_by.value,
        result.batch_id,
    )
    for row in rows:
        if cancel_event is not None and cancel_event.is_set():
            result.cancelled = True
            break
        rule = repositories.to_rule(row)
        await _run_rule(
            db,
            store,
            rule,
            result,
            now=now or _utcnow(),
            cancel_event=cancel_event,
            field_catalog=field_catalog,
        )

    result.duration_ms = _elapsed_ms(started)
    logger.info(
        "Batch %s done in %dms. Processed: %d, Updated: %d, Errors: %d",
        result.batch_id,
        result.duration_ms,
        result.processed,
        result.updated,
        len(result.errors),
    )
    return result
