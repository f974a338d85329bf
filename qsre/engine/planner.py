"""Rule engine - turns a rule and a record catalog into a transition plan."""

import logging
from datetime import datetime

from qsre.engine.fields import DEFAULT_FIELD_CATALOG, FieldCatalog
from qsre.engine.filters import admits, resolve
from qsre.engine.triggers import TriggerOutcome, evaluate_trigger
from qsre.records.base import RecordCatalog
from qsre.schemas.execution import SkippedRecord, TransitionPlan
from qsre.schemas.rule import Rule

logger = logging.getLogger(__name__)


def plan(
    rule: Rule,
    catalog: RecordCatalog,
    now: datetime,
    *,
    field_catalog: FieldCatalog = DEFAULT_FIELD_CATALOG,
    timezone_name: str | None = None,
) -> TransitionPlan:
    """
    Compute the records rule would move right now.
    All three filter dimensions must admit a record (AND); surviving records
    are handed to the trigger evaluator. Plan order follows catalog order.
    """
    filters = rule.filters
    admitted_projects = resolve(filters.projects, catalog.project_ids)
    admitted_objectives = resolve(filters.project_objectives, catalog.project_objective_ids)
    admitted_records = resolve(
        filters.contributor_projects, (r.id for r in catalog.contributor_projects)
    )

    result = TransitionPlan(
        rule_id=rule.id,
        from_status=rule.from_status,
        to_status=rule.to_status,
    )
    for record in catalog.contributor_projects:
        if not admits(filters.projects, admitted_projects, record.project_id):
            continue
        if not admits(filters.project_objectives, admitted_objectives, record.project_objective_id):
            continue
        if not admits(filters.contributor_projects, admitted_records, record.id):
            continue

        result.evaluated += 1
        outcome, reason = evaluate_trigger(
            rule, record, now, field_catalog=field_catalog, timezone_name=timezone_name
        )
        if outcome == TriggerOutcome.FIRED:
            result.records.append(record.id)
        elif outcome == TriggerOutcome.SKIPPED:
            result.skipped.append(SkippedRecord(record_id=record.id, reason=reason or "skipped"))

    logger.info(
        "Rule %r (%s): %d of %d catalog records evaluated, %d fire, %d skipped",
        rule.name,
        rule.id,
        result.evaluated,
        len(catalog.contributor_projects),
        len(result.records),
        len(result.skipped),
    )
    return result
