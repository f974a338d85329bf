"""Unit tests for transition planning."""

from datetime import timedelta

from qsre.engine.fields import Operator
from qsre.engine.planner import plan
from qsre.records.base import RecordCatalog
from qsre.schemas.rule import Condition, DimensionFilter, FilterMode, RuleFilters, RuleType
from tests.factories import NOW, make_record, make_rule


def catalog(*records) -> RecordCatalog:
    return RecordCatalog(
        project_ids=["P1", "P2"],
        project_objective_ids=["O1", "O2"],
        contributor_projects=list(records),
    )


def test_plan_moves_only_records_past_threshold():
    """CP1 (10 days) and CP2 (10 days) fire; CP3 (2 days) does not."""
    records = catalog(
        make_record("CP1"),
        make_record("CP2", project_id="P2"),
        make_record("CP3", status_changed_at=NOW - timedelta(days=2)),
    )
    result = plan(make_rule(), records, NOW)
    assert result.records == ["CP1", "CP2"]
    assert result.evaluated == 3
    assert result.skipped == []
    assert result.from_status == "Calibration Queue"
    assert result.to_status == "Production Queue"


def test_plan_excludes_project():
    """Excluding P2 removes CP2 from the plan."""
    rule = make_rule(
        filters=RuleFilters(projects=DimensionFilter(mode=FilterMode.EXCLUDE, selected=["P2"]))
    )
    records = catalog(make_record("CP1"), make_record("CP2", project_id="P2"))
    result = plan(rule, records, NOW)
    assert result.records == ["CP1"]
    assert result.evaluated == 1


def test_plan_filters_are_conjunctive():
    """A record must pass every dimension to be evaluated."""
    rule = make_rule(
        filters=RuleFilters(
            projects=DimensionFilter(mode=FilterMode.INCLUDE, selected=["P1"]),
            project_objectives=DimensionFilter(mode=FilterMode.INCLUDE, selected=["O2"]),
            contributor_projects=DimensionFilter(mode=FilterMode.EXCLUDE, selected=["CP4"]),
        )
    )
    records = catalog(
        make_record("CP1", project_objective_id="O1"),
        make_record("CP2", project_objective_id="O2"),
        make_record("CP3", project_id="P2", project_objective_id="O2"),
        make_record("CP4", project_objective_id="O2"),
    )
    result = plan(rule, records, NOW)
    assert result.records == ["CP2"]


def test_plan_include_with_empty_selection_plans_nothing():
    rule = make_rule(
        filters=RuleFilters(contributor_projects=DimensionFilter(mode=FilterMode.INCLUDE))
    )
    result = plan(rule, catalog(make_record("CP1")), NOW)
    assert result.records == []
    assert result.evaluated == 0


def test_plan_reports_skipped_records():
    """Records with unusable condition values are skipped, not planned."""
    rule = make_rule(
        type=RuleType.CONDITION_BASED,
        time_type=None,
        days=None,
        condition=Condition(field="tasks_completed", operator=Operator.GREATER_THAN, value=10),
    )
    records = catalog(
        make_record("CP1", fields={"tasks_completed": 12}),
        make_record("CP2", fields={"tasks_completed": "lots"}),
        make_record("CP3"),
    )
    result = plan(rule, records, NOW)
    assert result.records == ["CP1"]
    assert [(s.record_id, s.reason) for s in result.skipped] == [
        ("CP2", "not_a_number"),
        ("CP3", "field_missing"),
    ]


def test_plan_is_deterministic():
    records = catalog(make_record("CP1"), make_record("CP2"))
    assert plan(make_rule(), records, NOW) == plan(make_rule(), records, NOW)


def test_plan_include_project_and_status_mismatch():
    """Only CP1 qualifies: CP2 is outside P1 and CP3 already left Calibration."""
    rule = make_rule(
        filters=RuleFilters(projects=DimensionFilter(mode=FilterMode.INCLUDE, selected=["P1"]))
    )
    records = catalog(
        make_record("CP1", status_changed_at=NOW - timedelta(days=8)),
        make_record("CP2", project_id="P2", status_changed_at=NOW - timedelta(days=8)),
        make_record("CP3", queue_status="Production Queue"),
    )
    result = plan(rule, records, NOW)
    assert result.records == ["CP1"]
    assert result.from_status == "Calibration Queue"
    assert result.to_status == "Production Queue"
