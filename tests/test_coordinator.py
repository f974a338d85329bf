"""Tests for batch execution: safety gate, isolation, history."""

import asyncio
from datetime import date, timedelta

import pytest

from qsre.engine.coordinator import apply_plan, execute
from qsre.engine.errors import MutationsInterrupted, RecordStoreUnavailable, RuleNotFound
from qsre.records.memory import InMemoryRecordStore
from qsre.schemas.execution import ConfirmationRequired, TransitionPlan, TriggeredBy
from qsre.schemas.rule import RuleDefinition, TimeType
from qsre.storage import repositories
from tests.factories import NOW, make_record


async def add_rule(session, rule_id: str, *, enabled: bool = True, **kwargs):
    data = {
        "name": f"Rule {rule_id}",
        "enabled": enabled,
        "from_status": "Calibration Queue",
        "to_status": "Production Queue",
        "days": 7,
    }
    data.update(kwargs)
    row = await repositories.create_rule(session, RuleDefinition(**data), rule_id=rule_id)
    await session.commit()
    return row


@pytest.mark.asyncio
async def test_execute_moves_planned_records(session, record_store):
    await add_rule(session, "R1")

    result = await execute(session, record_store, ["R1"], now=NOW)

    assert result.processed == 3
    assert result.updated == 2
    assert result.errors == []
    assert [u.record_id for u in result.updates] == ["CP1", "CP2"]
    assert record_store.records["CP1"].queue_status == "Production Queue"
    assert record_store.records["CP3"].queue_status == "Calibration Queue"
    assert record_store.records["CP1"].status_changed_at == NOW


@pytest.mark.asyncio
async def test_disabled_rule_requires_confirmation(session, record_store):
    """Without confirmation nothing is mutated and the rule stays disabled."""
    await add_rule(session, "R1", enabled=False)

    outcome = await execute(session, record_store, ["R1"], now=NOW)

    assert isinstance(outcome, ConfirmationRequired)
    assert [r.id for r in outcome.disabled_rules] == ["R1"]
    assert record_store.update_calls == []
    assert (await repositories.get_rule(session, "R1")).enabled is False
    rows, total = await repositories.list_history(session)
    assert total == 0


@pytest.mark.asyncio
async def test_confirm_enable_enables_then_runs(session, record_store):
    await add_rule(session, "R1", enabled=False)

    result = await execute(session, record_store, ["R1"], confirm_enable=True, now=NOW)

    assert result.updated == 2
    assert (await repositories.get_rule(session, "R1")).enabled is True


@pytest.mark.asyncio
async def test_unknown_rule_id_raises_before_any_work(session, record_store):
    await add_rule(session, "R1")
    with pytest.raises(RuleNotFound) as exc_info:
        await execute(session, record_store, ["R1", "missing"], now=NOW)
    assert exc_info.value.rule_ids == ["missing"]
    assert record_store.update_calls == []


@pytest.mark.asyncio
async def test_empty_rule_ids_runs_enabled_rules(session, record_store):
    await add_rule(session, "R1")
    await add_rule(session, "R2", enabled=False, to_status="Test Queue")

    result = await execute(session, record_store, [], now=NOW)

    assert [s.rule_id for s in result.executed_rules] == ["R1"]


@pytest.mark.asyncio
async def test_failed_record_does_not_stop_others(session, record_store):
    """One rejected mutation is reported; the rest of the plan still applies."""
    await add_rule(session, "R1")
    record_store.fail_update("CP1", "Locked by another user")

    result = await execute(session, record_store, ["R1"], now=NOW)

    assert result.updated == 1
    assert len(result.errors) == 1
    assert result.errors[0].record_id == "CP1"
    assert result.errors[0].error == "Locked by another user"
    assert record_store.records["CP2"].queue_status == "Production Queue"
    assert record_store.records["CP1"].queue_status == "Calibration Queue"


@pytest.mark.asyncio
async def test_history_written_per_rule_with_shared_batch(session, record_store):
    await add_rule(session, "R1")
    await add_rule(session, "R2", to_status="Test Queue")

    result = await execute(session, record_store, ["R1", "R2"], TriggeredBy.AUTOMATIC, now=NOW)

    rows, total = await repositories.list_history(session)
    assert total == 2
    assert {r.batch_id for r in rows} == {result.batch_id}
    assert {r.triggered_by for r in rows} == {"automatic_scheduler"}
    by_rule = {r.rule_id: r for r in rows}
    assert by_rule["R1"].rules_updated == 2
    assert by_rule["R1"].rule_hash
    assert by_rule["R1"].updates[0]["record_id"] == "CP1"
    rule = await repositories.get_rule(session, "R1")
    assert rule.last_execution_count == 2
    assert rule.last_executed_at is not None


@pytest.mark.asyncio
async def test_later_rules_see_earlier_mutations(session, record_store):
    """R1 moves CP1 and CP2 out of Calibration, so R2 only sees CP3."""
    await add_rule(session, "R1")
    await add_rule(session, "R2", to_status="Test Queue", days=1)

    result = await execute(session, record_store, ["R1", "R2"], now=NOW)

    summaries = {s.rule_id: s for s in result.executed_rules}
    assert summaries["R1"].updated == 2
    assert summaries["R2"].processed == 1
    assert summaries["R2"].updated == 1
    assert record_store.records["CP3"].queue_status == "Test Queue"


@pytest.mark.asyncio
async def test_store_unavailable_records_history_and_raises(session, record_store):
    await add_rule(session, "R1")
    record_store.unavailable = True

    with pytest.raises(RecordStoreUnavailable):
        await execute(session, record_store, ["R1"], now=NOW)

    rows, total = await repositories.list_history(session)
    assert total == 1
    assert rows[0].rules_updated == 0
    assert "unavailable" in rows[0].errors[0]["error"]


@pytest.mark.asyncio
async def test_cancel_before_batch_runs_nothing(session, record_store):
    await add_rule(session, "R1")
    cancel = asyncio.Event()
    cancel.set()

    result = await execute(session, record_store, ["R1"], now=NOW, cancel_event=cancel)

    assert result.cancelled is True
    assert result.executed_rules == []
    assert record_store.update_calls == []


@pytest.mark.asyncio
async def test_apply_plan_stops_issuing_after_cancel():
    """Mutations already running finish; queued ones are not issued."""
    cancel = asyncio.Event()
    store = InMemoryRecordStore(records=[make_record(f"CP{i}") for i in range(4)], clock=lambda: NOW)
    original = store.update_queue_status

    async def update_then_cancel(record_id, new_status):
        await original(record_id, new_status)
        cancel.set()

    store.update_queue_status = update_then_cancel
    plan = TransitionPlan(
        rule_id="R1",
        records=["CP0", "CP1", "CP2", "CP3"],
        from_status="Calibration Queue",
        to_status="Production Queue",
    )

    outcomes = await apply_plan(
        store, plan, store.records, concurrency=1, timeout=5, cancel_event=cancel
    )

    assert outcomes[0] == ("CP0", None)
    assert outcomes[1:] == [None, None, None]
    assert store.update_calls == [("CP0", "Production Queue")]


@pytest.mark.asyncio
async def test_apply_plan_times_out_slow_update():
    store = InMemoryRecordStore(records=[make_record("CP1")])

    async def slow_update(record_id, new_status):
        await asyncio.sleep(1)

    store.update_queue_status = slow_update
    plan = TransitionPlan(
        rule_id="R1", records=["CP1"], from_status="Calibration Queue", to_status="Test Queue"
    )

    outcomes = await apply_plan(store, plan, store.records, timeout=0.01)

    assert outcomes == [("CP1", "Update timed out after 0.01s")]


@pytest.mark.asyncio
async def test_apply_plan_rejects_invalid_transition():
    """A record that left from_status is not forced into a disallowed move."""
    store = InMemoryRecordStore(records=[make_record("CP1", queue_status="Test Queue")])
    plan = TransitionPlan(
        rule_id="R1", records=["CP1"], from_status="Calibration Queue", to_status="Test Queue"
    )

    outcomes = await apply_plan(store, plan, store.records, timeout=5)

    record_id, error = outcomes[0]
    assert "Invalid transition" in error
    assert store.update_calls == []


@pytest.mark.asyncio
async def test_processed_counts_only_admitted_records(session, record_store):
    record_store.records["CP4"] = make_record(
        "CP4", queue_status="Test Queue", status_changed_at=NOW - timedelta(days=30)
    )
    await add_rule(session, "R1")

    result = await execute(session, record_store, ["R1"], now=NOW)

    assert result.processed == 3
    assert record_store.records["CP4"].queue_status == "Test Queue"


@pytest.mark.asyncio
async def test_store_outage_during_mutations_keeps_progress_and_raises(session, record_store):
    """Updates applied before the outage are kept in history; later rules do not run."""
    await add_rule(session, "R1")
    await add_rule(session, "R2", to_status="Test Queue", days=1)
    original = record_store.update_queue_status

    async def fail_on_cp2(record_id, new_status):
        if record_id == "CP2":
            raise RecordStoreUnavailable("Record store unreachable")
        await original(record_id, new_status)

    record_store.update_queue_status = fail_on_cp2

    with pytest.raises(RecordStoreUnavailable):
        await execute(session, record_store, ["R1", "R2"], now=NOW)

    rows, total = await repositories.list_history(session)
    assert total == 1
    assert rows[0].rule_id == "R1"
    assert rows[0].rules_updated == 1
    assert rows[0].cancelled is False
    assert [e["record_id"] for e in rows[0].errors] == [None]
    assert "unavailable" in rows[0].errors[0]["error"]
    assert record_store.records["CP1"].queue_status == "Production Queue"
    assert record_store.records["CP3"].queue_status == "Calibration Queue"


@pytest.mark.asyncio
async def test_apply_plan_stops_issuing_after_outage():
    store = InMemoryRecordStore(records=[make_record(f"CP{i}") for i in range(3)], clock=lambda: NOW)
    original = store.update_queue_status

    async def fail_on_cp1(record_id, new_status):
        if record_id == "CP1":
            raise RecordStoreUnavailable("Record store unreachable")
        await original(record_id, new_status)

    store.update_queue_status = fail_on_cp1
    plan = TransitionPlan(
        rule_id="R1",
        records=["CP0", "CP1", "CP2"],
        from_status="Calibration Queue",
        to_status="Production Queue",
    )

    with pytest.raises(MutationsInterrupted) as exc_info:
        await apply_plan(store, plan, store.records, concurrency=1, timeout=5)

    assert exc_info.value.outcomes == [("CP0", None), None, None]
    assert store.update_calls == [("CP0", "Production Queue")]


@pytest.mark.asyncio
async def test_date_rule_does_not_readmit_moved_records(session, record_store):
    """Re-running a date rule after its target never moves the same record twice."""
    await add_rule(
        session, "R1", time_type=TimeType.DATE, days=None, specific_date=date(2025, 3, 1)
    )

    first = await execute(session, record_store, ["R1"], now=NOW)
    calls = list(record_store.update_calls)
    second = await execute(session, record_store, ["R1"], now=NOW + timedelta(days=1))

    assert first.updated == 3
    assert second.updated == 0
    assert second.processed == 0
    assert record_store.update_calls == calls
