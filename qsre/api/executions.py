"""Execution endpoints - manual runs, history, scheduler status."""

import logging
from datetime import datetime

from fastapi import APIRouter, HTTPException, Query, status

from qsre.api.deps import DbDep, ExecutionLockDep, RecordStoreDep, SchedulerDep
from qsre.engine.coordinator import execute
from qsre.engine.errors import RecordStoreUnavailable, RuleNotFound
from qsre.schemas.execution import (
    ConfirmationRequired,
    ExecuteRequest,
    ExecuteResponse,
    ExecutionHistoryEntry,
    ExecutionHistoryPage,
    TriggeredBy,
)
from qsre.storage import repositories

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/execute-scheduled-updates", response_model=ExecuteResponse)
async def execute_scheduled_updates(
    body: ExecuteRequest,
    db: DbDep,
    store: RecordStoreDep,
    lock: ExecutionLockDep,
):
    """
    Run the selected rules now (all enabled rules when rule_ids is empty).
    Disabled rules are only run after confirm_enable; otherwise the response
    asks for confirmation and nothing is mutated.
    """
    async with lock:
        try:
            outcome = await execute(
                db,
                store,
                body.rule_ids,
                TriggeredBy.MANUAL,
                confirm_enable=body.confirm_enable,
            )
        except RuleNotFound as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
        except RecordStoreUnavailable as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=f"Record store unavailable: {exc}",
            )

    if isinstance(outcome, ConfirmationRequired):
        return ExecuteResponse(
            status="confirmation_required",
            message=(
                f"{len(outcome.disabled_rules)} selected rule(s) are disabled. "
                "Enable them before execution?"
            ),
            disabled_rules=outcome.disabled_rules,
        )
    return ExecuteResponse(
        status="completed",
        message=f"Processed {outcome.processed} projects, updated {outcome.updated}",
        results=outcome,
    )


@router.get("/execution-history", response_model=ExecutionHistoryPage)
async def get_execution_history(
    db: DbDep,
    rule_id: str | None = None,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    start_date: datetime | None = None,
    end_date: datetime | None = None,
):
    """Execution history, newest first."""
    rows, total = await repositories.list_history(
        db,
        rule_id=rule_id,
        limit=limit,
        offset=offset,
        start_date=start_date,
        end_date=end_date,
    )
    return ExecutionHistoryPage(
        history=[ExecutionHistoryEntry.model_validate(r) for r in rows],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/scheduler-status")
async def get_scheduler_status(scheduler: SchedulerDep):
    """Automatic scheduler state."""
    if scheduler is None:
        return {"running": False, "is_executing": False, "interval_minutes": None}
    return scheduler.status()
