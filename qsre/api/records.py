"""Contributor project catalog and metadata endpoints."""

import logging

from fastapi import APIRouter, HTTPException, Query, status

from qsre.api.deps import ExecutionLockDep, RecordStoreDep
from qsre.engine.errors import RecordStoreError, RecordStoreUnavailable
from qsre.engine.fields import DEFAULT_FIELD_CATALOG
from qsre.engine.transitions import TRANSITION_RULES, is_valid_transition, normalize_status
from qsre.schemas.records import (
    ContributorProjectPage,
    QueueStatusUpdateResult,
    UpdateQueueStatusRequest,
    UpdateQueueStatusResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/contributor-projects", response_model=ContributorProjectPage)
async def list_contributor_projects(
    store: RecordStoreDep,
    limit: int = Query(100, ge=1, le=2000),
    offset: int = Query(0, ge=0),
    queue_status: str | None = None,
):
    """Page through the candidate catalog."""
    try:
        records = await store.list_contributor_projects(
            limit=limit, offset=offset, queue_status=queue_status
        )
    except RecordStoreUnavailable as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    return ContributorProjectPage(contributor_projects=records, limit=limit, offset=offset)


@router.post("/update-queue-status", response_model=UpdateQueueStatusResponse)
async def update_queue_status(
    body: UpdateQueueStatusRequest,
    store: RecordStoreDep,
    lock: ExecutionLockDep,
):
    """Manually move contributor projects between queues (transition rules apply)."""
    results: list[QueueStatusUpdateResult] = []
    async with lock:
        for update in body.updates:
            record_id = update.contributor_project_id
            to_status = normalize_status(update.queue_status)
            from_status = None
            try:
                record = await store.get_contributor_project(record_id)
                if record is None:
                    results.append(
                        QueueStatusUpdateResult(
                            contributor_project_id=record_id,
                            success=False,
                            to_status=to_status,
                            error="Contributor project not found",
                        )
                    )
                    continue
                from_status = normalize_status(record.queue_status)
                if not is_valid_transition(from_status, to_status):
                    results.append(
                        QueueStatusUpdateResult(
                            contributor_project_id=record_id,
                            success=False,
                            from_status=from_status,
                            to_status=to_status,
                            error=f'Invalid transition from "{from_status}" to "{to_status}"',
                        )
                    )
                    continue
                await store.update_queue_status(record_id, to_status)
            except RecordStoreUnavailable as exc:
                raise HTTPException(
                    status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
                )
            except RecordStoreError as exc:
                logger.warning("Manual update of %s failed: %s", record_id, exc)
                results.append(
                    QueueStatusUpdateResult(
                        contributor_project_id=record_id,
                        success=False,
                        from_status=from_status,
                        to_status=to_status,
                        error=str(exc),
                    )
                )
                continue
            results.append(
                QueueStatusUpdateResult(
                    contributor_project_id=record_id,
                    success=True,
                    from_status=from_status,
                    to_status=to_status,
                )
            )

    updated = sum(1 for r in results if r.success)
    return UpdateQueueStatusResponse(updated=updated, failed=len(results) - updated, results=results)


@router.get("/condition-fields")
async def list_condition_fields():
    """Fields usable in condition-based rules, with their permitted operators."""
    return [
        {
            "name": f.name,
            "label": f.label,
            "type": f.type.value,
            "operators": [op.value for op in f.operators],
            "picklist_values": f.picklist_values,
        }
        for f in DEFAULT_FIELD_CATALOG
    ]


@router.get("/transition-rules")
async def list_transition_rules():
    """Allowed queue status transitions."""
    return TRANSITION_RULES
