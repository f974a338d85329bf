"""Schedule rule endpoints - CRUD, enable toggle, dry-run preview."""

from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, Response, status

from qsre.api.deps import DbDep, RecordStoreDep
from qsre.config import settings
from qsre.engine.errors import RecordStoreUnavailable, RuleValidationError
from qsre.engine.planner import plan
from qsre.records.base import load_catalog
from qsre.schemas.execution import TransitionPlan
from qsre.schemas.rule import (
    CreateRuleRequest,
    Rule,
    RuleDefinition,
    SetEnabledRequest,
    UpdateRuleRequest,
)
from qsre.storage import repositories

router = APIRouter()


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Schedule rule not found")


def _invalid(exc: RuleValidationError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=exc.message)


@router.get("/schedule-rules", response_model=list[Rule])
async def list_schedule_rules(db: DbDep):
    """List all schedule rules."""
    return [repositories.to_rule(r) for r in await repositories.list_rules(db)]


@router.get("/schedule-rules/{rule_id}", response_model=Rule)
async def get_schedule_rule(rule_id: str, db: DbDep):
    """Get a schedule rule by id."""
    row = await repositories.get_rule(db, rule_id)
    if not row:
        raise _not_found()
    return repositories.to_rule(row)


@router.post("/schedule-rules", response_model=Rule, status_code=status.HTTP_201_CREATED)
async def create_schedule_rule(body: CreateRuleRequest, db: DbDep):
    """Create a schedule rule."""
    definition = RuleDefinition.model_validate(body.model_dump(exclude={"created_by"}))
    try:
        row = await repositories.create_rule(db, definition, created_by=body.created_by)
    except RuleValidationError as exc:
        raise _invalid(exc)
    await db.commit()
    return repositories.to_rule(row)


@router.put("/schedule-rules/{rule_id}", response_model=Rule)
async def update_schedule_rule(rule_id: str, body: UpdateRuleRequest, db: DbDep):
    """Partially update a schedule rule; omitted fields are kept."""
    try:
        row = await repositories.update_rule(db, rule_id, body.model_dump(exclude_unset=True))
    except RuleValidationError as exc:
        raise _invalid(exc)
    if not row:
        raise _not_found()
    await db.commit()
    return repositories.to_rule(row)


@router.post("/schedule-rules/{rule_id}/enabled", response_model=Rule)
async def set_schedule_rule_enabled(rule_id: str, body: SetEnabledRequest, db: DbDep):
    """Enable or disable a rule for automatic runs."""
    row = await repositories.set_enabled(db, rule_id, body.enabled)
    if not row:
        raise _not_found()
    await db.commit()
    return repositories.to_rule(row)


@router.delete("/schedule-rules/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_schedule_rule(rule_id: str, db: DbDep):
    """Delete a schedule rule. Irreversible; history keeps the rule id."""
    if not await repositories.delete_rule(db, rule_id):
        raise _not_found()
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/schedule-rules/{rule_id}/preview", response_model=TransitionPlan)
async def preview_schedule_rule(rule_id: str, db: DbDep, store: RecordStoreDep):
    """Compute the rule's transition plan without applying it."""
    row = await repositories.get_rule(db, rule_id)
    if not row:
        raise _not_found()
    rule = repositories.to_rule(row)
    try:
        catalog = await load_catalog(
            store, queue_status=rule.from_status, page_size=settings.catalog_page_size
        )
    except RecordStoreUnavailable as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    return plan(rule, catalog, datetime.now(timezone.utc))
