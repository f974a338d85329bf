"""Automatic scheduler - periodically runs enabled rules that are due."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from qsre.config import settings
from qsre.engine.coordinator import execute
from qsre.engine.validation import combine_specific
from qsre.records.base import RecordStore
from qsre.schemas.execution import ConfirmationRequired, ExecutionResult, TriggeredBy
from qsre.schemas.rule import Rule, RuleType, TimeType
from qsre.storage import repositories

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def is_due(rule: Rule, now: datetime, timezone_name: str | None = None) -> bool:
    """
    Whether an enabled rule should be part of this cycle.
    Date-based rules run once their target has passed and they have not
    run since; everything else is checked every cycle.
    """
    if not rule.enabled:
        return False
    if rule.type != RuleType.TIME_BASED or rule.time_type != TimeType.DATE:
        return True
    if rule.specific_date is None:
        return False
    target = combine_specific(
        rule.specific_date,
        rule.specific_time,
        ZoneInfo(timezone_name or settings.schedule_timezone),
    )
    if _as_utc(now) < target:
        return False
    return rule.last_executed_at is None or _as_utc(rule.last_executed_at) < target


class AutomationScheduler:
    """Runs run_scheduled_checks every interval_minutes on the event loop."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        record_store: RecordStore,
        execution_lock: asyncio.Lock,
        *,
        interval_minutes: int | None = None,
        retention_days: int | None = None,
    ) -> None:
        self.session_maker = session_maker
        self.record_store = record_store
        self.execution_lock = execution_lock
        self.interval_minutes = interval_minutes or settings.scheduler_interval_minutes
        self.retention_days = (
            settings.history_retention_days if retention_days is None else retention_days
        )
        self.cancel_event = asyncio.Event()
        self.last_run_at: datetime | None = None
        self.last_result: ExecutionResult | None = None
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            logger.info("Scheduler already running")
            return
        logger.info("Starting automatic scheduler (runs every %d minutes)", self.interval_minutes)
        self.cancel_event.clear()
        self._task = asyncio.create_task(self._loop(), name="qsre-scheduler")

    async def stop(self) -> None:
        """Stop issuing mutations and wait for the current batch to record its history."""
        if self._task is None:
            return
        self.cancel_event.set()
        await self._task
        self._task = None
        logger.info("Scheduler stopped")

    async def _loop(self) -> None:
        while not self.cancel_event.is_set():
            try:
                await self.run_scheduled_checks()
            except Exception:
                logger.exception("Error during scheduled execution")
            try:
                await asyncio.wait_for(self.cancel_event.wait(), self.interval_minutes * 60)
            except asyncio.TimeoutError:
                pass

    async def run_scheduled_checks(self, now: datetime | None = None) -> ExecutionResult | None:
        """One scheduler cycle. Skipped when another batch holds the lock."""
        if self.execution_lock.locked():
            logger.info("Previous execution still running, skipping this cycle")
            return None

        now = now or datetime.now(timezone.utc)
        async with self.execution_lock:
            async with self.session_maker() as db:
                enabled = [repositories.to_rule(r) for r in await repositories.list_enabled_rules(db)]
                due = [r.id for r in enabled if is_due(r, now)]
                self.last_run_at = now
                result = None
                if not due:
                    logger.info("No rules need to be executed at this time")
                else:
                    logger.info("Executing %d rule(s): %s", len(due), ", ".join(due))
                    outcome = await execute(
                        db,
                        self.record_store,
                        due,
                        TriggeredBy.AUTOMATIC,
                        now=now,
                        cancel_event=self.cancel_event,
                    )
                    if isinstance(outcome, ConfirmationRequired):
                        # A rule was disabled between selection and execution
                        logger.info("Skipping cycle: rules disabled while scheduling")
                    else:
                        result = outcome
                        self.last_result = outcome

                if self.retention_days > 0:
                    pruned = await repositories.prune_history(
                        db, now - timedelta(days=self.retention_days)
                    )
                    if pruned:
                        logger.info("Pruned %d old execution history entries", pruned)
                await db.commit()
        return result

    def status(self) -> dict:
        return {
            "running": self.running,
            "is_executing": self.execution_lock.locked(),
            "interval_minutes": self.interval_minutes,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "last_result": (
                {
                    "processed": self.last_result.processed,
                    "updated": self.last_result.updated,
                    "errors": len(self.last_result.errors),
                }
                if self.last_result
                else None
            ),
        }
