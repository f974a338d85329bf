"""In-memory record store for tests, scripts and dry runs."""

from collections.abc import Callable
from datetime import datetime, timezone

from qsre.engine.errors import RecordStoreUnavailable, RecordUpdateError
from qsre.engine.transitions import normalize_status, to_record_value
from qsre.records.base import ContributorProjectRecord


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryRecordStore:
    """Record store backed by plain dicts; keeps insertion order."""

    def __init__(
        self,
        project_ids: list[str] | None = None,
        project_objective_ids: list[str] | None = None,
        records: list[ContributorProjectRecord] | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.project_ids = list(project_ids or [])
        self.project_objective_ids = list(project_objective_ids or [])
        self.records: dict[str, ContributorProjectRecord] = {r.id: r for r in records or []}
        self.clock = clock
        self.failures: dict[str, str] = {}
        self.unavailable = False
        self.update_calls: list[tuple[str, str]] = []

    def fail_update(self, record_id: str, message: str = "Update rejected") -> None:
        """Make every future update of record_id fail."""
        self.failures[record_id] = message

    def _check_available(self) -> None:
        if self.unavailable:
            raise RecordStoreUnavailable("Record store unreachable")

    async def list_project_ids(self) -> list[str]:
        self._check_available()
        return list(self.project_ids)

    async def list_project_objective_ids(self) -> list[str]:
        self._check_available()
        return list(self.project_objective_ids)

    async def list_contributor_projects(
        self,
        limit: int | None = None,
        offset: int = 0,
        queue_status: str | None = None,
    ) -> list[ContributorProjectRecord]:
        self._check_available()
        records = list(self.records.values())
        if queue_status is not None:
            wanted = normalize_status(queue_status)
            records = [r for r in records if normalize_status(r.queue_status) == wanted]
        end = None if limit is None else offset + limit
        return records[offset:end]

    async def get_contributor_project(self, record_id: str) -> ContributorProjectRecord | None:
        self._check_available()
        return self.records.get(record_id)

    async def update_queue_status(self, record_id: str, new_status: str) -> None:
        self._check_available()
        self.update_calls.append((record_id, new_status))
        if record_id in self.failures:
            raise RecordUpdateError(record_id, self.failures[record_id])
        record = self.records.get(record_id)
        if record is None:
            raise RecordUpdateError(record_id, "Contributor project not found")
        now = self.clock()
        self.records[record_id] = record.model_copy(
            update={
                "queue_status": to_record_value(new_status),
                "status_changed_at": now,
                "last_modified_at": now,
            }
        )
