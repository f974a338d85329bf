"""Record-access contract for the external project-tracking system."""

from datetime import datetime
from typing import Any, Protocol

from pydantic import BaseModel, Field


class ContributorProjectRecord(BaseModel):
    """Snapshot of one Contributor Project as seen by the engine."""

    id: str
    name: str = ""
    project_id: str | None = None
    project_objective_id: str | None = None
    queue_status: str | None = None
    status: str | None = None
    status_changed_at: datetime | None = None
    last_modified_at: datetime | None = None
    created_at: datetime | None = None
    fields: dict[str, Any] = Field(default_factory=dict)


class RecordCatalog(BaseModel):
    """Candidate records for one planning pass."""

    project_ids: list[str] = Field(default_factory=list)
    project_objective_ids: list[str] = Field(default_factory=list)
    contributor_projects: list[ContributorProjectRecord] = Field(default_factory=list)

    def by_id(self) -> dict[str, ContributorProjectRecord]:
        return {r.id: r for r in self.contributor_projects}


class RecordStore(Protocol):
    """Read/update access to Projects, Objectives and Contributor Projects."""

    async def list_project_ids(self) -> list[str]: ...

    async def list_project_objective_ids(self) -> list[str]: ...

    async def list_contributor_projects(
        self,
        limit: int | None = None,
        offset: int = 0,
        queue_status: str | None = None,
    ) -> list[ContributorProjectRecord]: ...

    async def get_contributor_project(self, record_id: str) -> ContributorProjectRecord | None: ...

    async def update_queue_status(self, record_id: str, new_status: str) -> None: ...


async def load_catalog(
    store: RecordStore,
    *,
    queue_status: str | None = None,
    page_size: int = 2000,
) -> RecordCatalog:
    """
    Page through the store and build a full catalog.
    queue_status narrows contributor projects server-side (--None-- = null).
    """
    records: list[ContributorProjectRecord] = []
    offset = 0
    while True:
        page = await store.list_contributor_projects(
            limit=page_size, offset=offset, queue_status=queue_status
        )
        records.extend(page)
        if len(page) < page_size:
            break
        offset += page_size
    return RecordCatalog(
        project_ids=await store.list_project_ids(),
        project_objective_ids=await store.list_project_objective_ids(),
        contributor_projects=records,
    )
