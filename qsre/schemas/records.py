"""Record catalog and manual queue status update schemas."""

from pydantic import BaseModel, Field

from qsre.records.base import ContributorProjectRecord


class ContributorProjectPage(BaseModel):
    """GET /v1/contributor-projects response."""

    contributor_projects: list[ContributorProjectRecord]
    limit: int
    offset: int


class QueueStatusUpdate(BaseModel):
    """One requested status change."""

    contributor_project_id: str
    queue_status: str


class UpdateQueueStatusRequest(BaseModel):
    """POST /v1/update-queue-status request."""

    updates: list[QueueStatusUpdate] = Field(min_length=1)


class QueueStatusUpdateResult(BaseModel):
    """Outcome of one requested status change."""

    contributor_project_id: str
    success: bool
    from_status: str | None = None
    to_status: str
    error: str | None = None


class UpdateQueueStatusResponse(BaseModel):
    """POST /v1/update-queue-status response."""

    updated: int
    failed: int
    results: list[QueueStatusUpdateResult]
