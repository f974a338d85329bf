"""Record store backed by the local contributor project tables."""

import logging
from datetime import datetime, timezone

from sqlalchemy import or_, select
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from qsre.engine.errors import RecordStoreUnavailable, RecordUpdateError
from qsre.engine.transitions import NONE_STATUS, normalize_status, to_record_value
from qsre.models import ContributorProject, Project, ProjectObjective
from qsre.records.base import ContributorProjectRecord

logger = logging.getLogger(__name__)


def _to_record(row: ContributorProject) -> ContributorProjectRecord:
    return ContributorProjectRecord(
        id=row.id,
        name=row.name or "",
        project_id=row.project_id,
        project_objective_id=row.project_objective_id,
        queue_status=row.queue_status,
        status=row.status,
        status_changed_at=row.queue_status_changed_at,
        last_modified_at=row.last_modified_at,
        created_at=row.created_at,
        fields=dict(row.attributes or {}),
    )


class SqlRecordStore:
    """
    RecordStore over SQLAlchemy. Each mutation runs in its own session so a
    rejected write cannot roll back its neighbours.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self.session_maker = session_maker

    async def _scalars(self, stmt) -> list:
        try:
            async with self.session_maker() as session:
                result = await session.execute(stmt)
                return list(result.scalars().all())
        except SQLAlchemyError as exc:
            logger.exception("Record store query failed")
            raise RecordStoreUnavailable(str(exc)) from exc

    async def list_project_ids(self) -> list[str]:
        return await self._scalars(select(Project.id).order_by(Project.id))

    async def list_project_objective_ids(self) -> list[str]:
        return await self._scalars(select(ProjectObjective.id).order_by(ProjectObjective.id))

    async def list_contributor_projects(
        self,
        limit: int | None = None,
        offset: int = 0,
        queue_status: str | None = None,
    ) -> list[ContributorProjectRecord]:
        stmt = select(ContributorProject).order_by(ContributorProject.id)
        if queue_status is not None:
            if normalize_status(queue_status) == NONE_STATUS:
                stmt = stmt.where(
                    or_(
                        ContributorProject.queue_status.is_(None),
                        ContributorProject.queue_status == "",
                    )
                )
            else:
                stmt = stmt.where(ContributorProject.queue_status == queue_status)
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        rows = await self._scalars(stmt)
        return [_to_record(r) for r in rows]

    async def get_contributor_project(self, record_id: str) -> ContributorProjectRecord | None:
        rows = await self._scalars(
            select(ContributorProject).where(ContributorProject.id == record_id)
        )
        return _to_record(rows[0]) if rows else None

    async def update_queue_status(self, record_id: str, new_status: str) -> None:
        now = datetime.now(timezone.utc)
        try:
            async with self.session_maker() as session:
                row = await session.get(ContributorProject, record_id)
                if row is None:
                    raise RecordUpdateError(record_id, "Contributor project not found")
                row.queue_status = to_record_value(new_status)
                row.queue_status_changed_at = now
                row.last_modified_at = now
                await session.commit()
        except (OperationalError, InterfaceError) as exc:
            logger.exception("Record store connection failed updating %s", record_id)
            raise RecordStoreUnavailable(str(exc)) from exc
        except SQLAlchemyError as exc:
            raise RecordUpdateError(record_id, str(exc)) from exc
