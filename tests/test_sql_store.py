"""Tests for the SQLAlchemy-backed record store."""

from datetime import timedelta

import pytest
import pytest_asyncio

from qsre.engine.errors import RecordUpdateError
from qsre.models import ContributorProject, Project, ProjectObjective
from qsre.records.base import load_catalog
from qsre.records.sql import SqlRecordStore
from tests.factories import NOW


@pytest_asyncio.fixture()
async def store(session_maker):
    async with session_maker() as session:
        session.add_all(
            [
                Project(id="P1", name="Search Relevance"),
                Project(id="P2", name="Speech Transcription"),
            ]
        )
        await session.flush()
        session.add(ProjectObjective(id="O1", project_id="P1", name="English"))
        await session.flush()
        session.add_all(
            [
                ContributorProject(
                    id="CP1",
                    name="Ana - Search",
                    project_id="P1",
                    project_objective_id="O1",
                    queue_status="Calibration Queue",
                    queue_status_changed_at=NOW - timedelta(days=9),
                    attributes={"country": "Brazil", "tasks_completed": 40},
                ),
                ContributorProject(
                    id="CP2",
                    name="Ben - Speech",
                    project_id="P2",
                    queue_status=None,
                    attributes={},
                ),
                ContributorProject(
                    id="CP3",
                    name="Cy - Speech",
                    project_id="P2",
                    queue_status="",
                    attributes={},
                ),
            ]
        )
        await session.commit()
    return SqlRecordStore(session_maker)


@pytest.mark.asyncio
async def test_list_contributor_projects(store):
    records = await store.list_contributor_projects()
    assert [r.id for r in records] == ["CP1", "CP2", "CP3"]
    assert records[0].fields == {"country": "Brazil", "tasks_completed": 40}
    assert records[0].project_objective_id == "O1"


@pytest.mark.asyncio
async def test_list_pages_by_limit_and_offset(store):
    page = await store.list_contributor_projects(limit=1, offset=1)
    assert [r.id for r in page] == ["CP2"]


@pytest.mark.asyncio
async def test_none_status_filter_matches_null_and_empty(store):
    records = await store.list_contributor_projects(queue_status="--None--")
    assert [r.id for r in records] == ["CP2", "CP3"]


@pytest.mark.asyncio
async def test_load_catalog_pages_through_store(store):
    catalog = await load_catalog(store, page_size=2)
    assert [r.id for r in catalog.contributor_projects] == ["CP1", "CP2", "CP3"]
    assert catalog.project_ids == ["P1", "P2"]
    assert catalog.project_objective_ids == ["O1"]


@pytest.mark.asyncio
async def test_update_queue_status(store):
    await store.update_queue_status("CP2", "Calibration Queue")
    record = await store.get_contributor_project("CP2")
    assert record.queue_status == "Calibration Queue"
    assert record.status_changed_at is not None


@pytest.mark.asyncio
async def test_update_to_none_stores_null(store):
    await store.update_queue_status("CP1", "--None--")
    record = await store.get_contributor_project("CP1")
    assert record.queue_status is None


@pytest.mark.asyncio
async def test_update_missing_record(store):
    with pytest.raises(RecordUpdateError) as exc_info:
        await store.update_queue_status("CP404", "Test Queue")
    assert exc_info.value.record_id == "CP404"
