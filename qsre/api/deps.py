"""Shared FastAPI dependencies."""

import asyncio
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from qsre.database import get_db
from qsre.records.base import RecordStore
from qsre.scheduler import AutomationScheduler


def get_record_store(request: Request) -> RecordStore:
    return request.app.state.record_store


def get_execution_lock(request: Request) -> asyncio.Lock:
    return request.app.state.execution_lock


def get_scheduler(request: Request) -> AutomationScheduler | None:
    return getattr(request.app.state, "scheduler", None)


DbDep = Annotated[AsyncSession, Depends(get_db)]
RecordStoreDep = Annotated[RecordStore, Depends(get_record_store)]
ExecutionLockDep = Annotated[asyncio.Lock, Depends(get_execution_lock)]
SchedulerDep = Annotated[AutomationScheduler | None, Depends(get_scheduler)]
