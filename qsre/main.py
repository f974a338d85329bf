"""QSRE FastAPI application."""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from qsre.api.executions import router as executions_router
from qsre.api.health import router as health_router
from qsre.api.records import router as records_router
from qsre.api.rules import router as rules_router
from qsre.config import settings
from qsre.database import async_session_maker, engine
from qsre.records.sql import SqlRecordStore
from qsre.scheduler import AutomationScheduler

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Wire the record store, execution lock and scheduler; stop them on shutdown."""
    app.state.record_store = SqlRecordStore(async_session_maker)
    app.state.execution_lock = asyncio.Lock()
    app.state.scheduler = AutomationScheduler(
        async_session_maker, app.state.record_store, app.state.execution_lock
    )
    if settings.scheduler_enabled:
        app.state.scheduler.start()
    else:
        logger.info("Automatic scheduler disabled by configuration")
    yield
    await app.state.scheduler.stop()
    await engine.dispose()


app = FastAPI(
    title="QSRE - Queue Status Rule Engine",
    description="Automates contributor project queue status transitions with scheduled rules",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router, tags=["Health"])
app.include_router(rules_router, prefix="/v1", tags=["Schedule Rules"])
app.include_router(executions_router, prefix="/v1", tags=["Executions"])
app.include_router(records_router, prefix="/v1", tags=["Records"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {"service": "QSRE", "version": "0.1.0", "docs": "/docs"}
