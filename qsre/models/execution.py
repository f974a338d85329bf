"""Execution history model."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from qsre.database import JSON_COMPATIBLE, Base


class ExecutionHistory(Base):
    """Execution history - append-only, one row per rule per batch."""

    __tablename__ = "execution_history"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    batch_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    # No FK: entries outlive deleted rules
    rule_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    rule_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    rule_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    execution_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    triggered_by: Mapped[str] = mapped_column(String(32), nullable=False)
    rules_processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rules_updated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rules_skipped: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    duration_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    errors: Mapped[list] = mapped_column(JSON_COMPATIBLE, nullable=False)
    updates: Mapped[list] = mapped_column(JSON_COMPATIBLE, nullable=False)
    cancelled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
