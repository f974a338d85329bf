"""Schedule rule model."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from qsre.database import JSON_COMPATIBLE, Base


class ScheduleRule(Base):
    """Queue status automation rule - trigger payload and filters kept as JSON."""

    __tablename__ = "schedule_rules"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)  # time_based|condition_based
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    from_status: Mapped[str] = mapped_column(String(64), nullable=False)
    to_status: Mapped[str] = mapped_column(String(64), nullable=False)
    trigger_json: Mapped[dict] = mapped_column(JSON_COMPATIBLE, nullable=False)
    filters_json: Mapped[dict] = mapped_column(JSON_COMPATIBLE, nullable=False)
    created_by: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_executed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_execution_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
