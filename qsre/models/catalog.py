"""Local mirror of the project-tracking records the engine reads and updates."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from qsre.database import JSON_COMPATIBLE, Base


class Project(Base):
    """Project table."""

    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)


class ProjectObjective(Base):
    """Project objective - belongs to one project."""

    __tablename__ = "project_objectives"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    project_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("projects.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)


class ContributorProject(Base):
    """Contributor project - carries the mutable queue status."""

    __tablename__ = "contributor_projects"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    project_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("projects.id"), nullable=False, index=True
    )
    project_objective_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("project_objectives.id"), nullable=True, index=True
    )
    status: Mapped[str | None] = mapped_column(String(64), nullable=True)
    queue_status: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    queue_status_changed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_modified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    attributes: Mapped[dict] = mapped_column(JSON_COMPATIBLE, nullable=False, default=dict)
