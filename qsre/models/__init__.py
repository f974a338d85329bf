"""Database models."""

from qsre.models.catalog import ContributorProject, Project, ProjectObjective
from qsre.models.execution import ExecutionHistory
from qsre.models.schedule_rule import ScheduleRule

__all__ = ["ContributorProject", "ExecutionHistory", "Project", "ProjectObjective", "ScheduleRule"]
