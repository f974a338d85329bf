"""Test data builders."""

from datetime import datetime, timedelta, timezone

from qsre.records.base import ContributorProjectRecord
from qsre.schemas.rule import Rule, TimeType

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


def make_record(record_id: str, **kwargs) -> ContributorProjectRecord:
    """Contributor project in the Calibration Queue, entered 10 days before NOW."""
    data = {
        "name": f"Contributor {record_id}",
        "project_id": "P1",
        "project_objective_id": "O1",
        "queue_status": "Calibration Queue",
        "status_changed_at": NOW - timedelta(days=10),
    }
    data.update(kwargs)
    return ContributorProjectRecord(id=record_id, **data)


def make_rule(**kwargs) -> Rule:
    """Enabled 7-day Calibration -> Production rule."""
    data = {
        "id": "R1",
        "name": "Calibration to Production",
        "enabled": True,
        "from_status": "Calibration Queue",
        "to_status": "Production Queue",
        "time_type": TimeType.DAYS,
        "days": 7,
        "created_at": NOW,
    }
    data.update(kwargs)
    return Rule(**data)
