#!/usr/bin/env python3
"""
Dry-run the default schedule rules against an in-memory catalog and print
each rule's transition plan as JSON. No database or API needed.
Usage: python scripts/preview_rules.py
"""

import asyncio
import json
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from qsre.engine.planner import plan
from qsre.records.base import ContributorProjectRecord, load_catalog
from qsre.records.memory import InMemoryRecordStore
from qsre.schemas.rule import Rule
from qsre.storage.repositories import DEFAULT_RULES


def build_store(now: datetime) -> InMemoryRecordStore:
    records = [
        ContributorProjectRecord(
            id=f"cp_{i:03d}",
            name=f"Contributor {i}",
            project_id="proj_search" if i % 2 else "proj_speech",
            queue_status="Calibration Queue",
            status_changed_at=now - timedelta(days=days),
        )
        for i, days in enumerate([2, 8, 15, 21], start=1)
    ]
    return InMemoryRecordStore(
        project_ids=["proj_search", "proj_speech"],
        records=records,
    )


async def main():
    now = datetime.now(timezone.utc)
    store = build_store(now)
    output = []
    for entry in DEFAULT_RULES:
        rule = Rule(**entry, created_at=now)
        catalog = await load_catalog(store, queue_status=rule.from_status)
        output.append(plan(rule, catalog, now).model_dump(mode="json"))
    print(json.dumps(output, indent=2))


if __name__ == "__main__":
    asyncio.run(main())
