#!/usr/bin/env python3
"""
Seed script: creates the built-in (disabled) schedule rules and a small demo
catalog of projects, objectives and contributor projects.
Run after migrations: python scripts/seed.py
"""

import asyncio
import os
import sys
from datetime import datetime, timedelta, timezone

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from qsre.config import settings
from qsre.models import ContributorProject, Project, ProjectObjective
from qsre.storage.repositories import seed_default_rules

PROJECTS = [
    ("proj_search", "Search Relevance"),
    ("proj_speech", "Speech Transcription"),
]

OBJECTIVES = [
    ("obj_search_en", "proj_search", "English (US)"),
    ("obj_search_de", "proj_search", "German"),
    ("obj_speech_es", "proj_speech", "Spanish"),
]

# (id, name, project, objective, queue status, days in status, attributes)
CONTRIBUTOR_PROJECTS = [
    ("cp_001", "Ana Lima - Search EN", "proj_search", "obj_search_en", "Calibration Queue", 9,
     {"country": "Brazil", "qualification_score": 88, "tasks_completed": 42, "onboarding_completed": True}),
    ("cp_002", "Ben Okafor - Search DE", "proj_search", "obj_search_de", "Calibration Queue", 3,
     {"country": "Nigeria", "qualification_score": 71, "tasks_completed": 5, "onboarding_completed": True}),
    ("cp_003", "Chen Wei - Speech ES", "proj_speech", "obj_speech_es", "Calibration Queue", 16,
     {"country": "Singapore", "qualification_score": 93, "tasks_completed": 120, "onboarding_completed": False}),
    ("cp_004", "Dana Cruz - Speech ES", "proj_speech", "obj_speech_es", "Production Queue", 30,
     {"country": "Mexico", "qualification_score": 97, "tasks_completed": 410, "onboarding_completed": True}),
    ("cp_005", "Eli Novak - Search EN", "proj_search", None, None, 1,
     {"country": "Czech Republic", "onboarding_completed": False}),
]


async def seed():
    engine = create_async_engine(settings.database_url)
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    now = datetime.now(timezone.utc)

    async with async_session() as session:
        created = await seed_default_rules(session)
        if created:
            print(f"Created {len(created)} default schedule rules (disabled).")
        else:
            print("Schedule rules already exist, skipping defaults.")

        existing = await session.scalar(select(func.count()).select_from(Project))
        if existing:
            print("Catalog already seeded.")
        else:
            session.add_all(Project(id=pid, name=name) for pid, name in PROJECTS)
            await session.flush()
            session.add_all(
                ProjectObjective(id=oid, project_id=pid, name=name) for oid, pid, name in OBJECTIVES
            )
            await session.flush()
            for cid, name, pid, oid, queue_status, days, attributes in CONTRIBUTOR_PROJECTS:
                changed_at = now - timedelta(days=days)
                session.add(
                    ContributorProject(
                        id=cid,
                        name=name,
                        project_id=pid,
                        project_objective_id=oid,
                        status="Active",
                        queue_status=queue_status,
                        queue_status_changed_at=changed_at,
                        created_at=changed_at,
                        last_modified_at=changed_at,
                        attributes=attributes,
                    )
                )
            print(f"Created {len(CONTRIBUTOR_PROJECTS)} contributor projects.")
        await session.commit()

    await engine.dispose()
    print("Seed complete!")
    print("Preview a rule: curl -X POST http://localhost:8000/v1/schedule-rules/auto_production_after_days/preview")


if __name__ == "__main__":
    asyncio.run(seed())
