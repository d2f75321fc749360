from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from hackmate.schemas.milestone_schema import Milestone, MilestoneCreate, MilestoneUpdate
from hackmate.store.document_store import SERVER_TIMESTAMP, DocumentStore, where
from hackmate.store.watch import Unsubscribe
from hackmate.sync import subscribe_collection, utcnow

COLLECTION = "milestones"

DURATION_HOURS = {"24h": 24, "48h": 48}

# (name, description, type, share of the hackathon elapsed at the deadline)
DEFAULT_MILESTONES = (
    ("Idea Finalization", "Complete idea analysis and feature planning", "idea_submission", 0.2),
    ("Prototype Development", "Build working prototype with core features", "prototype", 0.7),
    ("Final Presentation", "Complete project and prepare final presentation", "final_presentation", 1.0),
)


def default_milestones(project_id: str, duration: str, now: Optional[datetime] = None) -> List[Dict]:
    """The three milestones every new project starts with, deadlines relative to `now`."""
    now = now or utcnow()
    hours = DURATION_HOURS[duration]
    return [
        {
            "name": name,
            "description": description,
            "type": kind,
            "deadline": now + timedelta(hours=hours * share),
            "project_id": project_id,
            "status": "upcoming",
        }
        for name, description, kind, share in DEFAULT_MILESTONES
    ]


async def create_default_milestones(store: DocumentStore, project_id: str, duration: str) -> None:
    batch = store.batch()
    for milestone in default_milestones(project_id, duration):
        milestone_id = store.new_id()
        batch.set(
            COLLECTION,
            milestone_id,
            {**milestone, "milestone_id": milestone_id, "created_at": SERVER_TIMESTAMP},
        )
    await batch.commit()


async def create_milestone(store: DocumentStore, project_id: str, data: MilestoneCreate) -> str:
    milestone_id = store.new_id()
    await store.set(
        COLLECTION,
        milestone_id,
        {
            **data.model_dump(),
            "milestone_id": milestone_id,
            "project_id": project_id,
            "created_at": SERVER_TIMESTAMP,
        },
    )
    return milestone_id


async def update_milestone(store: DocumentStore, milestone_id: str, updates: MilestoneUpdate) -> None:
    await store.update(COLLECTION, milestone_id, updates.model_dump(exclude_unset=True))


async def delete_milestone(store: DocumentStore, milestone_id: str) -> None:
    await store.delete(COLLECTION, milestone_id)


def subscribe_to_milestones(
    store: DocumentStore, project_id: str, callback: Callable[[List[Milestone]], None]
) -> Unsubscribe:
    return subscribe_collection(
        store,
        COLLECTION,
        [where("project_id", "==", project_id)],
        Milestone.model_validate,
        callback,
        timestamp_fields=("deadline", "created_at"),
        sort_key=lambda m: m.deadline,
    )
