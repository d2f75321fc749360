# hackmate/project/project_service.py
"""
Projects: creation, lookup, joining by code, compound deletes.

One-shot reads never raise: a slow or failing store degrades to "not found".
Primary writes propagate their errors; bootstrap writes (role, default
milestones) run in the background and only log failures.
"""

from __future__ import annotations

import logging
import secrets
import string
from typing import Callable, Dict, List, Optional

from hackmate.config import FETCH_TIMEOUT_SECONDS, JOIN_LOOKUP_TIMEOUT_SECONDS
from hackmate.milestone.milestone_service import create_default_milestones
from hackmate.schemas.project_schema import IdeaAnalysis, Project, ProjectRole
from hackmate.store.document_store import SERVER_TIMESTAMP, ArrayUnion, DocumentSnapshot, DocumentStore, where
from hackmate.store.watch import Unsubscribe
from hackmate.sync import fire_and_forget, to_model, to_models, with_timeout

logger = logging.getLogger("hackmate.project")

PROJECTS = "projects"
ROLES = "project_roles"

JOIN_CODE_ALPHABET = string.ascii_uppercase + string.digits
JOIN_CODE_LENGTH = 6

_TIMESTAMPS = ("created_at",)


def generate_join_code() -> str:
    # not checked against existing projects; collisions are possible
    return "".join(secrets.choice(JOIN_CODE_ALPHABET) for _ in range(JOIN_CODE_LENGTH))


def role_id(project_id: str, user_id: str) -> str:
    return f"{project_id}_{user_id}"


def _project(snapshot: DocumentSnapshot) -> Optional[Project]:
    return to_model(snapshot, Project.model_validate, _TIMESTAMPS)


# ==========================
#  CREATE
# ==========================
async def create_project(store: DocumentStore, name: str, duration: str, user_id: str) -> str:
    if duration not in ("24h", "48h"):
        raise ValueError(f"Invalid duration: {duration!r}")

    project_id = store.new_id()
    await store.set(
        PROJECTS,
        project_id,
        {
            "project_id": project_id,
            "name": name,
            "duration": duration,
            "created_by": user_id,
            "members": [user_id],
            "join_code": generate_join_code(),
            "demo_mode": False,
            "created_at": SERVER_TIMESTAMP,
            "status": "planning",
            "github_repo": None,
            "demo_url": None,
            "pitch_deck_url": None,
            "submission_deadline": None,
            "hackathon_event": None,
        },
    )
    logger.info("project_created", extra={"project_id": project_id, "duration": duration})

    # the project exists from here on, whatever happens to the bootstrap writes
    fire_and_forget(
        store.set(ROLES, role_id(project_id, user_id), {"project_id": project_id, "user_id": user_id, "role": "admin"}),
        "creator role",
    )
    fire_and_forget(create_default_milestones(store, project_id, duration), "default milestones")

    return project_id


# ==========================
#  ONE-SHOT READS
# ==========================
async def get_project(store: DocumentStore, project_id: str) -> Optional[Project]:
    try:
        snapshot = await with_timeout(store.get(PROJECTS, project_id), FETCH_TIMEOUT_SECONDS, None)
    except Exception as exc:
        logger.error("Error getting project %s: %s", project_id, exc)
        return None
    if snapshot is None:
        return None
    return _project(snapshot)


async def get_user_projects(store: DocumentStore, user_id: str) -> List[Project]:
    try:
        snapshots = await with_timeout(
            store.query(PROJECTS, where("members", "array_contains", user_id)),
            FETCH_TIMEOUT_SECONDS,
            [],
        )
    except Exception as exc:
        logger.error("Error getting projects of %s: %s", user_id, exc)
        return []

    projects = to_models(snapshots, Project.model_validate, _TIMESTAMPS)
    projects.sort(key=lambda p: p.created_at, reverse=True)
    return projects


async def get_user_role(store: DocumentStore, project_id: str, user_id: str) -> ProjectRole:
    try:
        snapshot = await store.get(ROLES, role_id(project_id, user_id))
        if snapshot.exists and snapshot.get("role") in ("admin", "member", "viewer"):
            return snapshot.get("role")
    except Exception as exc:
        logger.error("Error getting role of %s in %s: %s", user_id, project_id, exc)
    return "viewer"


# ==========================
#  JOIN / LEAVE
# ==========================
async def join_project_by_code(store: DocumentStore, join_code: str, user_id: str) -> Optional[str]:
    """Add `user_id` to the project owning `join_code`; None when no project matches."""
    try:
        matches = await with_timeout(
            store.query(PROJECTS, where("join_code", "==", join_code.strip().upper())),
            JOIN_LOOKUP_TIMEOUT_SECONDS,
            [],
        )
    except Exception as exc:
        logger.error("Error looking up join code: %s", exc)
        return None
    if not matches:
        return None

    project_id = matches[0].id
    batch = store.batch()
    batch.update(PROJECTS, project_id, {"members": ArrayUnion(user_id)})
    batch.set(ROLES, role_id(project_id, user_id), {"project_id": project_id, "user_id": user_id, "role": "member"})
    await batch.commit()

    logger.info("project_joined", extra={"project_id": project_id})
    return project_id


async def remove_member_from_project(store: DocumentStore, project_id: str, user_id: str) -> None:
    batch = store.batch()

    snapshot = await store.get(PROJECTS, project_id)
    if snapshot.exists:
        members = [m for m in snapshot.get("members") or [] if m != user_id]
        batch.update(PROJECTS, project_id, {"members": members})

    batch.delete(ROLES, role_id(project_id, user_id))
    await batch.commit()


# ==========================
#  UPDATES
# ==========================
async def update_project_idea(store: DocumentStore, project_id: str, idea: IdeaAnalysis) -> None:
    await store.update(PROJECTS, project_id, {"idea": idea.model_dump()})


async def update_demo_mode(store: DocumentStore, project_id: str, enabled: bool) -> None:
    await store.update(PROJECTS, project_id, {"demo_mode": enabled})


async def update_project_urls(store: DocumentStore, project_id: str, urls: Dict[str, Optional[str]]) -> None:
    await store.update(PROJECTS, project_id, urls)


async def update_project_status(store: DocumentStore, project_id: str, status: str) -> None:
    await store.update(PROJECTS, project_id, {"status": status})


# ==========================
#  DELETE
# ==========================
async def delete_project(store: DocumentStore, project_id: str) -> None:
    """Delete the project with its tasks and messages in one batch.

    A sub-collection that cannot be listed is skipped (logged); the project
    document itself is always part of the batch, after its children.
    """
    batch = store.batch()

    for collection in ("tasks", "messages"):
        try:
            children = await store.query(collection, where("project_id", "==", project_id))
        except Exception as exc:
            logger.error("Error collecting %s of project %s: %s", collection, project_id, exc)
            continue
        for child in children:
            batch.delete(collection, child.id)

    batch.delete(PROJECTS, project_id)
    await batch.commit()
    logger.info("project_deleted", extra={"project_id": project_id, "writes": len(batch)})


# ==========================
#  SUBSCRIPTION
# ==========================
def subscribe_to_project(
    store: DocumentStore, project_id: str, callback: Callable[[Optional[Project]], None]
) -> Unsubscribe:
    def on_next(snapshot: DocumentSnapshot) -> None:
        callback(_project(snapshot))

    def on_error(exc: BaseException) -> None:
        logger.error("Error subscribing to project %s: %s", project_id, exc)
        callback(None)

    try:
        return store.on_document(PROJECTS, project_id, on_next, on_error)
    except Exception as exc:
        logger.error("Cannot subscribe to project %s: %s", project_id, exc)
        callback(None)
        return lambda: None
