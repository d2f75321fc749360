from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from hackmate.schemas.task_schema import Task, TaskCreate
from hackmate.store.document_store import SERVER_TIMESTAMP, UNSET, DocumentStore, where
from hackmate.store.watch import Unsubscribe
from hackmate.sync import subscribe_collection, to_model, utcnow

logger = logging.getLogger("hackmate.task")

COLLECTION = "tasks"


def _document(task_id: str, data: TaskCreate) -> Dict[str, Any]:
    fields = data.model_dump()
    if fields["due_date"] is None:
        fields["due_date"] = UNSET
    if fields["priority"] is None:
        fields["priority"] = UNSET
    return {**fields, "task_id": task_id, "last_updated": SERVER_TIMESTAMP}


async def create_task(store: DocumentStore, data: TaskCreate) -> str:
    task_id = store.new_id()
    await store.set(COLLECTION, task_id, _document(task_id, data))
    return task_id


async def add_task(store: DocumentStore, data: TaskCreate) -> Optional[Task]:
    """Create a task and return it with local dates, ready for the UI; None on failure."""
    task_id = store.new_id()
    document = {
        **_document(task_id, data),
        "created_at": SERVER_TIMESTAMP,
        "priority": data.priority or "Medium",
        "time_spent": 0,
        "dependencies": [],
        "tags": [],
    }
    try:
        await store.set(COLLECTION, task_id, document)
    except Exception as exc:
        logger.error("Error adding task: %s", exc)
        return None

    now = utcnow()
    return Task.model_validate(
        {
            **data.model_dump(exclude={"priority"}),
            "task_id": task_id,
            "last_updated": now,
            "created_at": now,
            "priority": data.priority or "Medium",
        }
    )


async def create_tasks(store: DocumentStore, tasks: List[TaskCreate]) -> List[str]:
    batch = store.batch()
    ids = []
    for data in tasks:
        task_id = store.new_id()
        batch.set(COLLECTION, task_id, _document(task_id, data))
        ids.append(task_id)
    await batch.commit()
    return ids


async def update_task(store: DocumentStore, task_id: str, updates: Dict[str, Any]) -> None:
    # last_updated moves on every mutation
    await store.update(COLLECTION, task_id, {**updates, "last_updated": SERVER_TIMESTAMP})


async def delete_task(store: DocumentStore, task_id: str) -> None:
    await store.delete(COLLECTION, task_id)


async def get_task(store: DocumentStore, task_id: str) -> Optional[Task]:
    snapshot = await store.get(COLLECTION, task_id)
    return to_model(snapshot, Task.model_validate, ("last_updated",))


def subscribe_to_tasks(store: DocumentStore, project_id: str, callback: Callable[[List[Task]], None]) -> Unsubscribe:
    return subscribe_collection(
        store,
        COLLECTION,
        [where("project_id", "==", project_id)],
        Task.model_validate,
        callback,
        timestamp_fields=("last_updated",),
        sort_key=lambda t: t.last_updated,
        descending=True,
    )
