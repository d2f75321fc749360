# hackmate/task/task_router.py

from fastapi import APIRouter, Depends, HTTPException

from hackmate.auth.identity_provider import AuthUser
from hackmate.config import FETCH_TIMEOUT_SECONDS
from hackmate.deps import get_current_user, get_member_project, get_store
from hackmate.schemas.project_schema import Project
from hackmate.schemas.task_schema import Task, TaskBulkCreate, TaskCreate, TaskUpdate
from hackmate.store.document_store import DocumentStore
from hackmate.sync import first_snapshot
from hackmate.task import task_service

router = APIRouter(tags=["tasks"])


async def _member_task(store: DocumentStore, task_id: str, user: AuthUser) -> Task:
    task = await task_service.get_task(store, task_id)
    if not task:
        raise HTTPException(404, "Task not found")
    await get_member_project(task.project_id, user, store)
    return task


# ==========================
#  LIST TASKS OF A PROJECT
# ==========================
@router.get("/projects/{project_id}/tasks", response_model=list[Task])
async def get_project_tasks(
    project: Project = Depends(get_member_project),
    store: DocumentStore = Depends(get_store),
):
    return await first_snapshot(
        lambda cb: task_service.subscribe_to_tasks(store, project.project_id, cb),
        FETCH_TIMEOUT_SECONDS,
        [],
    )


# ==========================
#  CREATE TASK
# ==========================
@router.post("/tasks/", response_model=Task, status_code=201)
async def create_task(
    data: TaskCreate,
    user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    await get_member_project(data.project_id, user, store)
    task = await task_service.add_task(store, data)
    if task is None:
        raise HTTPException(503, "Failed to add task")
    return task


@router.post("/tasks/bulk", status_code=201)
async def create_tasks(
    request: TaskBulkCreate,
    user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    for project_id in {t.project_id for t in request.tasks}:
        await get_member_project(project_id, user, store)
    task_ids = await task_service.create_tasks(store, request.tasks)
    return {"task_ids": task_ids}


# ==========================
#  UPDATE TASK (PATCH)
# ==========================
@router.patch("/tasks/{task_id}")
async def update_task(
    task_id: str,
    updates: TaskUpdate,
    user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    await _member_task(store, task_id, user)
    changes = updates.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(400, "Nothing to update")
    await task_service.update_task(store, task_id, changes)
    return {"task_id": task_id, **changes}


# ==========================
#  DELETE TASK
# ==========================
@router.delete("/tasks/{task_id}", status_code=204)
async def delete_task(
    task_id: str,
    user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    await _member_task(store, task_id, user)
    await task_service.delete_task(store, task_id)
