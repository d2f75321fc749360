# hackmate/resource/resource_router.py

from fastapi import APIRouter, Depends

from hackmate.auth.identity_provider import AuthUser
from hackmate.config import FETCH_TIMEOUT_SECONDS
from hackmate.deps import get_current_user, get_member_project, get_store, require_in_project
from hackmate.resource import resource_service
from hackmate.schemas.project_schema import Project
from hackmate.schemas.resource_schema import ResourceCreate, SharedResource
from hackmate.store.document_store import DocumentStore
from hackmate.sync import with_timeout

router = APIRouter(prefix="/projects/{project_id}/resources", tags=["resources"])


@router.get("/", response_model=list[SharedResource])
async def get_resources(
    project: Project = Depends(get_member_project),
    store: DocumentStore = Depends(get_store),
):
    return await with_timeout(
        resource_service.get_project_resources(store, project.project_id), FETCH_TIMEOUT_SECONDS, []
    )


@router.post("/", status_code=201)
async def upload_resource(
    resource: ResourceCreate,
    project: Project = Depends(get_member_project),
    user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    resource_id = await resource_service.upload_resource(store, project.project_id, user.uid, resource)
    return {"resource_id": resource_id}


@router.delete("/{resource_id}", status_code=204)
async def delete_resource(
    resource_id: str,
    project: Project = Depends(get_member_project),
    store: DocumentStore = Depends(get_store),
):
    await require_in_project(store, resource_service.COLLECTION, resource_id, project.project_id)
    await resource_service.delete_resource(store, resource_id)
