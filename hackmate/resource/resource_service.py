from __future__ import annotations

import logging
from typing import Callable, List

from hackmate.schemas.resource_schema import ResourceCreate, SharedResource
from hackmate.store.document_store import SERVER_TIMESTAMP, UNSET, DocumentStore, where
from hackmate.store.watch import Unsubscribe
from hackmate.sync import subscribe_collection, to_models

logger = logging.getLogger("hackmate.resource")

COLLECTION = "shared_resources"


async def upload_resource(store: DocumentStore, project_id: str, user_id: str, resource: ResourceCreate) -> str:
    resource_id = store.new_id()
    # optional fields that were not provided are left out of the document
    fields = {k: (UNSET if v is None else v) for k, v in resource.model_dump().items()}
    await store.set(
        COLLECTION,
        resource_id,
        {
            **fields,
            "resource_id": resource_id,
            "project_id": project_id,
            "uploaded_by": user_id,
            "created_at": SERVER_TIMESTAMP,
        },
    )
    return resource_id


async def get_project_resources(store: DocumentStore, project_id: str) -> List[SharedResource]:
    try:
        snapshots = await store.query(COLLECTION, where("project_id", "==", project_id))
    except Exception as exc:
        logger.error("Error getting resources: %s", exc)
        return []
    return to_models(snapshots, SharedResource.model_validate, ("created_at",))


async def delete_resource(store: DocumentStore, resource_id: str) -> None:
    await store.delete(COLLECTION, resource_id)


def subscribe_to_resources(
    store: DocumentStore, project_id: str, callback: Callable[[List[SharedResource]], None]
) -> Unsubscribe:
    return subscribe_collection(
        store,
        COLLECTION,
        [where("project_id", "==", project_id)],
        SharedResource.model_validate,
        callback,
        timestamp_fields=("created_at",),
    )
