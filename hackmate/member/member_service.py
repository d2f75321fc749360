# hackmate/member/member_service.py
"""
Project members are user profiles (`users/{uid}`), shared across projects.

The member subscription fans out: one document stream per member id, merged
into a map keyed by user id; every single member update re-emits the whole map.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List

from hackmate.schemas.member_schema import ProjectMember
from hackmate.store.document_store import DocumentSnapshot, DocumentStore
from hackmate.store.watch import Unsubscribe
from hackmate.sync import to_model

logger = logging.getLogger("hackmate.member")

USERS = "users"


async def get_project_members(store: DocumentStore, member_ids: List[str]) -> List[ProjectMember]:
    members: List[ProjectMember] = []
    for member_id in member_ids:
        try:
            snapshot = await store.get(USERS, member_id)
        except Exception as exc:
            logger.error("Error getting member %s: %s", member_id, exc)
            continue
        member = to_model(snapshot, ProjectMember.model_validate)
        if member is not None:
            members.append(member)
    return members


def subscribe_to_project_members(
    store: DocumentStore,
    member_ids: List[str],
    callback: Callable[[List[ProjectMember]], None],
) -> Unsubscribe:
    members: Dict[str, ProjectMember] = {}
    unsubscribes: List[Unsubscribe] = []

    def listener(member_id: str):
        def on_next(snapshot: DocumentSnapshot) -> None:
            member = to_model(snapshot, ProjectMember.model_validate)
            if member is not None:
                members[member_id] = member
                callback(list(members.values()))

        def on_error(exc: BaseException) -> None:
            # one broken member stream leaves the others running
            logger.error("Error subscribing to member %s: %s", member_id, exc)

        return on_next, on_error

    try:
        for member_id in member_ids:
            on_next, on_error = listener(member_id)
            unsubscribes.append(store.on_document(USERS, member_id, on_next, on_error))
    except Exception as exc:
        logger.error("Cannot subscribe to members: %s", exc)
        for unsubscribe in unsubscribes:
            unsubscribe()
        callback([])
        return lambda: None

    def unsubscribe_all() -> None:
        for unsubscribe in unsubscribes:
            unsubscribe()

    return unsubscribe_all
