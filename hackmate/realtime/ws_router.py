# hackmate/realtime/ws_router.py
"""
Live project feed over a WebSocket.

Each connection opens the project's subscriptions and forwards every snapshot
as a `{"type": <stream>, "data": ...}` frame. The subscriptions are closed when
the client goes away.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from fastapi.encoders import jsonable_encoder

from hackmate.activity.activity_service import subscribe_to_activities
from hackmate.chat.message_service import subscribe_to_messages
from hackmate.errors import AuthError
from hackmate.member.member_service import subscribe_to_project_members
from hackmate.milestone.milestone_service import subscribe_to_milestones
from hackmate.notification.notification_service import subscribe_to_notifications
from hackmate.project.project_service import get_project, subscribe_to_project
from hackmate.schemas.project_schema import Project
from hackmate.store.document_store import DocumentStore
from hackmate.store.watch import Unsubscribe
from hackmate.task.task_service import subscribe_to_tasks

logger = logging.getLogger("hackmate.realtime")

router = APIRouter(tags=["realtime"])


def frame(stream: str, value: Any) -> Dict[str, Any]:
    return {"type": stream, "data": jsonable_encoder(value)}


class ProjectFeed:
    """Every live stream of one project, as seen by one user, drained into a queue."""

    def __init__(self, store: DocumentStore, project: Project, user_id: str) -> None:
        self.store = store
        self.project_id = project.project_id
        self.user_id = user_id
        self.queue: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue()

        self._member_ids: List[str] = list(project.members)
        self._unsubscribes: List[Unsubscribe] = []
        self._unsubscribe_members: Optional[Unsubscribe] = None

    def open(self) -> None:
        store, project_id = self.store, self.project_id
        self._unsubscribes = [
            subscribe_to_project(store, project_id, self._on_project),
            subscribe_to_tasks(store, project_id, self._push("tasks")),
            subscribe_to_messages(store, project_id, self._push("messages")),
            subscribe_to_milestones(store, project_id, self._push("milestones")),
            subscribe_to_activities(store, project_id, self._push("activities")),
            subscribe_to_notifications(store, project_id, self.user_id, self._push("notifications")),
        ]
        self._unsubscribe_members = subscribe_to_project_members(store, self._member_ids, self._push("members"))

    def close(self) -> None:
        unsubscribes, self._unsubscribes = self._unsubscribes, []
        if self._unsubscribe_members is not None:
            unsubscribes.append(self._unsubscribe_members)
            self._unsubscribe_members = None
        for unsubscribe in unsubscribes:
            unsubscribe()

    def _push(self, stream: str) -> Callable[[Any], None]:
        def callback(value: Any) -> None:
            self.queue.put_nowait(frame(stream, value))

        return callback

    def _on_project(self, project: Optional[Project]) -> None:
        self.queue.put_nowait(frame("project", project))
        if project is None or project.members == self._member_ids:
            return

        # membership changed: re-open the member fan-out on the new id list
        self._member_ids = list(project.members)
        if self._unsubscribe_members is not None:
            self._unsubscribe_members()
        self._unsubscribe_members = subscribe_to_project_members(self.store, self._member_ids, self._push("members"))


async def _send_frames(websocket: WebSocket, queue: "asyncio.Queue[Dict[str, Any]]") -> None:
    while True:
        payload = await queue.get()
        try:
            await websocket.send_json(payload)
        except Exception as exc:
            logger.info("Stopped sending to a closed socket: %s", exc)
            return


def _consume(task: "asyncio.Task[Any]") -> None:
    if not task.cancelled() and task.exception() is not None:
        logger.warning("Feed sender failed: %s", task.exception())


@router.websocket("/ws/projects/{project_id}")
async def project_feed(websocket: WebSocket, project_id: str, token: Optional[str] = None):
    store: Optional[DocumentStore] = getattr(websocket.app.state, "store", None)
    if store is None:
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return

    try:
        user = await websocket.app.state.identity.verify_token(token or "")
    except AuthError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    project = await get_project(store, project_id)
    if project is None or user.uid not in project.members:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    feed = ProjectFeed(store, project, user.uid)
    feed.open()
    sender = asyncio.create_task(_send_frames(websocket, feed.queue))
    sender.add_done_callback(_consume)
    logger.info("project_feed_opened", extra={"project_id": project_id})

    # clients do not talk on this socket; reading only detects the disconnect
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        # no awaits here: this also runs when the handler is cancelled
        feed.close()
        sender.cancel()
        logger.info("project_feed_closed", extra={"project_id": project_id})
