# hackmate/schemas/notification_schema.py
from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel

NotificationType = Literal["task_assigned", "deadline_reminder", "blocker_alert", "team_update"]


class TeamNotification(BaseModel):
    notification_id: str
    project_id: str
    user_id: str
    type: NotificationType
    title: str
    message: str = ""
    read: bool = False
    created_at: datetime
    action_url: str | None = None


class NotificationCreate(BaseModel):
    user_id: str
    type: NotificationType = "team_update"
    title: str
    message: str = ""
    action_url: str | None = None
