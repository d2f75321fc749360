# hackmate/schemas/activity_schema.py

from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel

ActivityType = Literal["task_update", "file_upload", "message", "code_commit", "status_change"]


class LiveActivity(BaseModel):
    activity_id: str
    project_id: str
    user_id: str
    type: ActivityType
    description: str
    timestamp: datetime
    metadata: Optional[Dict[str, Any]] = None


class ActivityCreate(BaseModel):
    type: ActivityType
    description: str
    metadata: Optional[Dict[str, Any]] = None
