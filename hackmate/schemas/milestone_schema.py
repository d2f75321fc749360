# hackmate/schemas/milestone_schema.py

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel

MilestoneStatus = Literal["upcoming", "active", "completed", "overdue"]
MilestoneType = Literal["idea_submission", "prototype", "final_presentation", "custom"]


class Milestone(BaseModel):
    milestone_id: str
    project_id: str
    name: str
    description: str = ""
    deadline: datetime
    status: MilestoneStatus = "upcoming"
    type: MilestoneType = "custom"
    created_at: datetime


class MilestoneCreate(BaseModel):
    name: str
    description: str = ""
    deadline: datetime
    status: MilestoneStatus = "upcoming"
    type: MilestoneType = "custom"


class MilestoneUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    deadline: Optional[datetime] = None
    status: Optional[MilestoneStatus] = None
    type: Optional[MilestoneType] = None
