# hackmate/schemas/member_schema.py

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict

MemberRole = Literal["lead", "developer", "designer", "researcher", "admin"]
Availability = Literal["available", "busy", "offline"]


class UserProfile(BaseModel):
    """One profile per user id, shared by every project the user is in."""

    model_config = ConfigDict(extra="ignore")

    user_id: str
    name: str
    email: str = ""
    role: MemberRole = "developer"
    skills: List[str] = []
    online_status: bool = False
    availability: Availability = "available"
    timezone: Optional[str] = None
    github_username: Optional[str] = None
    hours_worked: int = 0
    tasks_completed: int = 0
    created_at: Optional[datetime] = None


# Members listed on a project are the same documents
ProjectMember = UserProfile


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    role: Optional[MemberRole] = None
    skills: Optional[List[str]] = None
    online_status: Optional[bool] = None
    availability: Optional[Availability] = None
    timezone: Optional[str] = None
    github_username: Optional[str] = None


class SkillsUpdate(BaseModel):
    skills: List[str]
