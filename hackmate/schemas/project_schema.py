# hackmate/schemas/project_schema.py

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

Duration = Literal["24h", "48h"]
ProjectStatus = Literal["planning", "development", "testing", "submitted", "judging", "completed"]
ProjectRole = Literal["admin", "member", "viewer"]


class IdeaAnalysis(BaseModel):
    problem_statement: str
    target_users: List[str] = []
    features: List[str] = []
    risks: List[str] = []
    tech_stack_suggestions: List[str] = []


# --------- Stored document ---------
class Project(BaseModel):
    project_id: str
    name: str
    duration: Duration
    created_by: str
    members: List[str] = []
    join_code: str
    demo_mode: bool = False
    idea: Optional[IdeaAnalysis] = None
    created_at: datetime
    status: ProjectStatus = "planning"

    # optional links and event info
    hackathon_event: Optional[str] = None
    submission_deadline: Optional[datetime] = None
    github_repo: Optional[str] = None
    demo_url: Optional[str] = None
    pitch_deck_url: Optional[str] = None


# --------- Requests ---------
class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1)
    duration: Duration = "24h"


class JoinProjectRequest(BaseModel):
    join_code: str = Field(..., min_length=6, max_length=6)


class ProjectUrlsUpdate(BaseModel):
    github_repo: Optional[str] = None
    demo_url: Optional[str] = None
    pitch_deck_url: Optional[str] = None


class ProjectStatusUpdate(BaseModel):
    status: ProjectStatus


class DemoModeUpdate(BaseModel):
    enabled: bool


class IdeaUpdate(BaseModel):
    idea: IdeaAnalysis
