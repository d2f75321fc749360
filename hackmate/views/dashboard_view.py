# hackmate/views/dashboard_view.py

from __future__ import annotations

import logging
from typing import List, Optional

from hackmate.project import project_service
from hackmate.schemas.project_schema import Project
from hackmate.store.document_store import DocumentStore
from hackmate.views.notices import Notice

logger = logging.getLogger("hackmate.views.dashboard")


class DashboardController:
    """The signed-in user's project list, with create/join/delete actions."""

    def __init__(self, store: DocumentStore, user_id: str) -> None:
        self.store = store
        self.user_id = user_id
        self.projects: List[Project] = []
        self.loading = True
        self.notices: List[Notice] = []

    async def load(self) -> None:
        self.loading = True
        self.projects = await project_service.get_user_projects(self.store, self.user_id)
        self.loading = False

    async def create_project(self, name: str, duration: str = "24h") -> Optional[str]:
        if not name.strip():
            return None
        try:
            project_id = await project_service.create_project(self.store, name.strip(), duration, self.user_id)
        except Exception as exc:
            logger.error("Failed to create project: %s", exc)
            self.notices.append(Notice("Failed to create project", str(exc), "destructive"))
            return None

        self.notices.append(Notice("Project created!"))
        await self.load()
        return project_id

    async def join_project(self, join_code: str) -> Optional[str]:
        try:
            project_id = await project_service.join_project_by_code(self.store, join_code, self.user_id)
        except Exception as exc:
            logger.error("Failed to join project: %s", exc)
            self.notices.append(Notice("Failed to join project", str(exc), "destructive"))
            return None

        if not project_id:
            self.notices.append(Notice("Invalid join code", "No project matches that code.", "destructive"))
            return None

        self.notices.append(Notice("Joined project!"))
        await self.load()
        return project_id

    async def delete_project(self, project_id: str) -> bool:
        previous = self.projects
        self.projects = [p for p in previous if p.project_id != project_id]
        try:
            await project_service.delete_project(self.store, project_id)
        except Exception as exc:
            logger.error("Failed to delete project %s: %s", project_id, exc)
            self.projects = previous
            self.notices.append(Notice("Failed to delete project", str(exc), "destructive"))
            return False

        self.notices.append(Notice("Project deleted"))
        return True
