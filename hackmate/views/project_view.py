# hackmate/views/project_view.py
"""
State behind the project workspace screen.

mount() paints from a one-shot read, then keeps project, tasks and messages
live through subscriptions until unmount(). Status, assignment, deletion and
demo-mode changes are optimistic: local state moves first and is put back to
the value captured before the change if the write fails.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional

from hackmate.ai.gateway_client import AIGatewayClient
from hackmate.chat import message_service
from hackmate.errors import AIGatewayError
from hackmate.member.member_service import get_project_members
from hackmate.project import project_service
from hackmate.schemas.member_schema import ProjectMember
from hackmate.schemas.message_schema import ChatMessage
from hackmate.schemas.project_schema import Project
from hackmate.schemas.task_schema import Task, TaskCreate
from hackmate.store.document_store import DocumentStore
from hackmate.store.watch import Unsubscribe
from hackmate.task import task_service
from hackmate.views.notices import Notice

logger = logging.getLogger("hackmate.views.project")

ASSISTANT_HISTORY = 10


class ProjectViewController:
    def __init__(
        self,
        store: DocumentStore,
        project_id: str,
        user_id: str,
        ai: Optional[AIGatewayClient] = None,
    ) -> None:
        self.store = store
        self.project_id = project_id
        self.user_id = user_id
        self.ai = ai

        self.project: Optional[Project] = None
        self.tasks: List[Task] = []
        self.messages: List[ChatMessage] = []
        self.members: List[ProjectMember] = []
        self.loading = True
        self.error: Optional[str] = None
        self.analyzing_idea = False
        self.generating_tasks = False
        self.notices: List[Notice] = []

        self._mounted = False
        self._unsubscribes: List[Unsubscribe] = []

    # ---------------- lifecycle ----------------
    async def mount(self) -> None:
        self._mounted = True
        project = await project_service.get_project(self.store, self.project_id)
        if not self._mounted:
            return
        if project is None:
            self.error = "Project not found"
            self.loading = False
            return

        self.project = project
        self.loading = False

        if project.members:
            try:
                members = await get_project_members(self.store, project.members)
            except Exception as exc:
                logger.error("Failed to load members: %s", exc)
            else:
                if self._mounted:
                    self.members = members

        if not self._mounted:
            return
        self._unsubscribes = [
            project_service.subscribe_to_project(self.store, self.project_id, self._on_project),
            task_service.subscribe_to_tasks(self.store, self.project_id, self._guard(self._set_tasks)),
            message_service.subscribe_to_messages(self.store, self.project_id, self._guard(self._set_messages)),
        ]

    def unmount(self) -> None:
        self._mounted = False
        unsubscribes, self._unsubscribes = self._unsubscribes, []
        for unsubscribe in unsubscribes:
            unsubscribe()

    # ---------------- tasks ----------------
    async def add_task(
        self,
        title: str,
        description: str = "",
        effort: str = "Medium",
        assigned_to: Optional[str] = None,
    ) -> Optional[Task]:
        if not title.strip():
            return None

        task = await task_service.add_task(
            self.store,
            TaskCreate(
                project_id=self.project_id,
                title=title,
                description=description,
                status="ToDo",
                effort=effort,
                assigned_to=assigned_to,
            ),
        )
        if task is None:
            self._notify("Failed to add task", "The task could not be saved.", "destructive")
            return None

        self.tasks = [*self.tasks, task]
        self._notify("Task added!")
        return task

    async def update_task_status(self, task_id: str, status: str) -> bool:
        return await self._optimistic_task_update(task_id, "status", status)

    async def assign_task(self, task_id: str, assigned_to: Optional[str]) -> bool:
        ok = await self._optimistic_task_update(task_id, "assigned_to", assigned_to)
        if ok:
            self._notify("Task assigned!" if assigned_to else "Task unassigned!")
        else:
            self._notify("Failed to update assignment", "Please try again.", "destructive")
        return ok

    async def delete_task(self, task_id: str) -> bool:
        index = next((i for i, t in enumerate(self.tasks) if t.task_id == task_id), None)
        if index is None:
            return False

        removed = self.tasks[index]
        self.tasks = [t for t in self.tasks if t.task_id != task_id]
        try:
            await task_service.delete_task(self.store, task_id)
        except Exception as exc:
            logger.error("Failed to delete task %s: %s", task_id, exc)
            tasks = list(self.tasks)
            tasks.insert(min(index, len(tasks)), removed)
            self.tasks = tasks
            self._notify("Failed to delete task", str(exc), "destructive")
            return False

        self._notify("Task deleted")
        return True

    # ---------------- chat ----------------
    async def send_message(self, content: str) -> bool:
        if not content.strip():
            return False
        try:
            await message_service.send_message(self.store, self.project_id, self.user_id, content.strip())
        except Exception as exc:
            logger.error("Failed to send message: %s", exc)
            self._notify("Failed to send message", str(exc), "destructive")
            return False
        return True

    async def ask_assistant(self, question: str) -> Optional[str]:
        """Post the question, then the assistant's answer, to the team chat."""
        if self.ai is None or not question.strip():
            return None

        history = [m.content for m in self.messages[-ASSISTANT_HISTORY:]]
        if not await self.send_message(question):
            return None
        try:
            answer = await self.ai.chat(question.strip(), history)
            await message_service.send_message(
                self.store, self.project_id, message_service.AI_SENDER, answer, sender_type="ai"
            )
        except AIGatewayError as exc:
            self._notify("Assistant unavailable", str(exc), "destructive")
            return None
        except Exception as exc:
            logger.error("Failed to post assistant reply: %s", exc)
            self._notify("Failed to send message", str(exc), "destructive")
            return None
        return answer

    # ---------------- project ----------------
    async def set_demo_mode(self, enabled: bool) -> bool:
        if self.project is None:
            return False

        previous = self.project.demo_mode
        self.project = self.project.model_copy(update={"demo_mode": enabled})
        try:
            await project_service.update_demo_mode(self.store, self.project_id, enabled)
        except Exception as exc:
            logger.error("Failed to update demo mode: %s", exc)
            if self.project is not None:
                self.project = self.project.model_copy(update={"demo_mode": previous})
            self._notify("Failed to update demo mode", str(exc), "destructive")
            return False
        return True

    async def analyze_idea(self, idea: str) -> bool:
        if self.ai is None or not idea.strip():
            return False

        self.analyzing_idea = True
        try:
            analysis = await self.ai.analyze_idea(idea.strip())
            await project_service.update_project_idea(self.store, self.project_id, analysis)
        except AIGatewayError as exc:
            self._notify("Analysis failed", str(exc), "destructive")
            return False
        except Exception as exc:
            logger.error("Failed to save idea analysis: %s", exc)
            self._notify("Failed to save analysis", str(exc), "destructive")
            return False
        finally:
            self.analyzing_idea = False

        if self.project is not None:
            self.project = self.project.model_copy(update={"idea": analysis})
        self._notify("Idea analyzed!", "Review the analysis, then generate tasks.")
        return True

    async def generate_tasks(self) -> List[str]:
        if self.ai is None or self.project is None:
            return []

        self.generating_tasks = True
        try:
            drafts = await self.ai.generate_tasks(self.project.name, self.project.duration, self.project.idea)
            task_ids = await task_service.create_tasks(
                self.store,
                [
                    TaskCreate(
                        project_id=self.project_id,
                        title=draft.title,
                        description=draft.description,
                        effort=draft.effort,
                        priority=draft.priority,
                    )
                    for draft in drafts
                ],
            )
        except AIGatewayError as exc:
            self._notify("Task generation failed", str(exc), "destructive")
            return []
        except Exception as exc:
            logger.error("Failed to save generated tasks: %s", exc)
            self._notify("Failed to save tasks", str(exc), "destructive")
            return []
        finally:
            self.generating_tasks = False

        self._notify(f"Generated {len(task_ids)} tasks!")
        return task_ids

    # ---------------- internals ----------------
    async def _optimistic_task_update(self, task_id: str, field: str, value: Any) -> bool:
        current = next((t for t in self.tasks if t.task_id == task_id), None)
        if current is None:
            return False

        previous = getattr(current, field)
        self._patch_task(task_id, field, value)
        try:
            await task_service.update_task(self.store, task_id, {field: value})
        except Exception as exc:
            logger.warning("Reverting %s of task %s: %s", field, task_id, exc)
            self._patch_task(task_id, field, previous)
            return False
        return True

    def _patch_task(self, task_id: str, field: str, value: Any) -> None:
        self.tasks = [t.model_copy(update={field: value}) if t.task_id == task_id else t for t in self.tasks]

    def _on_project(self, project: Optional[Project]) -> None:
        # a failed or empty project stream keeps the last good value
        if self._mounted and project is not None:
            self.project = project

    def _set_tasks(self, tasks: List[Task]) -> None:
        self.tasks = tasks

    def _set_messages(self, messages: List[ChatMessage]) -> None:
        self.messages = messages

    def _guard(self, setter: Callable[[Any], None]) -> Callable[[Any], None]:
        def callback(value: Any) -> None:
            if self._mounted:
                setter(value)

        return callback

    def _notify(self, title: str, description: str = "", variant: str = "default") -> None:
        self.notices.append(Notice(title, description, variant))
