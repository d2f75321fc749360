import asyncio
import json

import httpx

from hackmate.ai.gateway_client import AIGatewayClient
from hackmate.project.project_service import create_project, get_project
from hackmate.store.document_store import where
from hackmate.sync import wait_background
from hackmate.views.dashboard_view import DashboardController
from hackmate.views.docs_view import DocsGeneratorController, split_features
from hackmate.views.project_view import ProjectViewController

SETTLE = 0.3

IDEA = {
    "problem_statement": "Teams lose track of work during hackathons",
    "target_users": ["hackers"],
    "features": ["task board"],
    "risks": ["scope creep"],
    "tech_stack_suggestions": ["FastAPI"],
}
TASKS = [
    {"title": "Set up repo", "description": "", "effort": "Low", "priority": "High"},
    {"title": "Build board", "description": "Kanban", "effort": "High", "priority": "Medium"},
]


def gateway(results):
    """AI client whose gateway answers each action from `results`."""

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        answer = results[body["action"]]
        if isinstance(answer, Exception):
            return httpx.Response(502, json={"error": str(answer)})
        return httpx.Response(200, json={"result": answer})

    return AIGatewayClient(url="http://gateway.test/api/ai", transport=httpx.MockTransport(handler))


async def _mounted_view(store, ai=None):
    project_id = await create_project(store, "HackMate", "24h", "u1")
    await wait_background()
    await store.set("users", "u1", {"user_id": "u1", "name": "Ana"})
    view = ProjectViewController(store, project_id, "u1", ai=ai)
    await view.mount()
    return view


def _status(view, task_id):
    return next(t.status for t in view.tasks if t.task_id == task_id)


# ---------------- project view ----------------
def test_mount_paints_then_subscribes(store):
    async def scenario():
        view = await _mounted_view(store)
        await asyncio.sleep(SETTLE)
        watches = store.active_watches
        view.unmount()
        return view, watches, store.active_watches

    view, watches, after = asyncio.run(scenario())
    assert view.loading is False
    assert view.error is None
    assert view.project.name == "HackMate"
    assert [m.name for m in view.members] == ["Ana"]
    assert watches == 3
    assert after == 0


def test_mount_unknown_project(store):
    async def scenario():
        view = ProjectViewController(store, "missing", "u1")
        await view.mount()
        return view

    view = asyncio.run(scenario())
    assert view.error == "Project not found"
    assert view.loading is False
    assert view.project is None


def test_status_change_is_optimistic_and_reverts(store, monkeypatch):
    async def scenario():
        view = await _mounted_view(store)
        task = await view.add_task("Write tests")
        await asyncio.sleep(SETTLE)

        gate = asyncio.Event()

        async def offline_update(collection, doc_id, fields):
            await gate.wait()
            raise RuntimeError("offline")

        monkeypatch.setattr(store, "update", offline_update)
        pending = asyncio.create_task(view.update_task_status(task.task_id, "InProgress"))
        await asyncio.sleep(0)
        during = _status(view, task.task_id)
        gate.set()
        ok = await pending
        after = _status(view, task.task_id)
        view.unmount()
        return during, ok, after

    during, ok, after = asyncio.run(scenario())
    assert during == "InProgress"
    assert ok is False
    assert after == "ToDo"


def test_status_change_persists(store):
    async def scenario():
        view = await _mounted_view(store)
        task = await view.add_task("Write tests")
        ok = await view.update_task_status(task.task_id, "Done")
        await asyncio.sleep(SETTLE)
        stored = await store.get("tasks", task.task_id)
        view.unmount()
        return view, task, ok, stored

    view, task, ok, stored = asyncio.run(scenario())
    assert ok is True
    assert stored.get("status") == "Done"
    assert _status(view, task.task_id) == "Done"
    assert view.notices[0].title == "Task added!"


def test_failed_assignment_reverts_and_notifies(store, monkeypatch):
    async def scenario():
        view = await _mounted_view(store)
        task = await view.add_task("Write tests", assigned_to="u1")
        await asyncio.sleep(SETTLE)

        async def offline_update(collection, doc_id, fields):
            raise RuntimeError("offline")

        monkeypatch.setattr(store, "update", offline_update)
        ok = await view.assign_task(task.task_id, None)
        view.unmount()
        return view, task, ok

    view, task, ok = asyncio.run(scenario())
    assert ok is False
    assert next(t.assigned_to for t in view.tasks if t.task_id == task.task_id) == "u1"
    assert view.notices[-1].title == "Failed to update assignment"
    assert view.notices[-1].variant == "destructive"


def test_failed_delete_puts_task_back(store, monkeypatch):
    async def scenario():
        view = await _mounted_view(store)
        task = await view.add_task("Write tests")
        await asyncio.sleep(SETTLE)

        async def offline_delete(collection, doc_id):
            raise RuntimeError("offline")

        monkeypatch.setattr(store, "delete", offline_delete)
        ok = await view.delete_task(task.task_id)
        view.unmount()
        return view, task, ok

    view, task, ok = asyncio.run(scenario())
    assert ok is False
    assert [t.task_id for t in view.tasks] == [task.task_id]


def test_failed_demo_mode_reverts(store, monkeypatch):
    async def scenario():
        view = await _mounted_view(store)

        async def offline_update(collection, doc_id, fields):
            raise RuntimeError("offline")

        monkeypatch.setattr(store, "update", offline_update)
        ok = await view.set_demo_mode(True)
        view.unmount()
        return view, ok

    view, ok = asyncio.run(scenario())
    assert ok is False
    assert view.project.demo_mode is False


def test_blank_inputs_are_ignored(store):
    async def scenario():
        view = await _mounted_view(store)
        results = (await view.add_task("   "), await view.send_message(""))
        view.unmount()
        return view, results

    view, results = asyncio.run(scenario())
    assert results == (None, False)
    assert view.notices == []


def test_analyze_idea_and_generate_tasks(store):
    ai = gateway(
        {
            "analyze_idea": "```json\n" + json.dumps(IDEA) + "\n```",
            "generate_tasks": json.dumps(TASKS),
        }
    )

    async def scenario():
        view = await _mounted_view(store, ai=ai)
        analyzed = await view.analyze_idea("A planner for hackathon teams")
        task_ids = await view.generate_tasks()
        project = await get_project(store, view.project_id)
        tasks = await store.query("tasks", where("project_id", "==", view.project_id))
        view.unmount()
        return view, analyzed, task_ids, project, tasks

    view, analyzed, task_ids, project, tasks = asyncio.run(scenario())
    assert analyzed is True
    assert project.idea.problem_statement == IDEA["problem_statement"]
    assert len(task_ids) == 2
    assert {t.get("title") for t in tasks} == {"Set up repo", "Build board"}
    assert view.notices[-1].title == "Generated 2 tasks!"


def test_ai_failure_is_shown_not_raised(store):
    ai = gateway({"analyze_idea": RuntimeError("quota exceeded")})

    async def scenario():
        view = await _mounted_view(store, ai=ai)
        ok = await view.analyze_idea("anything")
        view.unmount()
        return view, ok

    view, ok = asyncio.run(scenario())
    assert ok is False
    assert view.analyzing_idea is False
    assert view.notices[-1].title == "Analysis failed"
    assert "quota exceeded" in view.notices[-1].description


def test_assistant_answer_is_posted_to_chat(store):
    sent = []

    def handler(request):
        sent.append(json.loads(request.content))
        return httpx.Response(200, json={"result": "Start with the task board."})

    ai = AIGatewayClient(url="http://gateway.test/api/ai", transport=httpx.MockTransport(handler))

    async def scenario():
        view = await _mounted_view(store, ai=ai)
        await view.send_message("hello team")
        await asyncio.sleep(SETTLE)
        answer = await view.ask_assistant("  what first?  ")
        messages = await store.query("messages", where("project_id", "==", view.project_id))
        view.unmount()
        return answer, messages

    answer, messages = asyncio.run(scenario())
    assert answer == "Start with the task board."
    assert sent[0]["action"] == "chat"
    assert sent[0]["data"] == {"message": "what first?", "history": ["hello team"]}
    by_content = {m.get("content"): m for m in messages}
    assert by_content["what first?"].get("sender") == "u1"
    reply = by_content["Start with the task board."]
    assert (reply.get("sender"), reply.get("sender_type")) == ("AI Assistant", "ai")


def test_assistant_failure_keeps_question_only(store):
    ai = gateway({"chat": RuntimeError("gateway down")})

    async def scenario():
        view = await _mounted_view(store, ai=ai)
        answer = await view.ask_assistant("help?")
        messages = await store.query("messages", where("project_id", "==", view.project_id))
        view.unmount()
        return view, answer, messages

    view, answer, messages = asyncio.run(scenario())
    assert answer is None
    assert [m.get("content") for m in messages] == ["help?"]
    assert view.notices[-1].title == "Assistant unavailable"


# ---------------- dashboard ----------------
def test_dashboard_join_with_bad_code(store):
    async def scenario():
        dashboard = DashboardController(store, "u2")
        await dashboard.load()
        joined = await dashboard.join_project("NOPE00")
        return dashboard, joined

    dashboard, joined = asyncio.run(scenario())
    assert joined is None
    assert dashboard.projects == []
    assert dashboard.notices[-1].title == "Invalid join code"


def test_dashboard_create_and_join(store):
    async def scenario():
        owner = DashboardController(store, "u1")
        project_id = await owner.create_project("HackMate", "48h")
        await wait_background()
        guest = DashboardController(store, "u2")
        joined = await guest.join_project(owner.projects[0].join_code)
        return owner, guest, project_id, joined

    owner, guest, project_id, joined = asyncio.run(scenario())
    assert [p.project_id for p in owner.projects] == [project_id]
    assert joined == project_id
    assert [p.project_id for p in guest.projects] == [project_id]


def test_dashboard_failed_delete_restores_list(store, monkeypatch):
    async def scenario():
        dashboard = DashboardController(store, "u1")
        await dashboard.create_project("HackMate")
        await wait_background()

        def refuse(session, op, now):
            raise RuntimeError("read-only")

        monkeypatch.setattr(store, "_apply", refuse)
        ok = await dashboard.delete_project(dashboard.projects[0].project_id)
        return dashboard, ok

    dashboard, ok = asyncio.run(scenario())
    assert ok is False
    assert len(dashboard.projects) == 1
    assert dashboard.notices[-1].title == "Failed to delete project"


# ---------------- docs generator ----------------
def test_docs_generator_requires_fields():
    controller = DocsGeneratorController(gateway({}))

    result = asyncio.run(controller.generate("HackMate", "", "desc"))

    assert result is None
    assert controller.notices[-1].title == "Missing fields"


def test_docs_generator_generates_and_downloads(tmp_path):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(json.loads(request.content))
        return httpx.Response(200, json={"result": "# HackMate AI\n"})

    ai = AIGatewayClient(url="http://gateway.test/api/ai", transport=httpx.MockTransport(handler))
    controller = DocsGeneratorController(ai)

    docs = asyncio.run(controller.generate("HackMate AI!", "FastAPI", "Planner", "boards\n\n chat \n"))
    path = controller.download(tmp_path)

    assert docs == "# HackMate AI\n"
    assert seen["action"] == "generate_docs"
    assert seen["data"]["features"] == ["boards", "chat"]
    assert path.name == "hackmate_ai__documentation.md"
    assert path.read_text(encoding="utf-8") == "# HackMate AI\n"
    assert [n.title for n in controller.notices] == ["Documentation generated!", "Downloaded as Markdown"]


def test_docs_generator_reports_gateway_error():
    controller = DocsGeneratorController(gateway({"generate_docs": RuntimeError("model overloaded")}))

    result = asyncio.run(controller.generate("HackMate", "FastAPI", "Planner"))

    assert result is None
    assert controller.generated_docs == ""
    assert controller.notices[-1].title == "Generation failed"
    assert controller.download("/tmp") is None


def test_split_features():
    assert split_features(" a \n\nb") == ["a", "b"]
    assert split_features(["x", " "]) == ["x"]
