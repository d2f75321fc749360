import asyncio
import time
from datetime import datetime, timedelta, timezone

import pytest

from hackmate.milestone.milestone_service import default_milestones
from hackmate.project import project_service
from hackmate.project.project_service import JOIN_CODE_ALPHABET, role_id
from hackmate.store.document_store import where
from hackmate.sync import wait_background


def _failing_collections(store, monkeypatch, *collections):
    original = store._apply

    def apply(session, op, now):
        if op.collection in collections:
            raise RuntimeError(f"write to {op.collection} refused")
        return original(session, op, now)

    monkeypatch.setattr(store, "_apply", apply)


class SlowStore:
    async def get(self, *args):
        await asyncio.sleep(10)

    async def query(self, *args):
        await asyncio.sleep(10)


class BrokenStore:
    async def get(self, *args):
        raise RuntimeError("connection reset")

    async def query(self, *args):
        raise RuntimeError("connection reset")


# ---------------- create ----------------
def test_create_project_bootstraps_creator_and_milestones(store):
    async def scenario():
        project_id = await project_service.create_project(store, "HackMate", "24h", "u1")
        await wait_background()
        project = await project_service.get_project(store, project_id)
        role = await project_service.get_user_role(store, project_id, "u1")
        milestones = await store.query("milestones", where("project_id", "==", project_id))
        return project, role, milestones

    project, role, milestones = asyncio.run(scenario())

    assert project.members == ["u1"]
    assert project.created_by == "u1"
    assert project.status == "planning"
    assert project.demo_mode is False
    assert len(project.join_code) == 6
    assert set(project.join_code) <= set(JOIN_CODE_ALPHABET)
    assert len(JOIN_CODE_ALPHABET) == 36
    assert role == "admin"

    assert len(milestones) == 3
    offsets = sorted((m.get("deadline") - project.created_at).total_seconds() / 3600 for m in milestones)
    assert offsets == pytest.approx([4.8, 16.8, 24.0], abs=0.01)


def test_default_milestone_deadlines():
    now = datetime(2025, 1, 1, tzinfo=timezone.utc)

    day = default_milestones("p1", "24h", now)
    weekend = default_milestones("p1", "48h", now)

    assert [m["deadline"] - now for m in day] == [
        timedelta(hours=4.8),
        timedelta(hours=16.8),
        timedelta(hours=24),
    ]
    assert [m["deadline"] - now for m in weekend][-1] == timedelta(hours=48)
    assert [m["type"] for m in day] == ["idea_submission", "prototype", "final_presentation"]
    assert all(m["status"] == "upcoming" and m["project_id"] == "p1" for m in day)


def test_create_project_rejects_unknown_duration(store):
    with pytest.raises(ValueError):
        asyncio.run(project_service.create_project(store, "x", "12h", "u1"))


def test_create_project_survives_failed_bootstrap(store, monkeypatch):
    _failing_collections(store, monkeypatch, "project_roles", "milestones")

    async def scenario():
        project_id = await project_service.create_project(store, "HackMate", "48h", "u1")
        await wait_background()
        project = await project_service.get_project(store, project_id)
        role = await project_service.get_user_role(store, project_id, "u1")
        return project, role

    project, role = asyncio.run(scenario())
    assert project is not None
    assert role == "viewer"


def test_user_projects_newest_first(store):
    async def scenario():
        first = await project_service.create_project(store, "first", "24h", "u1")
        await asyncio.sleep(0.01)
        second = await project_service.create_project(store, "second", "24h", "u1")
        await project_service.create_project(store, "someone else", "24h", "u2")
        await wait_background()
        return first, second, await project_service.get_user_projects(store, "u1")

    first, second, projects = asyncio.run(scenario())
    assert [p.project_id for p in projects] == [second, first]


# ---------------- join / leave ----------------
def test_join_by_code_adds_member_and_role(store):
    async def scenario():
        project_id = await project_service.create_project(store, "HackMate", "24h", "u1")
        await wait_background()
        project = await project_service.get_project(store, project_id)
        joined = await project_service.join_project_by_code(store, f" {project.join_code.lower()} ", "u2")
        again = await project_service.join_project_by_code(store, project.join_code, "u2")
        return project_id, joined, again, await project_service.get_project(store, project_id)

    project_id, joined, again, project = asyncio.run(scenario())

    assert joined == project_id
    assert again == project_id
    assert project.members == ["u1", "u2"]


def test_join_with_unknown_code_returns_none(store):
    async def scenario():
        await project_service.create_project(store, "HackMate", "24h", "u1")
        await wait_background()
        joined = await project_service.join_project_by_code(store, "ZZZZZZ", "u2")
        roles = await store.query("project_roles", where("user_id", "==", "u2"))
        return joined, roles

    joined, roles = asyncio.run(scenario())
    assert joined is None
    assert roles == []


def test_join_is_atomic(store, monkeypatch):
    async def scenario():
        project_id = await project_service.create_project(store, "HackMate", "24h", "u1")
        await wait_background()
        project = await project_service.get_project(store, project_id)

        _failing_collections(store, monkeypatch, "project_roles")
        with pytest.raises(RuntimeError):
            await project_service.join_project_by_code(store, project.join_code, "u2")
        return await project_service.get_project(store, project_id)

    project = asyncio.run(scenario())
    assert project.members == ["u1"]


def test_remove_member(store):
    async def scenario():
        project_id = await project_service.create_project(store, "HackMate", "24h", "u1")
        await wait_background()
        project = await project_service.get_project(store, project_id)
        await project_service.join_project_by_code(store, project.join_code, "u2")
        await project_service.remove_member_from_project(store, project_id, "u2")
        role = await store.get("project_roles", role_id(project_id, "u2"))
        return await project_service.get_project(store, project_id), role

    project, role = asyncio.run(scenario())
    assert project.members == ["u1"]
    assert not role.exists


# ---------------- delete ----------------
def _seed_children(store, project_id):
    async def seed():
        for i in range(3):
            await store.set("tasks", f"{project_id}-t{i}", {"project_id": project_id})
            await store.set("messages", f"{project_id}-m{i}", {"project_id": project_id})

    return seed()


def test_delete_project_removes_tasks_and_messages(store):
    async def scenario():
        doomed = await project_service.create_project(store, "doomed", "24h", "u1")
        kept = await project_service.create_project(store, "kept", "24h", "u1")
        await wait_background()
        await _seed_children(store, doomed)
        await _seed_children(store, kept)

        await project_service.delete_project(store, doomed)
        return (
            doomed,
            kept,
            await store.get("projects", doomed),
            await store.query("tasks"),
            await store.query("messages"),
        )

    doomed, kept, project, tasks, messages = asyncio.run(scenario())
    assert not project.exists
    assert {t.get("project_id") for t in tasks} == {kept}
    assert {m.get("project_id") for m in messages} == {kept}


def test_delete_project_skips_unlistable_collection(store, monkeypatch):
    query = store.query

    async def flaky_query(collection, *filters):
        if collection == "tasks":
            raise RuntimeError("index missing")
        return await query(collection, *filters)

    async def scenario():
        project_id = await project_service.create_project(store, "doomed", "24h", "u1")
        await wait_background()
        await _seed_children(store, project_id)

        monkeypatch.setattr(store, "query", flaky_query)
        await project_service.delete_project(store, project_id)
        monkeypatch.setattr(store, "query", query)
        return await store.get("projects", project_id), await store.query("tasks"), await store.query("messages")

    project, tasks, messages = asyncio.run(scenario())
    assert not project.exists
    assert len(tasks) == 3
    assert messages == []


# ---------------- bounded reads ----------------
def test_get_project_times_out_to_none():
    async def scenario():
        started = time.monotonic()
        project = await project_service.get_project(SlowStore(), "p1")
        return project, time.monotonic() - started

    project, elapsed = asyncio.run(scenario())
    assert project is None
    assert 2.5 <= elapsed < 4.5


def test_lookups_time_out_to_fallbacks(monkeypatch):
    monkeypatch.setattr(project_service, "FETCH_TIMEOUT_SECONDS", 0.1)
    monkeypatch.setattr(project_service, "JOIN_LOOKUP_TIMEOUT_SECONDS", 0.1)

    async def scenario():
        started = time.monotonic()
        projects = await project_service.get_user_projects(SlowStore(), "u1")
        joined = await project_service.join_project_by_code(SlowStore(), "ABC123", "u1")
        return projects, joined, time.monotonic() - started

    projects, joined, elapsed = asyncio.run(scenario())
    assert projects == []
    assert joined is None
    assert elapsed < 1


def test_store_errors_become_fallbacks():
    async def scenario():
        broken = BrokenStore()
        return (
            await project_service.get_project(broken, "p1"),
            await project_service.get_user_projects(broken, "u1"),
            await project_service.join_project_by_code(broken, "ABC123", "u1"),
            await project_service.get_user_role(broken, "p1", "u1"),
        )

    assert asyncio.run(scenario()) == (None, [], None, "viewer")
