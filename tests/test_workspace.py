"""
Tests for the Workspace: validation before mutation, synchronous
in-memory updates, partial saves through the persister.
"""
import json
from unittest.mock import MagicMock

import pytest

from pkg.taskpilot.config import Config
from pkg.taskpilot.normalizer import normalize
from pkg.taskpilot.store import StoreError
from pkg.taskpilot.validation import ValidationError
from pkg.taskpilot.workspace import Workspace, open_workspace


@pytest.fixture
def ws(store):
    workspace = Workspace(store, debounce_ms=10_000)
    workspace.load()
    yield workspace
    workspace.persister.cancel()


def _on_disk(db_path):
    return json.loads(db_path.read_text())


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Persistence
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_mutation_is_visible_immediately_and_saved_on_flush(ws, db_path):
    project_id = ws.create_project({"name": "Demo"})
    assert ws.document.get_project(project_id).name == "Demo"
    assert project_id not in [p["id"] for p in _on_disk(db_path)["projects"]]

    assert ws.flush() is True
    assert project_id in [p["id"] for p in _on_disk(db_path)["projects"]]


def test_only_touched_keys_are_scheduled(ws):
    ws.update_scratchpad("hello")
    assert set(ws.persister.pending) == {"scratchpad"}

    ws.delete_project("proj-1")
    assert set(ws.persister.pending) == {"scratchpad", "projects", "tasks"}


def test_noop_mutation_schedules_nothing(ws):
    ws.delete_task("ghost")
    assert ws.persister.pending == {}


def test_save_failure_keeps_in_memory_state():
    store = MagicMock()
    store.load.return_value = normalize(None)
    store.save.side_effect = StoreError("disk gone")
    errors = []
    ws = Workspace(store, debounce_ms=10_000, on_error=errors.append)
    ws.load()

    ws.update_scratchpad("unsaved")
    assert ws.flush() is False
    assert ws.document.scratchpad == "unsaved"
    assert len(errors) == 1

    # Further edits keep working and the next save carries everything
    store.save.side_effect = None
    task_id = ws.create_task({"projectId": "proj-1", "title": "After failure"})
    assert ws.flush() is True
    saved = store.save.call_args[0][0]
    assert saved["scratchpad"] == "unsaved"
    assert task_id in [t["id"] for t in saved["tasks"]]


def test_load_failure_raises():
    store = MagicMock()
    store.load.side_effect = StoreError("corrupt")
    with pytest.raises(StoreError):
        Workspace(store).load()


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Validation
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


@pytest.mark.parametrize("data", [
    {},
    {"name": "   "},
    {"name": "x", "status": "Paused"},
    {"name": "x", "priority": "high"},
    {"name": "x", "owner": "me"},
])
def test_invalid_project_rejected_before_mutation(ws, data):
    before = ws.document
    with pytest.raises(ValidationError):
        ws.create_project(data)
    assert ws.document is before
    assert ws.persister.pending == {}


def test_invalid_task_rejected(ws):
    with pytest.raises(ValidationError):
        ws.create_task({"projectId": "proj-1", "title": ""})
    with pytest.raises(ValidationError):
        ws.create_task({"projectId": "proj-1", "title": "x", "priority": "Urgent"})
    with pytest.raises(ValidationError):
        ws.update_task("task-1", {"title": "  "})
    with pytest.raises(ValidationError):
        ws.update_task_status("task-1", "Blocked")


def test_quick_task_points_out_of_range_rejected(ws):
    with pytest.raises(ValidationError):
        ws.create_quick_task({"projectId": "proj-1", "title": "q", "points": 6})
    with pytest.raises(ValidationError):
        ws.create_quick_task({"projectId": "proj-1", "title": " ", "description": ""})


def test_empty_log_and_todo_text_rejected(ws):
    with pytest.raises(ValidationError):
        ws.add_log("task-1", "   ")
    with pytest.raises(ValidationError):
        ws.add_active_todo("")
    with pytest.raises(ValidationError):
        ws.add_todo_category(" ")


def test_null_subtask_fields_rejected(ws):
    task_id = ws.create_task({"projectId": "proj-1", "title": "t", "subtasks": [{"title": "a", "storyPoints": 2}]})
    subtask_id = ws.document.get_task(task_id).subtasks[0].id
    ws.persister.cancel()
    for changes in ({"storyPoints": None}, {"title": None}, {"isCompleted": None}):
        with pytest.raises(ValidationError, match="cannot be null"):
            ws.update_subtask(task_id, subtask_id, changes)
    with pytest.raises(ValidationError):
        ws.add_subtask(task_id, "b", None)
    assert ws.document.get_task(task_id).story_points == 2
    assert ws.persister.pending == {}


def test_clear_completed_with_nothing_done_schedules_nothing(ws):
    ws.add_active_todo("still open")
    ws.persister.cancel()
    ws.clear_completed_todos()
    assert ws.persister.pending == {}


def test_bad_category_colour_rejected(ws):
    with pytest.raises(ValidationError):
        ws.create_category("Ops", "blue")


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Operations end to end
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_task_lifecycle(ws, db_path):
    task_id = ws.create_task({
        "projectId": "proj-1",
        "title": "  Feature  ",
        "storyPoints": 40,
        "subtasks": [{"title": "a", "storyPoints": 3}, {"title": "b", "storyPoints": 2}],
    })
    assert ws.document.get_task(task_id).title == "Feature"
    assert ws.document.get_task(task_id).story_points == 5

    subtask_id = ws.add_subtask(task_id, "c", 4)
    assert ws.document.get_task(task_id).story_points == 9
    assert ws.update_subtask(task_id, subtask_id, {"isCompleted": True}) == subtask_id
    assert ws.remove_subtask(task_id, subtask_id) == subtask_id

    log_id = ws.add_log(task_id, "progress")
    ws.update_log(task_id, log_id, "more progress")
    ws.update_task_status(task_id, "In Progress")
    ws.flush()

    saved = next(t for t in _on_disk(db_path)["tasks"] if t["id"] == task_id)
    assert saved["storyPoints"] == 5
    assert saved["status"] == "In Progress"
    assert saved["logs"][0]["content"] == "more progress"
    assert [t.id for t in ws.get_project_tasks("proj-1")][-1] == task_id


def test_quick_task_log_saves_quick_tasks_key(ws):
    qt_id = ws.create_quick_task({"projectId": "proj-2", "description": "ping vendor", "points": 2})
    ws.persister.cancel()
    ws.add_log(qt_id, "pinged")
    assert set(ws.persister.pending) == {"quickTasks"}


def test_category_delete_saves_projects_too(ws, db_path):
    ws.delete_category("cat-2")
    ws.flush()
    data = _on_disk(db_path)
    proj2 = next(p for p in data["projects"] if p["id"] == "proj-2")
    assert proj2["categoryIds"] == ["cat-default"]
    assert proj2["categoryId"] == "cat-default"
    assert "cat-2" not in [c["id"] for c in data["categories"]]


def test_notes_and_categories(ws):
    project_id = ws.create_project({"name": "Docs", "categoryIds": ["cat-1", "cat-2"]})
    note_id = ws.add_note(project_id, "Child", parent_id=ws.document.get_project(project_id).notes[0].id)
    ws.set_main_note(project_id, note_id)
    ws.toggle_note_collapsed(project_id, note_id)
    ws.update_note(project_id, note_id, {"content": "hello"})
    note = next(n for n in ws.document.get_project(project_id).notes if n.id == note_id)
    assert (note.is_main, note.is_collapsed, note.content) == (True, True, "hello")

    ws.update_project(project_id, {"categoryId": "cat-2"})
    assert ws.document.get_project(project_id).category_ids == ["cat-2"]

    category_id = ws.create_category("Ops", "#010203")
    ws.update_category(category_id, {"name": "Operations"})
    ws.move_category(category_id, "up")
    assert ws.document.categories[-2].id == category_id
    with pytest.raises(ValidationError):
        ws.move_category(category_id, "left")

    ws.delete_note(project_id, ws.document.get_project(project_id).notes[0].id)
    assert ws.document.get_project(project_id).notes == []


def test_personal_todos_flow(ws, db_path):
    category_id = ws.add_todo_category("Home")
    backlog_id = ws.add_backlog_todo(category_id, "fix tap")
    active_id = ws.add_active_todo("call plumber", category_id)

    ws.move_todo_to_active(backlog_id)
    assert ws.document.personal_todos.active_order == [backlog_id, active_id]
    ws.reorder_active_todos(0, 1)
    assert ws.document.personal_todos.active_order == [active_id, backlog_id]

    log_id = ws.add_todo_log(active_id, "left voicemail")
    ws.update_todo_log(active_id, log_id, "left two voicemails")
    ws.toggle_todo_done(active_id)
    ws.clear_completed_todos()
    ws.move_todo_to_backlog(backlog_id)
    ws.flush()

    saved = _on_disk(db_path)["personalTodos"]
    assert [t["id"] for t in saved["todos"]] == [backlog_id]
    assert saved["activeOrder"] == []
    assert saved["categories"][0]["name"] == "Home"


def test_open_workspace_uses_file_store(tmp_path):
    cfg = Config(db_path=str(tmp_path / "open.db"), debounce_ms=10_000)
    workspace = open_workspace(cfg)
    assert len(workspace.document.projects) == 4
    assert (tmp_path / "open.db").exists()
