"""
Tests for the TaskPilot Flask server.
"""
import json

import pytest

import taskpilot_server
from pkg.taskpilot.config import Config


@pytest.fixture
def client(monkeypatch, db_path):
    monkeypatch.setenv("TASKPILOT_DB", str(db_path))
    taskpilot_server.app.config["TESTING"] = True
    with taskpilot_server.app.test_client() as c:
        yield c


def test_health(client, db_path):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.get_json() == {"status": "ok", "db": str(db_path.resolve())}


def test_get_data_seeds_store(client, db_path):
    r = client.get("/api/data")
    assert r.status_code == 200
    data = r.get_json()
    assert len(data["projects"]) == 4
    assert data["personalTodos"] == {"categories": [], "todos": [], "activeOrder": []}
    assert db_path.exists()


def test_post_merges_partial(client):
    r = client.post("/api/data", json={"scratchpad": "notes", "quickTasks": [
        {"projectId": "proj-1", "title": "q", "points": 99},
    ]})
    assert r.status_code == 200
    assert r.get_json() == {"success": True}

    data = client.get("/api/data").get_json()
    assert data["scratchpad"] == "notes"
    assert data["quickTasks"][0]["points"] == 5
    assert len(data["tasks"]) == 8


@pytest.mark.parametrize("body", ["[1, 2]", "\"text\"", "not json"])
def test_post_rejects_non_object(client, body):
    r = client.post("/api/data", data=body, content_type="application/json")
    assert r.status_code == 400
    assert "error" in r.get_json()


def test_corrupt_store_returns_500(client, db_path):
    db_path.write_text("{broken")
    assert client.get("/api/data").status_code == 500
    assert client.post("/api/data", json={"scratchpad": "x"}).status_code == 500


def test_board(client):
    r = client.get("/api/board?projectId=proj-2")
    columns = r.get_json()["columns"]
    assert list(columns) == ["To Do", "In Progress", "Done"]
    assert [t["id"] for t in columns["Done"]] == ["task-4"]


def test_stats(client):
    data = client.get("/api/stats").get_json()
    assert data["total_tasks"] == 8
    assert data["total_projects"] == 4


def test_report_plain_text(client):
    client.post("/api/data", json={"tasks": [
        {"id": "t", "projectId": "proj-1", "title": "Logged", "status": "To Do",
         "logs": [{"id": "l", "content": "did work", "createdAt": "2024-07-02T10:00:00.000Z"}]},
    ]})
    r = client.get("/api/report?selection=proj-1&from=2024-07-01&to=2024-07-02&sort=task&dir=asc&snapshot=1")
    assert r.status_code == 200
    assert r.mimetype == "text/plain"
    text = r.get_data(as_text=True)
    assert "Selection: Website Redesign" in text
    assert "did work" in text
    assert "=== Remaining Work Snapshot ===" in text


@pytest.mark.parametrize("query", ["sort=size", "dir=up", "from=yesterday"])
def test_report_bad_params(client, query):
    r = client.get(f"/api/report?{query}")
    assert r.status_code == 400
    assert "error" in r.get_json()


def test_board_json_keeps_column_order(client):
    body = client.get("/api/board").get_data(as_text=True)
    assert body.index('"To Do"') < body.index('"In Progress"') < body.index('"Done"')


def test_config_loaded_once(monkeypatch, tmp_path):
    monkeypatch.delenv("TASKPILOT_DB", raising=False)
    monkeypatch.setattr(taskpilot_server, "_config", None)
    calls = []

    def fake_load(path=None):
        calls.append(path)
        return Config(db_path=str(tmp_path / "cfg.db"))

    monkeypatch.setattr(Config, "load", staticmethod(fake_load))
    assert taskpilot_server.get_db_path() == tmp_path / "cfg.db"
    assert taskpilot_server.get_db_path() == tmp_path / "cfg.db"
    assert len(calls) == 1
