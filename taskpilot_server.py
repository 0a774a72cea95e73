#!/usr/bin/env python3
"""
TaskPilot Server
----------------
JSON API over the single TaskPilot document file.

Usage:
    python taskpilot_server.py
    python taskpilot_server.py --port 3000 --db ~/taskpilot.db

API:
    GET  /api/data    → full normalized document (seeded on first access)
    POST /api/data    → JSON body with any of: projects, tasks, quickTasks,
                        categories, personalTodos, scratchpad
                        Returns: { success: true }
    GET  /api/board   → Kanban columns (?projectId= to filter)
    GET  /api/stats   → task / project counts and story points
    GET  /api/report  → plain-text work log report
                        (?selection=&from=YYYY-MM-DD&to=YYYY-MM-DD&sort=&dir=&snapshot=1)
    GET  /health      → { status, db }
"""

import logging
import os
import sys
import threading
from datetime import date
from pathlib import Path
from typing import Optional

from flask import Flask, Response, jsonify, request

from pkg.taskpilot.config import Config
from pkg.taskpilot.reports import ALL, SORT_FIELDS, board, export_text, stats
from pkg.taskpilot.store import DocumentStore, StoreError

logger = logging.getLogger("taskpilot")

app = Flask(__name__)
# Board columns are emitted in Kanban order, not alphabetically
app.json.sort_keys = False


# ── Config ───────────────────────────────────────────────────────────────────

_config: Optional[Config] = None


def get_config() -> Config:
    """Config read once per process; main() replaces it after parsing args."""
    global _config
    if _config is None:
        _config = Config.load()
    return _config


def get_db_path() -> Path:
    env = os.environ.get("TASKPILOT_DB")
    if env:
        return Path(env).expanduser().resolve()
    return Path(get_config().db_path)


# One store per path so concurrent requests share its write lock
_stores = {}
_stores_lock = threading.Lock()


def get_store() -> DocumentStore:
    path = get_db_path()
    with _stores_lock:
        if path not in _stores:
            _stores[path] = DocumentStore(str(path))
        return _stores[path]


def _parse_date(name: str):
    value = request.args.get(name)
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValueError(f"{name} must be YYYY-MM-DD, got: {value!r}")


# ── Routes ───────────────────────────────────────────────────────────────────

@app.route("/api/data", methods=["GET"])
def api_data_get():
    try:
        document = get_store().load()
    except StoreError as e:
        logger.error(f"Failed to load document: {e}")
        return jsonify({"error": str(e)}), 500
    return jsonify(document.to_dict())


@app.route("/api/data", methods=["POST"])
def api_data_post():
    data = request.get_json(force=True, silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Request body must be a JSON object"}), 400
    try:
        get_store().save(data)
    except StoreError as e:
        logger.error(f"Failed to save document: {e}")
        return jsonify({"error": str(e)}), 500
    return jsonify({"success": True})


@app.route("/api/board")
def api_board():
    try:
        document = get_store().load()
    except StoreError as e:
        return jsonify({"error": str(e)}), 500
    project_id = request.args.get("projectId") or None
    return jsonify({"columns": board(document, project_id), "projectId": project_id})


@app.route("/api/stats")
def api_stats():
    try:
        document = get_store().load()
    except StoreError as e:
        return jsonify({"error": str(e)}), 500
    return jsonify(stats(document))


@app.route("/api/report")
def api_report():
    sort_field = request.args.get("sort", "date")
    if sort_field not in SORT_FIELDS:
        return jsonify({"error": f"sort must be one of {', '.join(SORT_FIELDS)}"}), 400
    direction = request.args.get("dir", "desc")
    if direction not in ("asc", "desc"):
        return jsonify({"error": "dir must be 'asc' or 'desc'"}), 400
    try:
        start = _parse_date("from")
        end = _parse_date("to")
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    try:
        document = get_store().load()
    except StoreError as e:
        return jsonify({"error": str(e)}), 500

    text = export_text(
        document,
        selection=request.args.get("selection") or ALL,
        start=start,
        end=end,
        sort_field=sort_field,
        descending=direction == "desc",
        include_snapshot=request.args.get("snapshot") in ("1", "true"),
    )
    return Response(text, mimetype="text/plain")


@app.route("/health")
def health():
    return jsonify({"status": "ok", "db": str(get_db_path())})


# ── Main ─────────────────────────────────────────────────────────────────────

def main(argv=None):
    import argparse

    parser = argparse.ArgumentParser(description="TaskPilot Server")
    parser.add_argument("--host", help="Bind address (use 0.0.0.0 to expose on network)")
    parser.add_argument("--port", type=int)
    parser.add_argument("--db", help="Path to the document file (overrides TASKPILOT_DB env var)")
    parser.add_argument("--config", help="Path to config.yaml (overrides TASKPILOT_CONFIG env var)")
    args = parser.parse_args(argv)

    if args.config:
        os.environ["TASKPILOT_CONFIG"] = args.config
    if args.db:
        os.environ["TASKPILOT_DB"] = args.db

    global _config
    cfg = _config = Config.load()
    logging.basicConfig(
        level=getattr(logging, cfg.log_level, logging.INFO),
        format="%(asctime)s [taskpilot] %(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    host = args.host or cfg.host
    port = args.port or cfg.port
    db_path = get_db_path()
    logger.info(f"Serving http://{host}:{port} (db: {db_path})")

    app.run(host=host, port=port, debug=False, threaded=True)


if __name__ == "__main__":
    main()
