"""Shared test fixtures for TaskPilot tests."""

import sys
from pathlib import Path

import pytest

# Ensure the repo root (pkg/ and taskpilot_server.py) is importable
sys.path.insert(0, str(Path(__file__).parent.parent))

from pkg.taskpilot.normalizer import normalize  # noqa: E402
from pkg.taskpilot.store import DocumentStore  # noqa: E402


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "taskpilot.test.db"


@pytest.fixture
def store(db_path):
    return DocumentStore(str(db_path))


@pytest.fixture
def seeded():
    """Normalized built-in seed document."""
    return normalize(None)


@pytest.fixture
def empty():
    """Document with no projects, tasks or todos (only the default category)."""
    return normalize({"projects": [], "tasks": [], "categories": []})
