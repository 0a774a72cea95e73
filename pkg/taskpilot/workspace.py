"""
Workspace: the application state object.

Owns the in-memory Document, an injected store (DocumentStore or
ApiDocumentStore) and a DebouncedPersister. Each operation validates its
input, applies one mutator synchronously and schedules a partial save of
the top-level keys the mutator touched.

Usage:
    ws = Workspace(DocumentStore("taskpilot.dev.db"))
    ws.load()
    project_id = ws.create_project({"name": "Demo"})
    ws.flush()
"""
import logging
from typing import Any, Callable, Dict, List, Optional

from . import mutators, todos
from .persister import DEFAULT_DELAY_MS, DebouncedPersister
from .schema import Document, Task
from .validation import (
    CATEGORY,
    PROJECT_CREATE,
    PROJECT_UPDATE,
    QUICK_TASK_CREATE,
    QUICK_TASK_UPDATE,
    SUBTASK_UPDATE,
    TASK_CREATE,
    TASK_STATUSES,
    TASK_UPDATE,
    ValidationError,
    require_text,
    validate,
)

logger = logging.getLogger(__name__)

PROJECTS = "projects"
TASKS = "tasks"
QUICK_TASKS = "quickTasks"
CATEGORIES = "categories"
PERSONAL_TODOS = "personalTodos"
SCRATCHPAD = "scratchpad"


class Workspace:
    """In-memory document plus debounced persistence."""

    def __init__(
        self,
        store,
        debounce_ms: int = DEFAULT_DELAY_MS,
        on_error: Optional[Callable[[Exception], None]] = None,
    ):
        self.store = store
        self.document = Document()
        self.persister = DebouncedPersister(store.save, delay_ms=debounce_ms, on_error=on_error)

    def load(self) -> Document:
        """Replace the working copy with the stored document. Raises StoreError."""
        self.document = self.store.load()
        logger.info(
            f"Loaded {len(self.document.projects)} project(s), {len(self.document.tasks)} task(s)"
        )
        return self.document

    def flush(self) -> bool:
        return self.persister.flush()

    def close(self) -> bool:
        return self.persister.close()

    def _commit(self, document: Document, *keys: str) -> None:
        # Mutators hand back the same object when nothing changed
        if document is self.document:
            return
        self.document = document
        self.persister.schedule(document.partial(keys))

    # ── Projects ─────────────────────────────────────────────────────────────

    def create_project(self, data: Dict[str, Any]) -> str:
        fields = validate(data, PROJECT_CREATE)
        document, project_id = mutators.create_project(self.document, fields)
        self._commit(document, PROJECTS)
        return project_id

    def update_project(self, project_id: str, data: Dict[str, Any]) -> None:
        fields = validate(data, PROJECT_UPDATE)
        if "name" in fields and not fields["name"]:
            raise ValidationError("Project name cannot be empty")
        self._commit(mutators.update_project(self.document, project_id, fields), PROJECTS)

    def delete_project(self, project_id: str) -> None:
        self._commit(mutators.delete_project(self.document, project_id), PROJECTS, TASKS)

    def add_note(self, project_id: str, title: str, content: Any = "", parent_id: Optional[str] = None) -> Optional[str]:
        document, note_id = mutators.add_note(self.document, project_id, title, content, parent_id)
        self._commit(document, PROJECTS)
        return note_id

    def update_note(self, project_id: str, note_id: str, data: Dict[str, Any]) -> None:
        self._commit(mutators.update_note(self.document, project_id, note_id, data), PROJECTS)

    def delete_note(self, project_id: str, note_id: str) -> None:
        self._commit(mutators.delete_note(self.document, project_id, note_id), PROJECTS)

    def set_main_note(self, project_id: str, note_id: str) -> None:
        self._commit(mutators.set_main_note(self.document, project_id, note_id), PROJECTS)

    def toggle_note_collapsed(self, project_id: str, note_id: str) -> None:
        self._commit(mutators.toggle_note_collapsed(self.document, project_id, note_id), PROJECTS)

    # ── Tasks ────────────────────────────────────────────────────────────────

    def create_task(self, data: Dict[str, Any]) -> Optional[str]:
        fields = validate(data, TASK_CREATE)
        document, task_id = mutators.create_task(self.document, fields)
        self._commit(document, TASKS)
        return task_id

    def update_task(self, task_id: str, data: Dict[str, Any]) -> None:
        fields = validate(data, TASK_UPDATE)
        if "title" in fields and not fields["title"]:
            raise ValidationError("Task title cannot be empty")
        self._commit(mutators.update_task(self.document, task_id, fields), TASKS)

    def update_task_status(self, task_id: str, status: str) -> None:
        if status not in TASK_STATUSES:
            raise ValidationError(f"Invalid task status: {status!r}")
        self._commit(mutators.update_task_status(self.document, task_id, status), TASKS)

    def delete_task(self, task_id: str) -> None:
        self._commit(mutators.delete_task(self.document, task_id), TASKS)

    def get_project_tasks(self, project_id: str) -> List[Task]:
        return mutators.get_project_tasks(self.document, project_id)

    def add_subtask(self, task_id: str, title: str, story_points: int) -> Optional[str]:
        fields = validate({"title": title, "storyPoints": story_points}, SUBTASK_UPDATE)
        title = require_text(fields.get("title"), "title")
        points = fields.get("storyPoints") or 0
        document, subtask_id = mutators.add_subtask(self.document, task_id, title, points)
        self._commit(document, TASKS)
        return subtask_id

    def update_subtask(self, task_id: str, subtask_id: str, changes: Dict[str, Any]) -> Optional[str]:
        fields = validate(changes, SUBTASK_UPDATE)
        document, updated_id = mutators.update_subtask(self.document, task_id, subtask_id, fields)
        self._commit(document, TASKS)
        return updated_id

    def remove_subtask(self, task_id: str, subtask_id: str) -> Optional[str]:
        document, removed_id = mutators.remove_subtask(self.document, task_id, subtask_id)
        self._commit(document, TASKS)
        return removed_id

    def _log_key(self, owner_id: str) -> str:
        return TASKS if self.document.get_task(owner_id) else QUICK_TASKS

    def add_log(self, owner_id: str, content: str) -> Optional[str]:
        content = require_text(content, "content")
        document, log_id = mutators.add_log(self.document, owner_id, content)
        self._commit(document, self._log_key(owner_id))
        return log_id

    def update_log(self, owner_id: str, log_id: str, content: str) -> None:
        content = require_text(content, "content")
        self._commit(mutators.update_log(self.document, owner_id, log_id, content), self._log_key(owner_id))

    def delete_log(self, owner_id: str, log_id: str) -> None:
        self._commit(mutators.delete_log(self.document, owner_id, log_id), self._log_key(owner_id))

    # ── Quick tasks ──────────────────────────────────────────────────────────

    def create_quick_task(self, data: Dict[str, Any]) -> Optional[str]:
        fields = validate(data, QUICK_TASK_CREATE)
        if not (fields.get("title") or (fields.get("description") or "").strip()):
            raise ValidationError("Quick task needs a title or description")
        document, quick_task_id = mutators.create_quick_task(self.document, fields)
        self._commit(document, QUICK_TASKS)
        return quick_task_id

    def update_quick_task(self, quick_task_id: str, data: Dict[str, Any]) -> None:
        fields = validate(data, QUICK_TASK_UPDATE)
        self._commit(mutators.update_quick_task(self.document, quick_task_id, fields), QUICK_TASKS)

    def delete_quick_task(self, quick_task_id: str) -> None:
        self._commit(mutators.delete_quick_task(self.document, quick_task_id), QUICK_TASKS)

    # ── Project categories ───────────────────────────────────────────────────

    def create_category(self, name: str, color: str = "#808080") -> str:
        fields = validate({"name": name, "color": color}, CATEGORY)
        name = require_text(fields.get("name"), "name")
        document, category_id = mutators.create_category(self.document, name, fields.get("color"))
        self._commit(document, CATEGORIES)
        return category_id

    def update_category(self, category_id: str, data: Dict[str, Any]) -> None:
        fields = validate(data, CATEGORY)
        self._commit(mutators.update_category(self.document, category_id, fields), CATEGORIES)

    def move_category(self, category_id: str, direction: str) -> None:
        if direction not in ("up", "down"):
            raise ValidationError(f"Invalid direction: {direction!r}")
        self._commit(mutators.move_category(self.document, category_id, direction), CATEGORIES)

    def delete_category(self, category_id: str) -> None:
        self._commit(mutators.delete_category(self.document, category_id), CATEGORIES, PROJECTS)

    # ── Personal todos ───────────────────────────────────────────────────────

    def add_todo_category(self, name: str, color: Optional[str] = None) -> Optional[str]:
        name = require_text(name, "name")
        document, category_id = todos.add_todo_category(self.document, name, color)
        self._commit(document, PERSONAL_TODOS)
        return category_id

    def update_todo_category(self, category_id: str, name: Optional[str] = None, color: Optional[str] = None) -> None:
        self._commit(todos.update_todo_category(self.document, category_id, name, color), PERSONAL_TODOS)

    def delete_todo_category(self, category_id: str) -> None:
        self._commit(todos.delete_todo_category(self.document, category_id), PERSONAL_TODOS)

    def move_todo_category(self, category_id: str, direction: str) -> None:
        if direction not in ("up", "down"):
            raise ValidationError(f"Invalid direction: {direction!r}")
        self._commit(todos.move_todo_category(self.document, category_id, direction), PERSONAL_TODOS)

    def add_backlog_todo(self, category_id: str, text: str) -> Optional[str]:
        text = require_text(text, "text")
        document, todo_id = todos.add_backlog_todo(self.document, category_id, text)
        self._commit(document, PERSONAL_TODOS)
        return todo_id

    def add_active_todo(self, text: str, category_id: Optional[str] = None) -> Optional[str]:
        text = require_text(text, "text")
        document, todo_id = todos.add_active_todo(self.document, text, category_id)
        self._commit(document, PERSONAL_TODOS)
        return todo_id

    def update_todo_text(self, todo_id: str, text: str) -> None:
        text = require_text(text, "text")
        self._commit(todos.update_todo_text(self.document, todo_id, text), PERSONAL_TODOS)

    def update_todo_notes(self, todo_id: str, notes: str) -> None:
        self._commit(todos.update_todo_notes(self.document, todo_id, notes), PERSONAL_TODOS)

    def update_todo_link(self, todo_id: str, link: str) -> None:
        self._commit(todos.update_todo_link(self.document, todo_id, link), PERSONAL_TODOS)

    def toggle_todo_done(self, todo_id: str) -> None:
        self._commit(todos.toggle_todo_done(self.document, todo_id), PERSONAL_TODOS)

    def move_todo_to_active(self, todo_id: str) -> None:
        self._commit(todos.move_todo_to_active(self.document, todo_id), PERSONAL_TODOS)

    def move_todo_to_backlog(self, todo_id: str, category_id: Optional[str] = None) -> None:
        self._commit(todos.move_todo_to_backlog(self.document, todo_id, category_id), PERSONAL_TODOS)

    def delete_todo(self, todo_id: str) -> None:
        self._commit(todos.delete_todo(self.document, todo_id), PERSONAL_TODOS)

    def reorder_active_todos(self, source_index: int, destination_index: int) -> None:
        self._commit(
            todos.reorder_active_todos(self.document, source_index, destination_index), PERSONAL_TODOS
        )

    def clear_completed_todos(self) -> None:
        self._commit(todos.clear_completed_todos(self.document), PERSONAL_TODOS)

    def add_todo_log(self, todo_id: str, content: str) -> Optional[str]:
        content = require_text(content, "content")
        document, log_id = todos.add_todo_log(self.document, todo_id, content)
        self._commit(document, PERSONAL_TODOS)
        return log_id

    def update_todo_log(self, todo_id: str, log_id: str, content: str) -> None:
        content = require_text(content, "content")
        self._commit(todos.update_todo_log(self.document, todo_id, log_id, content), PERSONAL_TODOS)

    def delete_todo_log(self, todo_id: str, log_id: str) -> None:
        self._commit(todos.delete_todo_log(self.document, todo_id, log_id), PERSONAL_TODOS)

    # ── Scratchpad ───────────────────────────────────────────────────────────

    def update_scratchpad(self, content: str) -> None:
        if not isinstance(content, str):
            raise ValidationError("Scratchpad content must be a string")
        self._commit(mutators.update_scratchpad(self.document, content), SCRATCHPAD)


def open_workspace(cfg=None, on_error: Optional[Callable[[Exception], None]] = None) -> Workspace:
    """Build a loaded Workspace from config: HTTP store if api_url is set, else the file."""
    from .client import ApiDocumentStore
    from .config import Config
    from .store import DocumentStore

    cfg = cfg or Config.load()
    if cfg.api_url:
        store = ApiDocumentStore(cfg.api_url)
    else:
        store = DocumentStore(cfg.db_path)
    workspace = Workspace(store, debounce_ms=cfg.debounce_ms, on_error=on_error)
    workspace.load()
    return workspace
