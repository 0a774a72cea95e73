"""
Personal todo mutators and read views.

Operates on Document.personal_todos. Like mutators.py, every function
returns a new Document and leaves the input untouched.

activeOrder rules:
  - promoting a todo puts its id at the front (any old occurrence removed)
  - demoting or deleting a todo removes its id
  - reordering moves an id without duplicating it
"""
import copy
import logging
import re
from typing import List, Optional, Tuple

from .schema import (
    TODO_CATEGORY_PALETTE,
    Document,
    TodoCategory,
    TodoItem,
    TodoLog,
    TodoStatus,
    make_id,
    now_ms,
)

logger = logging.getLogger(__name__)

QUICK_CAPTURE_NAME = "Quick Capture"

_HEX_COLOR = re.compile(r"#[0-9A-Fa-f]{6}")


def _sanitize_color(color: Optional[str]) -> Optional[str]:
    if not isinstance(color, str):
        return None
    color = color.strip()
    return color if _HEX_COLOR.fullmatch(color) else None


def pick_category_color(existing: List[TodoCategory]) -> str:
    """First palette colour not used yet, else cycle by category count."""
    used = {c.color for c in existing}
    for color in TODO_CATEGORY_PALETTE:
        if color not in used:
            return color
    return TODO_CATEGORY_PALETTE[len(existing) % len(TODO_CATEGORY_PALETTE)]


def _find_by_name(categories: List[TodoCategory], name: str) -> Optional[TodoCategory]:
    wanted = name.strip().lower()
    return next((c for c in categories if c.name.strip().lower() == wanted), None)


def _has_category(doc: Document, category_id: str) -> bool:
    return any(c.id == category_id for c in doc.personal_todos.categories)


# ── Categories ───────────────────────────────────────────────────────────────


def add_todo_category(
    document: Document, name: str, color: Optional[str] = None
) -> Tuple[Document, Optional[str]]:
    """
    Add a todo category and return its id.

    A category with the same name (case-insensitive) is reused instead.
    """
    trimmed = name.strip() if isinstance(name, str) else ""
    if not trimmed:
        logger.warning("add_todo_category: empty category name")
        return document, None
    existing = _find_by_name(document.personal_todos.categories, trimmed)
    if existing:
        return document, existing.id

    doc = copy.deepcopy(document)
    categories = doc.personal_todos.categories
    category = TodoCategory(
        id=make_id("category"),
        name=trimmed,
        color=_sanitize_color(color) or pick_category_color(categories),
    )
    categories.append(category)
    return doc, category.id


def update_todo_category(document: Document, category_id: str, name=None, color=None) -> Document:
    doc = copy.deepcopy(document)
    category = next((c for c in doc.personal_todos.categories if c.id == category_id), None)
    if not category:
        logger.warning(f"update_todo_category: category {category_id} not found")
        return document
    if isinstance(name, str) and name.strip():
        category.name = name.strip()
    resolved = _sanitize_color(color)
    if resolved:
        category.color = resolved
    return doc


def delete_todo_category(document: Document, category_id: str) -> Document:
    """Remove a category together with its todos."""
    if not _has_category(document, category_id):
        logger.warning(f"delete_todo_category: category {category_id} not found")
        return document
    doc = copy.deepcopy(document)
    state = doc.personal_todos
    state.categories = [c for c in state.categories if c.id != category_id]
    state.todos = [t for t in state.todos if t.category_id != category_id]
    remaining = {t.id for t in state.todos}
    state.active_order = [tid for tid in state.active_order if tid in remaining]
    return doc


def move_todo_category(document: Document, category_id: str, direction: str) -> Document:
    categories = document.personal_todos.categories
    index = next((i for i, c in enumerate(categories) if c.id == category_id), -1)
    if index == -1:
        logger.warning(f"move_todo_category: category {category_id} not found")
        return document
    target = index - 1 if direction == "up" else index + 1
    if target < 0 or target >= len(categories):
        return document
    doc = copy.deepcopy(document)
    moved = doc.personal_todos.categories.pop(index)
    doc.personal_todos.categories.insert(target, moved)
    return doc


# ── Todos ────────────────────────────────────────────────────────────────────


def _new_todo(text: str, category_id: str, status: TodoStatus) -> TodoItem:
    return TodoItem(
        id=make_id("todo"),
        text=text,
        category_id=category_id,
        status=status,
        is_done=False,
        created_at=now_ms(),
    )


def add_backlog_todo(document: Document, category_id: str, text: str) -> Tuple[Document, Optional[str]]:
    trimmed = text.strip() if isinstance(text, str) else ""
    if not trimmed:
        return document, None
    if not _has_category(document, category_id):
        logger.warning(f"add_backlog_todo: category {category_id} not found")
        return document, None
    doc = copy.deepcopy(document)
    todo = _new_todo(trimmed, category_id, TodoStatus.BACKLOG)
    doc.personal_todos.todos.insert(0, todo)
    return doc, todo.id


def add_active_todo(
    document: Document, text: str, category_id: Optional[str] = None
) -> Tuple[Document, Optional[str]]:
    """
    Add a todo straight to the active list.

    Without a category the todo goes to "Quick Capture", which is created
    on first use.
    """
    trimmed = text.strip() if isinstance(text, str) else ""
    if not trimmed:
        return document, None
    if category_id and not _has_category(document, category_id):
        logger.warning(f"add_active_todo: category {category_id} not found")
        return document, None

    doc = copy.deepcopy(document)
    state = doc.personal_todos
    if not category_id:
        quick_capture = _find_by_name(state.categories, QUICK_CAPTURE_NAME)
        if not quick_capture:
            quick_capture = TodoCategory(
                id=make_id("category"),
                name=QUICK_CAPTURE_NAME,
                color=pick_category_color(state.categories),
            )
            state.categories.append(quick_capture)
        category_id = quick_capture.id

    todo = _new_todo(trimmed, category_id, TodoStatus.ACTIVE)
    state.todos.insert(0, todo)
    state.active_order = [todo.id] + [tid for tid in state.active_order if tid != todo.id]
    return doc, todo.id


def _update_todo(document: Document, todo_id: str, op: str, **changes) -> Document:
    doc = copy.deepcopy(document)
    todo = doc.get_todo(todo_id)
    if not todo:
        logger.warning(f"{op}: todo {todo_id} not found")
        return document
    for attr, value in changes.items():
        setattr(todo, attr, value)
    return doc


def update_todo_text(document: Document, todo_id: str, text: str) -> Document:
    trimmed = text.strip() if isinstance(text, str) else ""
    if not trimmed:
        return document
    return _update_todo(document, todo_id, "update_todo_text", text=trimmed)


def update_todo_notes(document: Document, todo_id: str, notes: str) -> Document:
    return _update_todo(document, todo_id, "update_todo_notes", notes=notes or "")


def update_todo_link(document: Document, todo_id: str, link: str) -> Document:
    return _update_todo(document, todo_id, "update_todo_link", link=(link or "").strip())


def toggle_todo_done(document: Document, todo_id: str) -> Document:
    todo = document.get_todo(todo_id)
    if not todo:
        logger.warning(f"toggle_todo_done: todo {todo_id} not found")
        return document
    return _update_todo(document, todo_id, "toggle_todo_done", is_done=not todo.is_done)


def move_todo_to_active(document: Document, todo_id: str) -> Document:
    todo = document.get_todo(todo_id)
    if not todo:
        logger.warning(f"move_todo_to_active: todo {todo_id} not found")
        return document
    state = document.personal_todos
    if todo.status is TodoStatus.ACTIVE and todo_id in state.active_order:
        return document

    doc = copy.deepcopy(document)
    doc.get_todo(todo_id).status = TodoStatus.ACTIVE
    order = doc.personal_todos.active_order
    doc.personal_todos.active_order = [todo_id] + [tid for tid in order if tid != todo_id]
    return doc


def move_todo_to_backlog(document: Document, todo_id: str, category_id: Optional[str] = None) -> Document:
    """Demote a todo, optionally filing it under another category."""
    todo = document.get_todo(todo_id)
    if not todo:
        logger.warning(f"move_todo_to_backlog: todo {todo_id} not found")
        return document
    target = category_id or todo.category_id
    if not _has_category(document, target):
        logger.warning(f"move_todo_to_backlog: category {target} not found")
        return document

    doc = copy.deepcopy(document)
    moved = doc.get_todo(todo_id)
    moved.status = TodoStatus.BACKLOG
    moved.category_id = target
    state = doc.personal_todos
    state.active_order = [tid for tid in state.active_order if tid != todo_id]
    return doc


def delete_todo(document: Document, todo_id: str) -> Document:
    if not document.get_todo(todo_id):
        logger.warning(f"delete_todo: todo {todo_id} not found")
        return document
    doc = copy.deepcopy(document)
    state = doc.personal_todos
    state.todos = [t for t in state.todos if t.id != todo_id]
    state.active_order = [tid for tid in state.active_order if tid != todo_id]
    return doc


def reorder_active_todos(document: Document, source_index: int, destination_index: int) -> Document:
    """Move the active todo at source_index to destination_index."""
    size = len(document.personal_todos.active_order)
    if (
        source_index == destination_index
        or not 0 <= source_index < size
        or not 0 <= destination_index < size
    ):
        return document
    doc = copy.deepcopy(document)
    order = doc.personal_todos.active_order
    moved = order.pop(source_index)
    order.insert(destination_index, moved)
    return doc


def clear_completed_todos(document: Document) -> Document:
    if not any(t.is_done for t in document.personal_todos.todos):
        return document
    doc = copy.deepcopy(document)
    state = doc.personal_todos
    state.todos = [t for t in state.todos if not t.is_done]
    active = {t.id for t in state.todos if t.status is TodoStatus.ACTIVE}
    state.active_order = [tid for tid in state.active_order if tid in active]
    return doc


# ── Todo logs ────────────────────────────────────────────────────────────────


def add_todo_log(document: Document, todo_id: str, content: str) -> Tuple[Document, Optional[str]]:
    """Prepend a log entry; newest entries come first."""
    trimmed = content.strip() if isinstance(content, str) else ""
    if not trimmed:
        return document, None
    doc = copy.deepcopy(document)
    todo = doc.get_todo(todo_id)
    if not todo:
        logger.warning(f"add_todo_log: todo {todo_id} not found")
        return document, None
    log = TodoLog(id=make_id("todo-log"), content=trimmed, created_at=now_ms())
    todo.logs.insert(0, log)
    return doc, log.id


def update_todo_log(document: Document, todo_id: str, log_id: str, content: str) -> Document:
    trimmed = content.strip() if isinstance(content, str) else ""
    if not trimmed:
        return document
    doc = copy.deepcopy(document)
    todo = doc.get_todo(todo_id)
    log = next((entry for entry in todo.logs if entry.id == log_id), None) if todo else None
    if not log:
        logger.warning(f"update_todo_log: log {log_id} not found on todo {todo_id}")
        return document
    log.content = trimmed
    return doc


def delete_todo_log(document: Document, todo_id: str, log_id: str) -> Document:
    todo = document.get_todo(todo_id)
    if not todo or not any(entry.id == log_id for entry in todo.logs):
        logger.warning(f"delete_todo_log: log {log_id} not found on todo {todo_id}")
        return document
    doc = copy.deepcopy(document)
    target = doc.get_todo(todo_id)
    target.logs = [entry for entry in target.logs if entry.id != log_id]
    return doc


# ── Views ────────────────────────────────────────────────────────────────────


def active_todos(document: Document) -> List[TodoItem]:
    """Active todos in display order."""
    by_id = {t.id: t for t in document.personal_todos.todos}
    return [
        by_id[tid] for tid in document.personal_todos.active_order
        if tid in by_id and by_id[tid].status is TodoStatus.ACTIVE
    ]


def backlog_todos(document: Document) -> List[TodoItem]:
    return [t for t in document.personal_todos.todos if t.status is TodoStatus.BACKLOG]


def category_todos(document: Document, category_id: str) -> List[TodoItem]:
    """Backlog todos of one category, newest first."""
    todos = [t for t in backlog_todos(document) if t.category_id == category_id]
    return sorted(todos, key=lambda t: t.created_at, reverse=True)
