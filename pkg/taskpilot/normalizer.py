"""
Schema normalizer: arbitrary (possibly legacy) JSON -> Document.

Every read and every write goes through normalize(). It never raises:
anything missing or malformed is replaced with a default and the rest
of the document is kept.

Schema drift handled here:
  - legacy single `categoryId` on projects (now `categoryIds`, first wins)
  - tasks written before `link` existed
  - quick tasks with out-of-range points or unknown enum values
  - todo logs and todos without ids / timestamps
  - stale ids in `personalTodos.activeOrder`
"""
import math
from typing import Any, Dict, List, Optional

from . import seed
from .schema import (
    DEFAULT_CATEGORY_ID,
    DEFAULT_PROJECT_PRIORITY,
    MIN_QUICK_POINTS,
    MAX_QUICK_POINTS,
    TODO_CATEGORY_PALETTE,
    Document,
    Log,
    Note,
    Project,
    ProjectCategory,
    ProjectStatus,
    QuickTask,
    Subtask,
    Task,
    TaskPriority,
    TaskStatus,
    TodoCategory,
    TodoItem,
    TodoLog,
    TodoState,
    TodoStatus,
    make_id,
    now_ms,
    sum_story_points,
    utc_now,
)


# ── Primitive coercion ───────────────────────────────────────────────────────


def _is_number(value: Any) -> bool:
    # bool is an int subclass; JSON true is not a number here
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    if isinstance(value, int):
        return True
    return math.isfinite(value)


def _round(value: float) -> int:
    """Round half up, matching how clients round points."""
    if isinstance(value, int):
        return value
    return int(math.floor(value + 0.5))


def _str(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


def _id(value: Any, prefix: str) -> str:
    if isinstance(value, str) and value:
        return value
    return make_id(prefix)


def dict_entries(value: Any) -> List[Dict[str, Any]]:
    """Keep only object entries of a JSON array."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _optional_bool(value: Any) -> Optional[bool]:
    return value if isinstance(value, bool) else None


# ── Projects ─────────────────────────────────────────────────────────────────


def normalize_note(raw: Dict[str, Any]) -> Note:
    content = raw.get("content")
    if not isinstance(content, (str, list)):
        content = ""
    parent_id = raw.get("parentId")
    return Note(
        id=_id(raw.get("id"), "note"),
        title=_str(raw.get("title")),
        content=content,
        parent_id=parent_id if isinstance(parent_id, str) and parent_id else None,
        is_collapsed=_optional_bool(raw.get("isCollapsed")),
        is_main=_optional_bool(raw.get("isMain")),
    )


def normalize_category_ids(raw: Dict[str, Any]) -> List[str]:
    """categoryIds is canonical; fall back to legacy categoryId, then the default."""
    ids: List[str] = []
    value = raw.get("categoryIds")
    if isinstance(value, list):
        for cid in value:
            if isinstance(cid, str) and cid and cid not in ids:
                ids.append(cid)
    if ids:
        return ids
    legacy = raw.get("categoryId")
    if isinstance(legacy, str) and legacy:
        return [legacy]
    return [DEFAULT_CATEGORY_ID]


def normalize_project(raw: Dict[str, Any]) -> Project:
    priority = raw.get("priority")
    return Project(
        id=_id(raw.get("id"), "proj"),
        name=_str(raw.get("name")),
        description=_str(raw.get("description")),
        status=ProjectStatus.from_str(raw.get("status")),
        priority=_round(priority) if _is_number(priority) else DEFAULT_PROJECT_PRIORITY,
        category_ids=normalize_category_ids(raw),
        notes=[normalize_note(n) for n in dict_entries(raw.get("notes"))],
    )


def normalize_projects(value: Any) -> List[Project]:
    if not isinstance(value, list):
        value = seed.initial_projects()
    return [normalize_project(p) for p in dict_entries(value)]


def normalize_categories(value: Any) -> List[ProjectCategory]:
    if not isinstance(value, list):
        value = seed.initial_categories()
    categories = [
        ProjectCategory(
            id=_id(c.get("id"), "cat"),
            name=_str(c.get("name")),
            color=_str(c.get("color")) or "#808080",
        )
        for c in dict_entries(value)
    ]
    # The default category is reserved and always present
    if not any(c.id == DEFAULT_CATEGORY_ID for c in categories):
        categories.insert(0, ProjectCategory(id=DEFAULT_CATEGORY_ID, name="Work", color="#808080"))
    return categories


# ── Tasks ────────────────────────────────────────────────────────────────────


def normalize_log(raw: Dict[str, Any]) -> Log:
    return Log(
        id=_id(raw.get("id"), "log"),
        content=_str(raw.get("content")),
        created_at=_str(raw.get("createdAt")) or utc_now(),
    )


def normalize_subtask(raw: Dict[str, Any]) -> Subtask:
    points = raw.get("storyPoints")
    return Subtask(
        id=_id(raw.get("id"), "sub"),
        title=_str(raw.get("title")),
        is_completed=bool(raw.get("isCompleted", False)),
        story_points=_round(points) if _is_number(points) else 0,
    )


def normalize_task(raw: Dict[str, Any]) -> Task:
    subtasks = [normalize_subtask(st) for st in dict_entries(raw.get("subtasks"))]
    deadline = raw.get("deadline")
    return Task(
        id=_id(raw.get("id"), "task"),
        project_id=_str(raw.get("projectId")),
        title=_str(raw.get("title")),
        description=_str(raw.get("description")),
        status=TaskStatus.from_str(raw.get("status")),
        priority=TaskPriority.from_str(raw.get("priority")),
        deadline=deadline if isinstance(deadline, str) and deadline else None,
        link=_str(raw.get("link")),
        subtasks=subtasks,
        logs=[normalize_log(log) for log in dict_entries(raw.get("logs"))],
        story_points=sum_story_points(subtasks),
    )


def normalize_tasks(value: Any) -> List[Task]:
    if not isinstance(value, list):
        value = seed.initial_tasks()
    return [normalize_task(t) for t in dict_entries(value)]


def clamp_points(value: Any) -> int:
    if not _is_number(value):
        return MIN_QUICK_POINTS
    return max(MIN_QUICK_POINTS, min(MAX_QUICK_POINTS, _round(value)))


def normalize_quick_task(raw: Dict[str, Any]) -> QuickTask:
    description = _str(raw.get("description")).strip()
    title = _str(raw.get("title")).strip() or description or "Quick task"
    status = TaskStatus.from_str(raw.get("status"))
    logs = [normalize_log(log) for log in dict_entries(raw.get("logs"))]
    return QuickTask(
        id=_id(raw.get("id"), "qt"),
        project_id=_str(raw.get("projectId")),
        title=title,
        description=description,
        points=clamp_points(raw.get("points")),
        priority=TaskPriority.from_str(raw.get("priority")),
        status=status,
        is_done=status is TaskStatus.DONE or bool(raw.get("isDone", False)),
        link=_str(raw.get("link")),
        logs=[log for log in logs if log.content.strip()],
    )


def normalize_quick_tasks(value: Any) -> List[QuickTask]:
    return [normalize_quick_task(q) for q in dict_entries(value)]


# ── Personal todos ───────────────────────────────────────────────────────────


def normalize_todo_logs(value: Any) -> List[TodoLog]:
    logs = []
    for raw in dict_entries(value):
        content = _str(raw.get("content"))
        if not content.strip():
            continue
        created_at = raw.get("createdAt")
        logs.append(TodoLog(
            id=_id(raw.get("id"), "todo-log"),
            content=content,
            created_at=int(created_at) if _is_number(created_at) else now_ms(),
        ))
    return logs


def normalize_todo_categories(value: Any) -> List[TodoCategory]:
    """Backfill ids and give uncoloured categories an unused palette colour."""
    raw_categories = dict_entries(value)
    used = {c.get("color") for c in raw_categories if isinstance(c.get("color"), str) and c.get("color")}
    palette_index = 0
    categories = []
    for raw in raw_categories:
        color = _str(raw.get("color"))
        if not color:
            color = TODO_CATEGORY_PALETTE[palette_index % len(TODO_CATEGORY_PALETTE)]
            attempts = 0
            while color in used and attempts < len(TODO_CATEGORY_PALETTE):
                palette_index += 1
                color = TODO_CATEGORY_PALETTE[palette_index % len(TODO_CATEGORY_PALETTE)]
                attempts += 1
            used.add(color)
            palette_index += 1
        categories.append(TodoCategory(
            id=_id(raw.get("id"), "category"),
            name=_str(raw.get("name")),
            color=color,
        ))
    return categories


def normalize_todo(raw: Dict[str, Any]) -> TodoItem:
    created_at = raw.get("createdAt")
    return TodoItem(
        id=_id(raw.get("id"), "todo"),
        text=_str(raw.get("text")),
        category_id=_str(raw.get("categoryId")) or DEFAULT_CATEGORY_ID,
        status=TodoStatus.from_str(raw.get("status")),
        is_done=bool(raw.get("isDone", False)),
        created_at=int(created_at) if _is_number(created_at) else now_ms(),
        notes=_str(raw.get("notes")),
        link=_str(raw.get("link")),
        logs=normalize_todo_logs(raw.get("logs")),
    )


def reconcile_active_order(order: Any, todos: List[TodoItem]) -> List[str]:
    """
    Active order holds exactly the active todo ids, once each.

    Known ids keep their position; active todos missing from the order
    are appended in collection order.
    """
    active_ids = [t.id for t in todos if t.status is TodoStatus.ACTIVE]
    active = set(active_ids)
    result: List[str] = []
    seen = set()
    if isinstance(order, list):
        for todo_id in order:
            if isinstance(todo_id, str) and todo_id in active and todo_id not in seen:
                result.append(todo_id)
                seen.add(todo_id)
    result.extend(todo_id for todo_id in active_ids if todo_id not in seen)
    return result


def normalize_todo_state(value: Any) -> TodoState:
    raw = value if isinstance(value, dict) else seed.initial_todo_state()
    todos = [normalize_todo(t) for t in dict_entries(raw.get("todos"))]
    return TodoState(
        categories=normalize_todo_categories(raw.get("categories")),
        todos=todos,
        active_order=reconcile_active_order(raw.get("activeOrder"), todos),
    )


# ── Document ─────────────────────────────────────────────────────────────────


def normalize(raw: Any) -> Document:
    """Build a fully populated Document from any JSON value."""
    if isinstance(raw, Document):
        raw = raw.to_dict()
    if not isinstance(raw, dict):
        raw = {}
    return Document(
        projects=normalize_projects(raw.get("projects")),
        tasks=normalize_tasks(raw.get("tasks")),
        quick_tasks=normalize_quick_tasks(raw.get("quickTasks")),
        categories=normalize_categories(raw.get("categories")),
        personal_todos=normalize_todo_state(raw.get("personalTodos")),
        scratchpad=_str(raw.get("scratchpad")),
    )
