"""
Reports: work-log listing and plain-text export, board columns, stats.

All functions are read-only views over a Document. Dates are compared in
UTC; a date range is inclusive and the end date covers its whole day.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Optional

from .schema import (
    TASK_PRIORITY_ORDER,
    Document,
    ProjectStatus,
    Task,
    TaskPriority,
    TaskStatus,
    quick_task_to_task,
)
from .todos import active_todos, backlog_todos

ALL = "all"
PERSONAL_TODOS = "personal-todos"
SORT_FIELDS = ("date", "project", "task")

UNKNOWN_PROJECT = "Unknown Project"
UNCATEGORIZED = "Uncategorized"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass
class LogEntry:
    """One work log flattened for reporting."""
    id: str
    kind: str  # "project" or "todo"
    project_id: str
    group_label: str  # project name or todo category name
    item_name: str  # task title or todo text
    content: str
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "projectId": self.project_id,
            "groupLabel": self.group_label,
            "itemName": self.item_name,
            "content": self.content,
            "createdAt": self.created_at.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        }


def parse_timestamp(value: str) -> datetime:
    """ISO-8601 string -> aware UTC datetime (epoch if unparseable)."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return _EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _from_ms(ms: int) -> datetime:
    """Epoch milliseconds -> aware UTC datetime (epoch if out of range)."""
    try:
        return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return _EPOCH


def _all_tasks(document: Document) -> List[Task]:
    return list(document.tasks) + [quick_task_to_task(q) for q in document.quick_tasks]


# ── Work logs ────────────────────────────────────────────────────────────────


def collect_logs(document: Document) -> List[LogEntry]:
    """Task and quick-task logs followed by personal todo logs."""
    project_names = {p.id: p.name for p in document.projects}
    category_names = {c.id: c.name for c in document.personal_todos.categories}
    entries: List[LogEntry] = []

    for task in _all_tasks(document):
        project_name = project_names.get(task.project_id) or UNKNOWN_PROJECT
        for log in task.logs:
            entries.append(LogEntry(
                id=log.id,
                kind="project",
                project_id=task.project_id,
                group_label=project_name,
                item_name=task.title,
                content=log.content,
                created_at=parse_timestamp(log.created_at),
            ))

    # Active todos first, then the backlog, each todo once
    seen = set()
    for todo in active_todos(document) + backlog_todos(document):
        if todo.id in seen:
            continue
        seen.add(todo.id)
        category_name = category_names.get(todo.category_id) or UNCATEGORIZED
        for log in todo.logs:
            entries.append(LogEntry(
                id=f"todo-{todo.id}-{log.id}",
                kind="todo",
                project_id=PERSONAL_TODOS,
                group_label=category_name,
                item_name=todo.text,
                content=log.content,
                created_at=_from_ms(log.created_at),
            ))
    return entries


def filter_logs(
    logs: List[LogEntry],
    selection: str = ALL,
    start: Optional[date] = None,
    end: Optional[date] = None,
    sort_field: str = "date",
    descending: bool = True,
) -> List[LogEntry]:
    """
    Filter by selection and date range, then sort.

    selection is "all", "personal-todos" or a project id. Sorting by
    "project" or "task" orders by that label first and by date second.
    """
    if selection == ALL:
        selected = list(logs)
    elif selection == PERSONAL_TODOS:
        selected = [log for log in logs if log.kind == "todo"]
    else:
        selected = [log for log in logs if log.kind == "project" and log.project_id == selection]

    if start:
        lower = datetime.combine(start, time.min, tzinfo=timezone.utc)
        selected = [log for log in selected if log.created_at >= lower]
    if end:
        upper = datetime.combine(end, time.max, tzinfo=timezone.utc)
        selected = [log for log in selected if log.created_at <= upper]

    if sort_field == "project":
        key = lambda log: (log.group_label.casefold(), log.created_at)
    elif sort_field == "task":
        key = lambda log: (log.item_name.casefold(), log.created_at)
    else:
        key = lambda log: log.created_at
    return sorted(selected, key=key, reverse=descending)


def remaining_work(document: Document) -> List[Dict[str, str]]:
    """Tasks still To Do or In Progress whose project still exists."""
    project_names = {p.id: p.name for p in document.projects}
    remaining = (TaskStatus.IN_PROGRESS, TaskStatus.TODO)
    return [
        {
            "projectName": project_names[task.project_id],
            "taskTitle": task.title,
            "taskDescription": task.description,
            "status": task.status.value,
        }
        for task in document.tasks
        if task.status in remaining and task.project_id in project_names
    ]


# ── Plain-text export ────────────────────────────────────────────────────────


def _fmt(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%d %H:%M UTC")


def _selection_label(document: Document, selection: str) -> str:
    if selection == ALL:
        return "All Projects & Todos"
    if selection == PERSONAL_TODOS:
        return "In-Progress Todos"
    project = document.get_project(selection)
    return project.name if project else UNKNOWN_PROJECT


def _grouped(logs: List[LogEntry]) -> Dict[str, Dict[str, List[LogEntry]]]:
    groups: Dict[str, Dict[str, List[LogEntry]]] = {}
    for log in logs:
        groups.setdefault(log.group_label, {}).setdefault(log.item_name, []).append(log)
    return groups


def _render_groups(title: str, logs: List[LogEntry]) -> List[str]:
    lines = [f"=== {title} ==="]
    groups = _grouped(logs)
    for group_label in sorted(groups):
        lines.append(group_label)
        for item_name in sorted(groups[group_label]):
            lines.append(f"  {item_name}")
            for log in groups[group_label][item_name]:
                lines.append(f"    - {log.content} ({_fmt(log.created_at)})")
        lines.append("")
    return lines


def export_text(
    document: Document,
    selection: str = ALL,
    start: Optional[date] = None,
    end: Optional[date] = None,
    sort_field: str = "date",
    descending: bool = True,
    include_snapshot: bool = False,
    now: Optional[datetime] = None,
) -> str:
    """Plain-text work log report, suitable for pasting into an email."""
    now = now or datetime.now(timezone.utc)
    logs = filter_logs(collect_logs(document), selection, start, end, sort_field, descending)
    category_names = {c.id: c.name for c in document.personal_todos.categories}

    lines = [
        "Work Log Report",
        f"Date Range: {start.isoformat() if start else 'N/A'} -> {end.isoformat() if end else 'N/A'}",
        f"Selection: {_selection_label(document, selection)}",
        f"Generated: {_fmt(now)}",
        "",
    ]

    project_logs = [log for log in logs if log.kind == "project"]
    todo_logs = [log for log in logs if log.kind == "todo"]
    if project_logs:
        lines += _render_groups("Project Work Logs", project_logs)
    if todo_logs:
        lines += _render_groups("Personal Todo Logs", todo_logs)
    if not logs:
        lines += ["No work logs found for the current filters.", ""]

    lines.append("=== Active In-Progress Todos ===")
    active = active_todos(document)
    if not active:
        lines += ["No active personal todos.", ""]
    else:
        for todo in active:
            label = "done" if todo.is_done else "active"
            category_name = category_names.get(todo.category_id) or UNCATEGORIZED
            lines.append(f"* {category_name} - {todo.text} ({label})")
        lines.append("")

    lines.append("=== Todo Backlog ===")
    backlog: Dict[str, list] = {}
    for todo in backlog_todos(document):
        backlog.setdefault(category_names.get(todo.category_id) or UNCATEGORIZED, []).append(todo)
    if not backlog:
        lines += ["Backlog is empty.", ""]
    else:
        for category_name in sorted(backlog):
            lines.append(category_name)
            for todo in sorted(backlog[category_name], key=lambda t: t.created_at, reverse=True):
                lines.append(f"  - {todo.text}{' (done)' if todo.is_done else ''}")
            lines.append("")

    if include_snapshot:
        items = remaining_work(document)
        lines += ["=== Remaining Work Snapshot ===", f"Snapshot time: {_fmt(now)}", ""]
        if not items:
            lines += ["No remaining work at snapshot time.", ""]
        for item in items:
            lines.append(f"* [{item['status']}] {item['projectName']} - {item['taskTitle']}")
            lines.append(f"    {item['taskDescription'] or '(no description)'}")
            lines.append("")

    lines.append("=== End of Report ===")
    return "\n".join(lines) + "\n"


# ── Board & stats ────────────────────────────────────────────────────────────


def _board_key(task: Task):
    # Tasks without a deadline sort after dated ones
    return (TASK_PRIORITY_ORDER[task.priority], task.deadline is None, task.deadline or "")


def board(document: Document, project_id: Optional[str] = None) -> Dict[str, List[Dict[str, Any]]]:
    """Kanban columns keyed by task status, highest priority first."""
    tasks = document.tasks
    if project_id:
        tasks = [t for t in tasks if t.project_id == project_id]
    return {
        status.value: [t.to_dict() for t in sorted(
            (t for t in tasks if t.status is status), key=_board_key
        )]
        for status in TaskStatus
    }


def stats(document: Document) -> Dict[str, Any]:
    by_status = {s.value: 0 for s in TaskStatus}
    by_priority = {p.value: 0 for p in TaskPriority}
    for task in document.tasks:
        by_status[task.status.value] += 1
        by_priority[task.priority.value] += 1

    projects_by_status = {s.value: 0 for s in ProjectStatus}
    category_names = {c.id: c.name for c in document.categories}
    projects_by_category: Dict[str, int] = {}
    for project in document.projects:
        projects_by_status[project.status.value] += 1
        for cid in project.category_ids:
            name = category_names.get(cid, cid)
            projects_by_category[name] = projects_by_category.get(name, 0) + 1

    points: Dict[str, Dict[str, Any]] = {
        p.id: {"name": p.name, "done": 0, "total": 0} for p in document.projects
    }
    for task in _all_tasks(document):
        if task.project_id not in points:
            continue
        points[task.project_id]["total"] += task.story_points
        if task.status is TaskStatus.DONE:
            points[task.project_id]["done"] += task.story_points

    return {
        "total_tasks": len(document.tasks),
        "total_quick_tasks": len(document.quick_tasks),
        "total_projects": len(document.projects),
        "by_status": by_status,
        "by_priority": by_priority,
        "projects_by_status": projects_by_status,
        "projects_by_category": projects_by_category,
        "story_points": points,
    }
