"""
TaskPilot document schema.

One Document holds the whole application state:
  projects, tasks, quickTasks, categories, personalTodos, scratchpad

Dataclasses serialize to the camelCase JSON shape that is persisted.
Use normalizer.normalize() to build a Document from untrusted JSON.
"""
from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, Union
import time
import uuid

DEFAULT_CATEGORY_ID = "cat-default"
DEFAULT_PROJECT_PRIORITY = 4
MIN_QUICK_POINTS = 1
MAX_QUICK_POINTS = 5

TODO_CATEGORY_PALETTE = [
    "#2563EB",
    "#DB2777",
    "#059669",
    "#F97316",
    "#7C3AED",
    "#0EA5E9",
    "#F59E0B",
    "#10B981",
    "#EF4444",
    "#6366F1",
]


class ProjectStatus(Enum):
    """Project lifecycle, in display order."""
    IN_PROGRESS = "In Progress"
    BACKLOG = "Backlog"
    DONE = "Done"
    ARCHIVED = "Archived"

    @classmethod
    def from_str(cls, value: Any) -> "ProjectStatus":
        try:
            return cls(value)
        except ValueError:
            return cls.BACKLOG


class TaskStatus(Enum):
    """Kanban columns, left to right."""
    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    DONE = "Done"

    @classmethod
    def from_str(cls, value: Any) -> "TaskStatus":
        try:
            return cls(value)
        except ValueError:
            return cls.TODO


class TaskPriority(Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @classmethod
    def from_str(cls, value: Any) -> "TaskPriority":
        try:
            return cls(value)
        except ValueError:
            return cls.LOW


# Lower rank sorts first (High before Low)
TASK_PRIORITY_ORDER = {
    TaskPriority.HIGH: 0,
    TaskPriority.MEDIUM: 1,
    TaskPriority.LOW: 2,
}


class TodoStatus(Enum):
    BACKLOG = "backlog"
    ACTIVE = "active"

    @classmethod
    def from_str(cls, value: Any) -> "TodoStatus":
        return cls.ACTIVE if value == "active" else cls.BACKLOG


# ── Helpers ──────────────────────────────────────────────────────────────────


def make_id(prefix: str) -> str:
    """Sortable id: prefix, ms timestamp, 8 hex chars of randomness."""
    return f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


def utc_now() -> str:
    """ISO-8601 UTC timestamp with milliseconds."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def now_ms() -> int:
    return int(time.time() * 1000)


def sum_story_points(subtasks: List["Subtask"]) -> int:
    return sum(st.story_points for st in subtasks)


# ── Projects ─────────────────────────────────────────────────────────────────


@dataclass
class Note:
    """A project note. Notes form a tree through parent_id."""
    id: str
    title: str = ""
    # Plain string, or a list of editor blocks written by newer clients
    content: Union[str, List[Any]] = ""
    parent_id: Optional[str] = None
    is_collapsed: Optional[bool] = None
    is_main: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "parentId": self.parent_id,
        }
        if self.is_collapsed is not None:
            data["isCollapsed"] = self.is_collapsed
        if self.is_main is not None:
            data["isMain"] = self.is_main
        return data


@dataclass
class ProjectCategory:
    id: str
    name: str = ""
    color: str = "#808080"

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "color": self.color}


@dataclass
class Project:
    id: str
    name: str
    description: str = ""
    status: ProjectStatus = ProjectStatus.BACKLOG
    priority: int = DEFAULT_PROJECT_PRIORITY
    category_ids: List[str] = field(default_factory=lambda: [DEFAULT_CATEGORY_ID])
    notes: List[Note] = field(default_factory=list)

    @property
    def category_id(self) -> str:
        """Legacy single-category field, always the first of category_ids."""
        return self.category_ids[0] if self.category_ids else DEFAULT_CATEGORY_ID

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "status": self.status.value,
            "priority": self.priority,
            "categoryId": self.category_id,
            "categoryIds": list(self.category_ids),
            "notes": [n.to_dict() for n in self.notes],
        }


def main_note(project: Project) -> Optional[Note]:
    """
    The note shown on the project overview.

    First note flagged is_main, else the first top-level note,
    else the first note at all.
    """
    for note in project.notes:
        if note.is_main:
            return note
    for note in project.notes:
        if not note.parent_id:
            return note
    return project.notes[0] if project.notes else None


# ── Tasks ────────────────────────────────────────────────────────────────────


@dataclass
class Log:
    """Work log entry on a task or quick task (ISO timestamp)."""
    id: str
    content: str
    created_at: str = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "content": self.content, "createdAt": self.created_at}


@dataclass
class Subtask:
    id: str
    title: str
    is_completed: bool = False
    story_points: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "isCompleted": self.is_completed,
            "storyPoints": self.story_points,
        }


@dataclass
class Task:
    id: str
    project_id: str
    title: str
    description: str = ""
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.LOW
    deadline: Optional[str] = None
    link: str = ""
    subtasks: List[Subtask] = field(default_factory=list)
    logs: List[Log] = field(default_factory=list)
    # Derived: sum of subtask points. Only mutators and the normalizer write it.
    story_points: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "projectId": self.project_id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "priority": self.priority.value,
            "deadline": self.deadline,
            "link": self.link,
            "storyPoints": self.story_points,
            "subtasks": [st.to_dict() for st in self.subtasks],
            "logs": [log.to_dict() for log in self.logs],
        }


@dataclass
class QuickTask:
    """Lightweight task: no subtasks, points instead of story points."""
    id: str
    project_id: str
    title: str
    description: str = ""
    points: int = MIN_QUICK_POINTS
    priority: TaskPriority = TaskPriority.LOW
    status: TaskStatus = TaskStatus.TODO
    is_done: bool = False
    link: str = ""
    logs: List[Log] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "projectId": self.project_id,
            "title": self.title,
            "description": self.description,
            "points": self.points,
            "priority": self.priority.value,
            "status": self.status.value,
            "isDone": self.is_done,
            "link": self.link,
            "logs": [log.to_dict() for log in self.logs],
        }


def quick_task_to_task(quick_task: QuickTask) -> Task:
    """Task-shaped view of a quick task for shared aggregation and reports."""
    return Task(
        id=quick_task.id,
        project_id=quick_task.project_id,
        title=quick_task.title,
        description=quick_task.description,
        status=quick_task.status,
        priority=quick_task.priority,
        deadline=None,
        link=quick_task.link,
        subtasks=[],
        logs=list(quick_task.logs),
        story_points=quick_task.points,
    )


# ── Personal todos ───────────────────────────────────────────────────────────


@dataclass
class TodoLog:
    """Log entry on a personal todo (epoch-ms timestamp)."""
    id: str
    content: str
    created_at: int = field(default_factory=now_ms)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "content": self.content, "createdAt": self.created_at}


@dataclass
class TodoCategory:
    id: str
    name: str
    color: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "color": self.color}


@dataclass
class TodoItem:
    id: str
    text: str
    category_id: str = DEFAULT_CATEGORY_ID
    status: TodoStatus = TodoStatus.BACKLOG
    is_done: bool = False
    created_at: int = field(default_factory=now_ms)
    notes: str = ""
    link: str = ""
    logs: List[TodoLog] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "categoryId": self.category_id,
            "status": self.status.value,
            "isDone": self.is_done,
            "createdAt": self.created_at,
            "notes": self.notes,
            "link": self.link,
            "logs": [log.to_dict() for log in self.logs],
        }


@dataclass
class TodoState:
    categories: List[TodoCategory] = field(default_factory=list)
    todos: List[TodoItem] = field(default_factory=list)
    # Display order of active todos, independent of creation order
    active_order: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "categories": [c.to_dict() for c in self.categories],
            "todos": [t.to_dict() for t in self.todos],
            "activeOrder": list(self.active_order),
        }


# ── Document ─────────────────────────────────────────────────────────────────

DOCUMENT_KEYS = ("projects", "tasks", "quickTasks", "categories", "personalTodos", "scratchpad")


@dataclass
class Document:
    projects: List[Project] = field(default_factory=list)
    tasks: List[Task] = field(default_factory=list)
    quick_tasks: List[QuickTask] = field(default_factory=list)
    categories: List[ProjectCategory] = field(default_factory=list)
    personal_todos: TodoState = field(default_factory=TodoState)
    scratchpad: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "projects": [p.to_dict() for p in self.projects],
            "tasks": [t.to_dict() for t in self.tasks],
            "quickTasks": [q.to_dict() for q in self.quick_tasks],
            "categories": [c.to_dict() for c in self.categories],
            "personalTodos": self.personal_todos.to_dict(),
            "scratchpad": self.scratchpad,
        }

    def partial(self, keys) -> Dict[str, Any]:
        """Serialize only the given top-level keys (for partial saves)."""
        full = self.to_dict()
        return {k: full[k] for k in keys if k in full}

    def get_project(self, project_id: str) -> Optional[Project]:
        return next((p for p in self.projects if p.id == project_id), None)

    def get_task(self, task_id: str) -> Optional[Task]:
        return next((t for t in self.tasks if t.id == task_id), None)

    def get_quick_task(self, quick_task_id: str) -> Optional[QuickTask]:
        return next((q for q in self.quick_tasks if q.id == quick_task_id), None)

    def get_todo(self, todo_id: str) -> Optional[TodoItem]:
        return next((t for t in self.personal_todos.todos if t.id == todo_id), None)
