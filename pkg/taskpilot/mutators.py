"""
Entity mutators for projects, notes, tasks, subtasks, logs, quick tasks,
project categories and the scratchpad.

Every mutator takes a Document and returns a new one; the input is never
modified. Creators return (document, new_id). Subtask mutators return
(document, subtask_id) so callers can focus the affected row.

Field payloads use the persisted camelCase keys ({"name": ..., "categoryIds": ...}).

Acting on an unknown id logs a warning and returns the document unchanged.
"""
import copy
import logging
from typing import Any, Dict, List, Optional, Tuple

from .normalizer import (
    normalize_log,
    normalize_note,
    normalize_quick_task,
    normalize_subtask,
    dict_entries,
)
from .schema import (
    DEFAULT_CATEGORY_ID,
    DEFAULT_PROJECT_PRIORITY,
    Document,
    Log,
    Note,
    Project,
    ProjectCategory,
    ProjectStatus,
    Subtask,
    Task,
    TaskPriority,
    TaskStatus,
    make_id,
    sum_story_points,
    utc_now,
)

logger = logging.getLogger(__name__)


def _find(items: list, item_id: str):
    return next((item for item in items if item.id == item_id), None)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Projects
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def _clean_ids(value: Any) -> List[str]:
    ids: List[str] = []
    if isinstance(value, list):
        for cid in value:
            if isinstance(cid, str) and cid and cid not in ids:
                ids.append(cid)
    return ids


def resolve_category_ids(data: Dict[str, Any], current: Optional[List[str]] = None) -> List[str]:
    """
    Single rule for categoryIds / legacy categoryId.

    A supplied categoryIds wins; otherwise a supplied categoryId becomes the
    only category; otherwise the current ids are kept. Never returns empty.
    """
    if "categoryIds" in data:
        ids = _clean_ids(data["categoryIds"])
        if ids:
            return ids
    legacy = data.get("categoryId")
    if isinstance(legacy, str) and legacy:
        return [legacy]
    if current:
        return list(current)
    return [DEFAULT_CATEGORY_ID]


def create_project(document: Document, data: Dict[str, Any]) -> Tuple[Document, str]:
    doc = copy.deepcopy(document)
    priority = data.get("priority")
    project = Project(
        id=make_id("proj"),
        name=data.get("name", ""),
        description=data.get("description") or "",
        status=ProjectStatus.from_str(data.get("status", ProjectStatus.BACKLOG.value)),
        priority=priority if isinstance(priority, int) and not isinstance(priority, bool)
        else DEFAULT_PROJECT_PRIORITY,
        category_ids=resolve_category_ids(data),
        notes=[Note(id=make_id("note"), title="Main", content="")],
    )
    doc.projects.append(project)
    logger.info(f"Created project {project.id} ({project.name})")
    return doc, project.id


def update_project(document: Document, project_id: str, data: Dict[str, Any]) -> Document:
    doc = copy.deepcopy(document)
    project = doc.get_project(project_id)
    if not project:
        logger.warning(f"update_project: project {project_id} not found")
        return document

    if "name" in data:
        project.name = data["name"]
    if "description" in data:
        project.description = data["description"] or ""
    if "status" in data:
        project.status = ProjectStatus.from_str(data["status"])
    if "priority" in data and isinstance(data["priority"], int) and not isinstance(data["priority"], bool):
        project.priority = data["priority"]
    if "notes" in data:
        project.notes = [normalize_note(n) for n in dict_entries(data["notes"])]
    project.category_ids = resolve_category_ids(data, project.category_ids)
    return doc


def delete_project(document: Document, project_id: str) -> Document:
    """Remove a project and every task that belongs to it."""
    if not document.get_project(project_id):
        logger.warning(f"delete_project: project {project_id} not found")
        return document
    doc = copy.deepcopy(document)
    doc.projects = [p for p in doc.projects if p.id != project_id]
    removed = [t.id for t in doc.tasks if t.project_id == project_id]
    doc.tasks = [t for t in doc.tasks if t.project_id != project_id]
    logger.info(f"Deleted project {project_id} and {len(removed)} task(s)")
    return doc


# ── Notes ────────────────────────────────────────────────────────────────────


def add_note(
    document: Document,
    project_id: str,
    title: str,
    content: Any = "",
    parent_id: Optional[str] = None,
) -> Tuple[Document, Optional[str]]:
    doc = copy.deepcopy(document)
    project = doc.get_project(project_id)
    if not project:
        logger.warning(f"add_note: project {project_id} not found")
        return document, None
    if parent_id and not _find(project.notes, parent_id):
        logger.warning(f"add_note: parent note {parent_id} not found, adding at top level")
        parent_id = None
    note = Note(id=make_id("note"), title=title, content=content, parent_id=parent_id)
    project.notes.append(note)
    return doc, note.id


def update_note(document: Document, project_id: str, note_id: str, data: Dict[str, Any]) -> Document:
    doc = copy.deepcopy(document)
    project = doc.get_project(project_id)
    note = _find(project.notes, note_id) if project else None
    if not note:
        logger.warning(f"update_note: note {note_id} not found in project {project_id}")
        return document

    if "title" in data:
        note.title = data["title"]
    if "content" in data:
        note.content = data["content"]
    if "parentId" in data and data["parentId"] != note.id:
        note.parent_id = data["parentId"] or None
    if "isCollapsed" in data:
        note.is_collapsed = bool(data["isCollapsed"])
    if data.get("isMain"):
        _flag_main(project, note.id)
    elif "isMain" in data:
        note.is_main = False
    return doc


def _flag_main(project: Project, note_id: str) -> None:
    for note in project.notes:
        if note.id == note_id:
            note.is_main = True
        elif note.is_main:
            note.is_main = False


def set_main_note(document: Document, project_id: str, note_id: str) -> Document:
    """Flag one note as the project's main note, clearing the flag elsewhere."""
    return update_note(document, project_id, note_id, {"isMain": True})


def toggle_note_collapsed(document: Document, project_id: str, note_id: str) -> Document:
    project = document.get_project(project_id)
    note = _find(project.notes, note_id) if project else None
    if not note:
        logger.warning(f"toggle_note_collapsed: note {note_id} not found in project {project_id}")
        return document
    return update_note(document, project_id, note_id, {"isCollapsed": not note.is_collapsed})


def delete_note(document: Document, project_id: str, note_id: str) -> Document:
    """Remove a note together with all of its descendants."""
    project = document.get_project(project_id)
    if not project or not _find(project.notes, note_id):
        logger.warning(f"delete_note: note {note_id} not found in project {project_id}")
        return document

    doomed = {note_id}
    grew = True
    while grew:
        grew = False
        for note in project.notes:
            if note.parent_id in doomed and note.id not in doomed:
                doomed.add(note.id)
                grew = True

    doc = copy.deepcopy(document)
    target = doc.get_project(project_id)
    target.notes = [n for n in target.notes if n.id not in doomed]
    return doc


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Tasks
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def create_task(document: Document, data: Dict[str, Any]) -> Tuple[Document, Optional[str]]:
    """
    Add a task to a project.

    storyPoints is always the sum of the supplied subtasks; a storyPoints
    value in data is ignored.
    """
    project_id = data.get("projectId", "")
    if not document.get_project(project_id):
        logger.warning(f"create_task: project {project_id} not found")
        return document, None

    doc = copy.deepcopy(document)
    subtasks = [normalize_subtask(st) for st in dict_entries(data.get("subtasks"))]
    task = Task(
        id=make_id("task"),
        project_id=project_id,
        title=data.get("title", ""),
        description=data.get("description") or "",
        status=TaskStatus.from_str(data.get("status", TaskStatus.TODO.value)),
        priority=TaskPriority.from_str(data.get("priority", TaskPriority.LOW.value)),
        deadline=data.get("deadline") or None,
        link=(data.get("link") or "").strip(),
        subtasks=subtasks,
        logs=[],
        story_points=sum_story_points(subtasks),
    )
    doc.tasks.append(task)
    logger.info(f"Created task {task.id} in project {project_id}")
    return doc, task.id


def update_task(document: Document, task_id: str, data: Dict[str, Any]) -> Document:
    doc = copy.deepcopy(document)
    task = doc.get_task(task_id)
    if not task:
        logger.warning(f"update_task: task {task_id} not found")
        return document

    if "title" in data:
        task.title = data["title"]
    if "description" in data:
        task.description = data["description"] or ""
    if "status" in data:
        task.status = TaskStatus.from_str(data["status"])
    if "priority" in data:
        task.priority = TaskPriority.from_str(data["priority"])
    if "deadline" in data:
        task.deadline = data["deadline"] or None
    if "link" in data:
        task.link = (data["link"] or "").strip()
    if "projectId" in data and data["projectId"]:
        task.project_id = data["projectId"]
    if "logs" in data:
        task.logs = [normalize_log(log) for log in dict_entries(data["logs"])]
    if "subtasks" in data:
        task.subtasks = [normalize_subtask(st) for st in dict_entries(data["subtasks"])]
        task.story_points = sum_story_points(task.subtasks)
    return doc


def update_task_status(document: Document, task_id: str, status: str) -> Document:
    return update_task(document, task_id, {"status": status})


def delete_task(document: Document, task_id: str) -> Document:
    if not document.get_task(task_id):
        logger.warning(f"delete_task: task {task_id} not found")
        return document
    doc = copy.deepcopy(document)
    doc.tasks = [t for t in doc.tasks if t.id != task_id]
    return doc


def get_project_tasks(document: Document, project_id: str) -> List[Task]:
    return [t for t in document.tasks if t.project_id == project_id]


# ── Subtasks ─────────────────────────────────────────────────────────────────


def _subtask_points(value: Any, default: int = 0) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return default
    return value


def add_subtask(
    document: Document, task_id: str, title: str, story_points: int
) -> Tuple[Document, Optional[str]]:
    doc = copy.deepcopy(document)
    task = doc.get_task(task_id)
    if not task:
        logger.warning(f"add_subtask: task {task_id} not found")
        return document, None
    subtask = Subtask(
        id=make_id("sub"), title=title, is_completed=False, story_points=_subtask_points(story_points)
    )
    task.subtasks.append(subtask)
    task.story_points = sum_story_points(task.subtasks)
    return doc, subtask.id


def update_subtask(
    document: Document, task_id: str, subtask_id: str, changes: Dict[str, Any]
) -> Tuple[Document, Optional[str]]:
    doc = copy.deepcopy(document)
    task = doc.get_task(task_id)
    subtask = _find(task.subtasks, subtask_id) if task else None
    if not subtask:
        logger.warning(f"update_subtask: subtask {subtask_id} not found on task {task_id}")
        return document, None

    if isinstance(changes.get("title"), str):
        subtask.title = changes["title"]
    if "isCompleted" in changes:
        subtask.is_completed = bool(changes["isCompleted"])
    if "storyPoints" in changes:
        subtask.story_points = _subtask_points(changes["storyPoints"], subtask.story_points)
    task.story_points = sum_story_points(task.subtasks)
    return doc, subtask.id


def remove_subtask(document: Document, task_id: str, subtask_id: str) -> Tuple[Document, Optional[str]]:
    doc = copy.deepcopy(document)
    task = doc.get_task(task_id)
    if not task or not _find(task.subtasks, subtask_id):
        logger.warning(f"remove_subtask: subtask {subtask_id} not found on task {task_id}")
        return document, None
    task.subtasks = [st for st in task.subtasks if st.id != subtask_id]
    task.story_points = sum_story_points(task.subtasks)
    return doc, subtask_id


# ── Logs (tasks and quick tasks) ─────────────────────────────────────────────


def _log_owner(doc: Document, owner_id: str):
    return doc.get_task(owner_id) or doc.get_quick_task(owner_id)


def add_log(document: Document, owner_id: str, content: str) -> Tuple[Document, Optional[str]]:
    """Append a work log to a task or quick task."""
    doc = copy.deepcopy(document)
    owner = _log_owner(doc, owner_id)
    if not owner:
        logger.warning(f"add_log: task {owner_id} not found")
        return document, None
    log = Log(id=make_id("log"), content=content, created_at=utc_now())
    owner.logs.append(log)
    return doc, log.id


def update_log(document: Document, owner_id: str, log_id: str, content: str) -> Document:
    doc = copy.deepcopy(document)
    owner = _log_owner(doc, owner_id)
    log = _find(owner.logs, log_id) if owner else None
    if not log:
        logger.warning(f"update_log: log {log_id} not found on task {owner_id}")
        return document
    log.content = content
    log.created_at = utc_now()
    return doc


def delete_log(document: Document, owner_id: str, log_id: str) -> Document:
    doc = copy.deepcopy(document)
    owner = _log_owner(doc, owner_id)
    if not owner or not _find(owner.logs, log_id):
        logger.warning(f"delete_log: log {log_id} not found on task {owner_id}")
        return document
    owner.logs = [log for log in owner.logs if log.id != log_id]
    return doc


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Quick tasks
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def create_quick_task(document: Document, data: Dict[str, Any]) -> Tuple[Document, Optional[str]]:
    project_id = data.get("projectId", "")
    if not document.get_project(project_id):
        logger.warning(f"create_quick_task: project {project_id} not found")
        return document, None
    doc = copy.deepcopy(document)
    raw = {k: v for k, v in data.items() if k not in ("id", "logs")}
    quick_task = normalize_quick_task(dict(raw, id=make_id("qt"), logs=[]))
    doc.quick_tasks.append(quick_task)
    return doc, quick_task.id


def update_quick_task(document: Document, quick_task_id: str, data: Dict[str, Any]) -> Document:
    """Apply changes with the normalizer's clamping; isDone follows status."""
    doc = copy.deepcopy(document)
    quick_task = doc.get_quick_task(quick_task_id)
    if not quick_task:
        logger.warning(f"update_quick_task: quick task {quick_task_id} not found")
        return document

    merged = quick_task.to_dict()
    merged.update({k: v for k, v in data.items() if k != "id"})
    if "status" in data:
        merged["isDone"] = merged["status"] == TaskStatus.DONE.value
    elif "isDone" in data:
        if data["isDone"]:
            merged["status"] = TaskStatus.DONE.value
        elif quick_task.status is TaskStatus.DONE:
            merged["status"] = TaskStatus.TODO.value
    updated = normalize_quick_task(merged)
    doc.quick_tasks = [updated if q.id == quick_task_id else q for q in doc.quick_tasks]
    return doc


def delete_quick_task(document: Document, quick_task_id: str) -> Document:
    if not document.get_quick_task(quick_task_id):
        logger.warning(f"delete_quick_task: quick task {quick_task_id} not found")
        return document
    doc = copy.deepcopy(document)
    doc.quick_tasks = [q for q in doc.quick_tasks if q.id != quick_task_id]
    return doc


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Project categories
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def create_category(document: Document, name: str, color: str = "#808080") -> Tuple[Document, str]:
    doc = copy.deepcopy(document)
    category = ProjectCategory(id=make_id("cat"), name=name, color=color or "#808080")
    doc.categories.append(category)
    return doc, category.id


def update_category(document: Document, category_id: str, data: Dict[str, Any]) -> Document:
    doc = copy.deepcopy(document)
    category = _find(doc.categories, category_id)
    if not category:
        logger.warning(f"update_category: category {category_id} not found")
        return document
    if data.get("name"):
        category.name = data["name"]
    if data.get("color"):
        category.color = data["color"]
    return doc


def move_category(document: Document, category_id: str, direction: str) -> Document:
    """Swap a category with its neighbour ("up" or "down")."""
    index = next((i for i, c in enumerate(document.categories) if c.id == category_id), -1)
    if index == -1:
        logger.warning(f"move_category: category {category_id} not found")
        return document
    target = index - 1 if direction == "up" else index + 1
    if target < 0 or target >= len(document.categories):
        return document
    doc = copy.deepcopy(document)
    doc.categories[index], doc.categories[target] = doc.categories[target], doc.categories[index]
    return doc


def delete_category(document: Document, category_id: str) -> Document:
    """
    Remove a category and strip it from every project.

    Projects left without a category fall back to the default one.
    The default category itself cannot be deleted.
    """
    if category_id == DEFAULT_CATEGORY_ID:
        logger.warning("delete_category: the default category cannot be deleted")
        return document
    if not _find(document.categories, category_id):
        logger.warning(f"delete_category: category {category_id} not found")
        return document

    doc = copy.deepcopy(document)
    doc.categories = [c for c in doc.categories if c.id != category_id]
    for project in doc.projects:
        if category_id in project.category_ids:
            remaining = [cid for cid in project.category_ids if cid != category_id]
            project.category_ids = remaining or [DEFAULT_CATEGORY_ID]
    return doc


# ── Scratchpad ───────────────────────────────────────────────────────────────


def update_scratchpad(document: Document, content: str) -> Document:
    doc = copy.copy(document)
    doc.scratchpad = content if isinstance(content, str) else ""
    return doc
