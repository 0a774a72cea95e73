"""
Built-in initial data, written to the store the first time it is read.

Returned as raw JSON-shaped dicts; the store normalizes them like any
other input. Deadlines are relative to the moment of seeding.
"""
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, List


def _iso(dt: datetime) -> str:
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def initial_categories() -> List[Dict[str, Any]]:
    return [
        {"id": "cat-default", "name": "Work", "color": "#808080"},
        {"id": "cat-1", "name": "Website", "color": "#4A90E2"},
        {"id": "cat-2", "name": "Mobile App", "color": "#50E3C2"},
    ]


def initial_projects() -> List[Dict[str, Any]]:
    return [
        {
            "id": "proj-1",
            "name": "Website Redesign",
            "description": "Complete redesign of the main company website to improve "
                           "user experience and refresh the branding.",
            "status": "In Progress",
            "priority": 1,
            "categoryId": "cat-1",
            "notes": [
                {
                    "id": "note-1-1",
                    "title": "Meeting Notes 2024-07-29",
                    "parentId": None,
                    "content": "### Key Takeaways:\n\n- Finalize branding guide by EOW.\n"
                               "- User testing to begin next sprint.\n"
                               "- Marketing team needs new screenshots.",
                },
                {
                    "id": "note-1-2",
                    "title": "Initial Design Spec",
                    "parentId": None,
                    "content": "#### Colors:\n\n- Primary: #007BFF\n- Secondary: #6C757D\n\n"
                               "#### Typography:\n\n- Headings: Inter Bold\n- Body: Inter Regular",
                },
            ],
        },
        {
            "id": "proj-2",
            "name": "Mobile App Launch",
            "description": "Develop and launch a new mobile application for iOS and Android platforms.",
            "status": "In Progress",
            "priority": 2,
            "categoryId": "cat-2",
            "notes": [
                {
                    "id": "note-2-1",
                    "title": "Test Plan",
                    "parentId": None,
                    "content": "1.  Unit Tests\n2.  Integration Tests\n"
                               "3.  End-to-end testing with Cypress\n4.  Manual QA on target devices.",
                },
            ],
        },
        {
            "id": "proj-3",
            "name": "Q3 Marketing Campaign",
            "description": "Plan and execute the marketing campaign for the third quarter, "
                           "focusing on new customer acquisition.",
            "status": "Backlog",
            "priority": 3,
            "categoryId": "cat-default",
            "notes": [],
        },
        {
            "id": "proj-4",
            "name": "Internal Wiki Setup",
            "description": "Setup a new internal documentation wiki for the engineering team.",
            "status": "Done",
            "priority": 4,
            "categoryId": "cat-default",
            "notes": [],
        },
    ]


def _subtask(sid: str, title: str, done: bool, points: int) -> Dict[str, Any]:
    return {"id": sid, "title": title, "isCompleted": done, "storyPoints": points}


def initial_tasks() -> List[Dict[str, Any]]:
    now = datetime.now(timezone.utc)
    today = _iso(now)
    tomorrow = _iso(now + timedelta(days=1))
    yesterday = _iso(now - timedelta(days=1))
    next_week = _iso(now + timedelta(days=7))
    next_month = _iso(now + timedelta(days=30))

    return [
        {
            "id": "task-1",
            "projectId": "proj-1",
            "title": "Design new homepage mockups",
            "description": "Create high-fidelity mockups in Figma for the new homepage layout.",
            "status": "In Progress",
            "priority": "High",
            "deadline": tomorrow,
            "subtasks": [
                _subtask("sub-1-1", "Wireframing", True, 3),
                _subtask("sub-1-2", "Visual design", False, 5),
                _subtask("sub-1-3", "Prototyping", False, 3),
            ],
            "logs": [
                {"id": "log-1", "content": "Completed the wireframing for the new homepage.",
                 "createdAt": yesterday},
            ],
        },
        {
            "id": "task-2",
            "projectId": "proj-1",
            "title": "Develop frontend for the homepage",
            "description": "Implement the new homepage design using React and Tailwind CSS.",
            "status": "To Do",
            "priority": "High",
            "deadline": next_week,
            "subtasks": [
                _subtask("sub-2-1", "Hero section", False, 5),
                _subtask("sub-2-2", "Responsive layout", False, 5),
                _subtask("sub-2-3", "Analytics hooks", False, 3),
            ],
            "logs": [],
        },
        {
            "id": "task-3",
            "projectId": "proj-1",
            "title": "Setup user authentication",
            "description": "Integrate authentication service for user login and registration.",
            "status": "Done",
            "priority": "Medium",
            "deadline": yesterday,
            "subtasks": [
                _subtask("sub-3-1", "Integrate Firebase Auth", True, 3),
                _subtask("sub-3-2", "Create login page", True, 2),
            ],
            "logs": [],
        },
        {
            "id": "task-4",
            "projectId": "proj-2",
            "title": "Plan app architecture",
            "description": "Define the overall architecture for the mobile application.",
            "status": "Done",
            "priority": "High",
            "deadline": yesterday,
            "subtasks": [
                _subtask("sub-4-1", "Choose tech stack", True, 3),
                _subtask("sub-4-2", "Data modeling", True, 5),
            ],
            "logs": [],
        },
        {
            "id": "task-5",
            "projectId": "proj-2",
            "title": "Develop API endpoints",
            "description": "Create necessary API endpoints for the mobile app.",
            "status": "In Progress",
            "priority": "Medium",
            "deadline": next_week,
            "subtasks": [
                _subtask("sub-5-1", "User endpoints", True, 5),
                _subtask("sub-5-2", "Task endpoints", False, 8),
            ],
            "logs": [
                {"id": "log-2",
                 "content": "Finished setting up the user endpoints. Starting on task endpoints tomorrow.",
                 "createdAt": today},
            ],
        },
        {
            "id": "task-6",
            "projectId": "proj-2",
            "title": "Design UI for login screen",
            "description": "Create mockups and prototypes for the mobile app login screen.",
            "status": "To Do",
            "priority": "Low",
            "deadline": next_month,
            "subtasks": [_subtask("sub-6-1", "Login mockups", False, 3)],
            "logs": [],
        },
        {
            "id": "task-7",
            "projectId": "proj-3",
            "title": "Define campaign goals",
            "description": "Establish clear objectives and KPIs for the Q3 marketing campaign.",
            "status": "To Do",
            "priority": "High",
            "deadline": yesterday,
            "subtasks": [_subtask("sub-7-1", "Finalize KPIs", False, 5)],
            "logs": [],
        },
        {
            "id": "task-8",
            "projectId": "proj-3",
            "title": "Create ad creatives",
            "description": "Design visual assets and write copy for digital ads.",
            "status": "To Do",
            "priority": "Medium",
            "deadline": tomorrow,
            "subtasks": [
                _subtask("sub-8-1", "Banner ads", False, 5),
                _subtask("sub-8-2", "Social media posts", False, 3),
            ],
            "logs": [],
        },
    ]


def initial_todo_state() -> Dict[str, Any]:
    return {"categories": [], "todos": [], "activeOrder": []}


def initial_data() -> Dict[str, Any]:
    """Full raw document used to seed an empty store."""
    return {
        "projects": initial_projects(),
        "tasks": initial_tasks(),
        "quickTasks": [],
        "categories": initial_categories(),
        "personalTodos": initial_todo_state(),
        "scratchpad": "",
    }
