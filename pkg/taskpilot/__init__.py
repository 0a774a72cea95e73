# TaskPilot: single-user project, task and personal todo tracking
#
# Components:
#   schema.py     - Data model (Document, Project, Task, QuickTask, TodoState, ...)
#   seed.py       - Built-in initial data for a fresh store
#   normalizer.py - Arbitrary / legacy JSON -> Document
#   store.py      - JSON file persistence with per-key merge
#   client.py     - Same store contract over the HTTP API
#   mutators.py   - Project, note, task, subtask, log, quick task, category changes
#   todos.py      - Personal todo changes and views
#   persister.py  - Debounced, coalescing saves
#   workspace.py  - In-memory document + validation + persistence
#   reports.py    - Work-log export, board columns, stats
#   validation.py - Input validation
#   config.py     - YAML / env configuration
