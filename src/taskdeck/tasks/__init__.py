"""
Task subsystem.

Components:
- task_models.py: data structures (Task, Tag, Epic, ChecklistItem, tag palette)
- task_store.py: SQLite-backed entity store with explicit cascade/nullify deletes
- ordering.py: dense rank helpers (renumber, move, merge a filtered reorder)
- task_service.py: domain layer, the only writer of the four entity kinds
- timer.py: single-slot stopwatch state machine
- task_api.py: read-side helpers (filters, statistics, formatting)
"""
