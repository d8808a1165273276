"""
Task subsystem.

Components:
- task_models.py: data structures (Task, Subtask, enums, predefined task types)
- recurrence.py: next-due-date calendar arithmetic
- task_lifecycle.py: status changes, reschedule, next occurrence, subtask edits
- task_assignment.py: assignee binding and technician eligibility
- task_store.py: SQLite-backed storage + query helpers
- task_api.py: high-level helpers that mutate and commit (used by connectors)
"""
