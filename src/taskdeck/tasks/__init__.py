"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskStatus, User refs)
- task_store.py: in-memory task map + status columns (ordered id sequences)
- intents.py: user intents and sync results
- sync_controller.py: optimistic mutations reconciled with the remote API
- task_filters.py: "all my tasks" filters and due-date labels
"""
