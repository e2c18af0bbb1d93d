"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskStatus, TaskUpdate) + validation
- task_store.py: JSON-file storage, id allocation, detail (sidecar) files
- task_api.py: small high-level helpers shared by the CLI and the web API
- legacy_import.py: one-shot import from the old todo.md format
"""
