# src/vtodo/tasks/task_api.py

from __future__ import annotations

import logging
from typing import Any

from .task_models import Task, TaskStatus, TaskUpdate
from .task_store import TaskStore, calculate_progress

logger = logging.getLogger(__name__)


def normalize_task_id(raw: str | int) -> str:
    """User-typed ids are left-padded to 3 digits ("7" -> "007")."""
    return str(raw).strip().zfill(3)


def parse_tags(raw: str | None) -> list[str]:
    """Comma-separated tags as typed on the command line."""
    if not raw:
        return []
    return [t.strip() for t in raw.split(",")]


def group_by_status(tasks: list[Task]) -> dict[TaskStatus, list[Task]]:
    grouped: dict[TaskStatus, list[Task]] = {status: [] for status in TaskStatus}
    for task in tasks:
        try:
            grouped[TaskStatus(task.status)].append(task)
        except ValueError:
            logger.debug("Task %s has unknown status %r; not grouped.", task.id, task.status)
    return grouped


def set_status(store: TaskStore, task_id: str, status: str) -> Task | None:
    """
    Move a task to `status`.

    Raises ValueError for statuses outside the enum; returns None when the
    task does not exist.
    """
    if status not in TaskStatus.values():
        raise ValueError(f"Invalid status. Use: {', '.join(TaskStatus.values())}")
    return store.update(task_id, TaskUpdate(status=status))


def task_view(task: Task) -> dict[str, Any]:
    """Stored record plus the computed `progress` percentage."""
    data = task.to_dict()
    data["progress"] = calculate_progress(task.checklist)
    return data


def task_detail_view(store: TaskStore, task: Task) -> dict[str, Any]:
    data = task_view(task)
    data["detailContent"] = store.read_detail_file(task.id) if task.has_detail_file else None
    return data
