# src/vtodo/tasks/task_store.py

from __future__ import annotations

import json
import logging
import math
import os
import threading
from collections.abc import Iterable, Mapping
from datetime import date
from pathlib import Path
from typing import Any

from .task_models import (
    Task,
    TaskCollection,
    TaskUpdate,
    TaskValidationError,
    default_task,
    merge_record,
    utc_now_iso,
    validate_task,
)

logger = logging.getLogger(__name__)

DETAIL_SUFFIX = "-task.md"

# One re-entrant lock per collection document, shared by every TaskStore in the process.
_DOC_LOCKS: dict[Path, threading.RLock] = {}
_DOC_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.RLock:
    key = path.resolve()
    with _DOC_LOCKS_GUARD:
        lock = _DOC_LOCKS.get(key)
        if lock is None:
            lock = threading.RLock()
            _DOC_LOCKS[key] = lock
        return lock


def next_id(tasks: Iterable[Task | Mapping[str, Any]]) -> str:
    """
    Next free id: max numeric id + 1, zero-padded to at least 3 digits.

    Unparsable ids are ignored; ids are never reused after deletion because
    the maximum only grows.
    """
    numbers: list[int] = []
    for task in tasks:
        raw = task.get("id") if isinstance(task, Mapping) else task.id
        try:
            numbers.append(int(str(raw), 10))
        except ValueError:
            continue
    if not numbers:
        return "001"
    return str(max(max(numbers), 0) + 1).zfill(3)


def calculate_progress(checklist: Iterable[Any] | None) -> int:
    """Percentage of checked items, 0..100, rounded half up. Empty -> 0."""
    items = list(checklist or [])
    if not items:
        return 0
    done = 0
    for item in items:
        checked = item.get("checked") if isinstance(item, Mapping) else getattr(item, "checked", False)
        if checked:
            done += 1
    return int(math.floor(done / len(items) * 100 + 0.5))


def _detail_template(title: str) -> str:
    today = date.today().isoformat()
    return (
        f"# {title}\n"
        "\n"
        "## Description\n"
        "Describe the task in detail here...\n"
        "\n"
        "## Technical Notes\n"
        "- Implementation details\n"
        "- API specs\n"
        "- Approach\n"
        "\n"
        "## Related Links\n"
        "- [Docs](...)\n"
        "- [Design](...)\n"
        "\n"
        "## Progress Log\n"
        f"### {today}\n"
        "- Task created\n"
    )


class TaskStore:
    """
    JSON task store rooted at a project directory.

    Layout:
    - <project>/<store_dir>/<tasks_file>: the collection document
    - <project>/<detail_dir>/<id>-task.md: optional sidecar notes

    Every operation is a full read-modify-write of the document. Mutations
    run under a per-document re-entrant lock, so threads in one process
    (e.g. the web server's worker pool) never interleave a read and a write.
    Separate processes are not coordinated.
    """

    def __init__(
        self,
        project_dir: str | Path = ".",
        *,
        store_dir: str = ".store",
        tasks_file: str = "tasks.json",
        detail_dir: str = "tasks",
    ) -> None:
        self.project_dir = Path(project_dir)
        self.store_dir = self.project_dir / store_dir
        self.tasks_path = self.store_dir / tasks_file
        self.detail_dir = self.project_dir / detail_dir
        self._lock = _lock_for(self.tasks_path)

    # ---- low-level helpers ----

    def ensure_init(self) -> None:
        """Create the store dir, an empty document and the detail dir. Never overwrites."""
        with self._lock:
            self.store_dir.mkdir(parents=True, exist_ok=True)
            if not self.tasks_path.exists():
                self._dump(TaskCollection())
                logger.info("Initialized task store at %s", self.tasks_path)
            self.detail_dir.mkdir(parents=True, exist_ok=True)

    def read_all(self) -> TaskCollection:
        """
        Load the collection document.

        Fail-soft: a missing, unreadable or structurally invalid document
        reads as an empty collection.
        """
        if not self.tasks_path.exists():
            return TaskCollection()

        try:
            data = json.loads(self.tasks_path.read_text("utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Could not read %s (%s); using an empty collection.", self.tasks_path, exc)
            return TaskCollection()

        if not isinstance(data, dict) or not data.get("version") or not isinstance(data.get("tasks"), list):
            logger.warning("Invalid structure in %s; using an empty collection.", self.tasks_path)
            return TaskCollection()

        tasks: list[Task] = []
        for raw in data["tasks"]:
            if not isinstance(raw, dict):
                logger.warning("Skipping non-object task entry in %s: %r", self.tasks_path, raw)
                continue
            tasks.append(Task.from_dict(raw))
        return TaskCollection(version=str(data["version"]), tasks=tasks)

    def write_all(self, collection: TaskCollection) -> None:
        """
        Persist the whole collection.

        Every task's `updated` is stamped, not only the ones the caller touched.
        """
        now = utc_now_iso()
        for task in collection.tasks:
            task.updated = now
        with self._lock:
            self.store_dir.mkdir(parents=True, exist_ok=True)
            self._dump(collection)

    def _dump(self, collection: TaskCollection) -> None:
        tmp = self.tasks_path.with_suffix(self.tasks_path.suffix + ".tmp")
        tmp.write_text(json.dumps(collection.to_dict(), ensure_ascii=False, indent=2), "utf-8")
        os.replace(tmp, self.tasks_path)

    def detail_path(self, task_id: str) -> Path:
        return self.detail_dir / f"{task_id}{DETAIL_SUFFIX}"

    def _sidecar_ids(self) -> list[str]:
        """Ids still named by files in the detail dir, e.g. notes kept by `archive`."""
        if not self.detail_dir.is_dir():
            return []
        return [p.name.split("-", 1)[0] for p in self.detail_dir.iterdir() if "-" in p.name]

    # ---- public API ----

    def get_by_id(self, task_id: str) -> Task | None:
        for task in self.read_all().tasks:
            if task.id == task_id:
                return task
        return None

    def add(self, fields: TaskUpdate | Mapping[str, Any]) -> Task:
        update = fields if isinstance(fields, TaskUpdate) else TaskUpdate.from_mapping(fields)
        with self._lock:
            collection = self.read_all()
            # Archived sidecars keep their id reserved.
            task_id = next_id([*collection.tasks, *({"id": i} for i in self._sidecar_ids())])
            title = update.title if isinstance(update.title, str) else ""
            record = merge_record(default_task(task_id, title), update)
            record["id"] = task_id

            if not validate_task(record):
                raise TaskValidationError("Invalid task data")

            task = Task.from_dict(record)
            collection.tasks.append(task)
            self.write_all(collection)

        logger.debug("Task added id=%s title=%r status=%s", task.id, task.title, task.status)
        return task

    def update(self, task_id: str, fields: TaskUpdate | Mapping[str, Any]) -> Task | None:
        update = fields if isinstance(fields, TaskUpdate) else TaskUpdate.from_mapping(fields)
        with self._lock:
            collection = self.read_all()
            idx = collection.find_index(task_id)
            if idx == -1:
                return None

            record = merge_record(collection.tasks[idx], update)
            record["id"] = task_id
            record["updated"] = utc_now_iso()

            if not validate_task(record):
                raise TaskValidationError(f"Invalid task update for #{task_id}")

            task = Task.from_dict(record)
            collection.tasks[idx] = task
            self.write_all(collection)

        logger.debug("Task updated id=%s fields=%s", task_id, sorted(update.changes()))
        return task

    def delete(self, task_id: str) -> bool:
        """Remove the task and every `<id>-*` sidecar file."""
        if not self._remove_record(task_id):
            return False

        if self.detail_dir.is_dir():
            prefix = f"{task_id}-"
            for path in sorted(self.detail_dir.iterdir()):
                if not path.name.startswith(prefix):
                    continue
                try:
                    path.unlink()
                    logger.debug("Removed detail file %s", path)
                except OSError:
                    logger.warning("Failed to remove detail file %s", path, exc_info=True)

        logger.debug("Task deleted id=%s", task_id)
        return True

    def archive(self, task_id: str) -> bool:
        """Remove the task record but keep its sidecar files on disk."""
        if not self._remove_record(task_id):
            return False
        logger.debug("Task archived id=%s", task_id)
        return True

    def _remove_record(self, task_id: str) -> bool:
        with self._lock:
            collection = self.read_all()
            idx = collection.find_index(task_id)
            if idx == -1:
                return False
            del collection.tasks[idx]
            self.write_all(collection)
            return True

    def read_detail_file(self, task_id: str) -> str | None:
        path = self.detail_path(task_id)
        if not path.exists():
            return None
        return path.read_text("utf-8")

    def write_detail_file(self, task_id: str, content: str) -> None:
        """
        Write the sidecar, then flag the task.

        Two separate writes: if the flag update fails, the file stays on disk
        without `hasDetailFile` being set.
        """
        with self._lock:
            path = self.detail_path(task_id)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, "utf-8")
            self.update(task_id, TaskUpdate(has_detail_file=True))

    def create_detail_file(self, task_id: str, title: str) -> Path:
        self.write_detail_file(task_id, _detail_template(title))
        return self.detail_path(task_id)

    def __repr__(self) -> str:
        return f"TaskStore(tasks_path={str(self.tasks_path)!r})"
