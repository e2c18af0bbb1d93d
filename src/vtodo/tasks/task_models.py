# src/vtodo/tasks/task_models.py

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

SCHEMA_VERSION = "1.0.0"


class TaskStatus(StrEnum):
    """
    Task lifecycle status.

    Notes:
    - values are the on-disk spelling ("in-progress" keeps its hyphen)
    - a "backlog" column exists only in one web UI variant; it is never stored
    """

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"

    @classmethod
    def values(cls) -> list[str]:
        return [s.value for s in cls]


class TaskValidationError(ValueError):
    """Raised when an add/update would persist a structurally invalid task."""


def utc_now_iso() -> str:
    """Current time as `YYYY-MM-DDTHH:MM:SS.mmmZ`."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(slots=True)
class ChecklistItem:
    text: str
    checked: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.text, "checked": self.checked}

    @classmethod
    def from_dict(cls, raw: Any) -> ChecklistItem:
        if isinstance(raw, ChecklistItem):
            return cls(text=raw.text, checked=raw.checked)
        if isinstance(raw, Mapping):
            return cls(text=str(raw.get("text", "")), checked=bool(raw.get("checked", False)))
        return cls(text=str(raw))


def _text(value: Any) -> str:
    return "" if value is None else str(value)


@dataclass(slots=True)
class Task:
    id: str
    title: str
    status: str = TaskStatus.PENDING.value
    description: str = ""
    checklist: list[ChecklistItem] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    expected: str = ""
    created: str = ""
    updated: str = ""
    has_detail_file: bool = False

    def to_dict(self) -> dict[str, Any]:
        """JSON shape as stored in tasks.json."""
        return {
            "id": self.id,
            "title": self.title,
            "status": str(self.status),
            "description": self.description,
            "checklist": [item.to_dict() for item in self.checklist],
            "tags": list(self.tags),
            "expected": self.expected,
            "created": self.created,
            "updated": self.updated,
            "hasDetailFile": self.has_detail_file,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Task:
        """
        Build a Task from a stored record.

        Lenient on purpose: stored documents are read fail-soft, so missing
        optional fields fall back to defaults instead of raising.
        """
        checklist = raw.get("checklist")
        tags = raw.get("tags")
        return cls(
            id=_text(raw.get("id")),
            title=_text(raw.get("title")),
            status=str(raw.get("status") or TaskStatus.PENDING.value),
            description=str(raw.get("description") or ""),
            checklist=[ChecklistItem.from_dict(i) for i in checklist] if isinstance(checklist, list) else [],
            tags=[str(t) for t in tags] if isinstance(tags, list) else [],
            expected=str(raw.get("expected") or ""),
            created=str(raw.get("created") or ""),
            updated=str(raw.get("updated") or ""),
            has_detail_file=bool(raw.get("hasDetailFile", False)),
        )


@dataclass(slots=True)
class TaskCollection:
    version: str = SCHEMA_VERSION
    tasks: list[Task] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"version": self.version, "tasks": [t.to_dict() for t in self.tasks]}

    def find_index(self, task_id: str) -> int:
        for i, task in enumerate(self.tasks):
            if task.id == task_id:
                return i
        return -1


# Field name on disk -> attribute name on Task.
_UPDATABLE_FIELDS: dict[str, str] = {
    "title": "title",
    "status": "status",
    "description": "description",
    "expected": "expected",
    "tags": "tags",
    "checklist": "checklist",
    "hasDetailFile": "has_detail_file",
}


@dataclass(slots=True)
class TaskUpdate:
    """
    Allow-listed partial update.

    None means "leave unchanged". A key sent explicitly as null by
    `from_mapping` is recorded in `nulls` and merged as None, so validation
    rejects it for required fields instead of the update being dropped.
    `id`, `created` and `updated` are not representable here, so callers
    cannot overwrite them.
    """

    title: Any = None
    status: Any = None
    description: Any = None
    expected: Any = None
    tags: Any = None
    checklist: Any = None
    has_detail_file: Any = None
    nulls: tuple[str, ...] = ()

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> TaskUpdate:
        by_attr = {attr: key for key, attr in _UPDATABLE_FIELDS.items()}
        kwargs: dict[str, Any] = {}
        nulls: list[str] = []
        for key, value in raw.items():
            disk = key if key in _UPDATABLE_FIELDS else by_attr.get(key)
            if disk is None:
                continue
            if value is None:
                nulls.append(disk)
            else:
                kwargs[_UPDATABLE_FIELDS[disk]] = value
        return cls(**kwargs, nulls=tuple(nulls))

    def changes(self) -> dict[str, Any]:
        """Set fields keyed by their on-disk name."""
        out: dict[str, Any] = {}
        for key, attr in _UPDATABLE_FIELDS.items():
            value = getattr(self, attr)
            if value is not None:
                out[key] = value
            elif key in self.nulls:
                out[key] = None
        return out

    def is_empty(self) -> bool:
        return not self.changes()


def default_task(task_id: str, title: str) -> Task:
    now = utc_now_iso()
    return Task(id=task_id, title=title, created=now, updated=now)


def validate_task(task: Task | Mapping[str, Any]) -> bool:
    """
    Structural validation only.

    Checklist item shape and tag contents are not inspected.
    """
    record = task.to_dict() if isinstance(task, Task) else task
    if not isinstance(record, Mapping):
        return False

    task_id = record.get("id")
    if not task_id or not isinstance(task_id, str):
        return False
    title = record.get("title")
    if not title or not isinstance(title, str):
        return False
    if record.get("status") not in TaskStatus.values():
        return False
    if not isinstance(record.get("tags"), list):
        return False
    if not isinstance(record.get("checklist"), list):
        return False
    return True


def merge_record(base: Task, update: TaskUpdate) -> dict[str, Any]:
    """Apply `update` onto `base`, returning the merged on-disk record (not validated)."""
    record = base.to_dict()
    record.update(update.changes())
    return record
