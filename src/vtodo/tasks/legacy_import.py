# src/vtodo/tasks/legacy_import.py

"""
One-shot import from the legacy markdown format.

Legacy layout:
- todo.md with "## Pending" / "## In Progress" / "## Completed" sections and
  lines like "- [ ] [001] Title"
- todo/<id>-*.md detail files with YAML frontmatter (tags, expected) and a
  markdown body that may contain "- [x] item" checklist lines

The importer never deletes legacy files; todo.md is copied to todo.md.backup.
"""

from __future__ import annotations

import logging
import re
import shutil
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import frontmatter

from .task_models import ChecklistItem, Task, TaskCollection, TaskStatus, default_task, validate_task
from .task_store import TaskStore

logger = logging.getLogger(__name__)

SECTION_HEADERS: tuple[tuple[str, TaskStatus], ...] = (
    ("## Pending", TaskStatus.PENDING),
    ("## In Progress", TaskStatus.IN_PROGRESS),
    ("## Completed", TaskStatus.COMPLETED),
)

TASK_LINE_REGEX = re.compile(r"^\s*-\s\[([x\s])\]\s*\[([^\]]+)\]\s*(.+)$", re.IGNORECASE)
CHECKLIST_LINE_REGEX = re.compile(r"^-\s\[([x\s])\]\s*(.+)$", re.IGNORECASE)

ConfirmFn = Callable[[str], str]


@dataclass(slots=True, frozen=True)
class LegacyTask:
    id: str
    title: str
    status: TaskStatus
    done: bool


@dataclass(slots=True)
class LegacyDetail:
    metadata: dict[str, Any]
    content: str
    checklist: list[ChecklistItem] = field(default_factory=list)


@dataclass(slots=True)
class MigrationResult:
    migrated: bool
    reason: str = ""
    tasks: list[Task] = field(default_factory=list)
    tasks_path: Path | None = None
    backup_path: Path | None = None
    skipped: list[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.tasks)


def parse_legacy_todo(text: str) -> list[LegacyTask]:
    """Scan todo.md; lines that are neither headers nor task lines are ignored."""
    out: list[LegacyTask] = []
    current = TaskStatus.PENDING

    for line in text.split("\n"):
        line = line.rstrip("\r")
        header = next((status for prefix, status in SECTION_HEADERS if line.startswith(prefix)), None)
        if header is not None:
            current = header
            continue

        m = TASK_LINE_REGEX.match(line)
        if not m:
            continue
        out.append(
            LegacyTask(
                id=m.group(2).strip(),
                title=m.group(3).strip(),
                status=current,
                done=m.group(1).lower() == "x",
            )
        )
    return out


def parse_legacy_detail(path: Path) -> LegacyDetail | None:
    """Frontmatter + body of a legacy detail file; None if it cannot be parsed."""
    try:
        post = frontmatter.load(str(path))
    except Exception:
        logger.warning("Failed to parse legacy detail file %s", path, exc_info=True)
        return None

    content = post.content
    checklist: list[ChecklistItem] = []
    for line in content.split("\n"):
        m = CHECKLIST_LINE_REGEX.match(line.rstrip("\r"))
        if m:
            checklist.append(ChecklistItem(text=m.group(2).strip(), checked=m.group(1).lower() == "x"))

    return LegacyDetail(metadata=dict(post.metadata), content=content, checklist=checklist)


def _coerce_tags(raw: Any) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        return [t.strip() for t in raw.split(",") if t.strip()]
    if isinstance(raw, (list, tuple)):
        return [str(t) for t in raw]
    return [str(raw)]


def _find_detail_file(detail_dir: Path, task_id: str) -> Path | None:
    if not detail_dir.is_dir():
        return None
    prefix = f"{task_id}-"
    for path in sorted(detail_dir.iterdir()):
        if path.is_file() and path.name.startswith(prefix):
            return path
    return None


def _select(legacy_tasks: list[LegacyTask]) -> tuple[list[LegacyTask], list[str]]:
    """
    Drop entries that cannot become valid tasks.

    The first line for an id wins; later duplicates and lines whose id or
    title is blank are reported back as skip reasons.
    """
    kept: list[LegacyTask] = []
    skipped: list[str] = []
    seen: set[str] = set()

    for legacy in legacy_tasks:
        if legacy.id in seen:
            reason = f"{legacy.id}: duplicate id, keeping the first entry"
        elif not validate_task(default_task(legacy.id, legacy.title)):
            reason = f"{legacy.id or '?'}: invalid entry (blank id or title)"
        else:
            seen.add(legacy.id)
            kept.append(legacy)
            continue
        logger.warning("Skipping legacy task %s", reason)
        skipped.append(reason)

    return kept, skipped

def _convert(store: TaskStore, legacy: LegacyTask, detail_dir: Path) -> Task:
    task = default_task(legacy.id, legacy.title)
    task.status = legacy.status.value

    path = _find_detail_file(detail_dir, legacy.id)
    if path is None:
        logger.info("Migrated %s: %s (no detail file)", legacy.id, legacy.title)
        return task

    detail = parse_legacy_detail(path)
    if detail is None:
        return task

    body = detail.content.lstrip("\r\n")
    task.description = body.split("\n")[0].strip() if body else ""
    task.checklist = detail.checklist
    task.tags = _coerce_tags(detail.metadata.get("tags"))
    task.expected = str(detail.metadata.get("expected") or "")
    task.has_detail_file = True

    sidecar = store.detail_path(legacy.id)
    if not sidecar.exists():
        try:
            sidecar.parent.mkdir(parents=True, exist_ok=True)
            sidecar.write_text(detail.content, "utf-8")
        except OSError:
            logger.warning("Could not copy %s to %s", path, sidecar, exc_info=True)

    logger.info("Migrated %s: %s (detail file %s)", legacy.id, legacy.title, path.name)
    return task


def migrate_legacy(
    store: TaskStore,
    *,
    confirm: ConfirmFn,
    legacy_file: str = "todo.md",
    legacy_detail_dir: str = "todo",
) -> MigrationResult:
    """
    Convert todo.md (+ todo/*.md) into the JSON collection.

    Only the top-level checks can stop the import: a missing or unreadable
    todo.md, or an existing collection the user does not confirm overwriting
    with "yes". Lines that would break id uniqueness or fail validation are
    skipped; detail-file problems are logged and the task keeps its defaults.
    """
    root = store.project_dir
    legacy_path = root / legacy_file
    detail_dir = root / legacy_detail_dir

    if not legacy_path.exists():
        logger.info("No %s found; nothing to migrate.", legacy_path)
        return MigrationResult(migrated=False, reason=f"No {legacy_file} found. Nothing to migrate.")

    try:
        text = legacy_path.read_text("utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Could not read %s: %s", legacy_path, exc)
        return MigrationResult(migrated=False, reason=f"Could not read {legacy_file}: {exc}")

    if store.tasks_path.exists():
        answer = confirm(f"{store.tasks_path} already exists. Overwrite? (yes/no): ")
        if answer != "yes":
            logger.info("Migration cancelled by user.")
            return MigrationResult(migrated=False, reason="Migration cancelled.")

    legacy_tasks, skipped = _select(parse_legacy_todo(text))
    logger.info("Found %d tasks in %s (%d skipped)", len(legacy_tasks), legacy_path, len(skipped))

    tasks = [_convert(store, legacy, detail_dir) for legacy in legacy_tasks]
    store.write_all(TaskCollection(tasks=tasks))

    backup_path = legacy_path.with_name(legacy_path.name + ".backup")
    shutil.copyfile(legacy_path, backup_path)

    logger.info("Migration completed: %d tasks -> %s (backup %s)", len(tasks), store.tasks_path, backup_path)
    return MigrationResult(
        migrated=True,
        tasks=tasks,
        tasks_path=store.tasks_path,
        backup_path=backup_path,
        skipped=skipped,
    )
