# tests/test_task_store.py

from __future__ import annotations

import json
import threading
from pathlib import Path

import pytest

from vtodo.tasks.task_models import (
    SCHEMA_VERSION,
    ChecklistItem,
    TaskCollection,
    TaskUpdate,
    TaskValidationError,
    default_task,
)
from vtodo.tasks.task_store import TaskStore, calculate_progress, next_id


def test_ensure_init_creates_layout_and_never_overwrites(store: TaskStore) -> None:
    store.ensure_init()

    assert store.tasks_path.exists()
    assert store.detail_dir.is_dir()
    assert json.loads(store.tasks_path.read_text("utf-8")) == {"version": SCHEMA_VERSION, "tasks": []}

    store.add({"title": "Keep me"})
    store.ensure_init()

    assert [t.title for t in store.read_all().tasks] == ["Keep me"]


def test_ids_are_allocated_sequentially(store: TaskStore) -> None:
    ids = [store.add({"title": f"task {i}", "expected": "1h" if i % 2 else ""}).id for i in range(4)]

    assert ids == ["001", "002", "003", "004"]


def test_next_id_uses_max_not_count() -> None:
    tasks = [default_task("001", "a"), default_task("005", "b")]

    assert next_id([]) == "001"
    assert next_id(tasks) == "006"
    assert next_id([default_task("abc", "x")]) == "001"
    assert next_id([{"id": "999"}]) == "1000"


def test_deleted_ids_are_never_reused(store: TaskStore) -> None:
    for title in ("a", "b", "c"):
        store.add({"title": title})

    assert store.delete("002") is True
    assert store.add({"title": "d"}).id == "004"


def test_archived_highest_id_is_not_reallocated(store: TaskStore) -> None:
    store.add({"title": "A"})
    store.write_detail_file("001", "kept notes")
    assert store.archive("001") is True

    task = store.add({"title": "B"})
    assert task.id == "002"

    store.create_detail_file(task.id, task.title)
    assert store.delete(task.id) is True
    assert store.read_detail_file("001") == "kept notes"


def test_add_rejects_invalid_data_without_persisting(store: TaskStore) -> None:
    store.ensure_init()

    with pytest.raises(TaskValidationError):
        store.add({"title": ""})
    with pytest.raises(TaskValidationError):
        store.add({"title": "x", "status": "done"})
    with pytest.raises(TaskValidationError):
        store.add({"title": "x", "tags": "not-a-list"})

    assert store.read_all().tasks == []


def test_add_ignores_caller_supplied_id(store: TaskStore) -> None:
    task = store.add({"id": "500", "title": "mine"})

    assert task.id == "001"


def test_read_all_is_fail_soft(store: TaskStore) -> None:
    empty = store.read_all()
    assert empty.version == SCHEMA_VERSION
    assert empty.tasks == []

    store.store_dir.mkdir(parents=True)
    store.tasks_path.write_text("{not json", "utf-8")
    assert store.read_all().tasks == []

    store.tasks_path.write_text(json.dumps({"tasks": []}), "utf-8")
    assert store.read_all().version == SCHEMA_VERSION

    store.tasks_path.write_text(json.dumps({"version": "1.0.0", "tasks": {}}), "utf-8")
    assert store.read_all().tasks == []


def test_write_then_read_round_trip(store: TaskStore) -> None:
    tasks = [default_task("001", "a"), default_task("002", "b")]
    tasks[1].status = "in-progress"

    store.write_all(TaskCollection(tasks=tasks))
    loaded = store.read_all()

    assert [(t.id, t.title, t.status) for t in loaded.tasks] == [
        ("001", "a", "pending"),
        ("002", "b", "in-progress"),
    ]


def test_write_all_stamps_every_task(store: TaskStore) -> None:
    old = "2000-01-01T00:00:00.000Z"
    tasks = [default_task("001", "a"), default_task("002", "b")]
    for t in tasks:
        t.updated = old

    store.write_all(TaskCollection(tasks=tasks))

    assert all(t.updated != old for t in store.read_all().tasks)


def test_update_merges_fields(store: TaskStore) -> None:
    store.add({"title": "Write notes", "tags": ["docs"]})

    task = store.update("001", {"status": "completed", "id": "777"})

    assert task is not None
    assert task.id == "001"
    assert task.status == "completed"
    assert task.title == "Write notes"
    assert task.tags == ["docs"]
    assert store.get_by_id("001").status == "completed"


def test_update_missing_returns_none(store: TaskStore) -> None:
    assert store.update("404", TaskUpdate(title="nope")) is None


def test_update_invalid_raises_and_keeps_document(store: TaskStore) -> None:
    store.add({"title": "Write notes"})

    with pytest.raises(TaskValidationError):
        store.update("001", {"status": "bogus"})

    assert store.get_by_id("001").status == "pending"


def test_update_with_null_title_raises(store: TaskStore) -> None:
    store.add({"title": "Write notes"})

    with pytest.raises(TaskValidationError):
        store.update("001", {"title": None})
    with pytest.raises(TaskValidationError):
        store.update("001", {"tags": None})

    assert store.get_by_id("001").title == "Write notes"


def test_update_with_null_optional_field_clears_it(store: TaskStore) -> None:
    store.add({"title": "Write notes", "description": "draft"})

    task = store.update("001", {"description": None})

    assert task.description == ""


def test_end_to_end_scenario(store: TaskStore) -> None:
    store.ensure_init()

    task = store.add({"title": "Write notes"})
    assert task.id == "001"
    assert task.status == "pending"
    assert task.checklist == []

    updated = store.update("001", {"status": "completed"})
    assert updated.status == "completed"
    assert updated.title == "Write notes"

    assert store.delete("001") is True
    assert store.get_by_id("001") is None
    assert store.delete("001") is False


def _touch(path: Path, text: str = "notes") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, "utf-8")
    return path


def test_delete_removes_only_prefixed_sidecars(store: TaskStore) -> None:
    store.add({"title": "a"})
    store.add({"title": "b"})
    own = [_touch(store.detail_dir / "001-task.md"), _touch(store.detail_dir / "001-extra.md")]
    other = _touch(store.detail_dir / "002-task.md")
    lookalike = _touch(store.detail_dir / "0011-task.md")

    assert store.delete("001") is True

    assert not any(p.exists() for p in own)
    assert other.exists()
    assert lookalike.exists()


def test_archive_keeps_sidecars(store: TaskStore) -> None:
    store.add({"title": "a"})
    sidecar = _touch(store.detail_dir / "001-task.md")

    assert store.archive("001") is True
    assert store.get_by_id("001") is None
    assert sidecar.exists()
    assert store.archive("001") is False


def test_detail_file_sets_flag(store: TaskStore) -> None:
    store.add({"title": "Write notes"})

    assert store.read_detail_file("001") is None
    store.write_detail_file("001", "# Notes\n")

    assert store.read_detail_file("001") == "# Notes\n"
    assert store.get_by_id("001").has_detail_file is True


def test_create_detail_file_uses_template(store: TaskStore) -> None:
    store.add({"title": "Write notes"})

    path = store.create_detail_file("001", "Write notes")

    content = path.read_text("utf-8")
    assert path == store.detail_dir / "001-task.md"
    assert content.startswith("# Write notes\n")
    for heading in ("## Description", "## Technical Notes", "## Related Links", "## Progress Log"):
        assert heading in content
    assert store.get_by_id("001").has_detail_file is True


def test_calculate_progress() -> None:
    assert calculate_progress([]) == 0
    assert calculate_progress(None) == 0
    assert calculate_progress([{"checked": True}, {"checked": False}]) == 50
    assert calculate_progress([{"checked": True}]) == 100
    assert calculate_progress([ChecklistItem("a", True), ChecklistItem("b"), ChecklistItem("c")]) == 33
    # half rounds up: 1/8 = 12.5%
    assert calculate_progress([{"checked": True}] + [{"checked": False}] * 7) == 13


def test_concurrent_adds_from_threads_do_not_lose_writes(store: TaskStore) -> None:
    store.ensure_init()
    errors: list[BaseException] = []

    def worker() -> None:
        # Separate instance per thread, same document.
        local = TaskStore(store.project_dir)
        try:
            for i in range(10):
                local.add({"title": f"t{i}"})
        except BaseException as exc:  # pragma: no cover - surfaced by the assert below
            errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    ids = [t.id for t in store.read_all().tasks]
    assert sorted(ids) == [f"{n:03d}" for n in range(1, 41)]
