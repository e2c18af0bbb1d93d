# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from vtodo.cli.bootstrap import CommandContext, create_store
from vtodo.tasks.task_store import TaskStore

from .fakes import FakeEditor, FakePrompt, FakeServer


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with create_store and the CLI handlers.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment and the working directory.
    """
    return SimpleNamespace(
        project_dir=tmp_path,
        store_dir=".store",
        tasks_file="tasks.json",
        detail_dir="tasks",
        legacy_file="todo.md",
        legacy_detail_dir="todo",
        editor="fake-editor",
        web_host="127.0.0.1",
        web_port=3456,
    )


@pytest.fixture()
def store(settings: SimpleNamespace) -> TaskStore:
    return create_store(settings)


@pytest.fixture()
def ctx(settings: SimpleNamespace, store: TaskStore) -> CommandContext:
    """CommandContext wired with deterministic fakes for prompt/editor/server."""
    return CommandContext(
        settings=settings,
        store=store,
        prompt=FakePrompt(),
        open_editor=FakeEditor(),
        serve=FakeServer(),
    )
