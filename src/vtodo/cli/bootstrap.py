# src/vtodo/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- builds the TaskStore from settings,
- wires the side-effecting collaborators (prompt, editor, web server) into a
  CommandContext so command handlers stay testable.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from ..config import get_settings
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)

PromptFn = Callable[[str], str]
EditorFn = Callable[[str, Path], int]
ServeFn = Callable[[TaskStore, str, int], None]


def open_in_editor(editor: str, path: Path) -> int:
    """Run the editor in the foreground and wait for it to exit. `editor` may carry flags ("code -w")."""
    logger.debug("Opening %s with %s", path, editor)
    try:
        return subprocess.run([*shlex.split(editor), str(path)], check=False).returncode
    except FileNotFoundError:
        logger.error("Editor not found: %s", editor)
        return 127


def serve_web(store: TaskStore, host: str, port: int) -> None:
    import uvicorn

    from ..web.app import create_app

    store.ensure_init()
    uvicorn.run(create_app(store), host=host, port=port, log_level="warning")


@dataclass
class CommandContext:
    # Settings live on the context so handlers never read global config.
    settings: object
    store: TaskStore

    prompt: PromptFn = field(default=input)
    open_editor: EditorFn = field(default=open_in_editor)
    serve: ServeFn = field(default=serve_web)


def create_store(settings) -> TaskStore:
    return TaskStore(
        Path(settings.project_dir),
        store_dir=settings.store_dir,
        tasks_file=settings.tasks_file,
        detail_dir=settings.detail_dir,
    )


def create_context(*, settings=None) -> CommandContext:
    """
    Create a CommandContext from the provided settings.

    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()
    return CommandContext(settings=settings, store=create_store(settings))
