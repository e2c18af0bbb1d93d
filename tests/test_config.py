# tests/test_config.py

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from vtodo.config import Settings
from vtodo.logging_setup import _ConsoleNoiseFilter, setup_logging

_VARS = (
    "VTODO_PROJECT_DIR",
    "VTODO_STORE_DIR",
    "VTODO_WEB_PORT",
    "VTODO_EDITOR",
    "EDITOR",
    "VTODO_LOG_DIR",
)


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_settings_defaults(clean_env: pytest.MonkeyPatch) -> None:
    s = Settings.from_env()

    assert s.store_dir == ".store"
    assert s.tasks_file == "tasks.json"
    assert s.detail_dir == "tasks"
    assert s.legacy_file == "todo.md"
    assert s.web_port == 3456
    assert s.editor == "vi"
    assert s.log_dir is None


def test_settings_from_env(clean_env: pytest.MonkeyPatch, tmp_path: Path) -> None:
    clean_env.setenv("VTODO_PROJECT_DIR", str(tmp_path))
    clean_env.setenv("VTODO_STORE_DIR", ".todo-store")
    clean_env.setenv("VTODO_WEB_PORT", "not-a-number")
    clean_env.setenv("EDITOR", "nano")

    s = Settings.from_env()

    assert s.project_dir == tmp_path
    assert s.store_dir == ".todo-store"
    assert s.web_port == 3456
    assert s.editor == "nano"

    clean_env.setenv("VTODO_EDITOR", "code -w")
    assert Settings.from_env().editor == "code -w"


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


def test_console_filter() -> None:
    f = _ConsoleNoiseFilter()

    assert f.filter(_record("vtodo.tasks.task_store", logging.DEBUG))
    assert not f.filter(_record("uvicorn.access", logging.INFO))
    assert not f.filter(_record("py.warnings", logging.WARNING))
    assert not f.filter(_record("multipart", logging.WARNING))
    assert f.filter(_record("multipart", logging.ERROR))


def test_setup_logging_writes_file(tmp_path: Path) -> None:
    root = logging.getLogger()
    saved = list(root.handlers)
    try:
        setup_logging(log_dir=tmp_path / "logs")
        logging.getLogger("vtodo.test").debug("hello file")
        for h in root.handlers:
            h.flush()
        assert "hello file" in (tmp_path / "logs" / "vtodo.log").read_text("utf-8")
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
            h.close()
        for h in saved:
            root.addHandler(h)
        logging.captureWarnings(False)
