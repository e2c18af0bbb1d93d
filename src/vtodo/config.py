# src/vtodo/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Every path is relative to the project directory unless given absolute.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

ENV_PREFIX = "VTODO"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def _env_optional_path(name: str) -> Optional[Path]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    log_dir: Optional[Path]

    # ---- Storage layout ----
    project_dir: Path
    store_dir: str
    tasks_file: str
    detail_dir: str

    # ---- Legacy format (read-only inputs for `migrate`) ----
    legacy_file: str
    legacy_detail_dir: str

    # ---- Web API ----
    web_host: str
    web_port: int

    # ---- Editor for `edit` ----
    editor: str

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "vtodo")
        log_level = _env(_k("LOG_LEVEL"), "WARNING")
        log_dir = _env_optional_path(_k("LOG_DIR"))

        project_dir = _env_path(_k("PROJECT_DIR"), Path.cwd())
        store_dir = _env(_k("STORE_DIR"), ".store")
        tasks_file = _env(_k("TASKS_FILE"), "tasks.json")
        detail_dir = _env(_k("DETAIL_DIR"), "tasks")

        legacy_file = _env(_k("LEGACY_FILE"), "todo.md")
        legacy_detail_dir = _env(_k("LEGACY_DETAIL_DIR"), "todo")

        web_host = _env(_k("WEB_HOST"), "127.0.0.1")
        web_port = _env_int(_k("WEB_PORT"), 3456)

        editor = _first_env(_k("EDITOR"), "EDITOR", default="vi") or "vi"

        return Settings(
            app_name=app_name,
            log_level=log_level,
            log_dir=log_dir,
            project_dir=project_dir,
            store_dir=store_dir,
            tasks_file=tasks_file,
            detail_dir=detail_dir,
            legacy_file=legacy_file,
            legacy_detail_dir=legacy_detail_dir,
            web_host=web_host,
            web_port=web_port,
            editor=editor,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
