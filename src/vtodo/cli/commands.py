# src/vtodo/cli/commands.py

from __future__ import annotations

import argparse
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime

from ..tasks.legacy_import import migrate_legacy
from ..tasks.task_api import group_by_status, normalize_task_id, parse_tags, set_status
from ..tasks.task_models import Task, TaskStatus, TaskUpdate
from ..tasks.task_store import calculate_progress
from .bootstrap import CommandContext

CommandHandler = Callable[[CommandContext, argparse.Namespace], str]
ArgumentsFn = Callable[[argparse.ArgumentParser], None]

logger = logging.getLogger(__name__)

DETAIL_PREVIEW_CHARS = 500

STATUS_HEADINGS: dict[TaskStatus, str] = {
    TaskStatus.PENDING: "Pending:",
    TaskStatus.IN_PROGRESS: "In Progress:",
    TaskStatus.COMPLETED: "Completed:",
}


@dataclass(slots=True)
class _Command:
    handler: CommandHandler
    help_text: str
    aliases: list[str]
    arguments: ArgumentsFn | None


class CommandRegistry:
    """Subcommand registry; the argparse parser is built from what is registered."""

    def __init__(self) -> None:
        self._commands: dict[str, _Command] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
        arguments: ArgumentsFn | None = None,
    ) -> None:
        self._commands[name.lower()] = _Command(
            handler=handler,
            help_text=help_text,
            aliases=[a.lower() for a in aliases or []],
            arguments=arguments,
        )

    def build_parser(self, prog: str = "vtodo") -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog=prog,
            description="Repo-local, AI-friendly todo manager with a web API",
        )
        sub = parser.add_subparsers(dest="command")
        for name, cmd in self._commands.items():
            p = sub.add_parser(name, aliases=cmd.aliases, help=cmd.help_text, description=cmd.help_text)
            if cmd.arguments is not None:
                cmd.arguments(p)
            p.set_defaults(command=name)
        return parser

    def handle(self, ctx: CommandContext, argv: Sequence[str]) -> str:
        """
        Parse argv and run the matching handler.
        Returns the text to print (help text when no command is given).
        """
        parser = self.build_parser()
        args = parser.parse_args(list(argv))
        if not args.command:
            return parser.format_help()

        cmd = self._commands[args.command]
        logger.debug("Running command %s", args.command)
        return cmd.handler(ctx, args)


registry = CommandRegistry()


def _fmt_ts(raw: str) -> str:
    try:
        dt = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return raw
    return dt.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _not_found(task_id: str) -> str:
    return f"Task #{task_id} not found"


def _format_task_line(task: Task) -> list[str]:
    box = "[x]" if task.status == TaskStatus.COMPLETED else "[ ]"
    line = f"{box} [{task.id}] {task.title}"
    if task.expected:
        line += f" ({task.expected})"
    if task.tags:
        line += f" [{', '.join(task.tags)}]"

    lines = [line]
    if task.checklist:
        done = sum(1 for item in task.checklist if item.checked)
        lines.append(
            f"    Progress: {done}/{len(task.checklist)} ({calculate_progress(task.checklist)}%)"
        )
    if task.description:
        lines.append(f"    {task.description}")
    return lines


# ---- handlers ----


def cmd_init(ctx: CommandContext, args: argparse.Namespace) -> str:
    ctx.store.ensure_init()
    return (
        "Initialized vtodo in repository.\n"
        f"  Created: {ctx.store.tasks_path}, {ctx.store.detail_dir}"
    )


def cmd_add(ctx: CommandContext, args: argparse.Namespace) -> str:
    ctx.store.ensure_init()
    task = ctx.store.add(
        TaskUpdate(
            title=" ".join(args.title).strip(),
            description=args.description or "",
            expected=args.expected or "",
            tags=parse_tags(args.tags),
        )
    )
    lines = [f"Added TODO #{task.id}: {task.title}"]
    if args.detail:
        path = ctx.store.create_detail_file(task.id, task.title)
        lines.append(f"  Detail file: {path}")
    return "\n".join(lines)


def cmd_list(ctx: CommandContext, args: argparse.Namespace) -> str:
    tasks = ctx.store.read_all().tasks
    if not tasks:
        return 'No tasks yet. Add one with `vtodo add "Task title"`'

    grouped = group_by_status(tasks)
    lines = ["Todo List:", ""]
    for status, heading in STATUS_HEADINGS.items():
        bucket = grouped[status]
        if not bucket:
            continue
        if status == TaskStatus.COMPLETED and args.hide_completed:
            continue
        lines.append(heading)
        for task in bucket:
            lines.extend(_format_task_line(task))
        lines.append("")
    return "\n".join(lines).rstrip()


def cmd_show(ctx: CommandContext, args: argparse.Namespace) -> str:
    task_id = normalize_task_id(args.id)
    task = ctx.store.get_by_id(task_id)
    if task is None:
        return _not_found(task_id)

    lines = [
        f"Task #{task.id}: {task.title}",
        "",
        f"Status: {task.status}",
        f"Created: {_fmt_ts(task.created)}",
        f"Updated: {_fmt_ts(task.updated)}",
    ]
    if task.expected:
        lines.append(f"Expected: {task.expected}")
    if task.tags:
        lines.append(f"Tags: {', '.join(task.tags)}")
    if task.description:
        lines += ["", "Description:", task.description]
    if task.checklist:
        lines += ["", "Checklist:"]
        lines += [f"  {'[x]' if item.checked else '[ ]'} {item.text}" for item in task.checklist]
        lines += ["", f"Progress: {calculate_progress(task.checklist)}%"]

    if task.has_detail_file:
        content = ctx.store.read_detail_file(task.id)
        if content:
            lines += ["", "--- Detail File ---", content[:DETAIL_PREVIEW_CHARS]]
            if len(content) > DETAIL_PREVIEW_CHARS:
                lines += ["", "... (use 'vtodo edit' to see full content)"]
    return "\n".join(lines)


def _change_status(ctx: CommandContext, raw_id: str, status: str) -> str:
    task_id = normalize_task_id(raw_id)
    try:
        task = set_status(ctx.store, task_id, status)
    except ValueError as exc:
        return str(exc)
    if task is None:
        return _not_found(task_id)
    return f"Task #{task_id} -> {status}"


def cmd_status(ctx: CommandContext, args: argparse.Namespace) -> str:
    return _change_status(ctx, args.id, args.status)


def cmd_done(ctx: CommandContext, args: argparse.Namespace) -> str:
    return _change_status(ctx, args.id, TaskStatus.COMPLETED.value)


def cmd_undo(ctx: CommandContext, args: argparse.Namespace) -> str:
    return _change_status(ctx, args.id, TaskStatus.PENDING.value)


def cmd_update(ctx: CommandContext, args: argparse.Namespace) -> str:
    task_id = normalize_task_id(args.id)
    update = TaskUpdate(
        title=args.title or None,
        description=args.description or None,
        expected=args.expected or None,
        tags=parse_tags(args.tags) if args.tags else None,
    )
    if update.is_empty():
        return "No updates provided. Use --title, --description, --expected, or --tags"

    task = ctx.store.update(task_id, update)
    if task is None:
        return _not_found(task_id)

    changed = ", ".join(f"{k}={v!r}" for k, v in update.changes().items())
    return f"Updated task #{task_id}\n  {changed}"


def cmd_remove(ctx: CommandContext, args: argparse.Namespace) -> str:
    task_id = normalize_task_id(args.id)
    task = ctx.store.get_by_id(task_id)
    if task is None:
        return _not_found(task_id)
    if not ctx.store.delete(task_id):
        return f"Failed to remove task #{task_id}"
    return f"Removed TODO #{task_id}: {task.title}"


def cmd_archive(ctx: CommandContext, args: argparse.Namespace) -> str:
    task_id = normalize_task_id(args.id)
    task = ctx.store.get_by_id(task_id)
    if task is None or not ctx.store.archive(task_id):
        return _not_found(task_id)
    return f"Archived TODO #{task_id}: {task.title} (detail files kept)"


def cmd_edit(ctx: CommandContext, args: argparse.Namespace) -> str:
    task_id = normalize_task_id(args.id)
    task = ctx.store.get_by_id(task_id)
    if task is None:
        return _not_found(task_id)

    lines: list[str] = []
    path = ctx.store.detail_path(task_id)
    if not task.has_detail_file or not path.exists():
        path = ctx.store.create_detail_file(task_id, task.title)
        lines.append(f"Created detail file: {path}")

    editor = str(getattr(ctx.settings, "editor", "vi"))
    code = ctx.open_editor(editor, path)
    if code != 0:
        lines.append(f"Editor {editor} exited with status {code}")
    return "\n".join(lines)


def cmd_migrate(ctx: CommandContext, args: argparse.Namespace) -> str:
    confirm = (lambda _question: "yes") if args.yes else ctx.prompt
    result = migrate_legacy(
        ctx.store,
        confirm=confirm,
        legacy_file=str(getattr(ctx.settings, "legacy_file", "todo.md")),
        legacy_detail_dir=str(getattr(ctx.settings, "legacy_detail_dir", "todo")),
    )
    if not result.migrated:
        return result.reason

    lines = ["Migration completed!", f"  Migrated {result.count} tasks"]
    lines += [f"  - {t.id}: {t.title}{' (detail file)' if t.has_detail_file else ''}" for t in result.tasks]
    if result.skipped:
        lines.append(f"  Skipped {len(result.skipped)} entries")
        lines += [f"  - {reason}" for reason in result.skipped]
    lines += [
        f"  New file: {result.tasks_path}",
        f"  Backup: {result.backup_path}",
        "Next steps:",
        "  - Review the migrated data",
        "  - Test with: vtodo list",
        "  - If everything looks good, you can delete the backup",
    ]
    return "\n".join(lines)


def cmd_web(ctx: CommandContext, args: argparse.Namespace) -> str:
    host = args.host or str(getattr(ctx.settings, "web_host", "127.0.0.1"))
    port = args.port or int(getattr(ctx.settings, "web_port", 3456))
    print(f"vtodo API running at http://{host}:{port}", flush=True)
    print(f"  Storage: {ctx.store.tasks_path}", flush=True)
    print("Press Ctrl+C to stop the server", flush=True)
    logger.info("Starting web server host=%s port=%s", host, port)
    ctx.serve(ctx.store, host, port)
    return ""


# ---- argument declarations ----


def _id_arg(p: argparse.ArgumentParser) -> None:
    p.add_argument("id", help="task id (e.g. 1 or 001)")


def _add_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("title", nargs="+", help="task title")
    p.add_argument("-e", "--expected", default="", help="expected time (e.g. 2h, 1d)")
    p.add_argument("-t", "--tags", default="", help="comma-separated tags")
    p.add_argument("-d", "--description", default="", help="short description")
    p.add_argument("--detail", action="store_true", help="also create a detail markdown file")


def _list_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--hide-completed", action="store_true", help="omit completed tasks")


def _status_args(p: argparse.ArgumentParser) -> None:
    _id_arg(p)
    p.add_argument("status", help=" | ".join(TaskStatus.values()))


def _update_args(p: argparse.ArgumentParser) -> None:
    _id_arg(p)
    p.add_argument("--title", default="", help="new title")
    p.add_argument("--description", default="", help="new description")
    p.add_argument("-e", "--expected", default="", help="expected time")
    p.add_argument("-t", "--tags", default="", help="comma-separated tags")


def _migrate_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--yes", action="store_true", help="overwrite an existing task store without asking")


def _web_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("-p", "--port", type=int, default=None, help="port number (default 3456)")
    p.add_argument("--host", default=None, help="bind address (default 127.0.0.1)")


registry.register("init", cmd_init, help_text="Initialize the task store and detail folder.")
registry.register("add", cmd_add, help_text="Add a new todo.", arguments=_add_args)
registry.register("list", cmd_list, help_text="List all todos.", aliases=["ls"], arguments=_list_args)
registry.register("show", cmd_show, help_text="Show detailed information about a todo.", arguments=_id_arg)
registry.register(
    "status", cmd_status, help_text="Update todo status (pending|in-progress|completed).", arguments=_status_args
)
registry.register("done", cmd_done, help_text="Mark todo as completed.", arguments=_id_arg)
registry.register("undo", cmd_undo, help_text="Reopen a completed todo.", arguments=_id_arg)
registry.register("update", cmd_update, help_text="Update todo properties.", arguments=_update_args)
registry.register("remove", cmd_remove, help_text="Remove a todo and its detail files.", aliases=["rm"], arguments=_id_arg)
registry.register("archive", cmd_archive, help_text="Remove a todo but keep its detail files.", arguments=_id_arg)
registry.register("edit", cmd_edit, help_text="Open todo detail file in $EDITOR.", arguments=_id_arg)
registry.register(
    "migrate", cmd_migrate, help_text="Migrate from old todo.md format to the JSON store.", arguments=_migrate_args
)
registry.register("web", cmd_web, help_text="Start the web API server.", arguments=_web_args)
