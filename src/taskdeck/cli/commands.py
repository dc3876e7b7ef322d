# src/taskdeck/cli/commands.py

from __future__ import annotations

import logging
from collections.abc import Callable

from ..core.state import AppState
from ..tasks.task_api import (
    checklist_progress,
    epic_time_summary,
    filter_tasks,
    format_duration,
    format_duration_short,
)
from ..tasks.task_models import TAG_PALETTE_SIZE, Epic, Tag, TagColor, Task

CommandHandler = Callable[[AppState, list[str]], str]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console loop (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."
        return handler(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- argument helpers ----


def _split_title(args: list[str]) -> tuple[str, str | None]:
    """'/add Buy milk | two bottles' -> ("Buy milk", "two bottles")"""
    text = " ".join(args)
    if "|" in text:
        title, desc = text.split("|", 1)
        return title.strip(), desc.strip() or None
    return text.strip(), None


def _pick(items: list, raw: str) -> object | None:
    """1-based position -> element, or None."""
    if not raw.isdigit():
        return None
    idx = int(raw) - 1
    if 0 <= idx < len(items):
        return items[idx]
    return None


def _find_by_name(items: list, name: str) -> object | None:
    wanted = name.strip().lstrip("#+").casefold()
    for item in items:
        if item.name.casefold() == wanted:
            return item
    return None


def _task_line(state: AppState, pos: int, task: Task, tags: dict[str, Tag], epics: dict[str, Epic]) -> str:
    service = state.service
    bits = [f"{pos}. {task.title}"]
    if task.epic_id and task.epic_id in epics:
        bits.append(f"#{epics[task.epic_id].name}")
    names = sorted((tags[t].name for t in task.tag_ids if t in tags), key=str.casefold)
    if names:
        bits.append("[" + ", ".join(names) + "]")
    done, total = checklist_progress(service.checklist_items(task))
    if total:
        bits.append(f"({done}/{total})")
    spent = service.total_time(task)
    if spent > 0:
        bits.append(format_duration_short(spent))
    if service.timer.is_active(task.id):
        bits.append("<running>")
    return " ".join(bits)


# ---- commands ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_add(state: AppState, args: list[str]) -> str:
    title, desc = _split_title(args)
    task = state.service.create_task(title, desc)
    if task is None:
        return "Usage: /add <title> [| description]"
    return f"Added: {task.title}"


def cmd_edit(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /edit <n> <title> [| description]"
    task = _pick(state.service.active_tasks(), args[0])
    if task is None:
        return "No such task."
    title, desc = _split_title(args[1:])
    updated = state.service.update_task(task, title=title, description=desc)
    return f"Updated: {updated.title}" if updated else "No such task."


def cmd_list(state: AppState, args: list[str]) -> str:
    """
    /ls              -> all active tasks
    /ls #epic        -> tasks of one epic
    /ls -            -> tasks without an epic
    /ls +tag +tag2   -> tasks carrying all the tags
    """
    service = state.service
    tags = {t.id: t for t in service.list_tags()}
    epics = {e.id: e for e in service.list_epics()}

    epic_id: str | None = None
    without_epic = False
    tag_ids: list[str] = []
    for arg in args:
        if arg == "-":
            without_epic = True
        elif arg.startswith("#"):
            epic = _find_by_name(list(epics.values()), arg)
            if epic is None:
                return f"Unknown epic: {arg}"
            epic_id = epic.id
        elif arg.startswith("+"):
            tag = _find_by_name(list(tags.values()), arg)
            if tag is None:
                return f"Unknown tag: {arg}"
            tag_ids.append(tag.id)

    # Positions always refer to the unfiltered active list.
    active = service.active_tasks()
    shown = set(t.id for t in filter_tasks(active, epic_id=epic_id, without_epic=without_epic, tag_ids=tag_ids))
    lines = [_task_line(state, pos, t, tags, epics) for pos, t in enumerate(active, start=1) if t.id in shown]
    return "\n".join(lines) if lines else "No tasks."


def cmd_done(state: AppState, args: list[str]) -> str:
    task = _pick(state.service.active_tasks(), args[0]) if args else None
    if task is None:
        return "Usage: /done <n>"
    state.service.mark_completed(task)
    return f"Completed: {task.title}"


def cmd_completed(state: AppState, args: list[str]) -> str:
    service = state.service
    done = service.completed_tasks()
    if args:
        if args[0] == "-":
            done = filter_tasks(done, without_epic=True)
        else:
            epic = _find_by_name(service.list_epics(), args[0])
            if epic is None:
                return f"Unknown epic: {args[0]}"
            done = filter_tasks(done, epic_id=epic.id)
    if not done:
        return "No completed tasks."
    return "\n".join(
        f"{pos}. {t.title} ({format_duration_short(t.total_time_spent)})"
        for pos, t in enumerate(done, start=1)
    )


def cmd_restore(state: AppState, args: list[str]) -> str:
    task = _pick(state.service.completed_tasks(), args[0]) if args else None
    if task is None:
        return "Usage: /restore <n> (position in /completed)"
    state.service.restore_task(task)
    return f"Restored: {task.title}"


def cmd_rm(state: AppState, args: list[str]) -> str:
    task = _pick(state.service.active_tasks(), args[0]) if args else None
    if task is None:
        return "Usage: /rm <n>"
    state.service.delete_task(task)
    return f"Deleted: {task.title}"


def cmd_mv(state: AppState, args: list[str]) -> str:
    if len(args) != 2 or not all(a.isdigit() for a in args):
        return "Usage: /mv <from> <to>"
    active = state.service.active_tasks()
    src, dst = int(args[0]) - 1, int(args[1]) - 1
    if not (0 <= src < len(active)) or not (0 <= dst < len(active)):
        return "No such position."
    # Destination is an index into the list before the move.
    destination = dst if dst < src else dst + 1
    state.service.move_active_tasks([src], destination)
    return f"Moved: {active[src].title} -> {dst + 1}"


def cmd_start(state: AppState, args: list[str]) -> str:
    task = _pick(state.service.active_tasks(), args[0]) if args else None
    if task is None:
        return "Usage: /start <n>"
    state.service.start_timer(task)
    return f"Timer running: {task.title}"


def cmd_stop(state: AppState, args: list[str]) -> str:
    timer = state.service.timer
    task_id = timer.active_task_id
    if task_id is None:
        return "No timer is running."
    seconds = state.service.stop_timer()
    task = state.service.get_task(task_id)
    title = task.title if task else task_id
    return f"Timer stopped: {title} (+{format_duration(seconds)})"


def cmd_status(state: AppState, args: list[str]) -> str:
    service = state.service
    task_id = service.timer.active_task_id
    if task_id is None:
        return "Timer: idle"
    service.timer.tick()
    task = service.get_task(task_id)
    if task is None:
        return "Timer: running (task missing)"
    return (
        f"Timer: {task.title}\n"
        f"  Session: {format_duration(service.timer.session_seconds)}\n"
        f"  Total:   {format_duration(service.total_time(task))}"
    )


def cmd_tag(state: AppState, args: list[str]) -> str:
    """
    /tag ls                    -> list tags
    /tag new <name> [color]    -> create (color is an index or a palette name)
    /tag rm <name>             -> delete
    /tag <n> <name>            -> toggle tag on task n
    """
    service = state.service
    if not args or args[0] == "ls":
        tags = service.list_tags(descending=True)
        if not tags:
            return "No tags."
        return "\n".join(f"+{t.name} ({t.color.name.lower()})" for t in tags)

    sub = args[0].lower()
    if sub == "new":
        if len(args) < 2:
            return "Usage: /tag new <name> [color]"
        color = 0
        if len(args) > 2:
            raw = args[-1]
            if raw.isdigit():
                color = int(raw)
                args = args[:-1]
            elif raw.upper() in TagColor.__members__:
                color = TagColor[raw.upper()].value
                args = args[:-1]
        tag = service.create_tag(" ".join(args[1:]), color)
        return f"Tag created: +{tag.name}" if tag else f"Usage: /tag new <name> [0-{TAG_PALETTE_SIZE - 1}]"

    if sub == "rm":
        tag = _find_by_name(service.list_tags(), " ".join(args[1:]))
        if tag is None:
            return "Unknown tag."
        service.delete_tag(tag)
        return f"Tag deleted: +{tag.name}"

    task = _pick(service.active_tasks(), args[0])
    tag = _find_by_name(service.list_tags(), " ".join(args[1:])) if len(args) > 1 else None
    if task is None or tag is None:
        return "Usage: /tag <n> <name>"
    updated = service.toggle_tag(tag, task)
    on = updated is not None and tag.id in updated.tag_ids
    return f"{'Tagged' if on else 'Untagged'}: {task.title} +{tag.name}"


def cmd_epic(state: AppState, args: list[str]) -> str:
    """
    /epic ls               -> list epics
    /epic new <name>       -> create
    /epic rm <name>        -> delete (tasks keep existing)
    /epic <n> <name>|-     -> put task n into an epic, or clear it
    """
    service = state.service
    if not args or args[0] == "ls":
        epics = service.list_epics(descending=True)
        return "\n".join(f"#{e.name}" for e in epics) if epics else "No epics."

    sub = args[0].lower()
    if sub == "new":
        epic = service.create_epic(" ".join(args[1:]))
        return f"Epic created: #{epic.name}" if epic else "Usage: /epic new <name>"

    if sub == "rm":
        epic = _find_by_name(service.list_epics(), " ".join(args[1:]))
        if epic is None:
            return "Unknown epic."
        service.delete_epic(epic)
        return f"Epic deleted: #{epic.name}"

    task = _pick(service.active_tasks(), args[0])
    if task is None or len(args) < 2:
        return "Usage: /epic <n> <name>|-"
    if args[1] == "-":
        service.set_task_epic(task, None)
        return f"Epic cleared: {task.title}"
    epic = _find_by_name(service.list_epics(), " ".join(args[1:]))
    if epic is None:
        return "Unknown epic."
    service.set_task_epic(task, epic)
    return f"{task.title} -> #{epic.name}"


def cmd_check(state: AppState, args: list[str]) -> str:
    """
    /check <n>                 -> show checklist of task n
    /check <n> add <title>     -> add item
    /check <n> x <k>           -> toggle item k
    /check <n> rm <k>          -> delete item k
    """
    service = state.service
    task = _pick(service.active_tasks(), args[0]) if args else None
    if task is None:
        return "Usage: /check <n> [add <title> | x <k> | rm <k>]"

    if len(args) == 1:
        items = service.checklist_items(task)
        if not items:
            return "Checklist is empty."
        return "\n".join(
            f"{pos}. [{'x' if i.is_completed else ' '}] {i.title}" for pos, i in enumerate(items, start=1)
        )

    sub = args[1].lower()
    if sub == "add":
        item = service.add_checklist_item(task, " ".join(args[2:]))
        return f"Added item: {item.title}" if item else "Usage: /check <n> add <title>"

    item = _pick(service.checklist_items(task), args[2]) if len(args) > 2 else None
    if item is None:
        return "No such checklist item."
    if sub == "x":
        toggled = service.toggle_checklist_item(item)
        return f"[{'x' if toggled and toggled.is_completed else ' '}] {item.title}"
    if sub == "rm":
        service.delete_checklist_item(item.id, task)
        return f"Removed item: {item.title}"
    return "Usage: /check <n> [add <title> | x <k> | rm <k>]"


def cmd_stats(state: AppState, args: list[str]) -> str:
    service = state.service
    epics = service.list_epics(descending=True)
    if not epics:
        return "No epics."
    lines: list[str] = []
    for epic in epics:
        summary = epic_time_summary(service, epic)
        lines.append(f"#{epic.name}: {format_duration(summary.total_seconds)} over {summary.task_count} task(s)")
    return "\n".join(lines)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("add", cmd_add, help_text="Add a task: /add <title> [| description].")
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <n> <title> [| description].")
registry.register("ls", cmd_list, help_text="List active tasks: /ls [#epic | -] [+tag ...].", aliases=["list"])
registry.register("done", cmd_done, help_text="Complete task n.")
registry.register("completed", cmd_completed, help_text="List completed tasks: /completed [epic | -].")
registry.register("restore", cmd_restore, help_text="Restore completed task n.")
registry.register("rm", cmd_rm, help_text="Delete task n.")
registry.register("mv", cmd_mv, help_text="Move a task: /mv <from> <to>.")
registry.register("start", cmd_start, help_text="Start the timer on task n.")
registry.register("stop", cmd_stop, help_text="Stop the running timer.")
registry.register("status", cmd_status, help_text="Show the running timer.")
registry.register("tag", cmd_tag, help_text="Tags: /tag ls | new <name> [color] | rm <name> | <n> <name>.")
registry.register("epic", cmd_epic, help_text="Epics: /epic ls | new <name> | rm <name> | <n> <name>|-.")
registry.register("check", cmd_check, help_text="Checklist: /check <n> [add <title> | x <k> | rm <k>].")
registry.register("stats", cmd_stats, help_text="Time spent per epic.")
