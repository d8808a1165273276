# src/vehix/cli/commands.py

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
import shlex
from collections.abc import Callable
from datetime import UTC, datetime
from typing import cast

from ..core.state import AppContext
from ..tasks import task_api
from ..tasks.task_assignment import eligible_assignees
from ..tasks.task_models import (
    PREDEFINED_SUBTASKS,
    Task,
    TaskFilter,
    TaskFrequency,
    TaskPriority,
    TaskStatus,
)

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppContext, list[str]], str]
CommandHandler3 = Callable[[AppContext, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

SHORT_ID_LEN = 8


class CommandError(Exception):
    """User-facing command failure; the message is shown as the reply."""


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /tasks, ...)."""

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

    def handle(
        self,
        ctx: AppContext,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        Arguments are split shell-style, so quoted titles keep their spaces.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError:
            parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(ctx, args, emit)

            h2 = cast(CommandHandler2, handler)
            return h2(ctx, args)
        except CommandError as e:
            return str(e)
        except task_api.TaskNotFoundError as e:
            return f"No task with id {e.args[0]}."
        except task_api.SubtaskNotFoundError as e:
            return f"No subtask {e.args[0]}."
        except task_api.UserNotFoundError as e:
            return f"No user with id {e.args[0]}."
        except ValueError as e:
            return f"Invalid input: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- parsing / formatting helpers ----


def parse_date(raw: str) -> datetime:
    """YYYY-MM-DD or full ISO datetime; naive values are taken as UTC."""
    try:
        value = datetime.fromisoformat(raw)
    except ValueError as e:
        raise CommandError(f"Bad date {raw!r}; use YYYY-MM-DD.") from e
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value


def _parse_enum(enum_cls, raw: str, what: str):
    key = raw.strip().lower().replace("-", "_").replace(" ", "_")
    try:
        return enum_cls(key)
    except ValueError as e:
        choices = ", ".join(m.value for m in enum_cls)
        raise CommandError(f"Unknown {what} {raw!r}. Choose one of: {choices}.") from e


def _parse_day(opts: dict[str, str], key: str, high: int) -> int | None:
    if key not in opts:
        return None
    try:
        value = int(opts[key])
    except ValueError:
        value = 0
    if not 1 <= value <= high:
        raise CommandError(f"{key} must be a number from 1 to {high}.")
    return value


def resolve_task(ctx: AppContext, ref: str) -> Task:
    """Accept a full task id or a unique id prefix."""
    task = ctx.task_store.get_task(ref)
    if task is not None:
        return task
    matches = ctx.task_store.find_tasks_by_id_prefix(ref, limit=2)
    if not matches:
        raise task_api.TaskNotFoundError(ref)
    if len(matches) > 1:
        raise CommandError(f"Task id {ref!r} is ambiguous (more than one match).")
    return matches[0]


def _subtask_id(task: Task, ref: str) -> str:
    """Subtasks are addressed by their 1-based position in the checklist."""
    try:
        idx = int(ref)
    except ValueError as e:
        raise CommandError(f"Subtask number expected, got {ref!r}.") from e
    if idx < 1 or idx > len(task.subtasks):
        raise task_api.SubtaskNotFoundError(ref)
    return task.subtasks[idx - 1].id


def format_task_line(task: Task, now: datetime | None = None) -> str:
    done, total = task.subtask_progress
    parts = [
        task.id[:SHORT_ID_LEN],
        f"[{task.status.value}]",
        task.priority.value,
        f"due {task.due_date.date().isoformat()}",
        task.title,
    ]
    if total:
        parts.append(f"({done}/{total})")
    if task.is_recurring:
        parts.append(f"every {task.frequency.value}")
    if task.is_overdue(now):
        parts.append("OVERDUE")
    return " ".join(parts)


def format_task_detail(ctx: AppContext, task: Task) -> str:
    lines = [
        f"Task {task.id}",
        f"  Title: {task.title}",
        f"  Status: {task.status.value}",
        f"  Priority: {task.priority.value}",
        f"  Due: {task.due_date.isoformat()}",
    ]
    if task.description:
        lines.append(f"  Description: {task.description}")
    if task.task_type:
        lines.append(f"  Type: {task.task_type}")
    if task.vehicle_id:
        lines.append(f"  Vehicle: {task.vehicle_id}")
    lines.append(f"  Assigned to: {task.assigned_to_name or 'Not assigned'}")
    if task.assigned_by_name:
        lines.append(f"  Created by: {task.assigned_by_name}")
    if task.is_recurring:
        until = f" until {task.end_date.date().isoformat()}" if task.end_date else ""
        lines.append(f"  Repeats: {task.frequency.value}{until}")
        if task.recurring_day_of_week:
            lines.append(f"  Day of week: {task.recurring_day_of_week}")
        if task.recurring_day_of_month:
            lines.append(f"  Day of month: {task.recurring_day_of_month}")
    if task.completed_at:
        lines.append(f"  Completed: {task.completed_at.isoformat()}")
    if task.subtasks:
        done, total = task.subtask_progress
        lines.append(f"  Subtasks ({done}/{total}):")
        for i, s in enumerate(task.subtasks, start=1):
            mark = "x" if s.is_completed else " "
            lines.append(f"    {i}. [{mark}] {s.title}")
    if ctx.current_user is not None and not task_api.can_edit(ctx, task):
        lines.append("  (read-only for you)")
    return "\n".join(lines)


def _require_edit(ctx: AppContext, task: Task) -> None:
    # Without a signed-in user the console runs in single-user mode.
    if ctx.current_user is None or task_api.can_edit(ctx, task):
        return
    raise CommandError("You are not allowed to edit this task.")


def _require_work(ctx: AppContext, task: Task) -> None:
    if ctx.current_user is None or task_api.can_edit(ctx, task):
        return
    if task_api.is_assigned_to_current_user(ctx, task):
        return
    raise CommandError("Only the assignee or an editor can update this task.")


# ---- commands ----


def cmd_help(ctx: AppContext, args: list[str]) -> str:
    return registry.build_help()


def cmd_whoami(ctx: AppContext, args: list[str]) -> str:
    user = ctx.current_user
    if user is None:
        return "Not signed in (single-user mode)."
    return f"{user.display_name} <{user.email}> role={user.role.value} id={user.id}"


def cmd_login(ctx: AppContext, args: list[str]) -> str:
    """
    /login <user_id>  -> act as that user
    /login            -> sign out
    """
    if not args:
        ctx.switch_user(None)
        return "Signed out."
    user = ctx.users.get(args[0])
    if user is None:
        raise task_api.UserNotFoundError(args[0])
    ctx.current_user = user
    logger.info("Current user switched to %s", user.id)
    return f"Signed in as {user.display_name} ({user.role.value})."


def cmd_users(ctx: AppContext, args: list[str]) -> str:
    """
    /users        -> everyone in the directory
    /users techs  -> only users that can be assigned tasks
    """
    users = list(ctx.users)
    if args and args[0].lower() in ("tech", "techs", "technicians"):
        users = eligible_assignees(users)
    if not users:
        return "No users."
    return "\n".join(f"  {u.id}: {u.display_name} ({u.role.value})" for u in users)


def cmd_tasks(ctx: AppContext, args: list[str]) -> str:
    """
    /tasks [all|pending|in_progress|completed|overdue] [search words]
    """
    status_filter = TaskFilter.ALL
    if args:
        with contextlib.suppress(ValueError):
            status_filter = TaskFilter(args[0].lower())
            args = args[1:]
    search = " ".join(args)

    tasks = task_api.list_tasks(ctx, status_filter, search=search)
    if not tasks:
        if search:
            return f"No {status_filter.value} tasks match {search!r}."
        return f"No {status_filter.value} tasks."
    return "\n".join(format_task_line(t) for t in tasks)


def cmd_types(ctx: AppContext, args: list[str]) -> str:
    lines = ["Predefined task types:"]
    for name, items in PREDEFINED_SUBTASKS.items():
        lines.append(f"  {name} ({len(items)} subtasks)")
    return "\n".join(lines)


def cmd_show(ctx: AppContext, args: list[str]) -> str:
    if not args:
        return "Usage: /show <task>"
    return format_task_detail(ctx, resolve_task(ctx, args[0]))


def cmd_new(ctx: AppContext, args: list[str]) -> str:
    """
    /new "<title>" due=YYYY-MM-DD [priority=..] [type=".."] [every=weekly]
         [weekday=1-7] [monthday=1-31] [until=YYYY-MM-DD] [vehicle=..] [assign=<user_id>]
         [desc=".."] [sub=".."]...
    """
    if not args:
        return (
            'Usage: /new "<title>" due=YYYY-MM-DD [priority=low|normal|high|urgent] '
            '[type="Oil Change"] [every=daily|weekly|bi_weekly|monthly|quarterly] '
            "[weekday=1-7] [monthday=1-31] "
            '[until=YYYY-MM-DD] [vehicle=<id>] [assign=<user_id>] [desc=".."] [sub=".."]...'
        )

    title_parts: list[str] = []
    opts: dict[str, str] = {}
    subtasks: list[str] = []
    for arg in args:
        key, sep, value = arg.partition("=")
        if not sep:
            title_parts.append(arg)
        elif key == "sub":
            subtasks.append(value)
        else:
            opts[key.lower()] = value

    if "due" not in opts:
        raise CommandError("due=YYYY-MM-DD is required.")

    frequency = TaskFrequency.ONE_TIME
    if "every" in opts:
        frequency = _parse_enum(TaskFrequency, opts["every"], "frequency")

    task = task_api.create_task(
        ctx,
        title=" ".join(title_parts),
        due_date=parse_date(opts["due"]),
        description=opts.get("desc", ""),
        priority=_parse_enum(TaskPriority, opts.get("priority", "normal"), "priority"),
        task_type=opts.get("type") or None,
        is_recurring=frequency != TaskFrequency.ONE_TIME,
        frequency=frequency,
        end_date=parse_date(opts["until"]) if "until" in opts else None,
        recurring_day_of_week=_parse_day(opts, "weekday", 7),
        recurring_day_of_month=_parse_day(opts, "monthday", 31),
        vehicle_id=opts.get("vehicle") or None,
        assignee_id=opts.get("assign") or None,
        subtasks=subtasks or None,
    )
    return f"Created {format_task_line(task)}"


def cmd_status(ctx: AppContext, args: list[str]) -> str:
    """
    /status <task> <pending|in_progress|completed|delayed|cancelled>
    """
    if len(args) < 2:
        return "Usage: /status <task> <pending|in_progress|completed|delayed|cancelled>"
    task = resolve_task(ctx, args[0])
    _require_work(ctx, task)
    new_status = _parse_enum(TaskStatus, " ".join(args[1:]), "status")
    task = task_api.update_status(ctx, task.id, new_status)
    reply = f"Updated {format_task_line(task)}"
    if new_status == TaskStatus.COMPLETED and task.is_recurring:
        reply += f"\nRecurring task: use /next {task.id[:SHORT_ID_LEN]} to schedule the next one."
    return reply


def cmd_done(ctx: AppContext, args: list[str]) -> str:
    if not args:
        return "Usage: /done <task>"
    return cmd_status(ctx, [args[0], TaskStatus.COMPLETED.value])


def cmd_reschedule(ctx: AppContext, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /reschedule <task> <YYYY-MM-DD>"
    task = resolve_task(ctx, args[0])
    _require_edit(ctx, task)
    task = task_api.reschedule_task(ctx, task.id, parse_date(args[1]))
    return f"Rescheduled {format_task_line(task)}"


def cmd_assign(ctx: AppContext, args: list[str]) -> str:
    """
    /assign <task> <user_id>  -> assign
    /assign <task> none       -> unassign
    """
    if len(args) < 2:
        return "Usage: /assign <task> <user_id|none>"
    task = resolve_task(ctx, args[0])
    _require_edit(ctx, task)
    user_id = None if args[1].lower() in ("none", "-") else args[1]
    task = task_api.assign_task(ctx, task.id, user_id)
    return f"{task.title}: assigned to {task.assigned_to_name or 'nobody'}."


def cmd_sub(ctx: AppContext, args: list[str]) -> str:
    """
    /sub <task> add <title>   -> add checklist item
    /sub <task> toggle <n>    -> flip item n
    /sub <task> rm <n>        -> remove item n
    """
    if len(args) < 3:
        return "Usage: /sub <task> add <title> | /sub <task> toggle <n> | /sub <task> rm <n>"

    task = resolve_task(ctx, args[0])
    action = args[1].lower()

    if action == "add":
        _require_edit(ctx, task)
        subtask = task_api.add_subtask(ctx, task.id, " ".join(args[2:]))
        return f"Added subtask: {subtask.title}"

    if action == "toggle":
        _require_work(ctx, task)
        task, subtask = task_api.toggle_subtask(ctx, task.id, _subtask_id(task, args[2]))
        mark = "done" if subtask.is_completed else "not done"
        reply = f"{subtask.title}: {mark}"
        if task.all_subtasks_completed and task.status != TaskStatus.COMPLETED:
            reply += f"\nAll subtasks done. Use /done {task.id[:SHORT_ID_LEN]} to complete the task."
        return reply

    if action in ("rm", "remove", "del"):
        _require_edit(ctx, task)
        task_api.delete_subtask(ctx, task.id, _subtask_id(task, args[2]))
        return "Subtask removed."

    return f"Unknown /sub action {action!r}."


def cmd_next(ctx: AppContext, args: list[str]) -> str:
    if not args:
        return "Usage: /next <task>"
    task = resolve_task(ctx, args[0])
    _require_edit(ctx, task)
    if not task.is_recurring:
        return "Task is not recurring."
    if task.status != TaskStatus.COMPLETED:
        return "Complete the task first."
    successor = task_api.create_next_recurring_task(ctx, task.id)
    if successor is None:
        return "No further occurrences (recurrence has ended)."
    return f"Next occurrence: {format_task_line(successor)}"


def cmd_delete(ctx: AppContext, args: list[str]) -> str:
    if not args:
        return "Usage: /delete <task>"
    task = resolve_task(ctx, args[0])
    _require_edit(ctx, task)
    if not task_api.delete_task(ctx, task.id):
        return "Task could not be deleted."
    return f"Deleted {task.title}."


def cmd_locate(ctx: AppContext, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /locate [vehicle_id ...]  -> refresh vehicle locations
    Without ids, locates every vehicle that has an open task.
    """
    refresher = ctx.locations
    if refresher is None:
        return "Location service is not available."
    if refresher.is_refreshing:
        return "A location refresh is already running."

    vehicle_ids = list(args)
    if not vehicle_ids:
        seen: dict[str, None] = {}
        for t in task_api.list_tasks(ctx):
            if t.vehicle_id and t.status not in (TaskStatus.COMPLETED, TaskStatus.CANCELLED):
                seen[t.vehicle_id] = None
        vehicle_ids = list(seen)
    if not vehicle_ids:
        return "No vehicles to locate."

    if emit:
        with contextlib.suppress(Exception):
            emit(f"[LOCATE] Refreshing {len(vehicle_ids)} vehicle(s)...")

    found = asyncio.run(refresher.refresh(vehicle_ids))
    if found is None:
        return "A location refresh is already running."

    lines = []
    for vid in vehicle_ids:
        loc = found.get(vid)
        if loc is None:
            lines.append(f"  {vid}: no fix")
        else:
            lines.append(f"  {vid}: {loc.latitude:.5f}, {loc.longitude:.5f}")
    return "Vehicle locations:\n" + "\n".join(lines)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("whoami", cmd_whoami, help_text="Show the signed-in user.")
registry.register("login", cmd_login, help_text="Act as a user: /login <user_id> (no id signs out).")
registry.register("users", cmd_users, help_text="List users: /users | /users techs.")
registry.register(
    "tasks",
    cmd_tasks,
    help_text="List tasks: /tasks [all|pending|in_progress|completed|overdue] [search].",
    aliases=["ls"],
)
registry.register("types", cmd_types, help_text="List predefined maintenance task types.")
registry.register("show", cmd_show, help_text="Show task details: /show <task>.")
registry.register("new", cmd_new, help_text='Create a task: /new "<title>" due=YYYY-MM-DD ...')
registry.register("status", cmd_status, help_text="Change status: /status <task> <status>.")
registry.register("done", cmd_done, help_text="Mark a task completed: /done <task>.")
registry.register(
    "reschedule", cmd_reschedule, help_text="Move the due date: /reschedule <task> <YYYY-MM-DD>."
)
registry.register("assign", cmd_assign, help_text="Assign a task: /assign <task> <user_id|none>.")
registry.register("sub", cmd_sub, help_text="Edit checklist: /sub <task> add|toggle|rm ...")
registry.register("next", cmd_next, help_text="Create the next occurrence of a recurring task.")
registry.register("delete", cmd_delete, help_text="Delete a task and its subtasks.", aliases=["rm"])
registry.register("locate", cmd_locate, help_text="Refresh vehicle locations: /locate [vehicle_id ...].")
