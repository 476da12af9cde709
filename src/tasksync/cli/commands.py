# src/tasksync/cli/commands.py

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, TypeVar

from ..core.errors import SessionExpiredError
from ..core.ports import Identity
from ..tasks.task_models import Task

if TYPE_CHECKING:
    from ..connectors.console_connector import ConsoleView

CommandEmitter = Callable[[str], None]
CommandHandler = Callable[["ConsoleView", list[str], CommandEmitter | None], Awaitable[str]]

logger = logging.getLogger(__name__)

LOGIN_HINT = "Not signed in. Use /login <email> <password> or /signup <email> <password>."

T = TypeVar("T")


class CommandRegistry:
    """Simple slash-command registry used by the console view (/help, /add, ...)."""

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

    async def handle(
        self,
        view: ConsoleView,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """Dispatch "/name args" to its handler. Lines without a leading "/" get None."""
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

        return await handler(view, args, emit)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----

def _current_identity(view: ConsoleView) -> Identity | None:
    return view.state.auth.current


def _task_at(view: ConsoleView, args: list[str]) -> Task | str:
    """Resolve a 1-based position in the last rendered snapshot, or return an error text."""
    if not args:
        return "Which task? Give its number from the list."
    try:
        pos = int(args[0])
    except ValueError:
        return f"Not a task number: {args[0]}"
    if pos < 1 or pos > len(view.tasks):
        return f"No task #{pos} (the list has {len(view.tasks)})."
    return view.tasks[pos - 1]


async def _with_fresh_token(
    view: ConsoleView,
    identity: Identity,
    call: Callable[[Identity], Awaitable[T]],
) -> T:
    """
    Run a task-store call; if the store rejects the ID token, refresh the
    session once and re-issue the call with the new identity.
    """
    try:
        return await call(identity)
    except SessionExpiredError as e:
        logger.info("Store rejected the ID token (%s); refreshing session.", e)
    fresh = await view.refresh_session()
    return await call(fresh)


def render_draft(view: ConsoleView) -> str:
    draft = view.draft
    if draft.is_empty:
        return "Draft is empty. Use /name, /slot and /sub, then /add."
    lines = [
        "Draft:",
        f"  Name: {draft.name or '-'}",
        f"  Time slot: {draft.time_slot or '-'}",
    ]
    if draft.sub_tasks:
        lines.append("  Sub-tasks: " + ", ".join(s.name for s in draft.sub_tasks))
    return "\n".join(lines)


# ---- auth ----

async def cmd_help(view: ConsoleView, args: list[str], emit: CommandEmitter | None = None) -> str:
    return registry.build_help()


async def cmd_login(view: ConsoleView, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) < 2:
        return "Usage: /login <email> <password>"
    identity = await view.state.auth.sign_in(args[0], " ".join(args[1:]))
    return f"Signed in as {identity.email or identity.uid}."


async def cmd_signup(view: ConsoleView, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) < 2:
        return "Usage: /signup <email> <password>"
    identity = await view.state.auth.sign_up(args[0], " ".join(args[1:]))
    return f"Account created. Signed in as {identity.email or identity.uid}."


async def cmd_logout(view: ConsoleView, args: list[str], emit: CommandEmitter | None = None) -> str:
    if _current_identity(view) is None:
        return "Already signed out."
    await view.state.auth.sign_out()
    return "Signed out."


# ---- draft (task creation form) ----

async def cmd_name(view: ConsoleView, args: list[str], emit: CommandEmitter | None = None) -> str:
    view.draft.name = " ".join(args)
    return render_draft(view)


async def cmd_slot(view: ConsoleView, args: list[str], emit: CommandEmitter | None = None) -> str:
    view.draft.time_slot = " ".join(args)
    return render_draft(view)


async def cmd_sub(view: ConsoleView, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not view.draft.add_sub_task(" ".join(args)):
        return "Usage: /sub <sub-task name>"
    return render_draft(view)


async def cmd_draft(view: ConsoleView, args: list[str], emit: CommandEmitter | None = None) -> str:
    return render_draft(view)


async def cmd_add(view: ConsoleView, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /add                      -> create the task from the draft
    /add <name> @ <time slot> -> fill name + time slot, then create
    """
    identity = _current_identity(view)
    if identity is None:
        return LOGIN_HINT

    if args:
        name, sep, slot = " ".join(args).partition("@")
        if not sep:
            return "Usage: /add  or  /add <name> @ <time slot>"
        view.draft.name = name.strip()
        view.draft.time_slot = slot.strip()

    try:
        task = view.draft.build()
    except ValueError as e:
        return f"Cannot add task: {e}."

    created = await _with_fresh_token(
        view, identity, lambda ident: view.state.task_store.add(ident, task)
    )
    view.draft.clear()
    logger.debug("Task created from draft id=%s", created.id)
    return f"Task added: {created.time_slot}: {created.name}"


# ---- list actions ----

async def cmd_list(view: ConsoleView, args: list[str], emit: CommandEmitter | None = None) -> str:
    if _current_identity(view) is None:
        return LOGIN_HINT
    return view.render_tasks()


async def _set_completed(view: ConsoleView, args: list[str], completed: bool) -> str:
    identity = _current_identity(view)
    if identity is None:
        return LOGIN_HINT
    task = _task_at(view, args)
    if isinstance(task, str):
        return task
    await _with_fresh_token(
        view, identity, lambda ident: view.state.task_store.set_completed(ident, task, completed)
    )
    return f"{'Completed' if completed else 'Reopened'}: {task.name}"


async def cmd_done(view: ConsoleView, args: list[str], emit: CommandEmitter | None = None) -> str:
    return await _set_completed(view, args, True)


async def cmd_undo(view: ConsoleView, args: list[str], emit: CommandEmitter | None = None) -> str:
    return await _set_completed(view, args, False)


async def cmd_rm(view: ConsoleView, args: list[str], emit: CommandEmitter | None = None) -> str:
    identity = _current_identity(view)
    if identity is None:
        return LOGIN_HINT
    task = _task_at(view, args)
    if isinstance(task, str):
        return task
    await _with_fresh_token(
        view, identity, lambda ident: view.state.task_store.delete(ident, task.id)
    )
    return f"Deleted: {task.name}"


async def cmd_status(view: ConsoleView, args: list[str], emit: CommandEmitter | None = None) -> str:
    identity = _current_identity(view)
    user = (identity.email or identity.uid) if identity else "(not signed in)"
    return (
        "Status:\n"
        f"  Backend: {view.state.backend_name}\n"
        f"  User: {user}\n"
        f"  Tasks: {len(view.tasks)}\n"
        f"  Draft sub-tasks: {len(view.draft.sub_tasks)}"
    )


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("login", cmd_login, help_text="Sign in: /login <email> <password>.")
registry.register("signup", cmd_signup, help_text="Create an account: /signup <email> <password>.")
registry.register("logout", cmd_logout, help_text="Sign out.")
registry.register("name", cmd_name, help_text="Set the draft task name: /name <text>.")
registry.register("slot", cmd_slot, help_text="Set the draft time slot: /slot Monday 9am-10am.")
registry.register("sub", cmd_sub, help_text="Add a sub-task to the draft: /sub <text>.")
registry.register("draft", cmd_draft, help_text="Show the pending draft.")
registry.register("add", cmd_add, help_text="Create the drafted task, or /add <name> @ <time slot>.")
registry.register("list", cmd_list, help_text="Show the task list.", aliases=["ls"])
registry.register("done", cmd_done, help_text="Mark task n completed: /done <n>.")
registry.register("undo", cmd_undo, help_text="Mark task n not completed: /undo <n>.")
registry.register("rm", cmd_rm, help_text="Delete task n: /rm <n>.", aliases=["del"])
registry.register("status", cmd_status, help_text="Show backend, user and counts.")
