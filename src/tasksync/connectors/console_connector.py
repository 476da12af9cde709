# src/tasksync/connectors/console_connector.py

"""
Console view.

Plays the role of the app screens:
- follows the auth identity stream to switch between "login" and "task list",
- while signed in, follows the task live query and prints every snapshot,
- turns slash-commands into auth / CRUD calls (see cli/commands.py),
- refreshes the ID token shortly before it expires and restarts the live
  query with the new one.

Errors from those calls are shown to the user; they are never swallowed.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from datetime import datetime

from ..cli.commands import LOGIN_HINT, registry as command_registry
from ..core.errors import TaskSyncError, friendly_error_message
from ..core.ports import Identity
from ..core.state import AppState
from ..core.subscription import Subscription
from ..tasks.task_draft import TaskDraft
from ..tasks.task_models import Task

logger = logging.getLogger(__name__)

EXIT_COMMANDS = ("/exit", "/quit")

# Refresh this long before the provider-reported expiry.
REFRESH_MARGIN_SECONDS = 300.0
MIN_REFRESH_DELAY_SECONDS = 1.0


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


def render_task(pos: int, task: Task) -> str:
    mark = "x" if task.is_completed else " "
    lines = [f"{pos}. [{mark}] {task.time_slot}: {task.name}"]
    for sub in task.sub_tasks:
        lines.append(f"       - {sub.name}")
    return "\n".join(lines)


def render_task_list(tasks: list[Task]) -> str:
    if not tasks:
        return "No tasks added."
    return "\n".join(render_task(i, t) for i, t in enumerate(tasks, start=1))


class ConsoleView:
    def __init__(
        self,
        state: AppState,
        *,
        emit: Callable[[str], None] = _print_ts,
        refresh_margin_seconds: float = REFRESH_MARGIN_SECONDS,
    ) -> None:
        self.state = state
        self.emit = emit
        self.refresh_margin_seconds = refresh_margin_seconds
        self.draft = TaskDraft()
        # Last snapshot from the live query; /done, /rm etc. address tasks by position in it.
        self.tasks: list[Task] = []

        self._identity_sub: Subscription[Identity | None] | None = None
        self._identity_runner: asyncio.Task[None] | None = None
        self._tasks_sub: Subscription[list[Task]] | None = None
        self._tasks_runner: asyncio.Task[None] | None = None
        self._token_keeper: asyncio.Task[None] | None = None

    def render_tasks(self) -> str:
        return render_task_list(self.tasks)

    # ---- lifecycle ----

    async def start(self) -> None:
        self._identity_sub = self.state.auth.current_identity()
        self._identity_runner = asyncio.create_task(self._follow_identity(self._identity_sub))

    async def stop(self) -> None:
        await self._stop_token_keeper()
        await self._stop_task_list()
        if self._identity_sub is not None:
            self._identity_sub.close()
            self._identity_sub = None
        if self._identity_runner is not None:
            await self._identity_runner
            self._identity_runner = None

    async def _follow_identity(self, sub: Subscription[Identity | None]) -> None:
        async for identity in sub:
            await self._stop_token_keeper()
            await self._stop_task_list()
            if identity is None:
                self.draft.clear()
                self.emit(f"[AUTH] {LOGIN_HINT}")
                continue
            self.emit(f"[AUTH] Signed in as {identity.email or identity.uid}.")
            try:
                self._start_task_list(identity)
            except TaskSyncError as e:
                logger.warning("Could not start task list: %s", e)
                self.emit(f"[TASKS] {friendly_error_message(e)}")
            self._token_keeper = asyncio.create_task(self._keep_token_fresh())

    def _start_task_list(self, identity: Identity) -> None:
        sub = self.state.task_store.list(identity)
        self._tasks_sub = sub
        self._tasks_runner = asyncio.create_task(self._follow_tasks(sub))

    async def _follow_tasks(self, sub: Subscription[list[Task]]) -> None:
        try:
            async for tasks in sub:
                self.tasks = tasks
                self.emit(f"[TASKS]\n{render_task_list(tasks)}")
        except TaskSyncError as e:
            logger.warning("Task list stream ended with error: %s", e)
            self.emit(f"[TASKS] An error occurred. {friendly_error_message(e)}")

    async def _stop_task_list(self, *, keep_tasks: bool = False) -> None:
        sub, self._tasks_sub = self._tasks_sub, None
        runner, self._tasks_runner = self._tasks_runner, None
        if sub is not None:
            sub.close()
        if runner is not None:
            await runner
        if not keep_tasks:
            self.tasks = []

    # ---- token refresh ----

    async def refresh_session(self) -> Identity:
        """
        Exchange the refresh token for a new ID token.

        The running live query was opened with the old token, so it is
        restarted with the new identity. The last snapshot stays in
        `self.tasks` until the new query delivers.
        """
        identity = await self.state.auth.refresh()
        logger.info("Session refreshed uid=%s", identity.uid)
        if self._tasks_sub is None or self.state.auth.current != identity:
            return identity

        await self._stop_task_list(keep_tasks=True)
        try:
            self._start_task_list(identity)
        except TaskSyncError as e:
            logger.warning("Could not restart task list: %s", e)
            self.emit(f"[TASKS] {friendly_error_message(e)}")
        return identity

    async def _keep_token_fresh(self) -> None:
        while True:
            identity = self.state.auth.current
            if identity is None or identity.expires_at is None:
                return
            delay = identity.expires_at - time.time() - self.refresh_margin_seconds
            await asyncio.sleep(max(delay, MIN_REFRESH_DELAY_SECONDS))
            try:
                await self.refresh_session()
            except TaskSyncError as e:
                logger.warning("Token refresh failed: %s", e)
                self.emit(f"[AUTH] Could not refresh the session. {friendly_error_message(e)}")
                return

    async def _stop_token_keeper(self) -> None:
        keeper, self._token_keeper = self._token_keeper, None
        if keeper is None:
            return
        keeper.cancel()
        try:
            await keeper
        except asyncio.CancelledError:
            pass

    # ---- input ----

    async def handle_line(self, line: str) -> str | None:
        """Run one line of input. Returns the reply to show, or None for blank input."""
        line = line.strip()
        if not line:
            return None
        if not line.startswith("/"):
            return "Commands start with '/'. Use /help to list them."

        try:
            return await command_registry.handle(self, line, emit=self.emit)
        except TaskSyncError as e:
            logger.info("Command failed (%s): %s", e.__class__.__name__, e)
            return friendly_error_message(e)
        except Exception:
            logger.exception("Command handler crashed.")
            return "Internal error while handling a command."


async def run_console_loop(state: AppState) -> None:
    logger.info("Console view started (backend=%s).", state.backend_name)
    _print_ts("[CONSOLE] Task manager. Use /help for commands. Use /exit to quit.")

    view = ConsoleView(state)
    await view.start()
    try:
        while True:
            try:
                line = await asyncio.to_thread(input, ">>> ")
            except EOFError:
                logger.info("Console EOF received, exiting.")
                break

            if line.strip().lower() in EXIT_COMMANDS:
                logger.info("Console exit command received.")
                break

            reply = await view.handle_line(line)
            if reply is not None:
                _print_ts(reply)
    finally:
        try:
            await view.stop()
        except Exception:
            logger.debug("Console view stop failed.", exc_info=True)
        logger.info("Console view finished.")
