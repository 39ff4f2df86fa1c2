# src/taskdeck/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..tasks.intents import SyncResult

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


def _describe_failure(result: SyncResult) -> str:
    what = type(result.intent).__name__
    task_id = getattr(result.intent, "task_id", None)
    target = f" #{task_id}" if task_id is not None else ""
    suffix = " Change reverted." if result.rolled_back else ""
    return f"[SYNC] {what}{target} failed: {result.message}{suffix}"


async def run_console_loop(state: AppState) -> None:
    """
    Read commands from stdin without blocking the event loop, so in-flight sync
    requests complete (and report failures) while the prompt is waiting.
    """
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Type /help for commands. Use /exit to quit.\n")

    def emit(text: str) -> None:
        _print_ts(text)

    def on_result(result: SyncResult) -> None:
        if not result.ok:
            emit(_describe_failure(result))

    state.controller.on_result(on_result)

    if state.session.is_authenticated and state.session.user is not None:
        reply = await command_registry.handle(state, "/board personal", emit=emit)
        _print_ts(f"Signed in as {state.session.user.username}.")
        if reply:
            print(reply)

    loop = asyncio.get_running_loop()

    while True:
        try:
            user_input = (await loop.run_in_executor(None, input, ">>> ")).strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        if not user_input.startswith("/"):
            _print_ts("Commands start with '/'. Use /help to list them.")
            continue

        try:
            reply = await command_registry.handle(state, user_input, emit=emit)
        except Exception:
            logger.exception("Command handler crashed.")
            reply = "Internal error while handling a command."

        if reply is not None:
            print(reply, flush=True)

    if state.controller.pending:
        _print_ts(f"Waiting for {state.controller.pending} pending request(s)...")
        await state.controller.drain()

    logger.info("Console connector finished.")
