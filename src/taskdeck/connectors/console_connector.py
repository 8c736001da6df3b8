# src/taskdeck/connectors/console_connector.py

from __future__ import annotations

import logging
from collections.abc import Callable

from ..cli.commands import cmd_list
from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..tasks.task_store import StateChange

logger = logging.getLogger(__name__)

PROMPT = "taskdeck> "

ReadLine = Callable[[str], str]
Write = Callable[[str], None]


def run_console_loop(state: AppState, *, read_line: ReadLine = input, write: Write = print) -> None:
    """
    Read commands until /exit, EOF or Ctrl+C.

    After any command that changed the store, the task list is re-rendered.
    The render happens after the command returns, never from inside the
    change notification.
    """
    logger.info("Console connector started.")
    write("Type /help for commands, /exit to quit.")

    changed: list[StateChange] = []
    unsubscribe = state.store.subscribe(changed.append)

    try:
        write(cmd_list(state, []))
        while True:
            try:
                line = read_line(PROMPT).strip()
            except EOFError:
                logger.info("Console EOF received, exiting.")
                break
            except KeyboardInterrupt:
                logger.info("Console KeyboardInterrupt, exiting.")
                write("")
                break

            if not line:
                continue

            if line.lower() in ("/exit", "/quit"):
                logger.info("Console exit command received.")
                break

            # Bare text is shorthand for /add.
            if not line.startswith("/"):
                line = "/add " + line

            changed.clear()
            try:
                reply = command_registry.handle(state, line)
            except Exception:
                logger.exception("Command handler crashed: %s", line)
                reply = "Internal error while handling a command."

            if reply:
                write(reply)
            if changed:
                write(cmd_list(state, []))
    finally:
        unsubscribe()
        logger.info("Console connector finished.")
