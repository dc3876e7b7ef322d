# src/taskdeck/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, runs the console loop, and on the way
out commits a running timer session.
"""

from __future__ import annotations

import logging
import sys

from ..config import get_settings
from ..logging_setup import setup_logging, teardown_logging
from ..notifications.reminders import Reminder
from ..tasks.task_store import StorageError
from .bootstrap import create_initial_state, shutdown_state
from .console import run_console_loop

logger = logging.getLogger(__name__)


def _print_reminder(reminder: Reminder) -> None:
    # Fires on a timer thread while input() waits; a plain print is enough.
    print(f"\n[{reminder.title}] {reminder.body}", flush=True)


def main() -> None:
    settings = get_settings()

    log_file = setup_logging(log_dir=settings.data_dir, console_level=settings.log_level)
    logger.info("Starting %s (log file %s)...", settings.app_name, log_file)

    try:
        state = create_initial_state(settings=settings, deliver=_print_reminder)
    except StorageError:
        logger.exception("Cannot open task database at %s", settings.tasks_db_path)
        teardown_logging()
        sys.exit(1)

    try:
        run_console_loop(state)
    finally:
        shutdown_state(state)
        logger.info("Bye.")
        teardown_logging()


if __name__ == "__main__":
    main()
