# src/taskdeck/logging_setup.py

"""
Logging for the taskdeck console.

The console shares the terminal with the prompt, so stderr only gets what a
user should see; the file under the data directory gets everything.
Handlers installed here are tagged, so calling setup_logging() again (or
teardown_logging() on exit) touches only ours and leaves foreign handlers
such as pytest's capture in place.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping
from pathlib import Path

LOG_FILE_NAME = "taskdeck.log"

# Own modules that would drown the prompt at INFO: the timer logs every
# start/stop and the store logs every migration and delete.
QUIET_LOGGERS: Mapping[str, int] = {
    "taskdeck.tasks.timer": logging.WARNING,
    "taskdeck.tasks.task_store": logging.WARNING,
}

_HANDLER_TAG = "_taskdeck_handler"


def parse_level(name: str | int | None, default: int = logging.INFO) -> int:
    """'debug' / 'INFO' / 10 -> logging level; unknown names fall back to default."""
    if isinstance(name, int):
        return name
    level = logging.getLevelName(str(name or "").strip().upper())
    return level if isinstance(level, int) else default


class _ConsoleNoiseFilter(logging.Filter):
    """
    Console policy:
    - taskdeck.* passes, except the QUIET_LOGGERS below their floor
    - captured Python warnings and third-party loggers only at ERROR+
    """

    def __init__(self, quiet: Mapping[str, int] | None = None) -> None:
        super().__init__()
        self._quiet = dict(QUIET_LOGGERS if quiet is None else quiet)

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name == "taskdeck" or name.startswith("taskdeck."):
            floor = self._quiet.get(name)
            return floor is None or record.levelno >= floor
        return record.levelno >= logging.ERROR


def _own_handlers(root: logging.Logger) -> list[logging.Handler]:
    return [h for h in root.handlers if getattr(h, _HANDLER_TAG, False)]


def setup_logging(
    *,
    log_dir: str | Path = ".local/taskdeck",
    console_level: int | str = logging.INFO,
    file_level: int | str = logging.DEBUG,
    quiet: Mapping[str, int] | None = None,
) -> Path:
    """
    Install the console and file handlers on the root logger.

    Safe to call more than once: previously installed taskdeck handlers are
    replaced. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    teardown_logging()
    root.setLevel(logging.DEBUG)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(parse_level(console_level))
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter(quiet))

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(parse_level(file_level, logging.DEBUG))
    file_handler.setFormatter(fmt)

    for handler in (console, file_handler):
        setattr(handler, _HANDLER_TAG, True)
        root.addHandler(handler)

    logging.captureWarnings(True)
    return log_file


def teardown_logging() -> None:
    """Flush, close and detach the handlers installed by setup_logging()."""
    root = logging.getLogger()
    for handler in _own_handlers(root):
        root.removeHandler(handler)
        handler.close()
