# src/vehix/logging_setup.py

"""
Logging for the vehix console.

Two sinks: stderr, which shares the terminal with the command prompt, and
vehix.log in the data directory, which gets everything from DEBUG up.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "vehix.log"

# Loggers that fire on every save or refresh tick; on the terminal they only
# show WARNING and above.
_CHATTY_LOGGERS = (
    "vehix.tasks.task_store",
    "vehix.locations.refresh",
)


class _TerminalFilter(logging.Filter):
    """Keeps the prompt readable: vehix INFO, chatty vehix modules at WARNING, the rest at ERROR."""

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if not name.startswith("vehix."):
            # Other libraries and captured py.warnings.
            return record.levelno >= logging.ERROR
        if name.startswith(_CHATTY_LOGGERS):
            return record.levelno >= logging.WARNING
        return True


def setup_logging(
    *,
    log_dir: str | Path = ".local/vehix",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Install the terminal and file handlers on the root logger and return the log file path.

    Handlers left by an earlier call are replaced, so main() can be re-entered in tests.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for old in list(root.handlers):
        root.removeHandler(old)

    formatter = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    terminal = logging.StreamHandler(sys.stderr)
    terminal.setLevel(console_level)
    terminal.setFormatter(formatter)
    terminal.addFilter(_TerminalFilter())
    root.addHandler(terminal)

    logfile = logging.FileHandler(log_path, encoding="utf-8")
    logfile.setLevel(file_level)
    logfile.setFormatter(formatter)
    root.addHandler(logfile)

    logging.captureWarnings(True)
    return log_path
