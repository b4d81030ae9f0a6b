# src/vault_tasks/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

APP_LOGGER = "vault_tasks"

# Background loops that poll or rescan on their own; chatty at INFO.
BACKGROUND_LOGGERS: tuple[str, ...] = (
    "vault_tasks.documents.watcher",
    "vault_tasks.documents.store",
)


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the console readable while the prompt is open:
    - vault_tasks logs pass (scan progress is DEBUG and stays in the file)
    - background vault polling only at WARNING+
    - everything else (asyncio, py.warnings, ...) only at ERROR+
    """

    def __init__(self, quiet: tuple[str, ...] = BACKGROUND_LOGGERS) -> None:
        super().__init__()
        self._quiet = quiet

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name != APP_LOGGER and not name.startswith(APP_LOGGER + "."):
            return record.levelno >= logging.ERROR
        if name.startswith(self._quiet):
            return record.levelno >= logging.WARNING
        return True


def parse_level(level: str | int, default: int = logging.INFO) -> int:
    """Accept 10 / "DEBUG" / "debug"; anything unknown falls back to `default`."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).strip().upper())
    return value if isinstance(value, int) else default


def setup_logging(
    *,
    log_dir: str | Path = ".local/vault-tasks",
    console_level: str | int = logging.INFO,
    file_level: str | int = logging.DEBUG,
) -> Path:
    """
    Console handler (filtered) on stderr plus a full log file under `log_dir`.

    Call once from the entry point before anything logs. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "vault-tasks.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(parse_level(console_level))
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(parse_level(file_level, logging.DEBUG))
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    # warnings.warn(...) arrives as 'py.warnings'
    logging.captureWarnings(True)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    return log_file
