"""
Logging setup for replybot.

Console output goes to stderr; the activity log is a plain append-only file
with one ``[ISO-timestamp] message`` line per event.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "[Auto Reply] {message}"
)
ACTIVITY_FORMAT = "[{time:YYYY-MM-DDTHH:mm:ss.SSS!UTC}Z] {message}"


def start_activity_log(path: Path) -> None:
    """Truncate the activity log and write the startup header."""
    path.parent.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    path.write_text(f"--- Bot Startup Log: {stamp} ---\n", encoding="utf-8")


def setup_logging(log_file: Path | None = None, verbose: bool = False) -> int | None:
    """
    Configure loguru sinks.

    Args:
        log_file: Activity log path; no file sink when None.
        verbose: Show DEBUG records on the console.

    Returns:
        Handler id of the activity sink, if one was added.
    """
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO", format=CONSOLE_FORMAT)

    if log_file is None:
        return None

    try:
        start_activity_log(log_file)
    except OSError as e:
        logger.critical(f"Failed to clear/create log file: {e}")
        return None

    return logger.add(
        str(log_file),
        level="INFO",
        format=ACTIVITY_FORMAT,
        filter="replybot",
        encoding="utf-8",
        enqueue=False,
    )
