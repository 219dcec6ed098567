"""Logging with loguru.

Every part of slagboom logs through ``sublogger("<part>")``, which shows up
as ``slagboom.<part>`` in the log type column. Nothing is configured on
import, so an application that embeds the gate keeps its own loguru setup.
"""

import logging
import sys
from enum import StrEnum
from pathlib import Path

from loguru import logger

# loguru levels, usable as typer option choices
LogLevels = StrEnum("LogLevels", list(logger._core.levels.keys()))


def sublogger(part: str):
    """Logger for one part of slagboom (gate, skip, accounts, ...)."""
    return logger.bind(logtype=f"{__package__}.{part}")


class InterceptHandler(logging.Handler):
    """Send stdlib logging records (uvicorn, starlette) to loguru."""

    def emit(self, record):
        """Emit message."""
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        frame, depth = logging.currentframe(), 2
        while frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1
        logger.opt(depth=depth, exception=record.exc_info).bind(
            logtype=record.name
        ).log(level, record.getMessage())


def log_format(*, console: bool, debug: bool) -> str:
    """Log line format: colours on the console, source location when debugging."""
    time = "{time:YYYY-MM-DD HH:mm:ss}"
    level = "{level: <8}"
    if console:
        time = f"<light-black>{time}</light-black>"
        level = f"<level>{level}</level>"
    parts = [time, level, "{extra[logtype]: <18}"]
    if debug:
        where = "{name}:{function}:{line}"
        if console:
            where = "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan>"
        parts.append(where + " - {message}")
    else:
        parts.append("{message}")
    return " | ".join(parts)


def prune_logs(log_dir: Path, retention: int) -> int:
    """Remove all but the newest `retention` log files, return the number removed."""
    logs = sorted(
        log_dir.glob(f"{__package__}-*.log"), key=lambda p: (-p.stat().st_mtime, p)
    )
    for log in logs[retention:]:
        log.unlink(missing_ok=True)
    return max(len(logs) - retention, 0)


def init_logger(
    loglevel: LogLevels,
    log_dir: Path | None = None,
    rotation: str = "00:00",
    retention: int = 5,
) -> bool:
    """Initialize the logger for the slagboom server, return the debug flag."""
    logging.basicConfig(handlers=[InterceptHandler()], level=0)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).handlers = []
        logging.getLogger(name).propagate = True

    debug = logger.level(loglevel.name).no <= logger.level("DEBUG").no

    logger.configure(handlers=[], extra={"logtype": __package__})

    if debug or log_dir is None:
        logger.add(
            sys.stderr,
            format=log_format(console=True, debug=debug),
            level=loglevel.name,
        )

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_dir / (__package__ + "-{time:YYYY-MM-DD}.log"),
            format=log_format(console=False, debug=debug),
            level=loglevel.name,
            enqueue=True,
            encoding="utf-8",
            rotation=rotation,
            retention=retention,
        )
        # loguru only applies retention when it rotates, a short-lived
        # process may never get there
        prune_logs(log_dir, retention)

    return debug
