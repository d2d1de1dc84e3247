"""Logging for the vrouter agent.

Three destinations, all under the ``vrouter_agent`` logger tree:
- the console, at the requested level
- a rotating agent log, at DEBUG
- a rotating perf log fed by ``timed`` / ``timed_section``

uvicorn's loggers are attached to the same handlers so request logs and
agent logs end up interleaved in one file.

Environment Variables:
    VROUTER_AGENT_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    VROUTER_AGENT_LOG_FILE: Path to log file (default: ~/.vrouter-agent/agent.log)
    VROUTER_AGENT_LOG_MAX_SIZE: Max log file size in MB (default: 10)
    VROUTER_AGENT_LOG_BACKUPS: Number of backup files to keep (default: 5)
"""
import functools
import logging
import os
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, TypeVar

AGENT_LOGGER = "vrouter_agent"
UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

perf_logger = logging.getLogger(f"{AGENT_LOGGER}.perf")

LINE_FORMAT = "%(asctime)s.%(msecs)03d | %(name)-36s | %(levelname)-7s | %(message)s"
PERF_FORMAT = "%(asctime)s.%(msecs)03d | PERF | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

T = TypeVar("T")


@dataclass
class LogOptions:
    """Where and how much to log."""
    level: int = logging.INFO
    log_file: Path = Path.home() / ".vrouter-agent" / "agent.log"
    max_bytes: int = 10 * 1024 * 1024
    backups: int = 5

    @property
    def perf_file(self) -> Path:
        return self.log_file.with_name(f"{self.log_file.stem}-perf{self.log_file.suffix}")

    @classmethod
    def from_env(cls, level: Optional[str] = None) -> "LogOptions":
        """Options from the environment; an explicit level wins."""
        options = cls(level=parse_level(level or os.environ.get("VROUTER_AGENT_LOG_LEVEL")))
        if os.environ.get("VROUTER_AGENT_LOG_FILE"):
            options.log_file = Path(os.environ["VROUTER_AGENT_LOG_FILE"]).expanduser()
        if os.environ.get("VROUTER_AGENT_LOG_MAX_SIZE"):
            options.max_bytes = int(os.environ["VROUTER_AGENT_LOG_MAX_SIZE"]) * 1024 * 1024
        if os.environ.get("VROUTER_AGENT_LOG_BACKUPS"):
            options.backups = int(os.environ["VROUTER_AGENT_LOG_BACKUPS"])
        return options


def parse_level(name: Optional[str]) -> int:
    """Level number for a level name; unknown or missing names mean INFO."""
    if not name:
        return logging.INFO
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def _rotating(path: Path, options: LogOptions, fmt: str) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        path,
        maxBytes=options.max_bytes,
        backupCount=options.backups,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(fmt, datefmt=DATE_FORMAT))
    return handler


def setup_logging(level: Optional[str] = None) -> LogOptions:
    """Install the console, agent-log and perf-log handlers.

    Calling it again replaces the handlers installed by the previous call.

    Returns:
        The options in effect
    """
    options = LogOptions.from_env(level)
    options.log_file.parent.mkdir(parents=True, exist_ok=True)

    console = logging.StreamHandler()
    console.setLevel(options.level)
    console.setFormatter(logging.Formatter(LINE_FORMAT, datefmt=DATE_FORMAT))

    agent_file = _rotating(options.log_file, options, LINE_FORMAT)
    agent_file.setLevel(logging.DEBUG)

    perf_file = _rotating(options.perf_file, options, PERF_FORMAT)

    agent_logger = logging.getLogger(AGENT_LOGGER)
    agent_logger.setLevel(logging.DEBUG)
    _replace_handlers(agent_logger, console, agent_file)

    for name in UVICORN_LOGGERS:
        uv_logger = logging.getLogger(name)
        _replace_handlers(uv_logger, console, agent_file)
        uv_logger.propagate = False

    # perf records go to their own file and, via propagation, to the agent log
    _replace_handlers(perf_logger, perf_file)

    agent_logger.info(
        f"Logging initialized: level={logging.getLevelName(options.level)}, "
        f"file={options.log_file}, perf={options.perf_file}"
    )
    return options


def _replace_handlers(logger: logging.Logger, *handlers: logging.Handler) -> None:
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()
    for handler in handlers:
        logger.addHandler(handler)


def _log_timing(operation: str, started: float, error: Optional[BaseException], extra: dict) -> None:
    elapsed = (time.perf_counter() - started) * 1000
    fields = [f"{operation:20s}", f"{elapsed:8.2f}ms", "OK" if error is None else f"FAIL: {error}"]
    fields.extend(f"{k}={v}" for k, v in extra.items())
    if error is None:
        perf_logger.info(" | ".join(fields))
    else:
        perf_logger.warning(" | ".join(fields))


def timed(operation: str) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Record how long a coroutine function takes, e.g. ``@timed("apply")``."""
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            async with timed_section(operation):
                return await func(*args, **kwargs)
        return wrapper

    return decorator


@asynccontextmanager
async def timed_section(operation: str, **extra):
    """Record how long a block takes.

    Usage:
        async with timed_section("command", path="/configure"):
            await handler(ctx)
    """
    started = time.perf_counter()
    try:
        yield
    except Exception as e:
        _log_timing(operation, started, e, extra)
        raise
    _log_timing(operation, started, None, extra)
