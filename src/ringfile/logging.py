"""Centralized console logging with Rich formatting.

This module provides:
1. Icon vocabulary (Icon class namespace)
2. Level-based styling
3. Core log functions (log, info, warn, error)
4. Domain helpers for CLI messages (buffer_created, buffer_status, etc.)
5. Structlog configuration (configure, get_structlog)

Console output uses Rich markup for colors. The ring buffer engine logs
through structlog, which writes JSON lines to a rotating file.
"""

from __future__ import annotations

import logging
import logging.handlers
from datetime import datetime
from typing import TYPE_CHECKING

import structlog
from rich.console import Console

if TYPE_CHECKING:
    from ringfile.config import Config
    from ringfile.ringbuffer import RingBuffer

_console = Console(highlight=False)
_err_console = Console(highlight=False, stderr=True)


# ─────────────────────────────────────────────────────────────────────────────
# Icons
# ─────────────────────────────────────────────────────────────────────────────


class Icon:
    """Icon vocabulary for console output."""

    OK = "[bold green]✓[/]"
    FAIL = "[bold red]✗[/]"
    PUSH = "[cyan]▲[/]"
    POP = "[magenta]▼[/]"
    DELETE = "🧹"
    RESIZE = "↔"
    SAVE = "💾"


# ─────────────────────────────────────────────────────────────────────────────
# Level Styles
# ─────────────────────────────────────────────────────────────────────────────

_LEVEL_STYLES = {
    "info": "[bright_blue]\\[info][/]",
    "warn": "[yellow]\\[warn][/]",
    "error": "[bold red]\\[err][/] ",
}


# ─────────────────────────────────────────────────────────────────────────────
# Core Functions
# ─────────────────────────────────────────────────────────────────────────────


def log(level: str, msg: str, icon: str = "") -> None:
    """Print a log message with timestamp and level.

    Errors go to stderr, everything else to stdout.

    Args:
        level: Log level (info, warn, error)
        msg: Message to print (can include Rich markup)
        icon: Optional icon to show after level (e.g., Icon.OK)
    """
    ts = datetime.now().strftime("%H:%M:%S")
    lvl = _LEVEL_STYLES.get(level, f"[{level}]")
    icon_part = f" {icon}" if icon else ""
    console = _err_console if level == "error" else _console
    console.print(f"[dim]{ts}[/] {lvl}{icon_part} {msg}")


def info(msg: str, icon: str = "") -> None:
    """Log an info message."""
    log("info", msg, icon)


def warn(msg: str, icon: str = "") -> None:
    """Log a warning message."""
    log("warn", msg, icon)


def error(msg: str, icon: str = "") -> None:
    """Log an error message."""
    log("error", msg, icon)


# ─────────────────────────────────────────────────────────────────────────────
# Domain Helpers
# ─────────────────────────────────────────────────────────────────────────────


def buffer_ready(buffer: RingBuffer) -> None:
    """Log buffer opened or created."""
    info(
        f"Buffer [cyan]{buffer.path}[/] ready "
        f"[dim]({buffer.capacity} x {buffer.record_length}B, {buffer.count} records)[/]",
        Icon.OK,
    )


def buffer_status(buffer: RingBuffer) -> None:
    """Log buffer geometry and fill level."""
    fill = f"{buffer.count}/{buffer.capacity}"
    last = buffer.last if buffer.count else "-"
    info(
        f"[cyan]{buffer.path}[/] records [bold]{fill}[/], last slot {last}, "
        f"record length {buffer.record_length}B [dim]({buffer.file_size} bytes)[/]"
    )


def record_pushed(buffer: RingBuffer) -> None:
    """Log record pushed."""
    info(f"Pushed into slot {buffer.last} [dim]({buffer.count}/{buffer.capacity})[/]", Icon.PUSH)


def record_popped(slot: int, buffer: RingBuffer) -> None:
    """Log record popped."""
    info(f"Popped slot {slot} [dim]({buffer.count}/{buffer.capacity})[/]", Icon.POP)


def records_deleted(removed: int, remaining: int) -> None:
    """Log records deleted."""
    suffix = "s" if removed != 1 else ""
    info(f"Deleted {removed} record{suffix} [dim]({remaining} remaining)[/]", Icon.DELETE)


def buffer_reinitialized(path: str, reason: str) -> None:
    """Log existing buffer discarded because it doesn't match."""
    warn(f"Recreating [cyan]{path}[/] [dim]({reason})[/], existing records are lost")


def buffer_empty() -> None:
    """Log nothing to read."""
    warn("Buffer is empty")


def buffer_resized(old_capacity: int, new_capacity: int, dropped: int) -> None:
    """Log capacity change."""
    dropped_part = f", dropped [yellow]{dropped}[/] oldest" if dropped else ""
    info(f"Capacity {old_capacity} → [cyan]{new_capacity}[/]{dropped_part}", Icon.RESIZE)


def buffer_missing(path: str) -> None:
    """Log buffer file not found."""
    error(f"No buffer at [cyan]{path}[/]. Run 'ringfile init' first.", Icon.FAIL)


def operation_failed(error_msg: str) -> None:
    """Log engine error."""
    error(error_msg, Icon.FAIL)


def config_created(path: str) -> None:
    """Log config file created."""
    info(f"Created config at [cyan]{path}[/]", Icon.SAVE)


def config_exists(path: str) -> None:
    """Log config file already present."""
    info(f"Config already exists at [cyan]{path}[/]")


# ─────────────────────────────────────────────────────────────────────────────
# Structlog Configuration
# ─────────────────────────────────────────────────────────────────────────────


def _add_source(source: str) -> structlog.types.Processor:
    """Create a processor that adds a source field to log events."""

    def processor(
        logger: structlog.types.WrappedLogger,
        method_name: str,
        event_dict: structlog.types.EventDict,
    ) -> structlog.types.EventDict:
        event_dict["source"] = source
        return event_dict

    return processor


def configure(config: Config, source: str = "cli") -> None:
    """Configure structlog to write JSON lines to the rotating log file.

    Args:
        config: Application config with paths and rotation settings
        source: Value of the "source" field on every event
    """
    config.state_dir.mkdir(parents=True, exist_ok=True)

    file_handler = logging.handlers.RotatingFileHandler(
        config.log_path,
        maxBytes=config.system.log_max_bytes,
        backupCount=config.system.log_backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.INFO)

    stdlib_root = logging.getLogger()
    stdlib_root.setLevel(logging.INFO)

    # Clear any existing handlers
    stdlib_root.handlers.clear()

    file_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                _add_source(source),
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.JSONRenderer(),
            ],
            foreign_pre_chain=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso", utc=False, key="ts"),
                structlog.processors.add_log_level,
                structlog.processors.format_exc_info,
            ],
        )
    )
    stdlib_root.addHandler(file_handler)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso", utc=False, key="ts"),
            structlog.processors.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Engine loggers are module-level proxies; keep them re-configurable
        cache_logger_on_first_use=False,
    )


def get_structlog() -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance for JSON file output."""
    return structlog.get_logger()
