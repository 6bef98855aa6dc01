"""
Logging setup for backup and restore runs.

Console output goes to stdout; an optional rotating log file always records
at DEBUG so command lines and exit statuses are kept even when the console
is quiet.
"""

import logging
import logging.handlers
import sys
import time
from pathlib import Path
from typing import Optional, Sequence, Dict

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
CONSOLE_FORMAT = "%(asctime)s %(levelname)-8s %(message)s"
DETAILED_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s:%(lineno)d] %(message)s"


def _resolve_level(log_level: str, debug: bool) -> int:
    if debug:
        return logging.DEBUG
    return getattr(logging, log_level.upper(), logging.INFO)


def _file_handler(log_file: str, max_bytes: int, backup_count: int) -> logging.Handler:
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8"
    )
    handler.setFormatter(logging.Formatter(DETAILED_FORMAT, DATE_FORMAT))
    handler.setLevel(logging.DEBUG)
    return handler


def setup_logger(
    name: str = "psql_backuper",
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    log_max_size: int = 10 * 1024 * 1024,
    log_backup_count: int = 5,
    verbose: bool = False,
    debug: bool = False
) -> logging.Logger:
    """
    Configure the package logger for a CLI run.

    Calling it again replaces the handlers from the previous call.

    Args:
        name: Logger name
        log_level: Level name used unless debug is set
        log_file: Rotating log file path (optional)
        log_max_size: Rotate the log file after this many bytes
        log_backup_count: Rotated files to keep
        verbose: Show logger names and line numbers on the console
        debug: Log everything at DEBUG

    Returns:
        The configured logger
    """
    level = _resolve_level(log_level, debug)

    logger = logging.getLogger(name)
    logger.handlers.clear()
    logger.setLevel(logging.DEBUG if log_file else level)
    logger.propagate = False

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(logging.Formatter(DETAILED_FORMAT if verbose or debug else CONSOLE_FORMAT,
                                           DATE_FORMAT))
    logger.addHandler(console)

    if log_file:
        logger.addHandler(_file_handler(log_file, log_max_size, log_backup_count))

    return logger


def get_logger(name: str = "psql_backuper") -> logging.Logger:
    """
    Get an existing logger or create a basic one.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        logger = setup_logger(name)

    return logger


def mask_secret(text: str, secret: Optional[str]) -> str:
    """Replace every occurrence of a secret in text."""
    if not secret:
        return text
    return text.replace(secret, "********")


class CommandLogger:
    """
    Specialized logger for external tool invocations.

    Logs each command line before it runs and its exit status afterwards,
    with secrets masked.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or get_logger("psql_backuper.commands")

    def log_command(
        self,
        executable: str,
        args: Sequence[str],
        env: Optional[Dict[str, str]] = None
    ) -> None:
        """
        Log an external command before it is spawned.

        Args:
            executable: Program name or path
            args: Argument list
            env: Extra environment (only variable names are logged)
        """
        secret = (env or {}).get("PGPASSWORD")
        command_line = " ".join([executable, *args])
        message = f"Running: {mask_secret(command_line, secret)}"
        if env:
            message += f" (env: {', '.join(sorted(env))})"

        self.logger.debug(
            message,
            extra={
                "event_type": "command_start",
                "executable": executable,
            }
        )

    def log_exit(
        self,
        executable: str,
        returncode: int,
        duration: float,
        stderr: str = ""
    ) -> None:
        """
        Log the exit status of an external command.

        Args:
            executable: Program name or path
            returncode: Process exit status
            duration: Wall time in seconds
            stderr: Captured standard error
        """
        level = logging.DEBUG if returncode == 0 else logging.WARNING
        message = f"{executable} exited with status {returncode} ({duration:.2f}s)"
        if returncode != 0 and stderr:
            message += f": {stderr.strip()}"

        self.logger.log(
            level,
            message,
            extra={
                "event_type": "command_exit",
                "executable": executable,
                "returncode": returncode,
                "duration": duration,
            }
        )


class ProgressLogger:
    """
    Logger for tracking backup and restore pass progress.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or get_logger("psql_backuper.progress")
        self.start_time: Optional[float] = None

    def start_operation(self, operation: str, total_items: Optional[int] = None) -> None:
        """
        Log the start of an operation.

        Args:
            operation: Operation name
            total_items: Total number of items to process (optional)
        """
        self.start_time = time.monotonic()

        message = f"Starting {operation}"
        if total_items is not None:
            message += f" ({total_items} databases)"

        self.logger.info(
            message,
            extra={
                "event_type": "operation_start",
                "operation": operation,
                "total_items": total_items,
            }
        )

    def log_progress(self, operation: str, completed: int, total: int,
                    current_item: str = "") -> None:
        """
        Log progress update.

        Args:
            operation: Operation name
            completed: Number of completed items
            total: Total number of items
            current_item: Current item being processed
        """
        percentage = (completed / total) * 100 if total > 0 else 0

        message = f"{operation}: {completed}/{total} ({percentage:.1f}%)"
        if current_item:
            message += f" - {current_item}"

        self.logger.info(
            message,
            extra={
                "event_type": "progress",
                "operation": operation,
                "completed": completed,
                "total": total,
                "current_item": current_item,
            }
        )

    def complete_operation(self, operation: str, total_items: int,
                          success_count: int, error_count: int = 0) -> None:
        """
        Log operation completion.

        Args:
            operation: Operation name
            total_items: Total number of items processed
            success_count: Number of successful items
            error_count: Number of failed items
        """
        duration = None
        if self.start_time is not None:
            duration = time.monotonic() - self.start_time

        message = f"Completed {operation}: {success_count}/{total_items} successful"
        if error_count > 0:
            message += f", {error_count} errors"
        if duration is not None:
            message += f" (took {duration:.2f}s)"

        level = logging.INFO if error_count == 0 else logging.WARNING

        self.logger.log(
            level,
            message,
            extra={
                "event_type": "operation_complete",
                "operation": operation,
                "total_items": total_items,
                "success_count": success_count,
                "error_count": error_count,
                "duration": duration,
            }
        )
