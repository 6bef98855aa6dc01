"""
Utility modules for backup and restore operations.

This package contains shared utilities including logging, the external
process runner, PostgreSQL command construction and webhook notifications.
"""

from .logger import setup_logger, ProgressLogger, CommandLogger
from .process_runner import AsyncProcessRunner, ProcessResult, ProcessRunner
from .pg_commands import PostgresCommands, ToolCommand
from .notifier import Notifier, NullNotifier, WebhookNotifier, create_notifier

__all__ = [
    "setup_logger",
    "ProgressLogger",
    "CommandLogger",
    "AsyncProcessRunner",
    "ProcessResult",
    "ProcessRunner",
    "PostgresCommands",
    "ToolCommand",
    "Notifier",
    "NullNotifier",
    "WebhookNotifier",
    "create_notifier",
]
