"""
Error types raised by backup, restore and notification components.
"""

from typing import Optional


class BackuperError(Exception):
    """Base class for all psql-backuper errors."""
    pass


class ServerConnectionError(BackuperError):
    """Raised when the database server is unreachable or refuses connections."""
    pass


class AuthError(BackuperError):
    """Raised when the database server rejects the supplied credentials."""
    pass


class StorageError(BackuperError):
    """Raised when a dump or restore directory cannot be created or read."""
    pass


class ToolExecutionError(BackuperError):
    """Raised when an external tool fails to spawn, times out or exits non-zero."""

    def __init__(
        self,
        message: str,
        returncode: Optional[int] = None,
        stderr: str = ""
    ):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class NotificationError(BackuperError):
    """Raised when the webhook is unreachable or rejects a payload."""
    pass
