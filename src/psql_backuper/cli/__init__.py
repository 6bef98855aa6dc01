"""
Command-line interface for backup and restore operations.

This package provides the Typer application behind the ``psql-backuper``
command with Rich console output.
"""

from .app import app

__all__ = [
    "app",
]
