"""
PostgreSQL Backup & Restore

Backs up every user database of a PostgreSQL server to per-database dump
files on an optional schedule, restores a server from a directory of such
files, and reports progress to an optional webhook.
"""

__version__ = "1.0.0"

from .config import AppConfig, ConnectionProfile, get_app_config
from .scheduler import RunMode, Scheduler, create_scheduler, select_mode

__all__ = [
    "AppConfig",
    "ConnectionProfile",
    "get_app_config",
    "RunMode",
    "Scheduler",
    "create_scheduler",
    "select_mode",
    "__version__",
]
