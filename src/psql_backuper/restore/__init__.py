"""
Restore modules for replaying dump files into a PostgreSQL server.
"""

from .restore_orchestrator import RestoreOrchestrator, RestoreTask

__all__ = [
    "RestoreOrchestrator",
    "RestoreTask",
]
