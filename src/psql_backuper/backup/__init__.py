"""
Backup modules for PostgreSQL dump operations.

This package handles database discovery and dump orchestration.
"""

from .database_catalog import DatabaseCatalog, parse_database_listing, validate_database_name
from .dump_orchestrator import DumpOrchestrator, DumpTask

__all__ = [
    "DatabaseCatalog",
    "DumpOrchestrator",
    "DumpTask",
    "parse_database_listing",
    "validate_database_name",
]
