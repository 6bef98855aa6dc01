"""
Pass scheduling and mode selection.

The scheduler runs in one of two modes chosen once at startup. Backup mode
discovers and dumps all databases, then repeats after the configured
interval (or stops when no interval is set). Restore mode restores a
directory of dump files exactly once.
"""

import asyncio
import logging
from collections import deque
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, Deque, List, Optional

from .backup.database_catalog import DatabaseCatalog
from .backup.dump_orchestrator import DumpOrchestrator
from .config import AppConfig
from .exceptions import AuthError, ServerConnectionError, ToolExecutionError
from .models import PassSummary
from .restore.restore_orchestrator import RestoreOrchestrator
from .utils.notifier import Notifier, NullNotifier, TextMessage, create_notifier, notify_best_effort
from .utils.pg_commands import PostgresCommands
from .utils.process_runner import AsyncProcessRunner, ProcessRunner

SleepFunc = Callable[[float], Awaitable[None]]
PassCallback = Callable[[PassSummary], None]

# Summaries kept by an open-ended backup loop
SUMMARY_HISTORY = 10


class RunMode(Enum):
    """Process mode, selected once at startup."""
    BACKUP = "backup"
    RESTORE = "restore"


def select_mode(config: AppConfig, restore_requested: bool = False) -> RunMode:
    """
    Choose between backup and restore mode.

    Args:
        config: Application configuration (``RESTORE`` environment toggle)
        restore_requested: True when a restore flag or argument was given on
            the command line

    Returns:
        RunMode.RESTORE if either source asks for it, RunMode.BACKUP otherwise
    """
    if config.restore or restore_requested:
        return RunMode.RESTORE
    return RunMode.BACKUP


class Scheduler:
    """
    Drives backup and restore passes.

    Each backup pass rediscovers the database list. Catalog failures abort
    the current pass; per-database failures are only recorded.
    """

    def __init__(
        self,
        config: AppConfig,
        catalog: DatabaseCatalog,
        dump_orchestrator: DumpOrchestrator,
        restore_orchestrator: RestoreOrchestrator,
        notifier: Optional[Notifier] = None,
        sleep: SleepFunc = asyncio.sleep,
        pass_callback: Optional[PassCallback] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize scheduler.

        Args:
            config: Application configuration
            catalog: Database catalog for discovery
            dump_orchestrator: Orchestrator for backup passes
            restore_orchestrator: Orchestrator for restore passes
            notifier: Notification sink (defaults to a no-op notifier)
            sleep: Coroutine used to wait between passes
            pass_callback: Optional callback invoked with each finished PassSummary
            logger: Logger instance
        """
        self.config = config
        self.catalog = catalog
        self.dump_orchestrator = dump_orchestrator
        self.restore_orchestrator = restore_orchestrator
        self.notifier = notifier or NullNotifier()
        self.sleep = sleep
        self.pass_callback = pass_callback
        self.logger = logger or logging.getLogger(__name__)
        self.history: Deque[PassSummary] = deque(maxlen=SUMMARY_HISTORY)

    async def run(self, mode: RunMode, max_passes: Optional[int] = None) -> List[PassSummary]:
        """
        Run the scheduler in the given mode.

        Args:
            mode: Backup or restore
            max_passes: Stop after this many backup passes (None loops for as
                long as an interval is configured)

        Returns:
            Summaries of the passes that were run. Without max_passes only
            the last SUMMARY_HISTORY are kept; pass_callback sees every one.

        Raises:
            ServerConnectionError, AuthError, ToolExecutionError: If the
                database listing fails and no interval is configured
            StorageError: If the restore directory cannot be read
        """
        if mode is RunMode.RESTORE:
            self.logger.info(f"Restore mode: restoring from {self.config.restore_path}")
            return [await self.run_restore_pass()]

        return await self._backup_loop(max_passes)

    async def _backup_loop(self, max_passes: Optional[int]) -> List[PassSummary]:
        interval = self.config.interval
        if interval is None:
            self.logger.info("Backup mode: single pass")
        else:
            self.logger.info(f"Backup mode: repeating every {interval}s")

        summaries: Deque[PassSummary] = deque(maxlen=max_passes or SUMMARY_HISTORY)
        self.history = summaries

        passes = 0
        while True:
            try:
                summary = await self.run_backup_pass()
            except (ServerConnectionError, AuthError, ToolExecutionError) as e:
                if interval is None:
                    raise
                summary = PassSummary(mode=RunMode.BACKUP.value, error=str(e), finished_at=datetime.now())
                self.logger.error(f"Backup pass aborted, retrying in {interval}s: {e}")
                await notify_best_effort(
                    self.notifier, TextMessage(summary.format_report()), self.logger
                )
                self._report(summary)

            summaries.append(summary)
            passes += 1

            if interval is None:
                break
            if max_passes is not None and passes >= max_passes:
                break

            self.logger.info(f"Next backup pass in {interval}s")
            await self.sleep(interval)

        return list(summaries)

    async def run_backup_pass(self) -> PassSummary:
        """
        Discover databases and dump them all.

        Raises:
            ServerConnectionError, AuthError, ToolExecutionError: If the
                database listing fails
        """
        summary = PassSummary(mode=RunMode.BACKUP.value)

        databases = await self.catalog.list_databases()
        summary.outcomes = await self.dump_orchestrator.dump_all(databases, self.config.save_path)
        summary.finished_at = datetime.now()

        report = summary.format_report()
        self.logger.info(report)
        await notify_best_effort(self.notifier, TextMessage(report), self.logger)

        self._report(summary)
        return summary

    async def run_restore_pass(self) -> PassSummary:
        """
        Restore every dump file in the restore directory.

        Raises:
            StorageError: If the restore directory cannot be read
        """
        summary = PassSummary(mode=RunMode.RESTORE.value)

        summary.outcomes = await self.restore_orchestrator.restore_all(self.config.restore_path)
        summary.finished_at = datetime.now()

        report = summary.format_report()
        self.logger.info(report)
        await notify_best_effort(self.notifier, TextMessage(report), self.logger)

        self._report(summary)
        return summary

    def _report(self, summary: PassSummary) -> None:
        if self.pass_callback:
            self.pass_callback(summary)


def create_scheduler(
    config: AppConfig,
    runner: Optional[ProcessRunner] = None,
    notifier: Optional[Notifier] = None,
    pass_callback: Optional[PassCallback] = None,
    logger: Optional[logging.Logger] = None
) -> Scheduler:
    """
    Create a scheduler with all components wired from one configuration.

    Args:
        config: Application configuration
        runner: Process runner (defaults to AsyncProcessRunner with the configured timeout)
        notifier: Notification sink (defaults to the one matching the configuration)
        pass_callback: Optional callback invoked with each finished PassSummary
        logger: Logger instance

    Returns:
        Configured Scheduler instance
    """
    logger = logger or logging.getLogger(__name__)
    runner = runner or AsyncProcessRunner(timeout=config.tool_timeout, logger=logger)
    notifier = notifier or create_notifier(config, logger)
    commands = PostgresCommands(config.db, psql_bin=config.psql_bin, pg_dump_bin=config.pg_dump_bin)

    return Scheduler(
        config=config,
        catalog=DatabaseCatalog(runner, commands, strict=config.strict_catalog, logger=logger),
        dump_orchestrator=DumpOrchestrator(runner, commands, notifier, logger),
        restore_orchestrator=RestoreOrchestrator(
            runner, commands, notifier, strict=config.strict_catalog, logger=logger
        ),
        notifier=notifier,
        pass_callback=pass_callback,
        logger=logger
    )
