"""
Dump orchestration for a backup pass.

Dumps each database to ``<save_directory>/<database>.sql`` one at a time,
isolating per-database failures and reporting progress to the notifier.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from ..exceptions import StorageError, ToolExecutionError
from ..models import RunOutcome
from ..utils.logger import ProgressLogger
from ..utils.notifier import FileUpload, Notifier, NullNotifier, TextMessage, notify_best_effort
from ..utils.pg_commands import PostgresCommands
from ..utils.process_runner import ProcessRunner

DUMP_SUFFIX = ".sql"


@dataclass(frozen=True)
class DumpTask:
    """A single database dump and its destination file."""
    database: str
    destination: Path

    @classmethod
    def for_database(cls, database: str, save_directory: Path) -> "DumpTask":
        """Build the task with its deterministic destination path."""
        return cls(database=database, destination=Path(save_directory) / f"{database}{DUMP_SUFFIX}")


class DumpOrchestrator:
    """
    Runs the dump tool for every database in a pass.

    Databases are dumped sequentially in the given order. A failed dump is
    recorded in its outcome and the pass moves on to the next database.
    """

    def __init__(
        self,
        runner: ProcessRunner,
        commands: PostgresCommands,
        notifier: Optional[Notifier] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize dump orchestrator.

        Args:
            runner: Process runner used to invoke pg_dump
            commands: Command builder bound to the connection profile
            notifier: Notification sink (defaults to a no-op notifier)
            logger: Logger instance
        """
        self.runner = runner
        self.commands = commands
        self.notifier = notifier or NullNotifier()
        self.logger = logger or logging.getLogger(__name__)
        self.progress_logger = ProgressLogger(self.logger)

    async def dump_all(self, databases: Sequence[str], save_directory: Path) -> List[RunOutcome]:
        """
        Dump every database to the save directory.

        Args:
            databases: Database names in catalog order
            save_directory: Directory receiving the ``.sql`` files

        Returns:
            One RunOutcome per database, in the same order
        """
        save_directory = Path(save_directory)
        total = len(databases)
        outcomes: List[RunOutcome] = []

        self.progress_logger.start_operation("backup pass", total)

        await notify_best_effort(
            self.notifier, TextMessage(f"Dumping {total} databases!"), self.logger
        )

        for i, database in enumerate(databases, 1):
            task = DumpTask.for_database(database, save_directory)
            outcome = await self.dump_one(task)
            outcomes.append(outcome)

            if outcome.success:
                await notify_best_effort(self.notifier, FileUpload(task.destination), self.logger)
            else:
                await notify_best_effort(
                    self.notifier,
                    TextMessage(f"Failed to dump {database}: {outcome.error}"),
                    self.logger
                )

            self.progress_logger.log_progress("Dumping", i, total, database)

        succeeded = sum(1 for outcome in outcomes if outcome.success)
        self.progress_logger.complete_operation("backup pass", total, succeeded, total - succeeded)
        return outcomes

    async def dump_one(self, task: DumpTask) -> RunOutcome:
        """
        Dump a single database, converting failures into an outcome.

        Args:
            task: Database and destination

        Returns:
            RunOutcome describing success or the failure detail
        """
        start_time = time.monotonic()
        try:
            self._ensure_directory(task.destination.parent)

            command = self.commands.dump_database(task.database, task.destination)
            result = await self.runner.run(command.executable, command.args, command.env)
            result.check()

        except (StorageError, ToolExecutionError) as e:
            self.logger.error(f"Failed to dump database '{task.database}': {e}")
            return RunOutcome(
                database=task.database,
                path=task.destination,
                success=False,
                error=str(e),
                duration_seconds=time.monotonic() - start_time
            )

        self.logger.info(f"Dumped '{task.database}' to {task.destination}")
        return RunOutcome(
            database=task.database,
            path=task.destination,
            success=True,
            duration_seconds=time.monotonic() - start_time
        )

    @staticmethod
    def _ensure_directory(directory: Path) -> None:
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Could not create save directory {directory}: {e}") from e
