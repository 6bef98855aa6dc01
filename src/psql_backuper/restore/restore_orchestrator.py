"""
Restore orchestration for a directory of dump files.

Each ``<database>.sql`` file directly under the restore directory is replayed
into a database of the same name, creating the database first when needed.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from ..backup.database_catalog import validate_database_name
from ..backup.dump_orchestrator import DUMP_SUFFIX
from ..exceptions import StorageError, ToolExecutionError
from ..models import RunOutcome
from ..utils.logger import ProgressLogger
from ..utils.notifier import Notifier, NullNotifier, TextMessage, notify_best_effort
from ..utils.pg_commands import PostgresCommands
from ..utils.process_runner import ProcessRunner

ALREADY_EXISTS_MARKER = "already exists"


@dataclass(frozen=True)
class RestoreTask:
    """A dump file and the database it is restored into."""
    database: str
    source: Path


class RestoreOrchestrator:
    """
    Restores every dump file found in a directory.

    Files are processed sequentially. A failed restore is recorded in its
    outcome and does not stop the remaining files.
    """

    def __init__(
        self,
        runner: ProcessRunner,
        commands: PostgresCommands,
        notifier: Optional[Notifier] = None,
        strict: bool = False,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize restore orchestrator.

        Args:
            runner: Process runner used to invoke psql
            commands: Command builder bound to the connection profile
            notifier: Notification sink (defaults to a no-op notifier)
            strict: Also skip files whose stem starts with "template"
            logger: Logger instance
        """
        self.runner = runner
        self.commands = commands
        self.notifier = notifier or NullNotifier()
        self.strict = strict
        self.logger = logger or logging.getLogger(__name__)
        self.progress_logger = ProgressLogger(self.logger)

    def discover_tasks(self, restore_directory: Path) -> List[RestoreTask]:
        """
        Find the dump files directly under the restore directory.

        Only regular files with a ``.sql`` extension are used; subdirectories
        are not traversed. Files named after reserved databases are skipped.

        Args:
            restore_directory: Directory holding the dump files

        Returns:
            Restore tasks sorted by file name

        Raises:
            StorageError: If the directory is missing or cannot be read
        """
        restore_directory = Path(restore_directory)
        try:
            entries = sorted(restore_directory.iterdir(), key=lambda p: p.name)
        except OSError as e:
            raise StorageError(f"Could not read restore directory {restore_directory}: {e}") from e

        tasks = []
        for entry in entries:
            if entry.suffix != DUMP_SUFFIX or not entry.is_file():
                continue

            try:
                database = validate_database_name(entry.stem, self.strict)
            except ValueError as e:
                self.logger.warning(f"Skipping {entry.name}: {e}")
                continue

            tasks.append(RestoreTask(database=database, source=entry))

        self.logger.info(f"Found {len(tasks)} dump files in {restore_directory}")
        return tasks

    async def restore_all(self, restore_directory: Path) -> List[RunOutcome]:
        """
        Restore every dump file in the directory.

        Args:
            restore_directory: Directory holding the dump files

        Returns:
            One RunOutcome per dump file, in processing order

        Raises:
            StorageError: If the directory is missing or cannot be read
        """
        tasks = self.discover_tasks(restore_directory)
        total = len(tasks)
        outcomes: List[RunOutcome] = []

        self.progress_logger.start_operation("restore pass", total)

        await notify_best_effort(
            self.notifier, TextMessage(f"Restoring {total} databases!"), self.logger
        )

        for i, task in enumerate(tasks, 1):
            outcome = await self.restore_one(task)
            outcomes.append(outcome)

            if not outcome.success:
                await notify_best_effort(
                    self.notifier,
                    TextMessage(f"Failed to restore {task.database}: {outcome.error}"),
                    self.logger
                )

            self.progress_logger.log_progress("Restoring", i, total, task.database)

        succeeded = sum(1 for outcome in outcomes if outcome.success)
        self.progress_logger.complete_operation("restore pass", total, succeeded, total - succeeded)
        return outcomes

    async def restore_one(self, task: RestoreTask) -> RunOutcome:
        """
        Create the target database if needed and replay the dump into it.

        Args:
            task: Database and source file

        Returns:
            RunOutcome describing success or the failure detail
        """
        start_time = time.monotonic()
        try:
            await self._create_database(task.database)

            command = self.commands.restore_database(task.database, task.source)
            result = await self.runner.run(command.executable, command.args, command.env)
            result.check()

        except ToolExecutionError as e:
            self.logger.error(f"Failed to restore database '{task.database}': {e}")
            return RunOutcome(
                database=task.database,
                path=task.source,
                success=False,
                error=str(e),
                duration_seconds=time.monotonic() - start_time
            )

        self.logger.info(f"Restored '{task.database}' from {task.source}")
        return RunOutcome(
            database=task.database,
            path=task.source,
            success=True,
            duration_seconds=time.monotonic() - start_time
        )

    async def _create_database(self, database: str) -> None:
        """Create the database; a failed creation never blocks the restore."""
        command = self.commands.create_database(database)
        try:
            result = await self.runner.run(command.executable, command.args, command.env)
        except ToolExecutionError as e:
            self.logger.warning(f"Could not run create for '{database}', restoring anyway: {e}")
            return

        if result.ok:
            self.logger.info(f"Created database '{database}'")
        elif ALREADY_EXISTS_MARKER in result.stderr:
            self.logger.info(f"Database '{database}' already exists")
        else:
            self.logger.warning(
                f"Creating database '{database}' failed, restoring anyway: {result.stderr.strip()}"
            )
