"""
Shared fixtures and fakes for the test suite.

FakeProcessRunner stands in for psql / pg_dump: it answers the listing
command, writes dump files and records create / restore invocations.
"""

import logging
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

import pytest

from psql_backuper.config import AppConfig, ConnectionProfile
from psql_backuper.exceptions import NotificationError
from psql_backuper.utils.pg_commands import PostgresCommands
from psql_backuper.utils.process_runner import ProcessResult

ENV_VARS = [
    "PG_HOST", "PG_PORT", "PG_USERNAME", "PG_PASSWORD",
    "SAVE_PATH", "RESTORE_PATH", "INTERVAL", "RESTORE",
    "WEBHOOK_URL", "WEBHOOK_USERNAME", "STRICT_CATALOG", "TOOL_TIMEOUT",
    "PSQL_BIN", "PG_DUMP_BIN", "LOG_LEVEL", "LOG_FILE", "LOG_MAX_SIZE",
    "LOG_BACKUP_COUNT", "DEBUG", "VERBOSE",
]

_CREATE_PATTERN = re.compile(r'^CREATE DATABASE "(.*)";$')


def make_listing(names: Iterable[str]) -> str:
    """Render database names the way ``psql -c '\\l'`` prints them."""
    names = list(names)
    width = max([len(n) for n in names] + [4]) + 1
    lines = [
        "                                  List of databases",
        f" {'Name'.center(width - 1)}| Owner    | Encoding |  Collate   |   Ctype    |   Access privileges   ",
        f"{'-' * width}-+----------+----------+------------+------------+-----------------------",
    ]
    for name in names:
        lines.append(f" {name.ljust(width)}| postgres | UTF8     | en_US.utf8 | en_US.utf8 | ")
        if name.startswith("template"):
            lines.append(f" {' ' * width}|          |          |            |            | postgres=CTc/postgres")
    lines.append(f"({len(names)} rows)")
    lines.append("")
    return "\n".join(lines)


def _arg(args: Sequence[str], flag: str) -> Optional[str]:
    args = list(args)
    if flag in args:
        return args[args.index(flag) + 1]
    return None


class FakeProcessRunner:
    """In-memory stand-in for the PostgreSQL client tools."""

    def __init__(
        self,
        databases: Sequence[str] = (),
        listing_returncode: int = 0,
        listing_stderr: str = "",
        failing_dumps: Sequence[str] = (),
        failing_restores: Sequence[str] = (),
        existing_databases: Sequence[str] = (),
        create_stderr: Optional[str] = None
    ):
        self.listing = make_listing(databases)
        self.listing_returncode = listing_returncode
        self.listing_stderr = listing_stderr
        self.failing_dumps = set(failing_dumps)
        self.failing_restores = set(failing_restores)
        self.existing_databases = set(existing_databases)
        self.create_stderr = create_stderr

        self.calls: List[tuple] = []
        self.dumped: List[str] = []
        self.created: List[str] = []
        self.restored: List[str] = []
        self.listings = 0

    async def run(self, executable: str, args: Sequence[str],
                  env: Optional[Dict[str, str]] = None) -> ProcessResult:
        args = list(args)
        self.calls.append((executable, args, dict(env or {})))

        if executable == "pg_dump":
            return self._dump(args)

        command = _arg(args, "--command")
        if command == "\\l":
            self.listings += 1
            return ProcessResult(executable, self.listing_returncode,
                                 stdout=self.listing if self.listing_returncode == 0 else "",
                                 stderr=self.listing_stderr)
        if command is not None and command.startswith("CREATE DATABASE"):
            return self._create(command)

        return self._restore(args)

    def _dump(self, args: List[str]) -> ProcessResult:
        database = _arg(args, "--dbname")
        destination = Path(_arg(args, "--file"))
        if database in self.failing_dumps:
            return ProcessResult("pg_dump", 1, stderr=f'pg_dump: error: could not dump database "{database}"')
        destination.write_text(f"-- PostgreSQL database dump of {database}\n")
        self.dumped.append(database)
        return ProcessResult("pg_dump", 0)

    def _create(self, command: str) -> ProcessResult:
        name = _CREATE_PATTERN.match(command).group(1).replace('""', '"')
        if self.create_stderr is not None:
            return ProcessResult("psql", 1, stderr=self.create_stderr)
        if name in self.existing_databases:
            return ProcessResult("psql", 1, stderr=f'ERROR:  database "{name}" already exists')
        self.created.append(name)
        return ProcessResult("psql", 0, stdout="CREATE DATABASE")

    def _restore(self, args: List[str]) -> ProcessResult:
        database = _arg(args, "--dbname")
        if database in self.failing_restores:
            return ProcessResult("psql", 3, stderr="psql: error: restore failed")
        self.restored.append(database)
        return ProcessResult("psql", 0)


class RecordingNotifier:
    """Notifier that records every event in order."""

    def __init__(self, events: Optional[list] = None):
        self.events = events if events is not None else []

    async def send_message(self, text: str) -> None:
        self.events.append(("message", text))

    async def send_file(self, path: Path, display_name: Optional[str] = None) -> None:
        self.events.append(("file", Path(path)))

    async def dispatch(self, event) -> None:
        from psql_backuper.utils.notifier import FileUpload, TextMessage
        if isinstance(event, TextMessage):
            await self.send_message(event.content)
        elif isinstance(event, FileUpload):
            await self.send_file(event.path, event.display_name)

    @property
    def messages(self) -> List[str]:
        return [value for kind, value in self.events if kind == "message"]

    @property
    def files(self) -> List[Path]:
        return [value for kind, value in self.events if kind == "file"]


class FailingNotifier:
    """Notifier whose webhook is unreachable."""

    def __init__(self):
        self.attempts = 0

    async def send_message(self, text: str) -> None:
        self.attempts += 1
        raise NotificationError("Webhook request failed: connection refused")

    async def send_file(self, path: Path, display_name: Optional[str] = None) -> None:
        self.attempts += 1
        raise NotificationError("Webhook request failed: connection refused")

    async def dispatch(self, event) -> None:
        self.attempts += 1
        raise NotificationError("Webhook request failed: connection refused")


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep configuration tests independent of the caller's environment."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo handlers installed by CLI runs so later tests log normally."""
    yield
    logger = logging.getLogger("psql_backuper")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def profile():
    return ConnectionProfile(host="db.internal", port=5433, username="backup", password="s3cret")


@pytest.fixture
def commands(profile):
    return PostgresCommands(profile)


@pytest.fixture
def app_config(profile, tmp_path):
    return AppConfig(
        db=profile,
        save_path=tmp_path / "dumps",
        restore_path=tmp_path / "restore",
        interval=None,
        restore=False,
        webhook_url=None,
    )
