"""
Argument construction for the PostgreSQL client tools.

Maps a connection profile and an intent (list databases, create a database,
dump, restore) to the ``psql`` / ``pg_dump`` argument lists and environment.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from ..config import ConnectionProfile

LIST_DATABASES_COMMAND = "\\l"


@dataclass
class ToolCommand:
    """An executable, its arguments and extra environment."""
    executable: str
    args: List[str]
    env: Dict[str, str] = field(default_factory=dict, repr=False)


def quote_identifier(name: str) -> str:
    """Quote a SQL identifier, doubling embedded double quotes."""
    return '"' + name.replace('"', '""') + '"'


class PostgresCommands:
    """
    Builds ``psql`` and ``pg_dump`` invocations for one connection profile.

    The password is never placed on the command line; it is handed to the
    child process as ``PGPASSWORD``. ``--no-password`` keeps the tools from
    prompting when running unattended.
    """

    def __init__(
        self,
        profile: ConnectionProfile,
        psql_bin: str = "psql",
        pg_dump_bin: str = "pg_dump"
    ):
        self.profile = profile
        self.psql_bin = psql_bin
        self.pg_dump_bin = pg_dump_bin

    def _connection_args(self) -> List[str]:
        return [
            "--host", self.profile.host,
            "--port", str(self.profile.port),
            "--username", self.profile.username,
            "--no-password",
        ]

    def _env(self) -> Dict[str, str]:
        if self.profile.password is None:
            return {}
        return {"PGPASSWORD": self.profile.password}

    def psql(self, command: Optional[str] = None, dbname: Optional[str] = None,
             file: Optional[Path] = None) -> ToolCommand:
        args = self._connection_args()
        if dbname is not None:
            args += ["--dbname", dbname]
        if command is not None:
            args += ["--command", command]
        if file is not None:
            args += ["--file", str(file)]
        return ToolCommand(self.psql_bin, args, self._env())

    def list_databases(self) -> ToolCommand:
        """Introspection command with no target database bound."""
        return self.psql(command=LIST_DATABASES_COMMAND)

    def create_database(self, database: str) -> ToolCommand:
        return self.psql(command=f"CREATE DATABASE {quote_identifier(database)};")

    def dump_database(self, database: str, destination: Path) -> ToolCommand:
        args = self._connection_args() + ["--dbname", database, "--file", str(destination)]
        return ToolCommand(self.pg_dump_bin, args, self._env())

    def restore_database(self, database: str, source: Path) -> ToolCommand:
        """Replay a dump file, stopping at the first failing statement."""
        command = self.psql(dbname=database)
        command.args += ["--set", "ON_ERROR_STOP=1", "--file", str(source)]
        return command
