"""
Database discovery for the target PostgreSQL server.

This module lists the databases present on the server by running the ``\\l``
introspection command through ``psql``, parses the tabular output and filters
out system and template databases.
"""

import logging
import re
from typing import List, Optional

from ..exceptions import AuthError, ServerConnectionError, ToolExecutionError
from ..utils.pg_commands import PostgresCommands
from ..utils.process_runner import ProcessRunner, ProcessResult

RESERVED_DATABASES = frozenset({"template0", "template1", "postgres"})

# A listing row: exactly one leading space, then the database name.
_ROW_PATTERN = re.compile(r"^ ([^\s|]+)")
_SEPARATOR_PATTERN = re.compile(r"^-+\+[-+]*\s*$")

_AUTH_FAILURE_MARKERS = (
    "password authentication failed",
    "no password supplied",
    "authentication failed",
    "pg_hba.conf rejects",
)

_CONNECTION_FAILURE_MARKERS = (
    "could not connect",
    "connection refused",
    "could not translate host name",
    "timeout expired",
    "server closed the connection",
    "no route to host",
    "network is unreachable",
    "no such file or directory",  # missing local socket
)


def is_reserved_database(name: str, strict: bool = False) -> bool:
    """Check whether a database name is a system or template database."""
    if name in RESERVED_DATABASES:
        return True
    return strict and name.startswith("template")


def validate_database_name(name: str, strict: bool = False) -> str:
    """
    Validate a database name for dumping or restoring.

    Args:
        name: Candidate database name
        strict: Also reject any name starting with "template"

    Returns:
        The name unchanged

    Raises:
        ValueError: If the name is empty or reserved
    """
    if not name or not name.strip():
        raise ValueError("Database name must not be empty")

    if is_reserved_database(name, strict):
        raise ValueError(f"'{name}' is a reserved database")

    return name


def parse_database_listing(output: str, strict: bool = False) -> List[str]:
    """
    Extract user database names from ``psql \\l`` output.

    Header, separator, continuation and summary lines do not match the row
    shape and are skipped. Server listing order is preserved.

    Args:
        output: Raw stdout of the listing command
        strict: Also exclude any name starting with "template"

    Returns:
        Database names in listing order
    """
    lines = output.splitlines()

    # Rows start after the header separator when one is present
    for index, line in enumerate(lines):
        if _SEPARATOR_PATTERN.match(line):
            lines = lines[index + 1:]
            break

    databases = []
    for line in lines:
        match = _ROW_PATTERN.match(line)
        if not match:
            continue

        name = match.group(1)
        if is_reserved_database(name, strict):
            continue

        databases.append(name)

    return databases


def classify_listing_failure(result: ProcessResult) -> Exception:
    """Map a failed listing command to the matching error type."""
    detail = (result.stderr or result.stdout).strip() or f"exit status {result.returncode}"
    lowered = detail.lower()

    if any(marker in lowered for marker in _AUTH_FAILURE_MARKERS):
        return AuthError(f"Server rejected credentials: {detail}")

    if "role" in lowered and "does not exist" in lowered:
        return AuthError(f"Server rejected credentials: {detail}")

    if any(marker in lowered for marker in _CONNECTION_FAILURE_MARKERS):
        return ServerConnectionError(f"Could not reach database server: {detail}")

    return ToolExecutionError(
        f"Listing databases failed: {detail}",
        returncode=result.returncode,
        stderr=result.stderr
    )


class DatabaseCatalog:
    """
    Discovers the user databases on the target server.

    Ordering follows the server listing and is not guaranteed to be stable
    across runs.
    """

    def __init__(
        self,
        runner: ProcessRunner,
        commands: PostgresCommands,
        strict: bool = False,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize database catalog.

        Args:
            runner: Process runner used to invoke psql
            commands: Command builder bound to the connection profile
            strict: Also exclude any database whose name starts with "template"
            logger: Logger instance
        """
        self.runner = runner
        self.commands = commands
        self.strict = strict
        self.logger = logger or logging.getLogger(__name__)

    async def list_databases(self) -> List[str]:
        """
        List the user databases currently present on the server.

        Returns:
            Database names in server listing order

        Raises:
            ServerConnectionError: If the server is unreachable
            AuthError: If the credentials are rejected
            ToolExecutionError: If psql cannot be run or fails for another reason
        """
        profile = self.commands.profile
        self.logger.info(f"Listing databases on {profile.host}:{profile.port}")

        command = self.commands.list_databases()
        result = await self.runner.run(command.executable, command.args, command.env)

        if not result.ok:
            error = classify_listing_failure(result)
            self.logger.error(str(error))
            raise error

        databases = parse_database_listing(result.stdout, self.strict)
        self.logger.info(f"Found {len(databases)} databases: {databases}")
        return databases
