"""
Async adapter for running external command-line tools.

This module wraps ``asyncio`` subprocess handling behind a narrow
``ProcessRunner`` interface so orchestration code can be exercised with a
fake runner in tests.
"""

import asyncio
import logging
import os
import time
from dataclasses import dataclass
from typing import Dict, Optional, Protocol, Sequence

from .logger import CommandLogger
from ..exceptions import ToolExecutionError


@dataclass
class ProcessResult:
    """Captured result of a finished external process."""
    executable: str
    returncode: int
    stdout: str = ""
    stderr: str = ""
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def check(self) -> "ProcessResult":
        """Raise ToolExecutionError if the process exited non-zero."""
        if not self.ok:
            detail = self.stderr.strip() or self.stdout.strip() or "no output"
            raise ToolExecutionError(
                f"{self.executable} exited with status {self.returncode}: {detail}",
                returncode=self.returncode,
                stderr=self.stderr
            )
        return self


class ProcessRunner(Protocol):
    """Interface for invoking an external executable."""

    async def run(
        self,
        executable: str,
        args: Sequence[str],
        env: Optional[Dict[str, str]] = None
    ) -> ProcessResult:
        ...


class AsyncProcessRunner:
    """
    Runs executables with ``asyncio.create_subprocess_exec``.

    Output is captured and decoded as UTF-8. The call returns only once the
    process has exited. Extra environment variables are merged over the
    current process environment.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize process runner.

        Args:
            timeout: Seconds to wait for each process before killing it (None waits forever)
            logger: Logger instance
        """
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)
        self.command_logger = CommandLogger(self.logger)

    async def run(
        self,
        executable: str,
        args: Sequence[str],
        env: Optional[Dict[str, str]] = None
    ) -> ProcessResult:
        """
        Run an executable and wait for it to exit.

        Args:
            executable: Program name (resolved on PATH) or path
            args: Argument list, passed without shell interpretation
            env: Extra environment variables for the child

        Returns:
            ProcessResult with exit status and captured output

        Raises:
            ToolExecutionError: If the process cannot be spawned or times out
        """
        self.command_logger.log_command(executable, args, env)

        child_env = None
        if env:
            child_env = {**os.environ, **env}

        start_time = time.monotonic()
        try:
            process = await asyncio.create_subprocess_exec(
                executable,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=child_env
            )
        except OSError as e:
            raise ToolExecutionError(f"Failed to start {executable}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            try:
                process.kill()
            except ProcessLookupError:
                pass  # exited between the timeout and the kill
            await process.wait()
            raise ToolExecutionError(
                f"{executable} did not finish within {self.timeout}s and was killed"
            )

        result = ProcessResult(
            executable=executable,
            returncode=process.returncode,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            duration=time.monotonic() - start_time
        )

        self.command_logger.log_exit(executable, result.returncode, result.duration, result.stderr)
        return result
