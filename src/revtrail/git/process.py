"""Subprocess execution for git commands.

Every process started here is waited for exactly once, on every exit path.
A process still running when its scope ends (early return from a stream,
parser exception, timeout) is killed first.
"""

import subprocess
import tempfile
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import IO

import structlog

from .base import CommandResult, CommandTimeoutError

logger = structlog.get_logger(__name__)


def _reap(process: subprocess.Popen[bytes]) -> int:
    """Collect the exit status of a process, killing it if still running."""
    if process.poll() is None:
        logger.debug("killing_running_process", pid=process.pid, args=process.args)
        process.kill()
    return process.wait()


class CommandRunner:
    """Runs git with an argument vector in a working directory."""

    def __init__(self, command: str = "git", timeout: float | None = None) -> None:
        """Initialize runner.

        Args:
            command: Git executable to run
            timeout: Seconds before a command is killed (None waits forever)
        """
        self.command = command
        self.timeout = timeout

    def argv(self, args: list[str]) -> list[str]:
        return [self.command, *args]

    @contextmanager
    def _spawn(
        self, args: list[str], cwd: str | Path, stderr: int | IO[bytes]
    ) -> Iterator[subprocess.Popen[bytes]]:
        process = subprocess.Popen(
            self.argv(args),
            cwd=str(cwd),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=stderr,
        )
        try:
            yield process
        finally:
            if process.stdout is not None:
                process.stdout.close()
            _reap(process)

    def run(self, args: list[str], cwd: str | Path) -> CommandResult:
        """Run a command to completion and buffer its output.

        stdout and stderr are drained concurrently, so the command can never
        block on a full pipe while we wait for it.

        Raises:
            CommandTimeoutError: If the command exceeds the runner timeout
            OSError: If the executable cannot be started
        """
        with self._spawn(args, cwd, subprocess.PIPE) as process:
            try:
                stdout, stderr = process.communicate(timeout=self.timeout)
            except subprocess.TimeoutExpired as e:
                process.kill()
                process.communicate()
                logger.error(
                    "git_command_timeout", args=args, cwd=str(cwd), timeout=self.timeout
                )
                raise CommandTimeoutError(self.argv(args), self.timeout or 0) from e
            status = process.wait()

        result = CommandResult(
            args=self.argv(args),
            status=status,
            stdout=stdout or b"",
            stderr=(stderr or b"").decode("utf-8", errors="replace"),
        )
        logger.debug(
            "git_command_finished",
            args=args,
            cwd=str(cwd),
            status=status,
            stdout_bytes=len(result.stdout),
        )
        return result

    @contextmanager
    def stream(self, args: list[str], cwd: str | Path) -> Iterator[Iterator[str]]:
        """Run a command and iterate its stdout line by line.

        Lines are yielded without their trailing newline. Leaving the block
        before the output is exhausted kills the command. stderr goes to a
        temporary file so it cannot fill up while stdout is read.

        Raises:
            CommandTimeoutError: If the command was killed by the runner timeout
            OSError: If the executable cannot be started
        """
        with tempfile.TemporaryFile() as err_file:
            with self._spawn(args, cwd, err_file) as process:
                expired = threading.Event()
                timer: threading.Timer | None = None
                if self.timeout is not None:

                    def expire() -> None:
                        expired.set()
                        process.kill()

                    timer = threading.Timer(self.timeout, expire)
                    timer.daemon = True
                    timer.start()
                try:
                    yield self._lines(process)
                finally:
                    if timer is not None:
                        timer.cancel()
            if expired.is_set():
                logger.error(
                    "git_command_timeout", args=args, cwd=str(cwd), timeout=self.timeout
                )
                raise CommandTimeoutError(self.argv(args), self.timeout or 0)
            if process.returncode != 0:
                err_file.seek(0)
                logger.debug(
                    "git_stream_nonzero_exit",
                    args=args,
                    cwd=str(cwd),
                    status=process.returncode,
                    stderr=err_file.read().decode("utf-8", errors="replace").strip(),
                )

    @staticmethod
    def _lines(process: subprocess.Popen[bytes]) -> Iterator[str]:
        assert process.stdout is not None
        for raw in process.stdout:
            yield raw.decode("utf-8", errors="replace").rstrip("\r\n")
