"""Pytest configuration and fixtures."""

import threading
from collections.abc import Generator, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import pytest

from revtrail.git.base import CommandResult


@dataclass
class ScriptedResponse:
    stdout: str = ""
    status: int = 0
    stderr: str = ""


class ScriptedRunner:
    """Stand-in for CommandRunner that replays canned git output.

    Responses are registered per exact argument vector and consumed in
    order; the last response for an argv keeps being replayed. Unknown
    commands exit 128.
    """

    command = "git"

    def __init__(self) -> None:
        self.responses: dict[tuple[str, ...], list[ScriptedResponse]] = {}
        self.calls: list[list[str]] = []
        self.streams_closed = 0

    def on(
        self, *args: str, stdout: str = "", status: int = 0, stderr: str = ""
    ) -> "ScriptedRunner":
        self.responses.setdefault(tuple(args), []).append(
            ScriptedResponse(stdout=stdout, status=status, stderr=stderr)
        )
        return self

    def argv(self, args: list[str]) -> list[str]:
        return [self.command, *args]

    def _next(self, args: list[str]) -> ScriptedResponse:
        self.calls.append(list(args))
        queue = self.responses.get(tuple(args))
        if not queue:
            return ScriptedResponse(status=128, stderr=f"unexpected: {args}")
        if len(queue) > 1:
            return queue.pop(0)
        return queue[0]

    def run(self, args: list[str], cwd: str | Path) -> CommandResult:
        response = self._next(args)
        return CommandResult(
            args=self.argv(args),
            status=response.status,
            stdout=response.stdout.encode("utf-8"),
            stderr=response.stderr,
        )

    @contextmanager
    def stream(self, args: list[str], cwd: str | Path) -> Iterator[Iterator[str]]:
        response = self._next(args)
        try:
            yield iter(response.stdout.splitlines())
        finally:
            self.streams_closed += 1


@pytest.fixture
def runner() -> ScriptedRunner:
    """Scripted git runner."""
    return ScriptedRunner()


# Thread names that are expected to be long-running and should be ignored
# by the resource tracker.
_IGNORED_THREAD_PREFIXES = (
    "MainThread",
    "ThreadPoolExecutor",
    "pydevd",
)


def _is_tracked_thread(t: threading.Thread) -> bool:
    """Check if a thread should be tracked for leak detection.

    Daemon threads are expected to be long-running and will be killed at exit.
    """
    if t.daemon:
        return False
    if t.name is None:
        return True
    return not any(t.name.startswith(prefix) for prefix in _IGNORED_THREAD_PREFIXES)


@pytest.fixture(autouse=True)
def thread_leak_tracker(
    request: pytest.FixtureRequest,
) -> Generator[None, None, None]:
    """Fail tests that leave non-daemon threads running.

    Tag indexing runs a worker pool; every worker must be joined before the
    build returns.

    To skip this check for a specific test, use:
        @pytest.mark.no_resource_tracking
    """
    if request.node.get_closest_marker("no_resource_tracking"):
        yield
        return

    baseline_threads = {t for t in threading.enumerate() if _is_tracked_thread(t)}

    yield

    leaked = {
        t for t in threading.enumerate() if _is_tracked_thread(t)
    } - baseline_threads
    if leaked:
        pytest.fail(
            f"Thread leak detected - {len(leaked)} thread(s): "
            f"{[t.name for t in leaked]}. "
            "Tests must join all threads before completion."
        )


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "no_resource_tracking: skip resource leak checking for this test",
    )
