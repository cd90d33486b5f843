"""Retrieval of file contents at a revision, following renames."""

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import structlog

from .base import CommandResult, CommandTimeoutError, GrammarError
from .paths import PathResolver
from .process import CommandRunner

logger = structlog.get_logger(__name__)


@dataclass
class FetchAttempt:
    """One `git show` of a candidate path."""

    path: str
    result: CommandResult

    @property
    def failed(self) -> bool:
        return not self.result.succeeded

    @property
    def empty(self) -> bool:
        # Exit 0 without a single byte: git found nothing to show
        return self.result.succeeded and not self.result.stdout

    @property
    def succeeded(self) -> bool:
        return self.result.succeeded and bool(self.result.stdout)


# A strategy inspects the attempts made so far and proposes the next path
# to fetch, or None to pass.
PathStrategy = Callable[[str, str, list[FetchAttempt]], str | None]


class ContentFetcher:
    """Fetches file contents with `git show`, falling back through renames."""

    def __init__(
        self, runner: CommandRunner, directory: str | Path, resolver: PathResolver
    ) -> None:
        self.runner = runner
        self.directory = Path(directory)
        self.resolver = resolver
        self.strategies: list[tuple[str, PathStrategy]] = [
            ("direct", self._direct_path),
            ("rename_history", self._rename_history_path),
            ("blame_path", self._blame_path),
        ]

    def relative_path(self, parent: str | Path, basename: str) -> str | None:
        """Path of parent/basename relative to the repository root.

        A relative parent is taken relative to the repository root.
        """
        root = self.directory.resolve()
        full = Path(parent, basename)
        if not full.is_absolute():
            full = root / full
        try:
            return full.resolve().relative_to(root).as_posix()
        except ValueError:
            return None

    def show(self, revision: str, path: str) -> FetchAttempt:
        result = self.runner.run(["show", f"{revision}:{path}"], self.directory)
        return FetchAttempt(path=path, result=result)

    def fetch(self, parent: str | Path, basename: str, revision: str) -> bytes | None:
        """Get the exact bytes of a file as it was at a revision.

        Strategies run in order until one fetch exits 0 with output:
        the current path, the name found in the rename history (only when
        the direct fetch failed), and the path blame attributes to the
        revision.

        Returns:
            File contents; b"" if the only answers were empty blobs; None if
            no strategy produced them
        """
        path = self.relative_path(parent, basename)
        if path is None:
            logger.error(
                "path_outside_repository",
                parent=str(parent),
                basename=basename,
                directory=str(self.directory),
            )
            return None

        attempts: list[FetchAttempt] = []
        try:
            for name, strategy in self.strategies:
                candidate = strategy(path, revision, attempts)
                if not candidate or any(a.path == candidate for a in attempts):
                    continue
                attempt = self.show(revision, candidate)
                attempts.append(attempt)
                if attempt.succeeded:
                    if name != "direct":
                        logger.info(
                            "content_found_at_historical_path",
                            path=path,
                            revision=revision,
                            strategy=name,
                            resolved=candidate,
                        )
                    return attempt.result.stdout
                logger.debug(
                    "content_fetch_attempt_failed",
                    path=candidate,
                    revision=revision,
                    strategy=name,
                    status=attempt.result.status,
                    empty=attempt.empty,
                )
        except GrammarError as e:
            logger.error(
                "original_name_lookup_failed", path=path, revision=revision, error=str(e)
            )
            return None
        except (OSError, CommandTimeoutError) as e:
            logger.error(
                "content_fetch_failed",
                path=path,
                revision=revision,
                error_type=type(e).__name__,
                error=str(e),
            )
            return None

        # git answered an empty blob and nothing later did better
        if any(attempt.empty for attempt in attempts):
            return b""

        logger.warning("content_not_found", path=path, revision=revision)
        return None

    def _direct_path(
        self, path: str, revision: str, attempts: list[FetchAttempt]
    ) -> str | None:
        return path

    def _rename_history_path(
        self, path: str, revision: str, attempts: list[FetchAttempt]
    ) -> str | None:
        if not attempts or not attempts[-1].failed:
            return None
        return self.resolver.original_name(path, revision)

    def _blame_path(
        self, path: str, revision: str, attempts: list[FetchAttempt]
    ) -> str | None:
        return self.resolver.correct_path(path, revision) or None
