"""Resolution of the path a file had at an earlier revision."""

from pathlib import Path

import structlog

from .grammar import (
    RENAME_LOG_FORMAT,
    correct_path_pattern,
    is_commit_marker,
    parse_commit_marker,
    split_revision_spec,
)
from .process import CommandRunner

logger = structlog.get_logger(__name__)


class PathResolver:
    """Finds a file's historical path from blame or rename-following log output."""

    def __init__(
        self, runner: CommandRunner, directory: str | Path, abbrev_length: int = 8
    ) -> None:
        """Initialize resolver.

        Args:
            runner: Runner used for git commands
            directory: Repository root the commands run in
            abbrev_length: Revision abbreviation length used in log output
        """
        self.runner = runner
        self.directory = Path(directory)
        self.abbrev_length = abbrev_length

    def correct_path(self, file_name: str, revision: str) -> str:
        """Get the path blame shows for lines last touched by a revision.

        Blame always runs on the current name of the file, with copy and
        rename detection, so lines that came from an older name show it.

        Args:
            file_name: Current path of the file relative to the repository root
            revision: Revision (prefix) to look for

        Returns:
            The path on the first matching line, or "" if none matches or
            blame fails
        """
        args = ["blame", "-c", f"--abbrev={self.abbrev_length}", "-C", file_name]
        result = self.runner.run(args, self.directory)
        if not result.succeeded:
            logger.error(
                "correct_path_blame_failed",
                file=file_name,
                revision=revision,
                status=result.status,
                stderr=result.stderr.strip(),
            )
            return ""

        pattern = correct_path_pattern(revision)
        for line in result.lines():
            match = pattern.match(line)
            if match:
                return match.group(1)
        return ""

    def original_name(self, path: str, revision_spec: str | None) -> str | None:
        """Get the name a file had at a revision by following its renames.

        The rename log lists commits newest first, so the first commit whose
        hash starts with the revision gives the name in effect at that
        revision.

        Args:
            path: Path of the file relative to the repository root
            revision_spec: Revision, optionally followed by ":suffix"

        Returns:
            The historical path, `path` itself if the revision is not in the
            log, or None if the revision specifier is empty

        Raises:
            GrammarError: If a commit marker line is malformed
        """
        revision = split_revision_spec(revision_spec or "")
        if not revision:
            logger.error("invalid_revision_spec", revision_spec=revision_spec)
            return None

        args = ["log", "--follow", RENAME_LOG_FORMAT, "--name-only", path]
        with self.runner.stream(args, self.directory) as lines:
            for line in lines:
                if not is_commit_marker(line):
                    continue
                commit_hash = parse_commit_marker(line)
                if not commit_hash.startswith(revision):
                    continue
                # Marker is followed by the format's blank line and the
                # --name-only separator, then the path.
                next(lines, None)
                next(lines, None)
                resolved = next(lines, None)
                if resolved:
                    logger.debug(
                        "original_name_resolved",
                        path=path,
                        revision=revision,
                        resolved=resolved,
                    )
                    return resolved
                break
        return path
