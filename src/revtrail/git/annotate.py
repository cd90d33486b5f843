"""Per-line blame annotation of files."""

from collections.abc import Iterable
from pathlib import Path

import structlog

from .base import Annotation, CommandResult
from .grammar import parse_blame_line
from .paths import PathResolver
from .process import CommandRunner

logger = structlog.get_logger(__name__)


class AnnotationEngine:
    """Builds annotations from `git blame -c`, retrying under a file's old name."""

    def __init__(
        self,
        runner: CommandRunner,
        directory: str | Path,
        resolver: PathResolver,
        blame_abbrev_length: int = 7,
    ) -> None:
        """Initialize engine.

        Args:
            runner: Runner used for git commands
            directory: Repository root the commands run in
            resolver: Resolver used to find the file's name at the revision
            blame_abbrev_length: --abbrev value for blame, one less than the
                log abbreviation since blame prints one extra character
        """
        self.runner = runner
        self.directory = Path(directory)
        self.resolver = resolver
        self.blame_abbrev_length = blame_abbrev_length

    def _blame_args(
        self, path: str, revision: str | None, guard: bool = False
    ) -> list[str]:
        args = ["blame", "-c", f"--abbrev={self.blame_abbrev_length}"]
        if revision is not None:
            args.append(revision)
        if guard:
            args.append("--")
        args.append(path)
        return args

    def annotate(self, path: str, revision: str | None = None) -> Annotation:
        """Annotate a file at a revision.

        Args:
            path: File path relative to the repository root
            revision: Revision to annotate, or None for the current state

        Returns:
            Annotation with one line per parsed blame line

        Raises:
            GrammarError: If the rename log needed for the fallback is malformed
        """
        result = self.runner.run(self._blame_args(path, revision), self.directory)

        # The file might have had another name at that revision
        if not result.succeeded and revision is not None:
            original = self.resolver.original_name(path, revision)
            if original is not None:
                result = self.runner.run(
                    self._blame_args(original, revision, guard=True), self.directory
                )
                if not result.succeeded:
                    logger.error(
                        "blame_failed_for_original_path",
                        file=path,
                        original=original,
                        revision=revision,
                        status=result.status,
                    )

        if not result.succeeded:
            logger.warning(
                "annotation_failed",
                file=str(self.directory / path),
                revision=revision,
                status=result.status,
                stderr=result.stderr.strip(),
            )

        return self.parse(result, Path(path).name)

    def parse(self, output: CommandResult | Iterable[str], file_name: str) -> Annotation:
        """Parse blame output into an Annotation.

        Lines that do not match the blame grammar are logged and skipped;
        line numbers still count them.
        """
        lines = output.lines() if isinstance(output, CommandResult) else output
        annotation = Annotation(file_name=file_name)
        for line_number, line in enumerate(lines, start=1):
            match = parse_blame_line(line)
            if match is None:
                logger.error(
                    "blame_line_unmatched",
                    line_number=line_number,
                    line=line,
                    file=file_name,
                )
                continue
            annotation.add_line(line_number, match.revision, match.author)
        return annotation
