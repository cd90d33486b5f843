"""Git repository access for history resolution."""

from pathlib import Path

import git
import structlog

from revtrail.config import Settings
from revtrail.config import settings as default_settings

from .annotate import AnnotationEngine
from .base import (
    Annotation,
    CommandFailedError,
    RepositoryNotFoundError,
    TagIndex,
)
from .content import ContentFetcher
from .paths import PathResolver
from .process import CommandRunner
from .tags import TagIndexBuilder

logger = structlog.get_logger(__name__)


class GitRepository:
    """One git working tree and the history operations run against it.

    All operations are synchronous: each runs git and waits for it. The tag
    index is the only state kept between calls and is rebuilt wholesale by
    `build_tag_list`.
    """

    has_history_for_directories = True
    has_file_based_tags = True

    def __init__(
        self,
        directory: str | Path,
        settings: Settings | None = None,
        runner: CommandRunner | None = None,
    ) -> None:
        """Initialize repository.

        Args:
            directory: Root of the git working tree
            settings: Settings to use instead of the module singleton
            runner: Runner to use instead of one built from settings

        Raises:
            RepositoryNotFoundError: If directory is not a git working tree
        """
        self.settings = settings or default_settings
        git_settings = self.settings.git
        try:
            repo = git.Repo(directory)
        except (git.InvalidGitRepositoryError, git.NoSuchPathError) as e:
            raise RepositoryNotFoundError(
                f"Not a valid git repository: {directory}"
            ) from e
        if repo.working_tree_dir is None:
            raise RepositoryNotFoundError(f"Repository has no working tree: {directory}")

        self.directory = Path(repo.working_tree_dir).resolve()
        self.runner = runner or CommandRunner(
            command=git_settings.command, timeout=git_settings.command_timeout
        )
        self.resolver = PathResolver(
            self.runner, self.directory, abbrev_length=git_settings.abbrev_length
        )
        self.content = ContentFetcher(self.runner, self.directory, self.resolver)
        self.annotator = AnnotationEngine(
            self.runner,
            self.directory,
            self.resolver,
            blame_abbrev_length=git_settings.blame_abbrev_length,
        )
        self.tag_builder = TagIndexBuilder(
            self.runner, max_workers=git_settings.tag_workers
        )
        self.tag_list: TagIndex | None = None
        self._working: bool | None = None

    def _relative(self, file: str | Path) -> str:
        path = Path(file)
        if path.is_absolute():
            try:
                return path.resolve().relative_to(self.directory).as_posix()
            except ValueError:
                return path.as_posix()
        return path.as_posix()

    def resolve_original_path(self, path: str, revision_spec: str) -> str | None:
        """Get the name a file had at a revision by following its renames.

        Raises:
            GrammarError: If the rename log cannot be parsed
        """
        return self.resolver.original_name(self._relative(path), revision_spec)

    def resolve_correct_path(self, path: str, revision: str) -> str:
        """Get the path blame attributes to a revision, or "" if none."""
        return self.resolver.correct_path(self._relative(path), revision)

    def fetch_content_at(
        self, parent: str | Path, basename: str, revision: str
    ) -> bytes | None:
        """Get a file's bytes at a revision, or None if they cannot be found."""
        return self.content.fetch(parent, basename, revision)

    def annotate(self, file: str | Path, revision: str | None = None) -> Annotation:
        """Annotate a file at a revision (None for the current state).

        Raises:
            GrammarError: If the rename log needed for the fallback is malformed
        """
        return self.annotator.annotate(self._relative(file), revision)

    def file_has_annotation(self, file: str | Path) -> bool:
        return True

    def file_has_history(self, file: str | Path) -> bool:
        # git prints nothing for paths without history
        return True

    def build_tag_list(self) -> TagIndex | None:
        """Rebuild the tag index; None marks a failed build."""
        self.tag_list = self.tag_builder.build(self.directory)
        return self.tag_list

    def determine_parent(self) -> str | None:
        """Get the fetch URL of the configured remote."""
        remote = self.settings.git.remote_name
        result = self.runner.run(["remote", "-v"], self.directory)
        if not result.succeeded:
            logger.warning(
                "remote_list_failed", directory=str(self.directory), status=result.status
            )
            return None
        for line in result.lines():
            parts = line.split()
            if not parts or parts[0] != remote or "(fetch)" not in line:
                continue
            if len(parts) != 3:
                logger.warning(
                    "unexpected_remote_line", directory=str(self.directory), line=line
                )
            if len(parts) < 2:
                return None
            return parts[1]
        return None

    def determine_branch(self) -> str | None:
        """Get the name of the checked out branch."""
        result = self.runner.run(["branch"], self.directory)
        if not result.succeeded:
            logger.warning(
                "branch_list_failed", directory=str(self.directory), status=result.status
            )
            return None
        for line in result.lines():
            if line.startswith("*"):
                return line[2:].strip()
        return None

    def update(self) -> None:
        """Pull from origin if the repository has one.

        Raises:
            CommandFailedError: If reading the config or pulling fails
        """
        result = self.runner.run(["config", "--list"], self.directory)
        if not result.succeeded:
            raise CommandFailedError(result.args, result.status, result.stderr)

        if "remote.origin.url=" in result.text:
            pull = self.runner.run(["pull", "-n", "-q"], self.directory)
            if not pull.succeeded:
                raise CommandFailedError(pull.args, pull.status, pull.stderr)
            logger.info("repository_updated", directory=str(self.directory))

    def is_working(self) -> bool:
        """Check whether the git client can be run at all."""
        if self._working is None:
            try:
                self._working = self.runner.run(["--help"], self.directory).succeeded
            except OSError as e:
                logger.warning(
                    "git_client_unavailable", command=self.runner.command, error=str(e)
                )
                self._working = False
        return self._working

    def history_log_command(
        self, file: str | Path, since_revision: str | None = None
    ) -> list[str]:
        """Build the argv that logs a file's history for the history parser.

        Args:
            file: File or directory to log
            since_revision: Oldest revision to leave out, or None for all
        """
        path = Path(file)
        full = path if path.is_absolute() else self.directory / path
        relative = self._relative(full)
        if relative == ".":
            relative = ""

        args = [
            "log",
            "--abbrev-commit",
            f"--abbrev={self.settings.git.abbrev_length}",
            "--name-only",
            "--pretty=fuller",
            "--date=rfc",
        ]
        # Following renames only works for a single file
        follow = (
            self.settings.git.handle_renamed_files and bool(relative) and not full.is_dir()
        )
        if follow:
            args.append("--follow")
        if since_revision is not None:
            args.append(f"{since_revision}..")
        if follow:
            args.append("--")
        if relative:
            args.append(relative)
        return self.runner.argv(args)
