"""Tag index construction."""

from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from pathlib import Path

import structlog

from revtrail.utils.datetime import EPOCH

from .base import CommandTimeoutError, GrammarError, TagEntry, TagIndex
from .grammar import TAG_DETAIL_FORMAT, parse_tag_detail
from .process import CommandRunner

logger = structlog.get_logger(__name__)


class TagIndexBuilder:
    """Builds a TagIndex by listing tags and dating each one."""

    def __init__(self, runner: CommandRunner, max_workers: int = 4) -> None:
        """Initialize builder.

        Args:
            runner: Runner used for git commands
            max_workers: Maximum concurrent tag detail queries; 1 runs them
                one after another
        """
        self.runner = runner
        self.max_workers = max(1, max_workers)

    def list_tags(self, directory: str | Path) -> list[str] | None:
        """Get all tag labels, or None if `git tag` fails."""
        try:
            result = self.runner.run(["tag"], directory)
        except (OSError, CommandTimeoutError) as e:
            logger.warning("tag_list_failed", directory=str(directory), error=str(e))
            return None
        if not result.succeeded:
            logger.warning(
                "tag_list_failed",
                directory=str(directory),
                status=result.status,
                error=result.stderr.strip(),
            )
            return None
        return [line for line in result.lines() if line]

    def build_entry(self, directory: str | Path, tag: str) -> TagEntry:
        """Look up the commit and author date a tag points at.

        Tags on trees (or on a root commit, whose parent range is empty)
        have no date line; they get the Unix epoch.

        Raises:
            GrammarError: If the log output is malformed
        """
        result = self.runner.run(
            ["log", TAG_DETAIL_FORMAT, "-r", f"{tag}^..{tag}"], directory
        )
        detail = parse_tag_detail(result.lines())
        if detail.timestamp is None:
            logger.debug("tag_without_commit_date", tag=tag, status=result.status)
        return TagEntry(
            hash=detail.hash,
            timestamp=detail.timestamp or EPOCH,
            label=tag,
        )

    def build(self, directory: str | Path) -> TagIndex | None:
        """Build the tag index of a repository.

        The tag list is fully read before any detail query starts. Any
        failure discards the whole index.

        Returns:
            The complete index, or None if it could not be built
        """
        # `git tag` must finish before the per-tag queries run
        tags = self.list_tags(directory)
        if tags is None:
            return None

        try:
            entries = self._build_entries(directory, tags)
        except GrammarError as e:
            logger.warning("tag_list_parse_failed", directory=str(directory), error=str(e))
            return None
        except (OSError, CommandTimeoutError) as e:
            logger.warning("tag_list_read_failed", directory=str(directory), error=str(e))
            return None

        index = TagIndex(entries)
        logger.info("tag_index_built", directory=str(directory), tags=len(index))
        return index

    def _build_entries(self, directory: str | Path, tags: list[str]) -> list[TagEntry]:
        if self.max_workers == 1 or len(tags) <= 1:
            return [self.build_entry(directory, tag) for tag in tags]

        with ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="revtrail-tags"
        ) as executor:
            futures: list[Future[TagEntry]] = [
                executor.submit(self.build_entry, directory, tag) for tag in tags
            ]
            done, _ = wait(futures, return_when=FIRST_EXCEPTION)
            failed = [future for future in done if future.exception() is not None]
            if failed:
                for pending in futures:
                    pending.cancel()
                failed[0].result()
            return [future.result() for future in futures]
