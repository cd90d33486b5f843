"""Base classes, dataclasses, and errors for git history resolution."""

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from revtrail.utils.datetime import serialize_datetime

# Error classes


class GitHistoryError(Exception):
    """Base exception for git history errors."""

    pass


class RepositoryNotFoundError(GitHistoryError):
    """Repository path is not a valid git repository."""

    pass


class CommandFailedError(GitHistoryError):
    """A git command exited non-zero where no fallback exists."""

    def __init__(self, args: list[str], status: int, stderr: str) -> None:
        self.args_list = list(args)
        self.status = status
        self.stderr = stderr
        super().__init__(
            f"Command {' '.join(args)!r} failed with exit code {status}: "
            f"{stderr.strip()}"
        )


class CommandTimeoutError(GitHistoryError):
    """A git command did not finish within the configured timeout."""

    def __init__(self, args: list[str], timeout: float) -> None:
        self.args_list = list(args)
        self.timeout = timeout
        super().__init__(
            f"Command {' '.join(args)!r} timed out after {timeout}s"
        )


class GrammarError(GitHistoryError):
    """Git output does not follow the structure the parser expects."""

    pass


def revision_matches(left: str, right: str) -> bool:
    """Check whether two revisions name the same commit.

    An abbreviated revision matches a longer one when the longer starts
    with it.
    """
    if not left or not right:
        return False
    if len(left) <= len(right):
        return right.startswith(left)
    return left.startswith(right)


# Data classes


@dataclass
class CommandResult:
    """Buffered outcome of a finished git command."""

    args: list[str]
    status: int
    stdout: bytes
    stderr: str

    @property
    def succeeded(self) -> bool:
        return self.status == 0

    @property
    def text(self) -> str:
        # git writes log and blame output as UTF-8
        return self.stdout.decode("utf-8", errors="replace")

    def lines(self) -> list[str]:
        """Split stdout on newlines only; file content may hold other breaks."""
        if not self.stdout:
            return []
        lines = self.text.split("\n")
        if lines[-1] == "":
            lines.pop()
        return [line.removesuffix("\r") for line in lines]


@dataclass
class AnnotationLine:
    """Revision and author that last touched one line of a file."""

    line_number: int  # 1-based position in the blame output
    revision: str
    author: str
    matched: bool = True


@dataclass
class Annotation:
    """Line-by-line blame information for a single file."""

    file_name: str
    lines: list[AnnotationLine] = field(default_factory=list)

    def add_line(
        self, line_number: int, revision: str, author: str, matched: bool = True
    ) -> AnnotationLine:
        line = AnnotationLine(
            line_number=line_number,
            revision=revision,
            author=author,
            matched=matched,
        )
        self.lines.append(line)
        return line

    def __len__(self) -> int:
        return len(self.lines)

    def __iter__(self) -> Iterator[AnnotationLine]:
        return iter(self.lines)

    @property
    def revisions(self) -> list[str]:
        return [line.revision for line in self.lines]

    @property
    def authors(self) -> list[str]:
        return [line.author for line in self.lines]

    def _find(self, line_number: int) -> AnnotationLine | None:
        for line in self.lines:
            if line.line_number == line_number:
                return line
        return None

    def get_revision(self, line_number: int) -> str | None:
        """Get the revision for a 1-based line number, if it was parsed."""
        line = self._find(line_number)
        return line.revision if line else None

    def get_author(self, line_number: int) -> str | None:
        """Get the author for a 1-based line number, if it was parsed."""
        line = self._find(line_number)
        return line.author if line else None


@dataclass(frozen=True)
class TagEntry:
    """A tag with the commit it labels and that commit's author date."""

    hash: str | None  # None when the tag points at a tree or blob
    timestamp: datetime  # Always UTC, timezone-aware
    label: str

    @property
    def sort_key(self) -> tuple[datetime, str]:
        return (self.timestamp, self.label)

    def __lt__(self, other: "TagEntry") -> bool:
        return self.sort_key < other.sort_key

    def to_dict(self) -> dict[str, Any]:
        return {
            "hash": self.hash,
            "timestamp": serialize_datetime(self.timestamp),
            "label": self.label,
        }


class TagIndex:
    """Tags of a repository ordered by timestamp.

    Entries are unique by (hash, label). The index is only ever created
    complete; a failed build is represented by None, not an empty index.
    """

    def __init__(self, entries: list[TagEntry] | None = None) -> None:
        unique: dict[tuple[str | None, str], TagEntry] = {}
        for entry in entries or []:
            unique.setdefault((entry.hash, entry.label), entry)
        self._entries = sorted(unique.values(), key=lambda e: e.sort_key)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TagEntry]:
        return iter(self._entries)

    def __contains__(self, item: object) -> bool:
        return item in self._entries

    @property
    def labels(self) -> list[str]:
        return [entry.label for entry in self._entries]

    def find(self, label: str) -> TagEntry | None:
        """Get the entry with the given tag label."""
        for entry in self._entries:
            if entry.label == label:
                return entry
        return None

    def for_revision(self, revision: str) -> list[TagEntry]:
        """Get all tags pointing at the given (possibly abbreviated) revision."""
        return [
            entry
            for entry in self._entries
            if entry.hash is not None and revision_matches(revision, entry.hash)
        ]
