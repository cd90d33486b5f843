"""Parsers for the text git prints from blame and log commands.

Each grammar matches one specific output format. Output that does not fit
is reported loudly so that a change in git's format cannot silently
misattribute lines or paths.
"""

import re
from dataclasses import dataclass
from datetime import datetime

from revtrail.utils.datetime import from_unix_seconds

from .base import GrammarError

# `git blame -c` line: revision, then anything up to "(", then the author.
# The author is the non-digit run before the date, so names containing
# digits are cut short.
BLAME_LINE = re.compile(r"^\W*(\w+).+?\((\D+).*$")

COMMIT_MARKER = "commit"
DATE_MARKER = "Date"
FIELD_DELIMITER = ":"
REVISION_DELIMITER = ":"

# --format strings whose output the parsers below read
RENAME_LOG_FORMAT = "--format=commit:%H\n"
TAG_DETAIL_FORMAT = "--format=commit:%H\nDate:%at"


@dataclass(frozen=True)
class BlameMatch:
    revision: str
    author: str


def parse_blame_line(line: str) -> BlameMatch | None:
    """Match one `git blame -c` line, returning None if it does not fit."""
    match = BLAME_LINE.match(line)
    if match is None:
        return None
    return BlameMatch(revision=match.group(1), author=match.group(2).strip())


def correct_path_pattern(revision: str) -> re.Pattern[str]:
    """Build the pattern for blame lines attributed to one revision.

    The captured group is the path shown after the revision when blame
    runs with copy/rename detection.
    """
    return re.compile(r"^\W*" + re.escape(revision) + r" (.+?) .*$")


def split_revision_spec(revision_spec: str) -> str:
    """Return the revision part of a "rev[:suffix]" specifier."""
    return revision_spec.split(REVISION_DELIMITER, 1)[0]


def _field_value(line: str) -> str:
    _, delimiter, value = line.partition(FIELD_DELIMITER)
    if not delimiter or not value:
        raise GrammarError(f"Marker line has no value after delimiter: {line!r}")
    return value


def is_commit_marker(line: str) -> bool:
    return line.startswith(COMMIT_MARKER)


def parse_commit_marker(line: str) -> str:
    """Extract the hash from a ``commit:<hash>`` line.

    Raises:
        GrammarError: If the line has no delimiter or no hash
    """
    return _field_value(line).strip()


@dataclass(frozen=True)
class TagDetail:
    hash: str | None
    timestamp: datetime | None


def parse_tag_detail(lines: list[str]) -> TagDetail:
    """Parse the commit and date lines of a tag detail query.

    The two lines may come in either order. Missing lines give None.

    Raises:
        GrammarError: If a marker line is malformed or the date is not
            integer seconds
    """
    commit_hash: str | None = None
    timestamp: datetime | None = None
    for line in lines:
        if line.startswith(COMMIT_MARKER):
            commit_hash = parse_commit_marker(line)
        if line.startswith(DATE_MARKER):
            value = _field_value(line)
            try:
                timestamp = from_unix_seconds(value)
            except ValueError as e:
                raise GrammarError(f"Invalid tag date line: {line!r}") from e
    return TagDetail(hash=commit_hash, timestamp=timestamp)
