"""Git history resolution for revtrail.

Provides rename-aware content retrieval, per-line annotation and the
tag timeline of a git repository.
"""

from .annotate import AnnotationEngine
from .base import (
    Annotation,
    AnnotationLine,
    CommandFailedError,
    CommandResult,
    CommandTimeoutError,
    GitHistoryError,
    GrammarError,
    RepositoryNotFoundError,
    TagEntry,
    TagIndex,
    revision_matches,
)
from .content import ContentFetcher
from .paths import PathResolver
from .process import CommandRunner
from .repository import GitRepository
from .tags import TagIndexBuilder

__all__ = [
    # Classes
    "GitRepository",
    "CommandRunner",
    "PathResolver",
    "ContentFetcher",
    "AnnotationEngine",
    "TagIndexBuilder",
    # Data classes
    "Annotation",
    "AnnotationLine",
    "CommandResult",
    "TagEntry",
    "TagIndex",
    "revision_matches",
    # Errors
    "GitHistoryError",
    "RepositoryNotFoundError",
    "CommandFailedError",
    "CommandTimeoutError",
    "GrammarError",
]
