"""revtrail: rename-aware git history resolution for code indexers."""

__version__ = "0.1.0"
