"""Index of the text spans added by a repository's most recent commits."""

from .config import TrackerSettings
from .coordinator import RefreshCoordinator, RefreshState
from .diffops import DiffFormat, DiffParser, parse_diff_output
from .errors import CommitTrackerError, NotARepository, VcsUnavailable
from .highlights import HighlightSpan, plan_highlights
from .history import CommitDiff, CommitHistoryWalker, GitCommandRunner
from .index import ModificationIndex, merge_modifications
from .models import FileModifications, ModificationRange
from .monitor import GitRepositoryMonitor, RepositoryChangeHandler
from .paths import find_repository_root, get_relative_path, normalize_path
from .tracker import CommitModificationTracker

__all__ = [
    "CommitDiff",
    "CommitHistoryWalker",
    "CommitModificationTracker",
    "CommitTrackerError",
    "DiffFormat",
    "DiffParser",
    "FileModifications",
    "GitCommandRunner",
    "GitRepositoryMonitor",
    "HighlightSpan",
    "ModificationIndex",
    "ModificationRange",
    "NotARepository",
    "RefreshCoordinator",
    "RefreshState",
    "RepositoryChangeHandler",
    "TrackerSettings",
    "VcsUnavailable",
    "find_repository_root",
    "get_relative_path",
    "merge_modifications",
    "normalize_path",
    "parse_diff_output",
    "plan_highlights",
]
