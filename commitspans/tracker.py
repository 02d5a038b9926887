"""
Tracking which spans of which files the most recent commits added.

CommitModificationTracker wires the pieces together for one repository:
the history walker and diff parser feed a refresh coordinator, which is
triggered by a monitor on the .git directory and by changes to the commit
window. Queries read the coordinator's current snapshot.
"""

import logging
import os
from pathlib import Path
from typing import List, Optional, Union

from .config import TrackerSettings
from .coordinator import PublishListener, RefreshCoordinator
from .diffops import DiffParser
from .errors import NotARepository
from .highlights import HighlightSpan, plan_highlights
from .history import CommitHistoryWalker, GitCommandRunner, VcsCommandRunner
from .index import ModificationIndex
from .models import ModificationRange
from .paths import find_repository_root, get_relative_path, normalize_path
from .monitor import GitRepositoryMonitor


class CommitModificationTracker:
    """
    Keeps an up-to-date index of the spans added by the last N commits.

    Outside a git repository the tracker is disabled: every query returns
    an empty list and start/stop do nothing. Until the first refresh
    completes queries also return empty lists.

    Usage:
        >>> with CommitModificationTracker("/path/to/repo/src") as tracker:
        ...     tracker.wait_until_idle(timeout=30)
        ...     for r in tracker.get_sorted_modification_ranges("/path/to/repo/src/app.py"):
        ...         print(r.start_line, r.start_char, r.length, r.commit_message)

    Notes:
        - Paths may be absolute or repository-relative, either separator style
        - The index is rebuilt from git on every refresh; nothing is persisted
    """

    def __init__(self, start_path: Union[str, Path], settings: Optional[TrackerSettings] = None,
                 runner: Optional[VcsCommandRunner] = None):
        """
        Args:
            start_path: Any path inside the repository to track
            settings: Tracker settings; defaults to TrackerSettings()
            runner: Git command runner; defaults to a GitCommandRunner using
                settings.command_timeout
        """
        self.settings = settings.model_copy() if settings is not None else TrackerSettings()
        self.logger = logging.getLogger(__name__)
        self.repository_root = find_repository_root(start_path)
        self.coordinator: Optional[RefreshCoordinator] = None
        self.monitor: Optional[GitRepositoryMonitor] = None

        if self.repository_root is None:
            self.logger.info(f"{start_path} is not inside a git repository, tracking disabled")
            return

        if runner is None:
            runner = GitCommandRunner(timeout=self.settings.command_timeout)
        try:
            walker = CommitHistoryWalker(self.repository_root, runner, self.settings.diff_format, self.settings.silent)
        except NotARepository as e:
            self.logger.info(f"{e}, tracking disabled")
            self.repository_root = None
            return

        parser = DiffParser(self.settings.diff_format, self.settings.record_whitespace_additions)
        self.coordinator = RefreshCoordinator(walker, parser, self.settings.number_of_commits)
        if self.settings.watch:
            self.monitor = GitRepositoryMonitor(self.repository_root, self.refresh, self.settings.debounce_seconds)

    @property
    def tracking_enabled(self) -> bool:
        return self.coordinator is not None

    @property
    def index(self) -> ModificationIndex:
        if self.coordinator is None:
            return ModificationIndex.empty()
        return self.coordinator.index

    @property
    def number_of_commits(self) -> int:
        return self.settings.number_of_commits

    def start(self) -> None:
        """Load the initial index and start watching the repository."""
        if self.coordinator is None:
            return
        self.coordinator.request_refresh("initial load")
        if self.monitor is not None:
            try:
                self.monitor.start()
            except OSError as e:
                self.logger.warning(f"Could not watch {self.repository_root} for changes: {e}")

    def stop(self) -> None:
        """Stop watching the repository. A refresh in flight still completes."""
        if self.monitor is not None:
            self.monitor.stop()

    def refresh(self) -> None:
        """Schedule a reload of the index, e.g. after the repository changed."""
        if self.coordinator is not None:
            self.coordinator.request_refresh("repository changed")

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no refresh is running or queued. True when idle."""
        if self.coordinator is None:
            return True
        return self.coordinator.wait_until_idle(timeout)

    def set_number_of_commits(self, number_of_commits: int) -> bool:
        """
        Change how many recent commits are tracked.

        Args:
            number_of_commits: New window size (N >= 0)

        Returns:
            bool: True if the change triggered a refresh

        Raises:
            pydantic.ValidationError: If number_of_commits is negative
        """
        self.settings.number_of_commits = number_of_commits
        if self.coordinator is None:
            return False
        return self.coordinator.set_number_of_commits(self.settings.number_of_commits)

    def add_publish_listener(self, listener: PublishListener) -> None:
        """Register a callback invoked with each newly published index."""
        if self.coordinator is not None:
            self.coordinator.add_publish_listener(listener)

    def get_repository_root(self) -> Optional[str]:
        return self.repository_root

    def _index_key(self, file_path: str) -> Optional[str]:
        if self.repository_root and os.path.isabs(file_path):
            file_path = get_relative_path(file_path, self.repository_root)
        return normalize_path(file_path)

    def get_modification_ranges(self, file_path: str) -> List[ModificationRange]:
        """
        Get the ranges added to a file by the tracked commits.

        Args:
            file_path: Absolute path, or path relative to the repository root

        Returns:
            List[ModificationRange]: Ranges in commit processing order (oldest
            commit first); empty if the file has none or nothing is loaded yet
        """
        if not file_path:
            return []
        return self.index.query(self._index_key(file_path))

    def get_sorted_modification_ranges(self, file_path: str) -> List[ModificationRange]:
        """Like get_modification_ranges, ordered by (start_line, start_char)."""
        if not file_path:
            return []
        return self.index.sorted_query(self._index_key(file_path))

    def get_highlights(self, file_path: str, text: str) -> List[HighlightSpan]:
        """
        Pick the spans of a document to mark.

        Args:
            file_path: Path of the document
            text: Current content of the document

        Returns:
            List[HighlightSpan]: At most settings.highlight_char_budget
            non-whitespace characters worth of marks
        """
        ranges = self.get_modification_ranges(file_path)
        return plan_highlights(text, ranges, self.settings.highlight_char_budget)

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
