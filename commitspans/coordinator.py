"""
Reloading the modification index when the repository or the window changes.

State machine: IDLE -> LOADING -> IDLE. A refresh requested while LOADING
is remembered in a single pending slot and runs right after the current
one finishes, so there is never more than one walk at a time and any
number of requests during a walk collapse into one rerun.
"""

import logging
import threading
from enum import Enum
from typing import Callable, List, Optional

from .diffops import DiffParser
from .errors import CommitTrackerError
from .history import CommitHistoryWalker
from .index import ModificationIndex

PublishListener = Callable[[ModificationIndex], None]


class RefreshState(Enum):
    IDLE = "idle"
    LOADING = "loading"


class RefreshCoordinator:
    """
    Runs walk-and-parse refreshes off the caller's thread and publishes the result.

    The published index is replaced by a single attribute assignment, so
    readers always get either the old or the new snapshot. A failed refresh
    leaves the previous index in place.

    Usage:
        >>> coordinator = RefreshCoordinator(walker, DiffParser(), number_of_commits=2)
        >>> coordinator.request_refresh("startup")
        >>> coordinator.wait_until_idle(timeout=10)
        >>> coordinator.index.query("src/app.py")
    """

    def __init__(self, walker: CommitHistoryWalker, parser: DiffParser, number_of_commits: int):
        """
        Args:
            walker: Source of commit diffs for the tracked repository
            parser: Parser matching the walker's diff format
            number_of_commits: Initial commit window (N >= 0)
        """
        self.walker = walker
        self.parser = parser
        self.logger = logging.getLogger(__name__)

        self._number_of_commits = self._validate_window(number_of_commits)
        self._index = ModificationIndex.empty()
        self._state = RefreshState.IDLE
        self._pending_reason: Optional[str] = None
        self._condition = threading.Condition()
        self._listeners: List[PublishListener] = []
        self.refresh_count = 0
        self.last_error: Optional[Exception] = None

    @staticmethod
    def _validate_window(number_of_commits: int) -> int:
        if isinstance(number_of_commits, bool) or not isinstance(number_of_commits, int):
            raise TypeError(f"number_of_commits must be an int, got {number_of_commits!r}")
        if number_of_commits < 0:
            raise ValueError(f"number_of_commits must be >= 0, got {number_of_commits}")
        return number_of_commits

    @property
    def index(self) -> ModificationIndex:
        """The currently published snapshot."""
        return self._index

    @property
    def state(self) -> RefreshState:
        with self._condition:
            return self._state

    @property
    def number_of_commits(self) -> int:
        return self._number_of_commits

    def set_number_of_commits(self, number_of_commits: int) -> bool:
        """
        Change the commit window and refresh if it actually changed.

        Args:
            number_of_commits: New window size (N >= 0)

        Returns:
            bool: True if a refresh was requested

        Raises:
            ValueError: If number_of_commits is negative
        """
        number_of_commits = self._validate_window(number_of_commits)
        if number_of_commits == self._number_of_commits:
            return False

        self.logger.info(f"Number of commits updated: {self._number_of_commits} -> {number_of_commits}")
        self._number_of_commits = number_of_commits
        self.request_refresh("commit window changed")
        return True

    def add_publish_listener(self, listener: PublishListener) -> None:
        """Register a callback that receives every newly published index."""
        self._listeners.append(listener)

    def request_refresh(self, reason: str = "requested") -> None:
        """
        Ask for a reload of the index.

        Starts a background refresh when idle. While a refresh is running the
        request is parked in the pending slot instead, overwriting any
        request already parked there.

        Args:
            reason: Short description for the log
        """
        with self._condition:
            if self._state is RefreshState.LOADING:
                self._pending_reason = reason
                self.logger.debug(f"Refresh already running, queued rerun ({reason})")
                return
            self._state = RefreshState.LOADING

        worker = threading.Thread(target=self._run, args=(reason,), name="commitspans-refresh", daemon=True)
        worker.start()

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Block until no refresh is running or queued.

        Returns:
            bool: False if the timeout expired first
        """
        with self._condition:
            return self._condition.wait_for(lambda: self._state is RefreshState.IDLE, timeout=timeout)

    def _run(self, reason: str) -> None:
        while True:
            self.refresh_now(reason)

            with self._condition:
                if self._pending_reason is None:
                    self._state = RefreshState.IDLE
                    self._condition.notify_all()
                    return
                reason = self._pending_reason
                self._pending_reason = None

    def refresh_now(self, reason: str = "requested") -> bool:
        """
        Walk, parse and publish synchronously in the calling thread.

        Callers other than the worker must make sure no other refresh runs
        at the same time; request_refresh does that.

        Returns:
            bool: True if a new index was published
        """
        number_of_commits = self._number_of_commits
        self.logger.debug(f"Refreshing modifications for the last {number_of_commits} commits ({reason})")

        try:
            commits = self.walker.walk(number_of_commits)
            # Oldest pair first, so each file's ranges follow commit order
            results = [self.parser.parse(c.diff_text, c.commit_message) for c in reversed(commits)]
            new_index = ModificationIndex.build(results)
        except CommitTrackerError as e:
            self.last_error = e
            self.logger.warning(f"Refresh aborted, keeping previous modifications: {e}")
            return False
        except Exception as e:
            self.last_error = e
            self.logger.exception(f"Unexpected error during refresh, keeping previous modifications: {e}")
            return False

        self._index = new_index
        self.refresh_count += 1
        self.last_error = None
        self.logger.info(f"Loaded modifications from {len(commits)} commits: {new_index}")

        for listener in list(self._listeners):
            try:
                listener(new_index)
            except Exception as e:
                self.logger.warning(f"Error in publish listener: {e}")
        return True
