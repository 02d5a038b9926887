"""
Error taxonomy for commit modification tracking.

Malformed diff lines have no exception type: the diff parser logs and
skips them.
"""

from typing import List, Optional


class CommitTrackerError(Exception):
    """Base class for all tracker errors."""


class NotARepository(CommitTrackerError):
    """Raised when a path is not inside a git work tree.

    Tracking simply stays disabled in that case, so callers catch this and
    carry on with empty results.
    """

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        message = f"Not a git repository: {path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class VcsUnavailable(CommitTrackerError):
    """Raised when a git command cannot run, fails, or times out."""

    def __init__(self, args: Optional[List[str]], reason: str):
        self.args_list = list(args) if args else []
        self.reason = reason
        command = " ".join(["git"] + self.args_list)
        super().__init__(f"Git command failed: {command}: {reason}")
