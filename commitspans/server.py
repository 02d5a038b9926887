"""
MCP server exposing the modification index of one repository.

Run it against a repository and connect an editor or agent over stdio:
    commitspans-server --repo /path/to/repo --commits 3
"""
import argparse
import logging
from typing import List, Optional

from pydantic import BaseModel, Field
from mcp.server.fastmcp import FastMCP

from .config import TrackerSettings
from .tracker import CommitModificationTracker


# Create an MCP server
mcp = FastMCP("commit-modifications")

_tracker: Optional[CommitModificationTracker] = None


class ModificationRangeModel(BaseModel):
    """A span of text added by a recent commit."""
    start_line: int = Field(description="1-based line number in the current file.")
    start_char: int = Field(description="0-based character offset within the line.")
    length: int = Field(description="Number of added characters.")
    commit_message: str = Field(description="Message of the commit that added the span.")


class ModificationRangesResponse(BaseModel):
    """Response from the ModificationRanges tool."""
    file_path: str = Field(description="The file path that was queried.")
    ranges: List[ModificationRangeModel] = Field(description="Added spans ordered by line, then character.")


class RepositoryRootResponse(BaseModel):
    """Response from the RepositoryRoot tool."""
    repository_root: str = Field(description="Absolute path of the repository root, empty if none.")
    tracking_enabled: bool = Field(description="Whether modifications are being tracked.")


class CommitWindowResponse(BaseModel):
    """Response from the SetCommitWindow tool."""
    number_of_commits: int = Field(description="The commit window now in effect.")
    refresh_scheduled: bool = Field(description="Whether the change triggered a reload.")


def configure(tracker: Optional[CommitModificationTracker]) -> None:
    """Bind the tracker the tools answer from."""
    global _tracker
    _tracker = tracker


def _get_tracker() -> CommitModificationTracker:
    if _tracker is None:
        raise RuntimeError("No repository is being tracked. Start the server with --repo.")
    return _tracker


@mcp.tool(name="ModificationRanges")
def modification_ranges(file_path: str) -> ModificationRangesResponse:
    """Lists the spans of a file that the most recent commits added, each with the message of the commit that added it.

    Args:
        file_path: Absolute path, or path relative to the repository root.
    """
    tracker = _get_tracker()
    ranges = [
        ModificationRangeModel(
            start_line=r.start_line,
            start_char=r.start_char,
            length=r.length,
            commit_message=r.commit_message,
        )
        for r in tracker.get_sorted_modification_ranges(file_path)
    ]
    return ModificationRangesResponse(file_path=file_path, ranges=ranges)


@mcp.tool(name="RepositoryRoot")
def repository_root() -> RepositoryRootResponse:
    """Returns the root of the tracked repository."""
    tracker = _get_tracker()
    root = tracker.get_repository_root()
    return RepositoryRootResponse(repository_root=root or "", tracking_enabled=tracker.tracking_enabled)


@mcp.tool(name="SetCommitWindow")
def set_commit_window(number_of_commits: int) -> CommitWindowResponse:
    """Changes how many of the most recent commits are tracked and reloads if it changed.

    Raises:
        ValueError: If number_of_commits is negative.
    """
    tracker = _get_tracker()
    if number_of_commits < 0:
        raise ValueError(f"Number of commits ({number_of_commits}) must be zero or positive.")
    scheduled = tracker.set_number_of_commits(number_of_commits)
    return CommitWindowResponse(number_of_commits=tracker.number_of_commits, refresh_scheduled=scheduled)


def main():
    """Entry point for the direct execution server."""
    parser = argparse.ArgumentParser(description="Serve recent commit modifications of a git repository over MCP")
    parser.add_argument("--repo", type=str, default=".",
                        help="Any path inside the repository to track (default: current directory)")
    parser.add_argument("--commits", type=int, default=TrackerSettings().number_of_commits,
                        help="How many of the most recent commits to track")
    parser.add_argument("--no-watch", action="store_true",
                        help="Do not reload when the repository changes")
    args = parser.parse_args()

    # stdout carries the MCP stream, so logs go to stderr
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
    )

    settings = TrackerSettings(number_of_commits=args.commits, watch=not args.no_watch)
    with CommitModificationTracker(args.repo, settings) as tracker:
        configure(tracker)
        logging.info(f"Tracking {tracker.get_repository_root() or 'nothing'} for the last {args.commits} commits")
        mcp.run()


if __name__ == "__main__":
    main()
