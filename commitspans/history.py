"""
Walking recent commit history to collect per-commit diffs.

For a window of N commits the walker lists the N+1 most recent commit
hashes, and for every adjacent (newer, older) pair fetches the diff from
older to newer together with the newer commit's message.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Protocol, Union

import git
from git import Repo
from tqdm import tqdm

from .diffops import DiffFormat
from .errors import NotARepository, VcsUnavailable


class VcsCommandRunner(Protocol):
    """Anything that can run a git subcommand and hand back its stdout."""

    def run(self, args: List[str], working_directory: Union[str, Path]) -> str:
        ...


class GitCommandRunner:
    """
    Runs git subcommands through GitPython.

    Every failure mode (missing git binary, non-zero exit, timeout) surfaces
    as VcsUnavailable, so callers only deal with one error type.
    """

    def __init__(self, timeout: Optional[float] = 30.0):
        """
        Args:
            timeout: Seconds after which a running git command is killed.
                None disables the limit.
        """
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)

    def run(self, args: List[str], working_directory: Union[str, Path]) -> str:
        """
        Run ``git <args>`` in working_directory.

        Args:
            args: Subcommand and its arguments, e.g. ``["log", "-n", "3"]``
            working_directory: Directory the command runs in

        Returns:
            str: The command's standard output

        Raises:
            VcsUnavailable: If the command cannot be started, fails, or times out
        """
        self.logger.debug(f"Running git {' '.join(args)} in {working_directory}")
        try:
            return git.Git(str(working_directory)).execute(
                ["git"] + list(args),
                kill_after_timeout=self.timeout,
            )
        except git.exc.GitError as e:
            raise VcsUnavailable(args, str(e)) from e
        except OSError as e:
            raise VcsUnavailable(args, str(e)) from e


@dataclass
class CommitDiff:
    """The diff a single commit introduced over its predecessor in the log."""
    commit_hash: str
    parent_hash: str
    diff_text: str
    commit_message: str


class CommitHistoryWalker:
    """
    Collects diffs and messages for the most recent commits of a repository.

    Usage:
        >>> walker = CommitHistoryWalker("/path/to/repo")
        >>> for commit in walker.walk(2):
        ...     print(commit.commit_hash, commit.commit_message)

    Notes:
        - Commits are listed in ``git log`` order, newest first
        - The oldest listed commit only serves as the base of the last diff,
          so a repository with a single commit yields no pairs
        - An empty repository (no commits yet) yields no pairs and no error
    """

    def __init__(self, repository_root: Union[str, Path], runner: Optional[VcsCommandRunner] = None,
                 diff_format: DiffFormat = DiffFormat.WORD, silent: bool = True):
        """
        Args:
            repository_root: Root directory of the git work tree
            runner: Command runner to use; defaults to a GitCommandRunner
            diff_format: Rendering requested from ``git diff``
            silent: Whether to suppress the progress bar

        Raises:
            NotARepository: If repository_root is not a git work tree
        """
        self.repository_root = str(repository_root)
        self.runner = runner if runner is not None else GitCommandRunner()
        self.diff_format = DiffFormat(diff_format)
        self.silent = silent
        self.logger = logging.getLogger(__name__)

        try:
            self.repo = Repo(self.repository_root)
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError) as e:
            raise NotARepository(self.repository_root, str(e)) from e

    def has_commits(self) -> bool:
        """Whether HEAD points at a commit yet."""
        return self.repo.head.is_valid()

    def get_commit_hashes(self, number_of_commits: int) -> List[str]:
        """
        List the hashes needed to diff the most recent number_of_commits commits.

        Args:
            number_of_commits: Size of the commit window (N >= 0)

        Returns:
            List[str]: Up to N+1 commit hashes, newest first; empty for a
            repository without commits

        Raises:
            VcsUnavailable: If ``git log`` fails
        """
        if number_of_commits < 0:
            raise ValueError(f"number_of_commits must be >= 0, got {number_of_commits}")
        if not self.has_commits():
            self.logger.info(f"Repository at {self.repository_root} has no commits yet")
            return []

        output = self.runner.run(
            ["log", "-n", str(number_of_commits + 1), "--pretty=format:%H"],
            self.repository_root,
        )
        return [line.strip() for line in output.splitlines() if line.strip()]

    def get_diff(self, older: str, newer: str) -> str:
        """
        Get the diff from older to newer in the configured rendering.

        Args:
            older: Base commit
            newer: Commit whose changes are wanted

        Returns:
            str: Raw ``git diff`` output

        Raises:
            VcsUnavailable: If ``git diff`` fails
        """
        # diff.noprefix and diff.{src,dst}Prefix would break the a/ b/ header grammar
        args = ["diff", "--no-color", "--no-ext-diff", "--src-prefix=a/", "--dst-prefix=b/"]
        if self.diff_format is DiffFormat.WORD:
            args.append("--word-diff=plain")
        args.extend([older, newer])
        return self.runner.run(args, self.repository_root)

    def get_commit_message(self, commit: str) -> str:
        """
        Get the full message (subject and body) of a commit.

        Trailing newlines are dropped; everything else is kept verbatim.

        Raises:
            VcsUnavailable: If ``git show`` fails
        """
        message = self.runner.run(["show", "-s", "--format=%B", commit], self.repository_root)
        return message.rstrip("\r\n")

    def walk(self, number_of_commits: int) -> List[CommitDiff]:
        """
        Collect the diff and message of each of the most recent commits.

        Args:
            number_of_commits: Size of the commit window (N >= 0)

        Returns:
            List[CommitDiff]: One entry per adjacent (newer, older) pair,
            newest pair first

        Raises:
            VcsUnavailable: If any git command fails
        """
        hashes = self.get_commit_hashes(number_of_commits)
        pairs = list(zip(hashes, hashes[1:]))

        commits = []
        for newer, older in tqdm(pairs, desc="Reading commits", unit="commits", disable=self.silent, leave=False):
            commits.append(CommitDiff(
                commit_hash=newer,
                parent_hash=older,
                diff_text=self.get_diff(older, newer),
                commit_message=self.get_commit_message(newer),
            ))

        self.logger.debug(f"Collected {len(commits)} commit diffs from {self.repository_root}")
        return commits
