import os
import time
from pathlib import Path

import pytest
from git import Repo
from pydantic import ValidationError

from commitspans.config import TrackerSettings
from commitspans.errors import VcsUnavailable
from commitspans.models import ModificationRange
from commitspans.tracker import CommitModificationTracker
from tests.helpers import commit_file, requires_git


def test_tracker_outside_repository_is_disabled(tmp_path: Path) -> None:
    tracker = CommitModificationTracker(tmp_path, TrackerSettings(watch=False))

    with tracker:
        assert tracker.wait_until_idle(timeout=1)

    assert not tracker.tracking_enabled
    assert tracker.get_repository_root() is None
    assert tracker.get_modification_ranges(str(tmp_path / "file.txt")) == []
    assert not tracker.set_number_of_commits(3)


def test_tracker_with_broken_git_folder_is_disabled(tmp_path: Path) -> None:
    (tmp_path / ".git").mkdir()

    tracker = CommitModificationTracker(tmp_path, TrackerSettings(watch=False))

    assert not tracker.tracking_enabled
    assert tracker.get_sorted_modification_ranges("README.md") == []


@requires_git
def test_tracker_loads_latest_commit(git_repo: Repo) -> None:
    root = git_repo.working_tree_dir
    settings = TrackerSettings(number_of_commits=1, watch=False)

    with CommitModificationTracker(os.path.join(root, "src"), settings) as tracker:
        assert tracker.wait_until_idle(timeout=30)

        expected = [ModificationRange(1, 0, 5, "Add readme"), ModificationRange(2, 0, 4, "Add readme")]
        assert tracker.get_repository_root() == root
        assert tracker.get_modification_ranges("README.md") == expected
        assert tracker.get_modification_ranges(os.path.join(root, "README.md")) == expected
        assert tracker.get_modification_ranges("src/app.py") == []


@requires_git
@pytest.mark.parametrize("option, value", [
    ("noprefix", "true"),
    ("srcPrefix", "old/"),
    ("dstPrefix", "new/"),
])
def test_tracker_ignores_user_diff_prefix_config(empty_repo: Repo, option: str, value: str) -> None:
    with empty_repo.config_writer() as config:
        config.set_value("diff", option, value)
    commit_file(empty_repo, "a.txt", "one\n", "First")
    commit_file(empty_repo, "a.txt", "one two\n", "Second")

    with CommitModificationTracker(empty_repo.working_tree_dir, TrackerSettings(number_of_commits=1, watch=False)) as tracker:
        assert tracker.wait_until_idle(timeout=30)

        assert tracker.get_modification_ranges("a.txt") == [ModificationRange(1, 4, 3, "Second")]


@requires_git
def test_tracker_window_change_reloads(git_repo: Repo) -> None:
    settings = TrackerSettings(number_of_commits=1, watch=False)

    with CommitModificationTracker(git_repo.working_tree_dir, settings) as tracker:
        assert tracker.wait_until_idle(timeout=30)
        assert not tracker.set_number_of_commits(1)
        assert tracker.set_number_of_commits(2)
        assert tracker.wait_until_idle(timeout=30)

        ranges = tracker.get_modification_ranges("src\\app.py")
        assert ranges
        assert {r.commit_message for r in ranges} == {"Print result"}
        assert any(r.length == len("print(main())") for r in ranges)
        assert tracker.number_of_commits == 2


@requires_git
def test_tracker_rejects_negative_window(git_repo: Repo) -> None:
    tracker = CommitModificationTracker(git_repo.working_tree_dir, TrackerSettings(watch=False))

    with pytest.raises(ValidationError):
        tracker.set_number_of_commits(-1)
    assert tracker.number_of_commits == 2


def test_tracker_on_empty_repository_has_empty_index(empty_repo: Repo) -> None:
    with CommitModificationTracker(empty_repo.working_tree_dir, TrackerSettings(watch=False)) as tracker:
        assert tracker.wait_until_idle(timeout=30)

        assert tracker.tracking_enabled
        assert len(tracker.index) == 0
        assert tracker.coordinator.last_error is None


def test_tracker_survives_git_failure(git_repo: Repo) -> None:
    class BrokenRunner:
        def run(self, args, working_directory):
            raise VcsUnavailable(args, "git not found")

    tracker = CommitModificationTracker(git_repo.working_tree_dir, TrackerSettings(watch=False), BrokenRunner())

    with tracker:
        assert tracker.wait_until_idle(timeout=10)

    assert tracker.get_modification_ranges("README.md") == []
    assert isinstance(tracker.coordinator.last_error, VcsUnavailable)


@requires_git
def test_tracker_highlights(git_repo: Repo) -> None:
    settings = TrackerSettings(number_of_commits=1, watch=False, highlight_char_budget=7)

    with CommitModificationTracker(git_repo.working_tree_dir, settings) as tracker:
        assert tracker.wait_until_idle(timeout=30)
        highlights = tracker.get_highlights("README.md", "alpha\nbeta\n")

    assert [(h.start_offset, h.end_offset) for h in highlights] == [(0, 5), (6, 8)]
    assert highlights[0].tooltip == "Commit message: Add readme"


@requires_git
def test_tracker_reloads_after_new_commit(git_repo: Repo) -> None:
    settings = TrackerSettings(number_of_commits=1, debounce_seconds=0.2)

    with CommitModificationTracker(git_repo.working_tree_dir, settings) as tracker:
        assert tracker.wait_until_idle(timeout=30)
        commit_file(git_repo, "NOTES.md", "remember\n", "Add notes")

        deadline = time.monotonic() + 15
        while not tracker.get_modification_ranges("NOTES.md") and time.monotonic() < deadline:
            time.sleep(0.1)

        assert tracker.get_modification_ranges("NOTES.md") == [ModificationRange(1, 0, 8, "Add notes")]
