import os
from pathlib import Path

from commitspans.paths import find_repository_root, get_relative_path, normalize_path


def test_normalize_path_replaces_backslashes() -> None:
    assert normalize_path("folder\\subfolder\\file.txt") == "folder/subfolder/file.txt"


def test_normalize_path_keeps_forward_slashes() -> None:
    assert normalize_path("folder/file.txt") == "folder/file.txt"


def test_normalize_path_passes_none_through() -> None:
    assert normalize_path(None) is None


def test_relative_path_inside_repository(tmp_path: Path) -> None:
    full_path = str(tmp_path / "src" / "file.txt")

    assert get_relative_path(full_path, str(tmp_path)) == os.path.join("src", "file.txt")


def test_relative_path_with_empty_full_path_returns_it() -> None:
    assert get_relative_path("", "/repo") == ""


def test_relative_path_with_empty_repository_path_returns_full_path() -> None:
    assert get_relative_path("/repo/src/file.txt", "") == "/repo/src/file.txt"
    assert get_relative_path("/repo/src/file.txt", None) == "/repo/src/file.txt"


def test_find_repository_root_from_root(tmp_path: Path) -> None:
    (tmp_path / ".git").mkdir()

    assert find_repository_root(tmp_path) == str(tmp_path)


def test_find_repository_root_from_nested_directory_and_file(tmp_path: Path) -> None:
    (tmp_path / ".git").mkdir()
    nested = tmp_path / "src" / "pkg"
    nested.mkdir(parents=True)
    source_file = nested / "mod.py"
    source_file.write_text("x = 1\n")

    assert find_repository_root(nested) == str(tmp_path)
    assert find_repository_root(source_file) == str(tmp_path)


def test_find_repository_root_accepts_gitfile(tmp_path: Path) -> None:
    (tmp_path / ".git").write_text("gitdir: /elsewhere/.git/worktrees/wt\n")

    assert find_repository_root(tmp_path) == str(tmp_path)


def test_find_repository_root_without_git_folder(tmp_path: Path) -> None:
    start = tmp_path / "not_a_repo"
    start.mkdir()

    assert find_repository_root(start) is None
