"""
Path helpers for keying modifications consistently.

Index keys are repository-relative and forward-slash separated, the way git
prints them in diff headers. Anything that looks a path up in the index has
to go through the same normalization.
"""

import os
from pathlib import Path
from typing import Optional, Union

VCS_METADATA_DIR = ".git"


def normalize_path(path: Optional[str]) -> Optional[str]:
    """
    Convert every backslash in a path to a forward slash.

    Args:
        path: Path to normalize, may be None

    Returns:
        The normalized path, or None if path was None
    """
    if path is None:
        return None
    return path.replace("\\", "/")


def get_relative_path(full_path: Optional[str], repository_path: Optional[str]) -> Optional[str]:
    """
    Get the path of a file relative to the repository root.

    If either argument is empty the full path is returned unchanged. The
    result uses the native separator; callers normalize it afterwards.

    Args:
        full_path: Absolute path of the file
        repository_path: Root directory of the repository

    Returns:
        The path relative to repository_path, or full_path as a fallback
    """
    if not full_path or not repository_path:
        return full_path
    return os.path.relpath(full_path, repository_path)


def find_repository_root(start_path: Union[str, Path]) -> Optional[str]:
    """
    Find the root of the git repository containing start_path.

    Walks parent directories upward until one holds a ``.git`` entry. Both a
    ``.git`` directory and a ``.git`` file (worktrees, submodules) count.

    Args:
        start_path: Directory or file to start searching from

    Returns:
        The repository root as a string, or None if the filesystem root is
        reached without finding one
    """
    current = Path(start_path).expanduser().absolute()
    if current.is_file():
        current = current.parent

    for directory in [current, *current.parents]:
        if (directory / VCS_METADATA_DIR).exists():
            return str(directory)
    return None
