"""Helpers shared by the test modules."""
import shutil
from pathlib import Path
from typing import Callable, Dict, List, Union

import pytest
from git import Repo

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git executable not available")


def commit_file(repo: Repo, relative_path: str, content: str, message: str) -> str:
    """Write a file into the work tree, commit it, and return the new commit hash."""
    file_path = Path(repo.working_tree_dir) / relative_path
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(content)
    repo.index.add([relative_path])
    return repo.index.commit(message).hexsha


class FakeRunner:
    """Command runner answering from canned output, keyed by subcommand."""

    def __init__(self, outputs: Dict[str, Union[str, Callable[[List[str]], str]]]):
        self.outputs = outputs
        self.calls: List[List[str]] = []

    def run(self, args: List[str], working_directory) -> str:
        self.calls.append(list(args))
        output = self.outputs[args[0]]
        return output(args) if callable(output) else output
