"""
Pytest configuration and shared fixtures.
"""
import shutil
from pathlib import Path

import pytest
from git import Repo

from tests.helpers import commit_file


@pytest.fixture
def empty_repo(tmp_path: Path) -> Repo:
    """A freshly initialised repository without commits."""
    if shutil.which("git") is None:
        pytest.skip("git executable not available")
    repo = Repo.init(tmp_path / "repo")
    with repo.config_writer() as config:
        config.set_value("user", "name", "Test Author")
        config.set_value("user", "email", "author@example.com")
    return repo


@pytest.fixture
def git_repo(empty_repo: Repo) -> Repo:
    """A repository with three commits: create app.py, extend app.py, add README.md."""
    commit_file(empty_repo, "src/app.py", "import os\n\ndef main():\n    return 0\n", "Initial commit")
    commit_file(empty_repo, "src/app.py", "import os\n\ndef main():\n    return 0\n\nprint(main())\n", "Print result")
    commit_file(empty_repo, "README.md", "alpha\nbeta\n", "Add readme")
    return empty_repo
