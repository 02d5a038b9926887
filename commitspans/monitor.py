"""
Watching a repository's .git directory for changes.

Commits, checkouts, merges and rebases each touch many files under .git in
quick succession. The handler debounces those bursts into a single
"repository changed" signal.
"""

import logging
import threading
from pathlib import Path
from typing import Callable, Optional, Union

import git
from git import Repo
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .paths import VCS_METADATA_DIR

DEFAULT_DEBOUNCE_SECONDS = 0.5


class RepositoryChangeHandler(FileSystemEventHandler):
    """
    Collapses bursts of filesystem events into one callback.

    Every event (re)starts a timer; the callback runs once the timer expires
    without a newer event having arrived.
    """

    def __init__(self, on_repository_changed: Callable[[], None], debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS):
        """
        Args:
            on_repository_changed: Called once per quiet period after events
            debounce_seconds: Length of the quiet period
        """
        super().__init__()
        self.on_repository_changed = on_repository_changed
        self.debounce_seconds = debounce_seconds
        self.logger = logging.getLogger(__name__)
        self._debounce_lock = threading.Lock()
        self._debounce_timer: Optional[threading.Timer] = None
        self._generation = 0
        self._last_event: Optional[FileSystemEvent] = None

    def _schedule_signal(self, event: FileSystemEvent) -> None:
        with self._debounce_lock:
            self._last_event = event

            # Cancel existing timer
            if self._debounce_timer:
                self._debounce_timer.cancel()

            self._generation += 1
            self._debounce_timer = threading.Timer(self.debounce_seconds, self._fire, args=(self._generation,))
            self._debounce_timer.daemon = True
            self._debounce_timer.start()

    def _fire(self, generation: int) -> None:
        with self._debounce_lock:
            # A cancelled timer can still fire if it was already running
            if generation != self._generation:
                return
            self._debounce_timer = None
            event = self._last_event

        if event is not None:
            self.logger.debug(f"Detected changes in git repository: {event.event_type} {event.src_path}")
        try:
            self.on_repository_changed()
        except Exception as e:
            self.logger.warning(f"Error in repository change callback: {e}")

    def cancel(self) -> None:
        """Drop a pending signal, if any."""
        with self._debounce_lock:
            if self._debounce_timer:
                self._debounce_timer.cancel()
                self._debounce_timer = None
            self._generation += 1

    @property
    def pending(self) -> bool:
        with self._debounce_lock:
            return self._debounce_timer is not None

    def on_created(self, event: FileSystemEvent) -> None:
        self._schedule_signal(event)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._schedule_signal(event)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._schedule_signal(event)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._schedule_signal(event)


class GitRepositoryMonitor:
    """
    Watches the repository's git directory recursively and signals changes.

    Usage:
        >>> with GitRepositoryMonitor("/path/to/repo", tracker.refresh) as monitor:
        ...     ...  # refresh runs after every commit, checkout, merge
    """

    def __init__(self, repository_root: Union[str, Path], on_repository_changed: Callable[[], None],
                 debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS):
        self.repository_root = Path(repository_root)
        self.watch_path = self.repository_root / VCS_METADATA_DIR
        self.handler = RepositoryChangeHandler(on_repository_changed, debounce_seconds)
        self.logger = logging.getLogger(__name__)
        self._observer: Optional[Observer] = None

    @property
    def is_running(self) -> bool:
        return self._observer is not None

    def resolve_watch_path(self) -> Path:
        """
        Find the directory holding the repository's metadata.

        A ``.git`` directory is watched as is. A ``.git`` file (linked
        worktree, submodule, ``--separate-git-dir``) points elsewhere; then
        the common git directory is watched, which contains refs, objects and
        the worktree's own admin directory.

        Raises:
            FileNotFoundError: If no usable git directory exists
        """
        dot_git = self.repository_root / VCS_METADATA_DIR
        if dot_git.is_dir():
            return dot_git
        if not dot_git.is_file():
            raise FileNotFoundError(f"No git metadata directory at {dot_git}")

        try:
            repo = Repo(self.repository_root)
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError) as e:
            raise FileNotFoundError(f"Unresolvable git file at {dot_git}: {e}") from e
        with repo:
            return Path(repo.common_dir)

    def start(self) -> None:
        """
        Start watching the repository's git directory.

        Raises:
            FileNotFoundError: If no git directory can be found
        """
        if self._observer is not None:
            return
        self.watch_path = self.resolve_watch_path()

        observer = Observer()
        observer.schedule(self.handler, str(self.watch_path), recursive=True)
        observer.daemon = True
        observer.start()
        self._observer = observer
        self.logger.info(f"Started monitoring the git repository at {self.repository_root}")

    def stop(self) -> None:
        """Stop watching and drop any pending signal."""
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join()
        self._observer = None
        self.handler.cancel()
        self.logger.info(f"Stopped monitoring the git repository at {self.repository_root}")

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
