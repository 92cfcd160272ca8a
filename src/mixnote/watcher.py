"""Filesystem watcher that keeps the vault index up to date.

One VaultWatcher owns at most one WatchSession at a time. A session runs a
watchdog Observer on the vault and a RebuildScheduler worker thread; every
relevant filesystem event requests a full rebuild of the index.
"""

import logging
import os
import threading
from collections.abc import Callable, Iterable
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from mixnote.config import Config
from mixnote.events import IndexCallback, IndexEventBus
from mixnote.indexer import Indexer
from mixnote.indexer.walker import VaultError, check_vault

logger = logging.getLogger(__name__)


class RebuildScheduler:
    """Runs rebuilds on a single worker thread, coalescing requests.

    Requests made while a rebuild is in flight collapse into one follow-up
    rebuild, which scans the vault as it is when it starts. A running rebuild
    is never interrupted.
    """

    def __init__(
        self,
        rebuild: Callable[[], object],
        name: str = "mixnote-rebuild",
        on_exit: Callable[[], None] | None = None,
    ):
        """Initialize the scheduler.

        Args:
            rebuild: Function performing one full rebuild.
            name: Worker thread name.
            on_exit: Called on the worker thread when it stops.
        """
        self._rebuild = rebuild
        self._name = name
        self._on_exit = on_exit
        self._cond = threading.Condition()
        self._pending = False
        self._running = False
        self._stopping = False
        self._thread: threading.Thread | None = None
        self.completed = 0

    def start(self) -> None:
        """Start the worker thread."""
        if self._thread is not None and self._thread.is_alive():
            logger.warning("Rebuild worker already running")
            return

        with self._cond:
            self._stopping = False
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()

    def request(self) -> bool:
        """Ask for a rebuild. Returns False if the scheduler is stopping."""
        with self._cond:
            if self._stopping:
                return False
            self._pending = True
            self._cond.notify_all()
        return True

    def stop(self, timeout: float | None = None) -> None:
        """Stop the worker, dropping any pending request.

        Blocks until a rebuild already in flight has finished.
        """
        with self._cond:
            self._stopping = True
            self._pending = False
            self._cond.notify_all()

        if self._thread is None:
            return
        self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            logger.warning("Rebuild worker did not stop cleanly")
        self._thread = None

    @property
    def busy(self) -> bool:
        with self._cond:
            return self._pending or self._running

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        """Wait until no rebuild is pending or running.

        Returns:
            True if idle, False if the timeout elapsed first.
        """
        with self._cond:
            return self._cond.wait_for(
                lambda: not self._pending and not self._running,
                timeout=timeout,
            )

    def _run(self) -> None:
        """Worker loop."""
        logger.debug("Rebuild worker started")
        try:
            while True:
                with self._cond:
                    while not self._pending and not self._stopping:
                        self._cond.wait()
                    if self._stopping:
                        break
                    self._pending = False
                    self._running = True

                try:
                    self._rebuild()
                except Exception:
                    logger.exception("Error during index rebuild")
                finally:
                    with self._cond:
                        self._running = False
                        self.completed += 1
                        self._cond.notify_all()
        finally:
            if self._on_exit is not None:
                self._on_exit()
            logger.debug("Rebuild worker stopped")


class VaultEventHandler(FileSystemEventHandler):
    """Forwards file events within the watch depth to a change callback.

    Directory events are ignored. A file is within the depth when it sits at
    most ``depth`` directory levels below the vault root. Events for the
    ``ignored`` files (the index outputs), their SQLite side files and
    snapshot temp files are dropped, so writing the index never retriggers
    a rebuild.
    """

    def __init__(
        self,
        vault_root: Path,
        depth: int,
        on_change: Callable[[str], None],
        ignored: Iterable[Path] = (),
    ):
        super().__init__()
        self.vault_root = vault_root
        self.depth = depth
        self.on_change = on_change
        self._ignored = [(p.absolute().parent.resolve(), p.name) for p in ignored]

    def is_ignored(self, path: str | bytes) -> bool:
        file_path = Path(os.fsdecode(path)).absolute()
        parent = file_path.parent.resolve()
        name = file_path.name
        for ignored_parent, ignored_name in self._ignored:
            if parent != ignored_parent:
                continue
            if name == ignored_name:
                return True
            # SQLite -wal/-shm/-journal files, snapshot temp files
            if name.startswith(f"{ignored_name}-") or name.startswith(f".{ignored_name}."):
                return True
        return False

    def within_depth(self, path: str | bytes) -> bool:
        file_path = Path(os.fsdecode(path))
        for root in (self.vault_root, self.vault_root.resolve()):
            try:
                relative = file_path.relative_to(root)
            except ValueError:
                continue
            return len(relative.parts) - 1 <= self.depth
        return False

    def _handle(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        paths = [event.src_path]
        dest_path = getattr(event, "dest_path", "")
        if dest_path:
            paths.append(dest_path)
        if any(self.within_depth(p) and not self.is_ignored(p) for p in paths):
            self.on_change(os.fsdecode(event.src_path))

    def on_created(self, event: FileSystemEvent) -> None:
        self._handle(event)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._handle(event)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._handle(event)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._handle(event)


class WatchSession:
    """An open watch on one vault: observer, handler and rebuild worker."""

    def __init__(self, vault_root: Path, indexer: Indexer, depth: int):
        self.vault_root = vault_root
        self.indexer = indexer
        self.depth = depth
        self.scheduler = RebuildScheduler(
            indexer.rebuild,
            name=f"mixnote-rebuild-{vault_root.name}",
            on_exit=indexer.close,
        )
        self.handler = VaultEventHandler(
            vault_root,
            depth,
            self._on_change,
            ignored=[indexer.snapshot_path, indexer.db.db_path],
        )
        self._observer: BaseObserver | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def open(self) -> None:
        """Start watching and request the initial rebuild.

        Raises:
            VaultError: If the filesystem observer cannot be started.
        """
        self.scheduler.start()
        observer = Observer()
        try:
            observer.schedule(self.handler, str(self.vault_root), recursive=self.depth > 0)
            observer.start()
        except OSError as e:
            self.scheduler.stop()
            raise VaultError(f"Cannot watch vault {self.vault_root}: {e}") from e
        self._observer = observer
        self.scheduler.request()

    def close(self) -> None:
        """Stop the observer and the rebuild worker.

        Blocks until any in-flight rebuild of this vault has finished.
        """
        if self._closed:
            return
        self._closed = True
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None
        self.scheduler.stop()
        logger.info("Stopped watching %s", self.vault_root)

    def _on_change(self, path: str) -> None:
        if self._closed:
            return
        logger.debug("Change detected in %s: %s", self.vault_root, path)
        self.scheduler.request()


class VaultWatcher:
    """Owns the single active watch session of the process.

    Thread Safety:
        start_watch() and stop_watch() are serialized by a lock; the session
        and the watched vault path are only changed through them.
    """

    def __init__(self, config: Config, bus: IndexEventBus | None = None):
        """Initialize the watcher.

        Args:
            config: Configuration with snapshot/database paths and watch depth.
            bus: Event bus shared by every session (created if omitted).
        """
        self._config = config
        self.bus = bus or IndexEventBus()
        self._session: WatchSession | None = None
        self._lock = threading.Lock()

    @property
    def is_watching(self) -> bool:
        return self._session is not None

    @property
    def current_vault(self) -> Path | None:
        session = self._session
        return session.vault_root if session else None

    @property
    def session(self) -> WatchSession | None:
        return self._session

    def get_snapshot_path(self) -> Path:
        """Path of the JSON snapshot written on every rebuild."""
        return self._config.index_file

    def subscribe(self, callback: IndexCallback) -> Callable[[], None]:
        """Register a callback for index updates; returns an unsubscribe function."""
        return self.bus.subscribe(callback)

    def start_watch(self, vault_path: str | Path) -> WatchSession:
        """
        Watch a vault, replacing any previous session.

        The vault is validated first; an invalid vault raises without
        touching the current session. The previous session is fully closed
        before the new one opens, and the new session starts with a full
        rebuild.

        Raises:
            VaultError: If the vault cannot be read or watched.
        """
        vault_root = Path(vault_path).expanduser().absolute()
        check_vault(vault_root)

        with self._lock:
            self._close_session()

            indexer = Indexer(
                vault_root,
                self._config.db_path,
                self._config.index_file,
                bus=self.bus,
                prune_db=self._config.prune_db,
            )
            session = WatchSession(vault_root, indexer, self._config.watch_depth)
            session.open()
            self._session = session

        logger.info("Watching vault %s (depth %d)", vault_root, self._config.watch_depth)
        return session

    def stop_watch(self) -> None:
        """Stop the active session, if any. Safe to call repeatedly."""
        with self._lock:
            self._close_session()

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        """Wait for the active session's pending rebuilds to finish."""
        session = self._session
        if session is None:
            return True
        return session.scheduler.wait_until_idle(timeout)

    def _close_session(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None
