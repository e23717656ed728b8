"""Icon asset cache

Keeps one rendered PNG per IconKey inside a per-session runtime
directory. The in-memory mapping and the directory contents are kept in
lockstep: a cached entry is served only after its file is confirmed on
disk, a missing file is re-rendered, and superseded files of a bucket
are deleted as soon as their replacement exists.

Sessions live side by side under runtime_base_dir(). Each one holds an
exclusive flock on its own directory until stop(); a directory whose
lock can be taken belongs to a dead session and is removed at the next
start.

Only the event-loop thread touches the cache.
"""

import fcntl
import getpass
import os
import shutil
import stat
import tempfile
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, List, Optional

from ..core.base.lifecycle_component import LifecycleComponent
from ..core.interfaces.rasterizer import IRasterizer
from ..core.models import CachedIcon, IconKey
from ..utils import CacheError, CacheErrorKind, app_logger, logger, LogCategory
from .sources import IconSourceLocator

RUNTIME_DIR_MODE = 0o700
ICON_FILE_MODE = 0o600
ICON_SUFFIX = ".png"
SESSION_PREFIX = "session-"

# A key whose render failed is not retried before this many seconds
RENDER_RETRY_SECONDS = 300.0


def runtime_base_dir() -> Path:
    """$XDG_RUNTIME_DIR/rivaltray, or a per-user directory under the temp dir"""
    runtime = os.getenv("XDG_RUNTIME_DIR")
    if runtime and Path(runtime).is_dir():
        return Path(runtime) / "rivaltray"
    return Path(tempfile.gettempdir()) / f"rivaltray-{getpass.getuser()}"


def _try_lock(path: Path) -> Optional[int]:
    """Open path and take an exclusive flock; None if another session holds it"""
    fd = os.open(path, os.O_RDONLY | os.O_DIRECTORY)
    try:
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
    except BlockingIOError:
        os.close(fd)
        return None
    except OSError:
        os.close(fd)
        raise
    return fd


def _unlock(fd: int) -> None:
    fcntl.flock(fd, fcntl.LOCK_UN)
    os.close(fd)


@contextmanager
def _base_lock(base: Path):
    """Serialize session creation, sweeping and base removal between processes"""
    fd = os.open(base, os.O_RDONLY | os.O_DIRECTORY)
    try:
        fcntl.flock(fd, fcntl.LOCK_EX)
        yield
    finally:
        fcntl.flock(fd, fcntl.LOCK_UN)
        os.close(fd)


class IconAssetCache(LifecycleComponent):
    """Renders icons on first use and serves cached files afterwards

    With runtime_dir given, that directory is the session directory and
    start() fails if another live session holds it. Without it, a fresh
    session directory is created under runtime_base_dir().
    """

    def __init__(
        self,
        rasterizer: IRasterizer,
        sources: Optional[IconSourceLocator] = None,
        runtime_dir: Optional[Path] = None,
        size: int = 64,
    ):
        super().__init__("IconAssetCache")
        self._rasterizer = rasterizer
        self._sources = sources or IconSourceLocator()
        self._base_dir: Optional[Path] = None if runtime_dir else runtime_base_dir()
        self._runtime_dir: Optional[Path] = Path(runtime_dir) if runtime_dir else None
        self._size = size
        self._lock_fd: Optional[int] = None

        self._entries: Dict[IconKey, CachedIcon] = {}
        self._last_good: Optional[CachedIcon] = None
        self._failed: Dict[IconKey, float] = {}
        self._render_count = 0

    # ==================== Lifecycle ====================

    def _do_start(self) -> bool:
        """Create and lock the session directory, clear what dead sessions left

        Raises:
            CacheError: DISK_FAILURE if the directory cannot be created
                safely or is held by another session
        """
        swept = 0
        if self._base_dir is not None:
            self._prepare_dir(self._base_dir)
            try:
                with _base_lock(self._base_dir):
                    swept = self._sweep_dead_sessions()
                    self._runtime_dir = Path(tempfile.mkdtemp(prefix=SESSION_PREFIX, dir=self._base_dir))
                    self._acquire_session_lock()
            except OSError as e:
                raise CacheError(
                    CacheErrorKind.DISK_FAILURE,
                    f"Cannot create a session directory in {self._base_dir}",
                    context={"path": str(self._base_dir)},
                    original_exception=e,
                ) from e
        else:
            self._prepare_dir(self._runtime_dir)
            self._acquire_session_lock()

        removed = self.remove_orphans()
        app_logger.log_icon_event(
            "Runtime directory ready",
            {"path": str(self._runtime_dir), "orphans_removed": removed, "dead_sessions_removed": swept},
        )
        return True

    def _do_stop(self) -> bool:
        """Remove the session directory, but only one this cache holds"""
        self._entries.clear()
        self._last_good = None
        self._failed.clear()
        if self._lock_fd is None:
            return True
        try:
            if self._runtime_dir.exists():
                shutil.rmtree(self._runtime_dir)
        finally:
            self._release_session_lock()

        base = self._base_dir
        if base is not None and base.is_dir():
            with _base_lock(base):
                if not any(base.iterdir()):
                    base.rmdir()
        app_logger.log_icon_event("Runtime directory removed", {"path": str(self._runtime_dir)})
        return True

    def _acquire_session_lock(self) -> None:
        path = self._runtime_dir
        try:
            fd = _try_lock(path)
        except OSError as e:
            raise CacheError(
                CacheErrorKind.DISK_FAILURE,
                f"Cannot lock runtime directory {path}",
                context={"path": str(path)},
                original_exception=e,
            ) from e
        if fd is None:
            raise CacheError(
                CacheErrorKind.DISK_FAILURE,
                f"Runtime directory {path} is in use by another session",
                context={"path": str(path)},
            )
        self._lock_fd = fd

    def _release_session_lock(self) -> None:
        if self._lock_fd is not None:
            _unlock(self._lock_fd)
            self._lock_fd = None

    def _recreate_session_dir(self) -> None:
        self._release_session_lock()
        if self._base_dir is None:
            self._prepare_dir(self._runtime_dir)
            self._acquire_session_lock()
            return
        self._prepare_dir(self._base_dir)
        with _base_lock(self._base_dir):
            self._prepare_dir(self._runtime_dir)
            self._acquire_session_lock()

    def _sweep_dead_sessions(self) -> int:
        """Remove session directories under the base that nobody holds"""
        removed = 0
        for child in self._base_dir.iterdir():
            if not child.name.startswith(SESSION_PREFIX) or child.is_symlink() or not child.is_dir():
                continue
            try:
                fd = _try_lock(child)
                if fd is None:
                    continue
                try:
                    shutil.rmtree(child)
                finally:
                    _unlock(fd)
                removed += 1
            except OSError as e:
                app_logger.log_recoverable(e, "remove_dead_session", {"path": str(child)})
        return removed

    def _prepare_dir(self, path: Path) -> None:
        if path.is_symlink():
            raise CacheError(
                CacheErrorKind.DISK_FAILURE,
                f"Runtime directory {path} is a symlink",
                context={"path": str(path)},
            )
        try:
            path.mkdir(mode=RUNTIME_DIR_MODE, parents=True, exist_ok=True)
            info = path.stat()
            if info.st_uid != os.getuid():
                raise CacheError(
                    CacheErrorKind.DISK_FAILURE,
                    f"Runtime directory {path} belongs to another user",
                    context={"path": str(path), "owner": info.st_uid},
                )
            if stat.S_IMODE(info.st_mode) != RUNTIME_DIR_MODE:
                path.chmod(RUNTIME_DIR_MODE)
        except OSError as e:
            raise CacheError(
                CacheErrorKind.DISK_FAILURE,
                f"Cannot create runtime directory {path}",
                context={"path": str(path)},
                original_exception=e,
            ) from e

    def remove_orphans(self) -> int:
        """Delete every file in the runtime directory the mapping does not reference"""
        if self._runtime_dir is None or not self._runtime_dir.is_dir():
            return 0

        referenced = {entry.file_path.name for entry in self._entries.values()}
        removed = 0
        for child in self._runtime_dir.iterdir():
            if child.name in referenced:
                continue
            try:
                if child.is_dir() and not child.is_symlink():
                    shutil.rmtree(child)
                else:
                    child.unlink()
                removed += 1
            except OSError as e:
                app_logger.log_recoverable(e, "remove_orphan", {"path": str(child)})
        return removed

    # ==================== Cache API ====================

    @property
    def runtime_dir(self) -> Path:
        """Session directory once started, the base directory before that"""
        return self._runtime_dir or self._base_dir

    @property
    def render_count(self) -> int:
        """Number of successful rasterizations so far"""
        return self._render_count

    def entries(self) -> List[CachedIcon]:
        return list(self._entries.values())

    def ensure(self, key: IconKey) -> Path:
        """Path of a rendered icon for key

        Serves the cached file when it still exists, otherwise renders it.
        If rendering fails the last successfully rendered icon (any bucket)
        is served instead, and the failed key is not rendered again for
        RENDER_RETRY_SECONDS while that fallback is available.

        Raises:
            CacheError: rendering failed and there is nothing to fall back to
        """
        entry = self._entries.get(key)
        if entry is not None:
            if self._file_ok(entry.file_path):
                return entry.file_path
            app_logger.log_icon_event(
                "Cached icon vanished, re-rendering",
                {"key": key.icon_name, "path": str(entry.file_path)},
            )
            del self._entries[key]
            if self._last_good is entry:
                self._last_good = None

        failed_at = self._failed.get(key)
        if failed_at is not None and time.monotonic() - failed_at < RENDER_RETRY_SECONDS:
            fallback = self._fallback()
            if fallback is not None:
                return fallback.file_path

        try:
            entry = self._render(key)
        except CacheError as e:
            if e.kind != CacheErrorKind.DISK_FAILURE:
                self._failed[key] = time.monotonic()
            fallback = self._fallback()
            app_logger.log_recoverable(
                e,
                "render_icon",
                {
                    "icon_key": key.icon_name,
                    "renderer": self._rasterizer.name,
                    "fallback": fallback.key.icon_name if fallback else None,
                },
            )
            if fallback is None:
                raise
            return fallback.file_path

        self._failed.pop(key, None)
        self._evict_bucket(entry)
        self._entries[key] = entry
        self._last_good = entry
        return entry.file_path

    def _fallback(self) -> Optional[CachedIcon]:
        candidates = [self._last_good] if self._last_good else []
        candidates += sorted(self._entries.values(), key=lambda e: e.rendered_at, reverse=True)
        for candidate in candidates:
            if self._file_ok(candidate.file_path):
                return candidate
        return None

    def _render(self, key: IconKey) -> CachedIcon:
        with logger.timed("icon_render", {"icon_key": key.icon_name, "renderer": self._rasterizer.name}) as details:
            svg = self._sources.load(key)
            png = self._rasterizer.rasterize(svg, self._size)
            if not png:
                raise CacheError(CacheErrorKind.RENDER_FAILURE, "Rasterizer returned no data")

            path = self._write_file(key.icon_name + ICON_SUFFIX, png)
            details["bytes"] = len(png)
        self._render_count += 1
        return CachedIcon(key=key, file_path=path)

    def _write_file(self, name: str, data: bytes) -> Path:
        """Atomically place data at runtime_dir/name"""
        target = self._runtime_dir / name
        temp_name = None
        try:
            if not self._runtime_dir.is_dir():
                self._recreate_session_dir()

            fd, temp_name = tempfile.mkstemp(prefix=".render-", suffix=ICON_SUFFIX, dir=self._runtime_dir)
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.chmod(temp_name, ICON_FILE_MODE)
            os.replace(temp_name, target)
            temp_name = None
            return target
        except OSError as e:
            raise CacheError(
                CacheErrorKind.DISK_FAILURE,
                f"Cannot write icon {target}",
                context={"path": str(target)},
                original_exception=e,
            ) from e
        finally:
            if temp_name and os.path.exists(temp_name):
                os.unlink(temp_name)

    def _evict_bucket(self, fresh: CachedIcon) -> None:
        """Drop other entries of the same bucket and delete their files"""
        for key, entry in list(self._entries.items()):
            if key == fresh.key or key.bucket != fresh.key.bucket:
                continue
            del self._entries[key]
            if entry.file_path != fresh.file_path:
                try:
                    entry.file_path.unlink()
                except FileNotFoundError:
                    pass
                except OSError as e:
                    app_logger.log_recoverable(e, "evict_icon", {"path": str(entry.file_path)})
            logger.debug(
                "Evicted superseded icon",
                LogCategory.ICON,
                {"old": key.icon_name, "new": fresh.key.icon_name},
                "icon_cache",
            )

    @staticmethod
    def _file_ok(path: Path) -> bool:
        try:
            info = path.stat()
        except OSError:
            return False
        return stat.S_ISREG(info.st_mode) and info.st_size > 0
