"""
Version-scoped templates cache.

Maps a templates version to a directory holding the extracted templates of that
version. Entries expire a fixed time after they were written; evicting an entry
deletes its directory through the on_evict callback.

Concurrency:
    Every version has its own lock. Lookup, population and eviction of a version
    happen under that lock, so concurrent callers for an uncached version share a
    single download (single-flight), and a directory is never deleted while a
    caller holds it through checkout().

    Population extracts into a private staging directory that is renamed to the
    version directory only once the fetch succeeded.
"""

import shutil
import threading
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional

from docgen.contexts.templating.logger import _log_debug, _log_warning, log_eviction

Fetcher = Callable[[str, Path], Path]
EvictionCallback = Callable[[str, Path], None]

DEFAULT_TTL = timedelta(hours=24)


@dataclass(frozen=True)
class CacheEntry:
    """
    A cached templates version.

    Attributes:
        version: Templates version
        path: Directory holding the extracted templates
        written_at: Clock value when the entry was written
    """

    version: str
    path: Path
    written_at: float

    def is_expired(self, ttl: timedelta, now: float) -> bool:
        """Check if entry has expired."""
        return now - self.written_at >= ttl.total_seconds()


def remove_directory(version: str, path: Path) -> None:
    """
    Delete an evicted templates directory.

    A missing directory counts as removed. Other failures are logged.
    """
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        _log_warning(f"Could not delete templates v{version} at {path}: {e}")


def _validate_version(version: str) -> None:
    if not version or version in (".", "..") or "/" in version or "\\" in version:
        raise ValueError(f"Invalid templates version: {version!r}")


class _VersionLock:
    """Lock of one version plus the number of callers holding or waiting for it."""

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class TemplateCache:
    """
    Thread-safe cache of extracted templates directories keyed by version.

    Args:
        base_path: Directory holding one subdirectory per cached version
        fetch: Populates a directory with the templates of a version, e.g.
               TemplatesStore.get_templates_for_version
        ttl: Time after write at which an entry expires
        on_evict: Called with (version, path) for every evicted entry
        clock: Monotonic time source in seconds (injectable for tests)

    Example:
        cache = TemplateCache(Path("/tmp/docgen"), store.get_templates_for_version)
        with cache.checkout("1.0") as templates_dir:
            shutil.copytree(templates_dir, work_dir)
    """

    def __init__(
        self,
        base_path: Path,
        fetch: Fetcher,
        ttl: timedelta = DEFAULT_TTL,
        on_evict: Optional[EvictionCallback] = remove_directory,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.base_path = Path(base_path)
        self.ttl = ttl
        self._fetch = fetch
        self._on_evict = on_evict
        self._clock = clock

        self._entries: Dict[str, CacheEntry] = {}
        self._locks: Dict[str, _VersionLock] = {}
        # Guards the _entries and _locks dictionaries themselves
        self._guard = threading.Lock()

    def __contains__(self, version: str) -> bool:
        with self._guard:
            entry = self._entries.get(version)
        return entry is not None and not entry.is_expired(self.ttl, self._clock())

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    def path_for_version(self, version: str) -> Path:
        """Directory a cached version lives in."""
        return self.base_path / version

    @contextmanager
    def _version_lock(self, version: str, blocking: bool = True) -> Iterator[bool]:
        """
        Hold the lock of a version, yielding whether it was acquired.

        The lock is dropped from _locks once no caller holds or waits for it
        and the version is not cached, so failed or evicted versions leave
        nothing behind.
        """
        with self._guard:
            version_lock = self._locks.get(version)
            if version_lock is None:
                version_lock = self._locks[version] = _VersionLock()
            version_lock.users += 1

        acquired = version_lock.lock.acquire(blocking=blocking)
        try:
            yield acquired
        finally:
            if acquired:
                version_lock.lock.release()
            with self._guard:
                version_lock.users -= 1
                if version_lock.users == 0 and version not in self._entries:
                    del self._locks[version]

    def get(self, version: str) -> Path:
        """
        Get the templates directory of a version, fetching it on a miss.

        Args:
            version: Templates version

        Returns:
            Directory holding the extracted templates

        Raises:
            ValueError: If version is not a plain directory name
            Exception: Whatever the fetch raised; nothing is cached in that case
        """
        with self.checkout(version) as path:
            return path

    @contextmanager
    def checkout(self, version: str) -> Iterator[Path]:
        """
        Hold a version's templates directory for the duration of the block.

        The directory cannot be evicted or replaced while the block runs. Keep
        the block short (e.g. copy the directory) since it serializes all other
        access to the same version.
        """
        _validate_version(version)
        self.evict_expired()

        with self._version_lock(version):
            yield self._get_locked(version)

    def _get_locked(self, version: str) -> Path:
        """Lookup or populate a version. Caller holds the version lock."""
        with self._guard:
            entry = self._entries.get(version)

        if entry is not None and entry.is_expired(self.ttl, self._clock()):
            self._evict_locked(version, "expired")
            entry = None

        if entry is None:
            entry = self._populate_locked(version)

        return entry.path

    def _populate_locked(self, version: str) -> CacheEntry:
        self.base_path.mkdir(parents=True, exist_ok=True)
        staging_dir = self.base_path / f".staging-{version}-{uuid.uuid4().hex}"
        target_dir = self.path_for_version(version)

        try:
            self._fetch(version, staging_dir)
            # Leftover from a previous process or a failed eviction
            if target_dir.exists():
                shutil.rmtree(target_dir)
            staging_dir.rename(target_dir)
        except BaseException:
            shutil.rmtree(staging_dir, ignore_errors=True)
            raise

        entry = CacheEntry(version=version, path=target_dir, written_at=self._clock())
        with self._guard:
            self._entries[version] = entry

        _log_debug(f"Cached templates v{version} at {target_dir}")
        return entry

    def _evict_locked(self, version: str, reason: str) -> None:
        with self._guard:
            entry = self._entries.pop(version, None)

        if entry is None:
            return

        log_eviction(version, entry.path, reason)
        if self._on_evict is not None:
            self._on_evict(version, entry.path)

    def invalidate(self, version: str) -> None:
        """Evict a version explicitly, waiting for running work on it."""
        with self._version_lock(version):
            self._evict_locked(version, "invalidated")

    def evict_expired(self) -> List[str]:
        """
        Evict all expired entries whose version is not busy.

        Versions currently being fetched or checked out are skipped; they are
        re-checked on their next access.

        Returns:
            Evicted versions
        """
        now = self._clock()
        with self._guard:
            candidates = [
                version
                for version, entry in self._entries.items()
                if entry.is_expired(self.ttl, now)
            ]

        evicted = []
        for version in candidates:
            with self._version_lock(version, blocking=False) as acquired:
                if not acquired:
                    continue
                with self._guard:
                    entry = self._entries.get(version)
                if entry is not None and entry.is_expired(self.ttl, self._clock()):
                    self._evict_locked(version, "expired")
                    evicted.append(version)

        return evicted

    def clear(self) -> None:
        """Evict every entry."""
        with self._guard:
            versions = list(self._entries)

        for version in versions:
            self.invalidate(version)
