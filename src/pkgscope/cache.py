"""Disk-backed TTL cache for fetched sources and HTML pages.

One JSON file per ``(kind, key)`` pair under a versioned root directory
(``<base>/v1``). Entries expire based on a TTL evaluated at read time;
nothing is evicted in the background. Bumping ``CACHE_VERSION`` orphans
the old root, which is removed by a background thread on the next start.

Failures are never cached: a generator that raises leaves no entry behind.
Cache I/O problems are logged and otherwise ignored.
"""

import json
import os
import re
import shutil
import tempfile
import threading
import time
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, Generic, TypeVar

from loguru import logger

from pkgscope.config import Settings, settings

T = TypeVar("T")

CACHE_VERSION = "v1"

_DISALLOWED_RE = re.compile(r"[^A-Za-z0-9\-_./]")
_MULTI_DOT_RE = re.compile(r"\.{2,}")
_MULTI_SLASH_RE = re.compile(r"/{2,}")
_VERSION_DIR_RE = re.compile(r"v\d+")

_default_dir: Path | None = None
_default_dir_lock = threading.Lock()


def normalize_key(key: str) -> str:
    """Convert a cache key into a filesystem-safe relative path."""
    normalized = _DISALLOWED_RE.sub("_", key)
    normalized = _MULTI_DOT_RE.sub(".", normalized)
    normalized = _MULTI_SLASH_RE.sub("/", normalized)
    # Never produce an absolute path
    return normalized.lstrip("/")


def _cleanup_old_versions(base_dir: Path) -> None:
    """Remove sibling cache roots left behind by other cache versions."""
    try:
        entries = list(base_dir.iterdir())
    except OSError as e:
        logger.debug(f"Cannot list cache base {base_dir}: {e}")
        return

    for entry in entries:
        if (
            entry.is_dir()
            and _VERSION_DIR_RE.fullmatch(entry.name)
            and entry.name != CACHE_VERSION
        ):
            try:
                shutil.rmtree(entry)
                logger.debug(f"Removed old cache directory {entry}")
            except OSError as e:
                logger.warning(f"Failed to remove old cache directory {entry}: {e}")


def prepare_cache_dir(cfg: Settings | None = None, cleanup: bool = True) -> Path:
    """Create the versioned cache root and prune other versions in background.

    Returns the root path even if it could not be created; the cache keeps
    working (every lookup just misses).
    """
    cfg = cfg or settings
    base_dir = cfg.get_cache_base_dir()
    root = base_dir / CACHE_VERSION
    try:
        root.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.warning(f"Error creating cache directory {root}: {e}")

    if cleanup:
        threading.Thread(
            target=_cleanup_old_versions,
            args=(base_dir,),
            name="pkgscope-cache-cleanup",
            daemon=True,
        ).start()
    return root


def get_default_dir() -> Path:
    """Return the process-wide cache root, preparing it on first use."""
    global _default_dir
    with _default_dir_lock:
        if _default_dir is None:
            _default_dir = prepare_cache_dir()
        return _default_dir


def clear_all() -> None:
    """Remove every entry under the process-wide cache root."""
    shutil.rmtree(get_default_dir(), ignore_errors=True)


def _identity(value: Any) -> Any:
    return value


class FileCache(Generic[T]):
    """Generic memoizer persisting ``{"value": ..., "created_at": ...}``.

    ``encode``/``decode`` convert between ``T`` and a JSON-compatible value;
    both default to identity (suitable for ``str``, ``dict`` and friends).
    """

    def __init__(
        self,
        kind: str,
        *,
        directory: Path | None = None,
        ttl: float | None = None,
        encode: Callable[[T], Any] | None = None,
        decode: Callable[[Any], T] | None = None,
    ):
        self.kind = kind
        self._dir = directory
        self._ttl = float(ttl if ttl is not None else settings.cache_ttl)
        self._encode = encode or _identity
        self._decode = decode or _identity

    @property
    def directory(self) -> Path:
        if self._dir is None:
            self._dir = get_default_dir()
        return self._dir

    @property
    def ttl(self) -> float:
        return self._ttl

    def path_for(self, key: str) -> Path:
        return self.directory / f"{normalize_key(key)}_{self.kind}.json"

    async def get_or_set(
        self,
        key: str,
        generator: Callable[[], Awaitable[T]],
        force_update: bool = False,
    ) -> T:
        """Return the cached value for ``key`` or generate and persist it."""
        path = self.path_for(key)

        if not force_update:
            entry = self._load(path)
            if entry is not None:
                age = time.time() - entry["created_at"]
                if age < self._ttl:
                    logger.debug(f"Cache HIT: {self.kind} {key}")
                    return self._decode(entry["value"])
                logger.debug(f"Cache STALE: {self.kind} {key} ({age:.0f}s old)")
            else:
                logger.debug(f"Cache MISS: {self.kind} {key}")

        value = await generator()

        try:
            self._save(path, {"value": self._encode(value), "created_at": time.time()})
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Failed to write cache entry {path}: {e}")
        return value

    def _load(self, path: Path) -> dict | None:
        try:
            with path.open(encoding="utf-8") as f:
                entry = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.debug(f"Unreadable cache entry {path}: {e}")
            return None
        if not isinstance(entry, dict) or "value" not in entry:
            return None
        if not isinstance(entry.get("created_at"), (int, float)):
            return None
        return entry

    def _save(self, path: Path, entry: dict) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(entry, ensure_ascii=False)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def clear(self) -> None:
        """Delete the whole cache root this instance writes to."""
        shutil.rmtree(self.directory, ignore_errors=True)

    def set_ttl(self, ttl: float) -> None:
        self._ttl = float(ttl)

    def set_dir(self, directory: Path) -> None:
        directory.mkdir(parents=True, exist_ok=True)
        self._dir = directory
