"""Tests for src/pkgscope/cache.py — FileCache with TTL-based expiry.

Covers hit/miss, TTL expiry, forced refresh, error non-caching, key
normalization, corrupt entries, and versioned directory preparation.
"""

import json
import time
from unittest.mock import AsyncMock, patch

import pytest

from pkgscope.cache import (
    CACHE_VERSION,
    FileCache,
    _cleanup_old_versions,
    normalize_key,
    prepare_cache_dir,
)
from pkgscope.config import Settings


@pytest.fixture
def cache(tmp_path):
    """Fresh string cache for each test."""
    return FileCache("fetch", directory=tmp_path / "store", ttl=60)


# -----------------------------------------------------------------------
# Key normalization
# -----------------------------------------------------------------------


class TestNormalizeKey:
    def test_allowed_characters_kept(self):
        assert normalize_key("npmjs.com:react") == "npmjs.com_react"

    def test_disallowed_characters_replaced(self):
        assert normalize_key("pypi.org:my pkg?x=1") == "pypi.org_my_pkg_x_1"

    def test_dot_and_slash_runs_collapsed(self):
        assert normalize_key("a/../../b//c") == "a/././b/c"

    def test_never_absolute(self):
        assert not normalize_key("/etc/passwd").startswith("/")


# -----------------------------------------------------------------------
# get_or_set
# -----------------------------------------------------------------------


class TestGetOrSet:
    async def test_generator_called_once_within_ttl(self, cache):
        gen = AsyncMock(return_value="value")

        assert await cache.get_or_set("k", gen) == "value"
        assert await cache.get_or_set("k", gen) == "value"

        assert gen.await_count == 1

    async def test_expired_entry_regenerated(self, cache):
        gen = AsyncMock(side_effect=["old", "new"])
        await cache.get_or_set("k", gen)

        with patch("pkgscope.cache.time.time", return_value=time.time() + 61):
            assert await cache.get_or_set("k", gen) == "new"
        assert gen.await_count == 2

    async def test_force_update_always_regenerates(self, cache):
        gen = AsyncMock(side_effect=["first", "second"])
        await cache.get_or_set("k", gen)

        assert await cache.get_or_set("k", gen, force_update=True) == "second"
        assert gen.await_count == 2
        # The forced value replaced the stored one
        assert await cache.get_or_set("k", AsyncMock()) == "second"

    async def test_generator_error_not_cached(self, cache):
        gen = AsyncMock(side_effect=[RuntimeError("boom"), "recovered"])

        with pytest.raises(RuntimeError):
            await cache.get_or_set("k", gen)
        assert not cache.path_for("k").exists()

        assert await cache.get_or_set("k", gen) == "recovered"
        assert gen.await_count == 2

    async def test_entry_layout(self, cache, tmp_path):
        await cache.get_or_set("npmjs.com:react", AsyncMock(return_value="x"))

        path = tmp_path / "store" / "npmjs.com_react_fetch.json"
        entry = json.loads(path.read_text(encoding="utf-8"))
        assert entry["value"] == "x"
        assert isinstance(entry["created_at"], float)

    async def test_corrupt_entry_is_a_miss(self, cache):
        path = cache.path_for("k")
        path.parent.mkdir(parents=True)
        path.write_text("{not json", encoding="utf-8")

        gen = AsyncMock(return_value="fresh")
        assert await cache.get_or_set("k", gen) == "fresh"
        gen.assert_awaited_once()

    async def test_kinds_do_not_collide(self, tmp_path):
        fetch = FileCache("fetch", directory=tmp_path, ttl=60)
        html = FileCache("html", directory=tmp_path, ttl=60)

        await fetch.get_or_set("k", AsyncMock(return_value="data"))
        assert await html.get_or_set("k", AsyncMock(return_value="<html>")) == "<html>"

    async def test_encode_decode(self, tmp_path):
        cache = FileCache(
            "fetch",
            directory=tmp_path,
            ttl=60,
            encode=lambda v: {"n": v},
            decode=lambda raw: raw["n"],
        )
        await cache.get_or_set("k", AsyncMock(return_value=3))
        assert await cache.get_or_set("k", AsyncMock(return_value=4)) == 3

    async def test_write_failure_swallowed(self, cache):
        with patch.object(cache, "_save", side_effect=OSError("read-only")):
            assert await cache.get_or_set("k", AsyncMock(return_value="v")) == "v"


# -----------------------------------------------------------------------
# Management
# -----------------------------------------------------------------------


class TestManagement:
    async def test_set_ttl(self, cache):
        gen = AsyncMock(side_effect=["a", "b"])
        await cache.get_or_set("k", gen)

        cache.set_ttl(0)
        assert await cache.get_or_set("k", gen) == "b"

    async def test_set_dir(self, cache, tmp_path):
        new_dir = tmp_path / "elsewhere"
        cache.set_dir(new_dir)
        await cache.get_or_set("k", AsyncMock(return_value="v"))
        assert (new_dir / "k_fetch.json").exists()

    async def test_clear(self, cache):
        await cache.get_or_set("k", AsyncMock(return_value="v"))
        cache.clear()

        gen = AsyncMock(return_value="again")
        assert await cache.get_or_set("k", gen) == "again"


class TestPrepareCacheDir:
    def test_creates_versioned_root(self, tmp_path):
        root = prepare_cache_dir(Settings(cache_dir=str(tmp_path)), cleanup=False)
        assert root == tmp_path / "pkgscope" / CACHE_VERSION
        assert root.is_dir()

    def test_removes_other_versions(self, tmp_path):
        base = tmp_path / "pkgscope"
        (base / "v0").mkdir(parents=True)
        (base / "unrelated").mkdir()

        with patch("pkgscope.cache.threading.Thread") as MockThread:
            prepare_cache_dir(Settings(cache_dir=str(tmp_path)))
            kwargs = MockThread.call_args.kwargs
            kwargs["target"](*kwargs["args"])

        assert not (base / "v0").exists()
        assert (base / "unrelated").exists()
        assert (base / CACHE_VERSION).exists()

    def test_user_directories_survive_cleanup(self, tmp_path):
        (tmp_path / "vlc").mkdir()
        (tmp_path / "vlc" / "keep.txt").write_text("settings")
        (tmp_path / "virtualenv").mkdir()
        (tmp_path / "v2").mkdir()

        with patch("pkgscope.cache.threading.Thread") as MockThread:
            prepare_cache_dir(Settings(cache_dir=str(tmp_path)))
            kwargs = MockThread.call_args.kwargs
            kwargs["target"](*kwargs["args"])

        assert (tmp_path / "vlc" / "keep.txt").exists()
        assert (tmp_path / "virtualenv").exists()
        assert (tmp_path / "v2").exists()

    def test_only_version_named_directories_pruned(self, tmp_path):
        for name in ("v0", "v12", "vendor", "v1-backup"):
            (tmp_path / name).mkdir()

        _cleanup_old_versions(tmp_path)

        assert sorted(p.name for p in tmp_path.iterdir()) == ["v1-backup", "vendor"]

    def test_no_cache_uses_temp_dir(self, tmp_path):
        root = prepare_cache_dir(Settings(no_cache=True, cache_dir=str(tmp_path)), cleanup=False)
        assert tmp_path not in root.parents
        assert root.name == CACHE_VERSION
