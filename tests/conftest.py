"""Pytest configuration and fixtures."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest


@pytest.fixture(autouse=True)
def _isolated_cache(tmp_path_factory, monkeypatch):
    """Point every cache at a per-test directory and drop lazily built caches.

    Investigators and the engine create their caches on first use; resetting
    them keeps entries from leaking between tests.
    """
    import pkgscope.cache as cache_mod
    import pkgscope.investigation as investigation_mod
    import pkgscope.sources.util as util_mod

    cache_root = tmp_path_factory.mktemp("cache") / "v1"
    cache_root.mkdir(parents=True)
    monkeypatch.setattr(cache_mod, "_default_dir", cache_root)
    monkeypatch.setattr(util_mod, "_html_cache", None)
    monkeypatch.setattr(investigation_mod, "_fetch_cache", None)
    yield cache_root


def make_response(status_code=200, json_data=None, text=""):
    """Build a stand-in for an httpx.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    if json_data is None:
        response.json.side_effect = ValueError("no JSON")
    else:
        response.json.return_value = json_data
    return response


@pytest.fixture
def response():
    """Factory fixture for fake httpx responses."""
    return make_response


@pytest.fixture
def mock_http():
    """Patch httpx.AsyncClient; yields the client used inside ``async with``.

    Tests set ``mock_http.get.return_value`` or ``side_effect``.
    """
    with patch("pkgscope.sources.util.httpx.AsyncClient") as MockClient:
        client = AsyncMock()
        MockClient.return_value.__aenter__.return_value = client
        yield client


@pytest.fixture
def sample_readme():
    """README mentioning the package on several registries."""
    return (
        "# widget\n\n"
        "[![npm](https://img.shields.io/npm/v/widget)](https://www.npmjs.com/package/widget)\n"
        "Docs at https://widget.dev/docs#intro\n\n"
        "```\n"
        "npm install widget\n"
        "cargo add widget\n"
        "pip install other-lib\n"
        "```\n"
    )
