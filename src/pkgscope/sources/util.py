"""Helpers shared by investigators: URL cleanup, classification, external
CLI invocation and cached HTML fetching."""

import asyncio
import contextvars
import json
import shutil
from typing import Any

import httpx
from bs4 import BeautifulSoup
from loguru import logger
from markdownify import markdownify

from pkgscope.cache import FileCache
from pkgscope.config import settings
from pkgscope.errors import CommandFailedError, CommandNotFoundError, FetchError
from pkgscope.models import RelatedReference, SourceType

# Registries reject anonymous clients (crates.io in particular)
API_HEADERS = {"User-Agent": "pkgscope (+https://github.com/pkgscope/pkgscope)"}

# Some sites serve stripped pages to non-browser agents
BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    )
}


def http_client(**kwargs: Any) -> httpx.AsyncClient:
    """AsyncClient configured with the registry timeout and API headers."""
    kwargs.setdefault("timeout", settings.http_timeout)
    kwargs.setdefault("headers", API_HEADERS)
    kwargs.setdefault("follow_redirects", True)
    return httpx.AsyncClient(**kwargs)


def last_segment(path: str) -> str:
    """Package name without any organization prefix (``org/name`` -> ``name``)."""
    return path.rsplit("/", 1)[-1]


def strip_prefix_from_url(url: str, prefix: str) -> str | None:
    """Return what follows ``prefix`` in ``url``, or None if it does not start with it."""
    if url.startswith(prefix):
        return url[len(prefix) :]
    return None


# ---------------------------------------------------------------------------
# URL cleanup and classification
# ---------------------------------------------------------------------------


def cleanup_url(url: str, source_type: SourceType = SourceType.UNKNOWN) -> str:
    """Convert a git-clonable (or otherwise odd) URL to a browser-viewable one."""
    url = url.strip()
    url = url.removesuffix(".git")
    url = url.removeprefix("git+")
    url = url.removeprefix("git://")

    # scp-style: git@host:owner/repo
    if url.startswith("git@"):
        url = url.removeprefix("git@").replace(":", "/", 1)
        url = "https://" + url

    if url.startswith("ssh://"):
        url = url.removeprefix("ssh://").removeprefix("git@")
        url = "https://" + url

    if url.startswith("http://"):
        url = "https://" + url.removeprefix("http://")
    elif not url.startswith("https://"):
        url = "https://" + url

    if source_type == SourceType.UNKNOWN:
        source_type = SourceType.from_url(url)

    if source_type.is_repository():
        url = url.split("#", 1)[0]

    if source_type == SourceType.GITLAB and "/-/" in url:
        url = url.replace("/-/", "/")
    return url


def classify_url(url: str, origin: str = "api") -> RelatedReference:
    """Turn a homepage-ish URL from registry metadata into a related reference.

    URLs on a known host (GitHub, npm, ...) become a reference of that type
    with a cleaned URL; anything else is a plain homepage.
    """
    detected = SourceType.from_url(url)
    if detected != SourceType.UNKNOWN:
        return RelatedReference(type=detected, url=cleanup_url(url, detected), origin=origin)
    return RelatedReference(type=SourceType.HOMEPAGE, url=url, origin=origin)


def repository_reference(url: str, origin: str = "api") -> RelatedReference:
    """Related reference for a declared source repository URL.

    Repositories on hosts without an investigator (Bitbucket, self-hosted
    forges) are recorded as plain websites.
    """
    detected = SourceType.from_url(url)
    if detected == SourceType.UNKNOWN:
        detected = SourceType.WEBSITE
    return RelatedReference(type=detected, url=cleanup_url(url, detected), origin=origin)


def dedupe_by_url(sources: list[RelatedReference]) -> list[RelatedReference]:
    """Drop references whose URL was already seen (first wins).

    Path-only references (empty URL) are compared by path instead.
    """
    seen: set[str] = set()
    unique: list[RelatedReference] = []
    for source in sources:
        key = source.url or f"{source.type.value}:{source.path}"
        if key in seen:
            continue
        seen.add(key)
        unique.append(source)
    return unique


# ---------------------------------------------------------------------------
# External CLI tools (gh, glab)
# ---------------------------------------------------------------------------


def _decode_json_stream(text: str) -> Any:
    """Decode stdout holding one JSON document, or several concatenated
    arrays (``glab api --paginate`` prints one array per page)."""
    decoder = json.JSONDecoder()
    text = text.strip()
    documents: list[Any] = []
    pos = 0
    while pos < len(text):
        doc, pos = decoder.raw_decode(text, pos)
        documents.append(doc)
        while pos < len(text) and text[pos].isspace():
            pos += 1

    if len(documents) == 1:
        return documents[0]
    if documents and all(isinstance(d, list) for d in documents):
        merged: list[Any] = []
        for doc in documents:
            merged.extend(doc)
        return merged
    raise ValueError(f"expected a single JSON document, got {len(documents)}")


def require_command(command: str, env_var: str, install_hint: str) -> str:
    """Resolve an external binary or raise CommandNotFoundError."""
    resolved = shutil.which(command)
    if resolved is None:
        raise CommandNotFoundError(
            f"{command} command not found. Install it ({install_hint}) "
            f"or set {env_var}",
            path=command,
        )
    return resolved


async def run_cli_json(command: str, args: list[str]) -> Any:
    """Run an external CLI and decode its stdout as JSON.

    Raises:
        CommandFailedError: non-zero exit, timeout or undecodable output.
    """
    logger.debug(f"Executing command: {command} {' '.join(args)}")
    try:
        proc = await asyncio.create_subprocess_exec(
            command,
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise CommandFailedError(
            "Failed to start command", cmd=command, error=str(e)
        ) from e

    try:
        stdout, stderr = await asyncio.wait_for(
            proc.communicate(), timeout=settings.command_timeout
        )
    except TimeoutError as e:
        proc.kill()
        await proc.wait()
        raise CommandFailedError(
            f"Command timed out after {settings.command_timeout}s",
            cmd=command,
            args=" ".join(args),
        ) from e

    if proc.returncode != 0:
        error = stderr.decode(errors="replace").strip()
        logger.error(f"Command failed: {command} {' '.join(args)}: {error}")
        raise CommandFailedError(
            "Command exited with non-zero status",
            cmd=command,
            args=" ".join(args),
            returncode=proc.returncode,
            error=error,
        )

    try:
        result = _decode_json_stream(stdout.decode(errors="replace"))
    except ValueError as e:
        raise CommandFailedError(
            "Command output is not valid JSON",
            cmd=command,
            args=" ".join(args),
            error=str(e),
        ) from e

    logger.debug(f"Command completed successfully: {command}")
    return result


# ---------------------------------------------------------------------------
# HTML
# ---------------------------------------------------------------------------

_html_cache: FileCache[str] | None = None

# Set by the investigation engine for the duration of a forced crawl
force_refresh = contextvars.ContextVar("force_refresh", default=False)


def _get_html_cache() -> FileCache[str]:
    global _html_cache
    if _html_cache is None:
        _html_cache = FileCache("html")
    return _html_cache


async def _download_html(url: str) -> str:
    try:
        async with http_client(headers=BROWSER_HEADERS) as client:
            resp = await client.get(url)
    except httpx.HTTPError as e:
        raise FetchError("Failed to fetch page", url=url, error=str(e)) from e
    if resp.status_code >= 400:
        raise FetchError("Page request failed", url=url, status=resp.status_code)
    return resp.text


async def fetch_html(url: str, force_update: bool | None = None) -> str:
    """Fetch raw HTML through the ``html`` cache.

    ``force_update`` defaults to the enclosing crawl's ``force_refresh``.
    """
    if force_update is None:
        force_update = force_refresh.get()
    return await _get_html_cache().get_or_set(
        url, lambda: _download_html(url), force_update
    )


def html_to_markdown(html: str) -> str:
    """Convert an HTML fragment or page to markdown.

    The main content element is used when the page has one; otherwise the
    whole body is converted.
    """
    soup = BeautifulSoup(html, "html.parser")
    for element in soup(["script", "style", "nav", "footer"]):
        element.decompose()
    root = soup.find("article") or soup.find("main") or soup.body or soup
    return markdownify(str(root), heading_style="ATX").strip()
