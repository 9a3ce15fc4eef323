"""pkgscope MCP Server - library documentation lookup for AI agents."""

import asyncio
import functools
import json
import sys

from loguru import logger
from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from pkgscope.config import settings
from pkgscope.detect import LANGUAGE_ALIASES, UserInput, new_initial_query
from pkgscope.errors import PkgscopeError
from pkgscope.investigation import Investigation
from pkgscope.models import SourceType
from pkgscope.result import Result, create_result
from pkgscope.security import is_safe_url, wrap_external_content
from pkgscope.sources.util import fetch_html, html_to_markdown

# Configure logging
logger.remove()
logger.add(sys.stderr, level=settings.log_level)

DOCUMENT_TYPES = ("readme", "documentation", "homepage", "registry", "repository")

mcp = FastMCP(
    name="pkgscope",
    instructions=(
        "Package documentation lookup. "
        "Use `fetch_library_docs` to read a library's README (or its "
        "documentation, homepage, registry or repository page). "
        "Use `fetch_library_urls` to list where a library lives. "
        "Pass `lang` (go, js, python, rust, ruby, php, ...) unless the package "
        "is given as a github.com/ or gitlab.com/ path. Results are cached."
    ),
)


def _wrap_tool(tool_name: str):
    """Decorator marking tool output as untrusted third-party content."""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            result = await func(*args, **kwargs)
            return wrap_external_content(tool_name, result)

        return wrapper

    return decorator


async def _with_timeout(coro, action: str) -> str:
    """Bound a tool call by ``tool_timeout``; 0 disables the limit."""
    timeout = settings.tool_timeout
    if timeout <= 0:
        return await coro
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except TimeoutError:
        logger.error(f"Tool '{action}' timed out after {timeout}s")
        return (
            f"Error: '{action}' timed out after {timeout}s. "
            "Increase PKGSCOPE_TOOL_TIMEOUT or pass a language hint."
        )


def _supported_languages() -> str:
    return ", ".join(sorted(LANGUAGE_ALIASES))


async def _investigate(package: str, lang: str | None) -> Result | str:
    """Run a crawl for ``package``; returns an ``Error: ...`` string on failure."""
    if not package or not package.strip():
        return "Error: package is required"

    try:
        query = new_initial_query(UserInput(package_path=package, language=lang or ""))
    except PkgscopeError as e:
        return f"Error: {e}"

    if query.source_ref.type == SourceType.UNKNOWN:
        return (
            f"Error: Unknown source type for '{package}'. "
            f"Pass lang, one of: {_supported_languages()}"
        )

    investigation = Investigation(query, concurrency=settings.concurrency)
    try:
        await investigation.run(timeout=settings.resolve_investigation_timeout())
    except TimeoutError:
        logger.warning(
            f"Investigation of {package} timed out, "
            f"returning {len(investigation.collected_data)} collected sources"
        )
    except PkgscopeError as e:
        return f"Error: {e}"
    return create_result(investigation)


async def _fetch_docs(package: str, lang: str | None, type_of_document: str) -> str:
    doc_type = (type_of_document or "readme").strip().lower()
    if doc_type not in DOCUMENT_TYPES:
        return (
            f"Error: Invalid document type '{type_of_document}'. "
            f"Valid types: {', '.join(DOCUMENT_TYPES)}"
        )

    result = await _investigate(package, lang)
    if isinstance(result, str):
        return result

    if doc_type == "readme":
        if not result.readme:
            return f"Error: README not found for '{package}'"
        return result.readme

    url = result.get_url(doc_type)
    if not url:
        return f"Error: {doc_type.capitalize()} URL not found for '{package}'"
    if not is_safe_url(url):
        return f"Error: Refusing to fetch unsafe URL {url}"
    try:
        html = await fetch_html(url)
    except PkgscopeError as e:
        return f"Error: {e}"
    return f"Source: {url}\n\n{html_to_markdown(html)}"


async def _fetch_urls(package: str, lang: str | None) -> str:
    result = await _investigate(package, lang)
    if isinstance(result, str):
        return result
    return json.dumps(result.to_dict(), ensure_ascii=False)


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


@mcp.tool(
    annotations=ToolAnnotations(
        readOnlyHint=True,
        openWorldHint=True,
        idempotentHint=True,
    ),
)
@_wrap_tool("fetch_library_docs")
async def fetch_library_docs(
    package: str,
    lang: str | None = None,
    type_of_document: str = "readme",
) -> str:
    """Fetch library documentation content from its repository or registry.
    - package: Package name or path (e.g. react, github.com/spf13/cobra)
    - lang: Language hint (e.g. go, js, python, ruby, rust, php)
    - type_of_document: readme (default), documentation, homepage, registry, repository
    """
    return await _with_timeout(
        _fetch_docs(package, lang, type_of_document), "fetch_library_docs"
    )


@mcp.tool(
    annotations=ToolAnnotations(
        readOnlyHint=True,
        openWorldHint=True,
        idempotentHint=True,
    ),
)
async def fetch_library_urls(package: str, lang: str | None = None) -> str:
    """Fetch library related URLs (homepage, repository, registry, documentation).
    Returns a JSON document: {type, url, homepage, repository, registry, documentation, urls}.
    """
    return await _with_timeout(_fetch_urls(package, lang), "fetch_library_urls")


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------


@mcp.prompt()
def library_docs(library: str, question: str) -> str:
    """Generate a prompt to answer a question from a library's documentation."""
    return (
        f"Find documentation for '{library}' to answer: {question}\n\n"
        f"1. Use fetch_library_docs with package='{library}' (add lang if the "
        "ecosystem is known) to read the README.\n"
        "2. If the README is insufficient, call it again with "
        "type_of_document='documentation'.\n"
        "3. Use fetch_library_urls to cite where the information came from."
    )


def main() -> None:
    """Entry point for the MCP server."""
    mcp.run()


if __name__ == "__main__":
    main()
