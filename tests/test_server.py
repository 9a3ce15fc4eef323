"""Tests for the MCP tools in src/pkgscope/server.py."""

import asyncio
import json
from unittest.mock import AsyncMock, patch

import pytest

from pkgscope import server
from pkgscope.errors import FetchError, InvestigatorNotFoundError
from pkgscope.models import Link, SourceType
from pkgscope.result import Result


@pytest.fixture
def widget_result():
    return Result(
        readme="# widget\n\nnpm install widget",
        initial_query_url="https://www.npmjs.com/package/widget",
        initial_query_type=SourceType.NPM,
        links=[
            Link(SourceType.NPM, "https://www.npmjs.com/package/widget"),
            Link(SourceType.GITHUB, "https://github.com/acme/widget"),
            Link(SourceType.HOMEPAGE, "https://widget.dev"),
        ],
    )


@pytest.fixture
def investigate(widget_result):
    with patch(
        "pkgscope.server._investigate", new_callable=AsyncMock, return_value=widget_result
    ) as mock:
        yield mock


# -----------------------------------------------------------------------
# _investigate
# -----------------------------------------------------------------------


class TestInvestigate:
    async def test_empty_package(self):
        assert await server._investigate("  ", "js") == "Error: package is required"

    async def test_unknown_type_lists_languages(self):
        result = await server._investigate("widget", None)

        assert result.startswith("Error: Unknown source type for 'widget'")
        assert "python" in result

    async def test_invalid_jsr_path(self):
        result = await server._investigate("@std", "jsr")
        assert result.startswith("Error: [InvalidPackagePath] JSR package path")

    async def test_runs_investigation(self):
        with patch("pkgscope.server.Investigation") as MockInvestigation:
            instance = MockInvestigation.return_value
            instance.run = AsyncMock(return_value=instance)
            with patch("pkgscope.server.create_result", return_value=Result()) as mock_create:
                result = await server._investigate("widget", "js")

        query = MockInvestigation.call_args.args[0]
        assert query.source_ref.type == SourceType.NPM
        assert query.source_ref.path == "widget"
        mock_create.assert_called_once_with(instance)
        assert isinstance(result, Result)

    async def test_timeout_keeps_partial_result(self):
        with patch("pkgscope.server.Investigation") as MockInvestigation:
            MockInvestigation.return_value.run = AsyncMock(side_effect=TimeoutError)
            MockInvestigation.return_value.collected_data = {}
            with patch("pkgscope.server.create_result", return_value=Result()):
                result = await server._investigate("widget", "js")

        assert isinstance(result, Result)

    async def test_engine_error(self):
        with patch("pkgscope.server.Investigation") as MockInvestigation:
            MockInvestigation.return_value.run = AsyncMock(
                side_effect=InvestigatorNotFoundError("no investigator", type="jsr.io")
            )
            result = await server._investigate("@std/path", "jsr")

        assert result.startswith("Error: [InvestigatorNotFound] no investigator")


# -----------------------------------------------------------------------
# fetch_library_docs
# -----------------------------------------------------------------------


class TestFetchLibraryDocs:
    async def test_readme_wrapped(self, investigate):
        result = await server.fetch_library_docs("widget", "js")

        investigate.assert_awaited_once_with("widget", "js")
        assert "<untrusted_fetch_library_docs_content>" in result
        assert "npm install widget" in result

    async def test_invalid_document_type(self, investigate):
        result = await server.fetch_library_docs("widget", "js", type_of_document="changelog")

        assert result.startswith("Error: Invalid document type 'changelog'")
        investigate.assert_not_awaited()

    async def test_missing_readme(self, investigate, widget_result):
        widget_result.readme = ""

        result = await server.fetch_library_docs("widget", "js")

        assert result == "Error: README not found for 'widget'"

    async def test_homepage_converted_to_markdown(self, investigate):
        with (
            patch("pkgscope.server.is_safe_url", return_value=True),
            patch(
                "pkgscope.server.fetch_html",
                new_callable=AsyncMock,
                return_value="<main><h1>Widget</h1></main>",
            ) as mock_fetch,
        ):
            result = await server.fetch_library_docs("widget", "js", type_of_document="homepage")

        mock_fetch.assert_awaited_once_with("https://widget.dev")
        assert "Source: https://widget.dev" in result
        assert "# Widget" in result

    async def test_missing_link(self, investigate):
        result = await server.fetch_library_docs(
            "widget", "js", type_of_document="documentation"
        )
        assert result == "Error: Documentation URL not found for 'widget'"

    async def test_unsafe_url_refused(self, investigate):
        with patch("pkgscope.server.is_safe_url", return_value=False):
            result = await server.fetch_library_docs("widget", "js", type_of_document="homepage")

        assert result == "Error: Refusing to fetch unsafe URL https://widget.dev"

    async def test_fetch_error(self, investigate):
        with (
            patch("pkgscope.server.is_safe_url", return_value=True),
            patch(
                "pkgscope.server.fetch_html",
                new_callable=AsyncMock,
                side_effect=FetchError("HTTP 503", url="https://widget.dev"),
            ),
        ):
            result = await server.fetch_library_docs(
                "widget", "js", type_of_document="homepage"
            )

        assert result.startswith("Error: [FetchFailed] HTTP 503")

    async def test_investigation_error_not_wrapped(self):
        with patch(
            "pkgscope.server._investigate",
            new_callable=AsyncMock,
            return_value="Error: package is required",
        ):
            assert await server.fetch_library_docs("") == "Error: package is required"


# -----------------------------------------------------------------------
# fetch_library_urls
# -----------------------------------------------------------------------


class TestFetchLibraryUrls:
    async def test_json_document(self, investigate):
        info = json.loads(await server.fetch_library_urls("widget", "js"))

        assert info["type"] == "npmjs.com"
        assert info["repository"] == "https://github.com/acme/widget"
        assert info["homepage"] == "https://widget.dev"
        assert "documentation" not in info
        assert [u["type"] for u in info["urls"]] == ["npmjs.com", "github.com", "homepage"]


# -----------------------------------------------------------------------
# Timeout
# -----------------------------------------------------------------------


class TestWithTimeout:
    async def test_returns_result(self):
        async def quick():
            return "done"

        assert await server._with_timeout(quick(), "fetch_library_docs") == "done"

    async def test_timeout_message(self):
        async def slow():
            await asyncio.sleep(5)
            return "late"

        with patch.object(server.settings, "tool_timeout", 0.05):
            result = await server._with_timeout(slow(), "fetch_library_urls")

        assert result.startswith("Error: 'fetch_library_urls' timed out")
        assert "PKGSCOPE_TOOL_TIMEOUT" in result

    async def test_zero_disables(self):
        async def quick():
            return "done"

        with patch.object(server.settings, "tool_timeout", 0):
            assert await server._with_timeout(quick(), "x") == "done"


def test_prompt_mentions_tools():
    text = server.library_docs("react", "How do hooks work?")
    assert "fetch_library_docs" in text
    assert "fetch_library_urls" in text
