"""RubyGems investigator. The gem API has no README, so the document is
synthesized from gem metadata."""

import httpx

from pkgscope.errors import FetchError, PackageNotFoundError
from pkgscope.extract import extract_related_sources
from pkgscope.models import Data, RelatedReference, SourceType
from pkgscope.sources.base import BaseInvestigator
from pkgscope.sources.util import (
    classify_url,
    dedupe_by_url,
    http_client,
    last_segment,
    repository_reference,
)

API_URL = "https://rubygems.org/api/v1/gems"


def format_gem_doc(info: dict) -> str:
    sections = [f"# {info.get('name', '')} v{info.get('version', '')}"]

    description = info.get("description") or info.get("info")
    if description:
        sections.append(description.strip())

    metadata = []
    if info.get("authors"):
        metadata.append(f"**Authors:** {info['authors']}")
    if info.get("licenses"):
        metadata.append(f"**License:** {', '.join(info['licenses'])}")
    if info.get("platform"):
        metadata.append(f"**Platform:** {info['platform']}")
    metadata.append(f"**Downloads:** {info.get('downloads') or 0}")
    sections.append(" • ".join(metadata))

    links = []
    if info.get("homepage_uri"):
        links.append(f"**Homepage:** {info['homepage_uri']}")
    if info.get("documentation_uri"):
        links.append(f"**Documentation:** {info['documentation_uri']}")
    if info.get("source_code_uri"):
        links.append(f"**Source:** {info['source_code_uri']}")
    if links:
        sections.append("\n".join(links))

    return "\n\n".join(sections)


class RubyGemsInvestigator(BaseInvestigator):
    source_type = SourceType.RUBYGEMS
    url_prefix = "https://rubygems.org/gems/"

    def get_url(self, package_path: str) -> str:
        return f"{self.url_prefix}{last_segment(package_path)}"

    async def fetch(self, package_path: str) -> Data:
        try:
            async with http_client() as client:
                resp = await client.get(f"{API_URL}/{package_path}.json")
        except httpx.HTTPError as e:
            raise FetchError("RubyGems request failed", pkg=package_path, error=str(e)) from e

        if resp.status_code == 404:
            raise PackageNotFoundError("Package not found", pkg=package_path)
        if resp.status_code != 200:
            raise FetchError(
                "RubyGems request failed", pkg=package_path, status=resp.status_code
            )
        try:
            info = resp.json()
        except ValueError as e:
            raise FetchError("RubyGems returned invalid JSON", pkg=package_path) from e

        doc = format_gem_doc(info)

        related: list[RelatedReference] = []
        if info.get("homepage_uri"):
            related.append(classify_url(info["homepage_uri"]))
        if info.get("documentation_uri"):
            related.append(
                RelatedReference(
                    type=SourceType.DOCUMENTATION,
                    url=info["documentation_uri"],
                    origin="api",
                )
            )
        if info.get("source_code_uri"):
            related.append(repository_reference(info["source_code_uri"]))
        related.extend(extract_related_sources(doc, package_path))

        return self.build_data(
            package_path,
            doc,
            dedupe_by_url(related),
            metadata={
                "name": info.get("name", package_path),
                "version": info.get("version") or "",
                "license": ", ".join(info.get("licenses") or []),
                "downloads": info.get("downloads") or 0,
            },
        )
