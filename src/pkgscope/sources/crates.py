"""crates.io investigator.

crates.io only exposes the README as rendered HTML, so the document is
converted back to markdown and prefixed with a summary synthesized from the
crate metadata.
"""

import httpx

from pkgscope.errors import FetchError, PackageNotFoundError, ReadmeNotFoundError
from pkgscope.extract import extract_related_sources
from pkgscope.models import Data, RelatedReference, SourceType
from pkgscope.sources.base import BaseInvestigator
from pkgscope.sources.util import (
    classify_url,
    html_to_markdown,
    http_client,
    last_segment,
    repository_reference,
)

API_URL = "https://crates.io/api/v1/crates"


def format_crate_doc(crate: dict, version: dict, readme_markdown: str) -> str:
    """Assemble the markdown document for a crate."""
    sections = [f"# {crate.get('name', '')} v{crate.get('default_version', '')}"]

    if crate.get("description"):
        sections.append(crate["description"].strip())

    metadata = []
    if version.get("license"):
        metadata.append(f"**License:** {version['license']}")
    if crate.get("categories"):
        metadata.append(f"**Categories:** {', '.join(crate['categories'])}")
    if crate.get("keywords"):
        metadata.append(f"**Keywords:** {', '.join(crate['keywords'])}")
    if metadata:
        sections.append(" • ".join(metadata))

    links = []
    if crate.get("homepage"):
        links.append(f"**Homepage:** {crate['homepage']}")
    if crate.get("documentation"):
        links.append(f"**Documentation:** {crate['documentation']}")
    if crate.get("repository"):
        links.append(f"**Repository:** {crate['repository']}")
    if links:
        sections.append("\n".join(links))

    sections.append(readme_markdown)
    return "\n\n".join(sections)


class CratesIOInvestigator(BaseInvestigator):
    source_type = SourceType.CRATES_IO
    url_prefix = "https://crates.io/crates/"

    def get_url(self, package_path: str) -> str:
        return f"{self.url_prefix}{last_segment(package_path)}"

    async def fetch(self, package_path: str) -> Data:
        name = last_segment(package_path)
        try:
            async with http_client() as client:
                resp = await client.get(
                    f"{API_URL}/{name}", params={"include": "default_version"}
                )
                if resp.status_code == 404:
                    raise PackageNotFoundError("Package not found", pkg=package_path)
                if resp.status_code != 200:
                    raise FetchError(
                        "crates.io request failed",
                        pkg=package_path,
                        status=resp.status_code,
                    )
                payload = resp.json()

                crate = payload.get("crate") or {}
                default_version = crate.get("default_version")
                version = next(
                    (
                        v
                        for v in payload.get("versions") or []
                        if v.get("num") == default_version
                    ),
                    None,
                )
                if not version or not version.get("readme_path"):
                    raise ReadmeNotFoundError(
                        "README not found in package", pkg=package_path
                    )

                readme_url = f"https://crates.io{version['readme_path']}"
                readme_resp = await client.get(readme_url)
                if readme_resp.status_code == 404:
                    raise ReadmeNotFoundError(
                        "README not found", pkg=package_path, url=readme_url
                    )
                if readme_resp.status_code != 200:
                    raise FetchError(
                        "crates.io README request failed",
                        pkg=package_path,
                        url=readme_url,
                        status=readme_resp.status_code,
                    )
                readme_html = readme_resp.text
        except httpx.HTTPError as e:
            raise FetchError("crates.io request failed", pkg=package_path, error=str(e)) from e
        except ValueError as e:
            raise FetchError("crates.io returned invalid JSON", pkg=package_path) from e

        doc = format_crate_doc(crate, version, html_to_markdown(readme_html))

        related: list[RelatedReference] = []
        if crate.get("homepage"):
            related.append(classify_url(crate["homepage"]))
        if crate.get("documentation"):
            related.append(
                RelatedReference(
                    type=SourceType.DOCUMENTATION,
                    path=crate["documentation"],
                    url=crate["documentation"],
                    origin="api",
                )
            )
        if crate.get("repository"):
            related.append(repository_reference(crate["repository"]))
        related.extend(extract_related_sources(doc, package_path))

        return self.build_data(
            package_path,
            doc,
            related,
            metadata={
                "name": crate.get("name", name),
                "version": default_version or "",
                "description": crate.get("description") or "",
                "license": version.get("license") or "",
            },
        )
