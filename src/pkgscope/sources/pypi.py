"""PyPI investigator. The project long description is used as README."""

import httpx

from pkgscope.errors import FetchError, ReadmeNotFoundError, RepositoryNotFoundError
from pkgscope.extract import extract_related_sources
from pkgscope.models import Data, RelatedReference, SourceType
from pkgscope.sources.base import BaseInvestigator
from pkgscope.sources.util import classify_url, http_client, last_segment

API_URL = "https://pypi.org/pypi"

_HOMEPAGE_LABELS = frozenset({"homepage", "home"})
_REPOSITORY_LABELS = frozenset({"repository", "source", "source code", "code"})


def classify_project_url(label: str, url: str) -> SourceType:
    """Decide what a ``project_urls`` entry points at.

    Repository hosts win regardless of label; otherwise the label decides,
    and anything unrecognized is treated as documentation.
    """
    detected = SourceType.from_url(url)
    if detected.is_repository():
        return detected
    label = label.strip().lower()
    if label in _HOMEPAGE_LABELS:
        return SourceType.HOMEPAGE
    if label in _REPOSITORY_LABELS:
        return detected if detected != SourceType.UNKNOWN else SourceType.WEBSITE
    return SourceType.DOCUMENTATION


class PyPIInvestigator(BaseInvestigator):
    source_type = SourceType.PYPI
    url_prefix = "https://pypi.org/project/"

    def get_url(self, package_path: str) -> str:
        return f"{self.url_prefix}{last_segment(package_path)}"

    async def fetch(self, package_path: str) -> Data:
        name = last_segment(package_path)
        try:
            async with http_client() as client:
                resp = await client.get(f"{API_URL}/{name}/json")
        except httpx.HTTPError as e:
            raise FetchError("PyPI request failed", pkg=package_path, error=str(e)) from e

        if resp.status_code != 200:
            raise RepositoryNotFoundError(
                "Failed to fetch package information from pypi.org",
                pkg=package_path,
                status=resp.status_code,
            )
        try:
            info = resp.json().get("info") or {}
        except ValueError as e:
            raise FetchError("PyPI returned invalid JSON", pkg=package_path) from e

        description = info.get("description") or ""
        if not description:
            raise ReadmeNotFoundError("README not found in package", pkg=package_path)

        related: list[RelatedReference] = []
        if info.get("home_page"):
            related.append(classify_url(info["home_page"]))

        # Sorted so the crawl order does not depend on PyPI's dict ordering
        project_urls = info.get("project_urls") or {}
        for label in sorted(project_urls):
            url = project_urls[label]
            if not url:
                continue
            related.append(
                RelatedReference(
                    type=classify_project_url(label, url), url=url, origin="api"
                )
            )

        related.extend(extract_related_sources(description, package_path))

        return self.build_data(
            package_path,
            description,
            related,
            metadata={
                "name": info.get("name", name),
                "version": info.get("version") or "",
                "summary": info.get("summary") or "",
                "license": info.get("license") or "",
            },
        )
