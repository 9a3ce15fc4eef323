"""Packagist investigator. Packagist has no README; the package description
stands in for it."""

import httpx

from pkgscope.errors import FetchError, ReadmeNotFoundError, RepositoryNotFoundError
from pkgscope.extract import extract_related_sources
from pkgscope.models import Data, RelatedReference, SourceType
from pkgscope.sources.base import BaseInvestigator
from pkgscope.sources.util import classify_url, http_client, repository_reference

API_URL = "https://packagist.org/packages"


def _first_version_value(versions: dict, getter) -> str:
    for version in versions.values():
        value = getter(version)
        if value:
            return value
    return ""


class PackagistInvestigator(BaseInvestigator):
    source_type = SourceType.PACKAGIST
    url_prefix = "https://packagist.org/packages/"

    async def fetch(self, package_path: str) -> Data:
        try:
            async with http_client() as client:
                resp = await client.get(f"{API_URL}/{package_path}.json")
        except httpx.HTTPError as e:
            raise FetchError("Packagist request failed", pkg=package_path, error=str(e)) from e

        if resp.status_code != 200:
            raise RepositoryNotFoundError(
                "Failed to fetch package information from packagist.org",
                pkg=package_path,
                status=resp.status_code,
            )
        try:
            package = resp.json().get("package") or {}
        except ValueError as e:
            raise FetchError("Packagist returned invalid JSON", pkg=package_path) from e

        versions = package.get("versions") or {}
        if not isinstance(versions, dict):
            versions = {}

        description = package.get("description") or _first_version_value(
            versions, lambda v: v.get("description")
        )
        if not description:
            raise ReadmeNotFoundError("README not found in package", pkg=package_path)

        related: list[RelatedReference] = []
        if package.get("homepage"):
            related.append(classify_url(package["homepage"]))

        repo_url = package.get("repository") or _first_version_value(
            versions, lambda v: (v.get("source") or {}).get("url")
        )
        if repo_url:
            related.append(repository_reference(repo_url))

        related.extend(extract_related_sources(description, package_path))

        return self.build_data(
            package_path,
            description,
            related,
            metadata={
                "name": package.get("name", package_path),
                "downloads": (package.get("downloads") or {}).get("total", 0),
            },
        )
