"""npm registry investigator."""

import httpx
from loguru import logger

from pkgscope.errors import FetchError, RepositoryNotFoundError
from pkgscope.extract import extract_related_sources
from pkgscope.models import Data, RelatedReference, SourceType
from pkgscope.sources.base import BaseInvestigator
from pkgscope.sources.util import classify_url, http_client, repository_reference

REGISTRY_URL = "https://registry.npmjs.org"


def _repository_url(data: dict) -> str:
    repo = data.get("repository")
    url = repo.get("url", "") if isinstance(repo, dict) else (repo or "")
    # npm shorthand "owner/repo" -> GitHub
    if url and "/" in url and "://" not in url and ":" not in url:
        url = f"https://github.com/{url}"
    return url


class NPMInvestigator(BaseInvestigator):
    source_type = SourceType.NPM
    url_prefix = "https://www.npmjs.com/package/"

    async def fetch(self, package_path: str) -> Data:
        try:
            async with http_client() as client:
                resp = await client.get(f"{REGISTRY_URL}/{package_path}")
        except httpx.HTTPError as e:
            raise FetchError("npm registry request failed", pkg=package_path, error=str(e)) from e

        if resp.status_code != 200:
            raise RepositoryNotFoundError(
                "Failed to fetch package information from npm registry",
                pkg=package_path,
                status=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise FetchError("npm registry returned invalid JSON", pkg=package_path) from e

        readme = data.get("readme") or ""
        homepage = data.get("homepage") or ""
        repo_url = _repository_url(data)

        related: list[RelatedReference] = []
        if homepage:
            related.append(classify_url(homepage))
        if repo_url:
            related.append(repository_reference(repo_url))
        related.extend(extract_related_sources(readme, package_path))

        latest = (data.get("dist-tags") or {}).get("latest", "")
        logger.debug(f"npm: {package_path}@{latest or '?'} ({len(readme)} chars)")
        return self.build_data(
            package_path,
            readme,
            related,
            metadata={
                "name": data.get("name", package_path),
                "version": latest,
                "description": data.get("description") or "",
                "license": data.get("license") or "",
            },
        )
