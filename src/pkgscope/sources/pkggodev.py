"""pkg.go.dev investigator.

pkg.go.dev has no API, so the README comes from the module's source
repository. Vanity import paths are resolved through the ``go-import`` and
``go-source`` meta tags served at ``https://<path>?go-get=1``
(https://pkg.go.dev/cmd/go#hdr-Remote_import_paths).
"""

from dataclasses import dataclass
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from pkgscope.errors import (
    FetchError,
    InvalidMetaTagError,
    RepositoryNotFoundError,
)
from pkgscope.models import Data, RelatedReference, SourceType
from pkgscope.sources.base import BaseInvestigator
from pkgscope.sources.github import GitHubInvestigator
from pkgscope.sources.gitlab import GitLabInvestigator
from pkgscope.sources.util import fetch_html

_REPOSITORY_HOSTS = ("github.com", "gitlab.com")


@dataclass
class GoMetadata:
    repository: str
    homepage: str | None = None


def go_get_url(package_path: str) -> str:
    url = package_path if package_path.startswith("https://") else f"https://{package_path}"
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}go-get=1"


def parse_go_metadata(html: str, url: str = "") -> GoMetadata:
    """Read repository and homepage URLs from go-import / go-source meta tags.

    Raises:
        InvalidMetaTagError: no go-import tag, or it does not have exactly
            three fields (prefix, vcs, repo).
    """
    soup = BeautifulSoup(html, "html.parser")
    import_content = ""
    source_content = ""
    for meta in soup.find_all("meta"):
        content = meta.get("content") or ""
        if not content:
            continue
        match meta.get("name"):
            case "go-import":
                import_content = content
            case "go-source":
                source_content = content

    if not import_content:
        raise InvalidMetaTagError("No go-import meta tag found", url=url)

    import_parts = import_content.split()
    if len(import_parts) != 3:
        raise InvalidMetaTagError(
            "Invalid go-import meta tag format", url=url, content=import_content
        )

    homepage = None
    source_parts = source_content.split()
    if len(source_parts) >= 2:
        homepage = source_parts[1]

    return GoMetadata(repository=import_parts[2], homepage=homepage)


def _is_repository_host(url: str | None) -> bool:
    return bool(url) and urlparse(url).hostname in _REPOSITORY_HOSTS


class GoPkgDevInvestigator(BaseInvestigator):
    source_type = SourceType.GO_PKG_DEV
    url_prefix = "https://pkg.go.dev/"

    def __init__(
        self,
        github: GitHubInvestigator | None = None,
        gitlab: GitLabInvestigator | None = None,
    ):
        self.github = github or GitHubInvestigator()
        self.gitlab = gitlab or GitLabInvestigator()

    async def detect_metadata(self, package_path: str) -> GoMetadata:
        url = go_get_url(package_path)
        try:
            html = await fetch_html(url)
        except FetchError as e:
            raise RepositoryNotFoundError(
                "Failed to fetch go-import meta tag", url=url, error=str(e)
            ) from e
        return parse_go_metadata(html, url)

    async def _fetch_repository(self, url: str) -> tuple[str, list[RelatedReference]]:
        if "github.com" in url:
            return await self.github.fetch_document(url)
        return await self.gitlab.fetch_document(url)

    async def fetch_document(self, package_path: str) -> tuple[str, list[RelatedReference]]:
        if "github.com/" in package_path or "gitlab.com/" in package_path:
            return await self._fetch_repository(package_path)

        metadata = await self.detect_metadata(package_path)
        if _is_repository_host(metadata.repository):
            source_url = metadata.repository
        elif _is_repository_host(metadata.homepage):
            source_url = metadata.homepage
        else:
            raise RepositoryNotFoundError(
                "Package not found",
                pkg=package_path,
                repository=metadata.repository,
            )

        document, related = await self._fetch_repository(source_url)
        related = list(related)
        if metadata.homepage:
            related.append(
                RelatedReference(type=SourceType.HOMEPAGE, url=metadata.homepage, origin="api")
            )
        related.append(
            RelatedReference(
                type=SourceType.from_url(source_url), url=source_url, origin="api"
            )
        )
        return document, related

    async def fetch(self, package_path: str) -> Data:
        document, related = await self.fetch_document(package_path)
        return self.build_data(package_path, document, related)
