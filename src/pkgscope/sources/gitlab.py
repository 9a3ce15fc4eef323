"""GitLab investigator backed by the ``glab`` CLI.

The tree endpoint carries no download URLs, so the README itself is fetched
from the raw endpoint over HTTPS.
"""

import httpx

from pkgscope.config import settings
from pkgscope.errors import (
    CommandFailedError,
    FetchError,
    ReadmeNotFoundError,
)
from pkgscope.extract import extract_related_sources
from pkgscope.models import Data, RelatedReference, SourceType
from pkgscope.sources.base import BaseInvestigator
from pkgscope.sources.github import is_readme, split_owner_repo, strip_host
from pkgscope.sources.util import (
    http_client,
    require_command,
    run_cli_json,
)

GLAB_INSTALL_HINT = "https://gitlab.com/gitlab-org/cli"


def raw_url(owner: str, repo: str, name: str) -> str:
    return f"https://gitlab.com/{owner}/{repo}/-/raw/HEAD/{name}"


class GitLabInvestigator(BaseInvestigator):
    source_type = SourceType.GITLAB
    url_prefix = "https://gitlab.com/"

    def get_url(self, package_path: str) -> str:
        return f"{self.url_prefix}{strip_host(package_path, 'gitlab.com')}"

    async def fetch_document(self, package_path: str) -> tuple[str, list[RelatedReference]]:
        """Fetch README text and related references for a project."""
        glab = require_command(settings.glab_bin, "PKGSCOPE_GLAB_BIN", GLAB_INSTALL_HINT)
        owner, repo = split_owner_repo(package_path, "gitlab.com")
        project = f"/projects/{owner}%2F{repo}"

        try:
            tree = await run_cli_json(glab, ["api", f"{project}/repository/tree", "--paginate"])
        except CommandFailedError as e:
            raise CommandFailedError(
                "Failed to fetch repository contents",
                owner=owner,
                repo=repo,
                error=e.context.get("error", str(e)),
            ) from e

        readme_name = next(
            (
                entry.get("name")
                for entry in (tree if isinstance(tree, list) else [])
                if is_readme(entry.get("name", ""))
            ),
            None,
        )
        if not readme_name:
            raise ReadmeNotFoundError(
                "README not found in repository", owner=owner, repo=repo
            )

        url = raw_url(owner, repo, readme_name)
        try:
            async with http_client() as client:
                resp = await client.get(url)
        except httpx.HTTPError as e:
            raise FetchError("Failed to download README", url=url, error=str(e)) from e
        if resp.status_code != 200:
            raise FetchError("Failed to download README", url=url, status=resp.status_code)

        document = resp.text
        return document, extract_related_sources(document, repo)

    async def fetch(self, package_path: str) -> Data:
        document, related = await self.fetch_document(package_path)
        return self.build_data(package_path, document, related)
