"""GitHub investigator backed by the ``gh`` CLI.

The contents API is used instead of raw download URLs because it resolves
symlinked README files.
"""

import base64
import binascii

from pkgscope.config import settings
from pkgscope.errors import CommandFailedError, InvalidPackagePathError
from pkgscope.extract import extract_related_sources
from pkgscope.models import Data, RelatedReference, SourceType
from pkgscope.sources.base import BaseInvestigator
from pkgscope.sources.util import classify_url, require_command, run_cli_json

GH_INSTALL_HINT = "https://cli.github.com/"


def strip_host(package_path: str, host: str) -> str:
    """Drop anything up to and including ``<host>/`` from a path or URL."""
    marker = f"{host}/"
    pos = package_path.find(marker)
    if pos != -1:
        return package_path[pos + len(marker) :]
    return package_path


def split_owner_repo(package_path: str, host: str) -> tuple[str, str]:
    """Return ``(owner, repo)`` from ``owner/repo[/...]`` or a full URL."""
    path = strip_host(package_path, host)
    parts = path.split("/")
    if len(parts) < 2:
        raise InvalidPackagePathError(f"Invalid {host} package path", path=package_path)
    owner, repo = parts[0], parts[1]
    repo = repo.split("?", 1)[0].split("#", 1)[0]
    if not owner or not repo:
        raise InvalidPackagePathError(f"Invalid {host} package path", path=package_path)
    return owner, repo


def is_readme(name: str) -> bool:
    lowered = name.lower()
    return lowered == "readme" or lowered.startswith("readme.")


def decode_content(content: dict) -> str:
    if content.get("encoding") != "base64":
        raise CommandFailedError(
            "the content is not base64 encoded", encoding=content.get("encoding")
        )
    try:
        raw = base64.b64decode(content.get("content") or "")
    except (binascii.Error, ValueError) as e:
        raise CommandFailedError("Failed to decode README content", error=str(e)) from e
    return raw.decode("utf-8", errors="replace")


class GitHubInvestigator(BaseInvestigator):
    source_type = SourceType.GITHUB
    url_prefix = "https://github.com/"

    def get_url(self, package_path: str) -> str:
        return f"{self.url_prefix}{strip_host(package_path, 'github.com')}"

    async def fetch_document(self, package_path: str) -> tuple[str, list[RelatedReference]]:
        """Fetch README text and related references for a repository."""
        gh = require_command(settings.gh_bin, "PKGSCOPE_GH_BIN", GH_INSTALL_HINT)
        owner, repo = split_owner_repo(package_path, "github.com")
        base = f"/repos/{owner}/{repo}"

        info = await self._api(gh, base, "Failed to fetch repository information", owner, repo)
        contents = await self._api(
            gh, f"{base}/contents", "Failed to fetch repository contents", owner, repo
        )

        readme_path = next(
            (
                entry.get("path") or entry.get("name")
                for entry in (contents if isinstance(contents, list) else [])
                if is_readme(entry.get("name", ""))
            ),
            None,
        )

        related: list[RelatedReference] = []
        document = ""
        if readme_path:
            content = await self._api(
                gh, f"{base}/contents/{readme_path}", "Failed to fetch README content", owner, repo
            )
            document = decode_content(content)
            related.extend(extract_related_sources(document, repo))

        homepage = (info or {}).get("homepage") if isinstance(info, dict) else None
        if homepage:
            related.append(classify_url(homepage))

        return document, related

    async def _api(self, gh: str, endpoint: str, message: str, owner: str, repo: str):
        try:
            return await run_cli_json(gh, ["api", endpoint])
        except CommandFailedError as e:
            raise CommandFailedError(
                message, owner=owner, repo=repo, error=e.context.get("error", str(e))
            ) from e

    async def fetch(self, package_path: str) -> Data:
        document, related = await self.fetch_document(package_path)
        return self.build_data(package_path, document, related)
