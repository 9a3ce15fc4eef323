"""Maps a source type to the investigator that handles it."""

from collections.abc import Mapping
from types import MappingProxyType

from pkgscope.models import SourceType
from pkgscope.sources.base import SourceInvestigator
from pkgscope.sources.crates import CratesIOInvestigator
from pkgscope.sources.github import GitHubInvestigator
from pkgscope.sources.gitlab import GitLabInvestigator
from pkgscope.sources.jsr import JSRInvestigator
from pkgscope.sources.npm import NPMInvestigator
from pkgscope.sources.packagist import PackagistInvestigator
from pkgscope.sources.pkggodev import GoPkgDevInvestigator
from pkgscope.sources.pypi import PyPIInvestigator
from pkgscope.sources.rubygems import RubyGemsInvestigator
from pkgscope.sources.website import WebsiteInvestigator


def default_investigators() -> dict[SourceType, SourceInvestigator]:
    github = GitHubInvestigator()
    gitlab = GitLabInvestigator()
    return {
        SourceType.GO_PKG_DEV: GoPkgDevInvestigator(github=github, gitlab=gitlab),
        SourceType.JSR: JSRInvestigator(),
        SourceType.NPM: NPMInvestigator(),
        SourceType.CRATES_IO: CratesIOInvestigator(),
        SourceType.RUBYGEMS: RubyGemsInvestigator(),
        SourceType.PYPI: PyPIInvestigator(),
        SourceType.PACKAGIST: PackagistInvestigator(),
        SourceType.GITHUB: github,
        SourceType.GITLAB: gitlab,
        SourceType.HOMEPAGE: WebsiteInvestigator(SourceType.HOMEPAGE),
        SourceType.DOCUMENTATION: WebsiteInvestigator(SourceType.DOCUMENTATION),
        SourceType.WEBSITE: WebsiteInvestigator(SourceType.WEBSITE),
    }


class InvestigatorRegistry:
    """Immutable type -> investigator lookup.

    ``get`` returns None for unmapped types (``unknown`` included) so the
    engine can tell a missing mapping apart from a fetch failure.
    """

    def __init__(self, investigators: Mapping[SourceType, SourceInvestigator] | None = None):
        if investigators is None:
            investigators = default_investigators()
        self._investigators = MappingProxyType(dict(investigators))

    def get(self, source_type: SourceType) -> SourceInvestigator | None:
        return self._investigators.get(source_type)

    def __contains__(self, source_type: object) -> bool:
        return source_type in self._investigators

    def types(self) -> list[SourceType]:
        return list(self._investigators)


_default_registry: InvestigatorRegistry | None = None


def get_registry() -> InvestigatorRegistry:
    global _default_registry
    if _default_registry is None:
        _default_registry = InvestigatorRegistry()
    return _default_registry


def get_investigator(source_type: SourceType) -> SourceInvestigator | None:
    """Return the registered investigator for ``source_type``, or None."""
    return get_registry().get(source_type)
