"""Find references to other package sources inside free text.

Two passes over a document (README, registry description, ...):
1. URLs (markdown link targets or bare http(s) tokens) matched against
   per-registry URL patterns.
2. Install commands (``npm install x``, ``cargo add x``, ...) matched
   against the whole text.

Candidates are kept only when their identifying string contains the name of
the package being investigated. This is a plain substring test: ``express``
also keeps ``express-session``, and scoped or differently-cased names can
be dropped. See DESIGN.md before tightening it.
"""

import re
from dataclasses import dataclass

from pkgscope.models import RelatedReference, SourceType


@dataclass(frozen=True)
class SourcePattern:
    type: SourceType
    url_pattern: re.Pattern[str] | None = None
    command_pattern: re.Pattern[str] | None = None
    description: str = ""


SOURCE_PATTERNS: tuple[SourcePattern, ...] = (
    SourcePattern(
        type=SourceType.JSR,
        url_pattern=re.compile(r"https?://jsr\.io/(@[^/]+/([^/\s]+))"),
        command_pattern=re.compile(r"jsr add (@[^\s]+)"),
        description="JSR package reference",
    ),
    SourcePattern(
        type=SourceType.JSR,
        command_pattern=re.compile(r"deno add jsr:(@[^\s]+)"),
        description="JSR package reference for Deno",
    ),
    SourcePattern(
        type=SourceType.NPM,
        url_pattern=re.compile(r"https?://(?:www\.)?npmjs\.com/package/([^/\s]+)"),
        command_pattern=re.compile(r"(?:npm|yarn|pnpm) (?:add|install|create) ([^@\s]+)"),
        description="npm package reference",
    ),
    SourcePattern(
        type=SourceType.GO_PKG_DEV,
        url_pattern=re.compile(r"https?://pkg\.go\.dev/(?:badge/)?([^\s.]+)(?:\.svg)?"),
        command_pattern=re.compile(r"go (?:get|install|test)(?:\s-u)? ([^@\s]+)"),
        description="Go package reference",
    ),
    SourcePattern(
        type=SourceType.CRATES_IO,
        url_pattern=re.compile(r"https?://(?:www\.)?crates\.io/crates/([^/\s]+)"),
        command_pattern=re.compile(r"cargo add ([^@\s]+)"),
        description="Cargo package reference",
    ),
    SourcePattern(
        type=SourceType.RUBYGEMS,
        url_pattern=re.compile(r"https?://(?:www\.)?rubygems\.org/gems/([^/\s]+)"),
        command_pattern=re.compile(r"gem install ([^@\s]+)"),
        description="RubyGems package reference",
    ),
    SourcePattern(
        type=SourceType.PYPI,
        url_pattern=re.compile(r"https?://(?:www\.)?pypi\.org/project/([^/\s]+)"),
        command_pattern=re.compile(r"pip install ([^@=\s]+)"),
        description="Python package reference",
    ),
    SourcePattern(
        type=SourceType.PACKAGIST,
        url_pattern=re.compile(
            r"https?://(?:www\.)?packagist\.org/packages/([^/\s]+/[^/\s]+)"
        ),
        command_pattern=re.compile(r"composer (?:require|install) ([^@\s]+)"),
        description="PHP package reference",
    ),
)

_MD_LINK_RE = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")
_RAW_URL_RE = re.compile(r"https?://[^\s<>\"]+")


def _strip_fragment(url: str) -> str:
    return url.split("#", 1)[0]


def extract_urls(content: str) -> list[str]:
    """Collect URLs in first-seen order, fragments stripped, no duplicates.

    Lines holding markdown links contribute only the link targets; other
    lines contribute bare http(s) tokens.
    """
    urls: list[str] = []
    seen: set[str] = set()

    for line in content.split("\n"):
        if "](" in line:
            found = [m.group(2) for m in _MD_LINK_RE.finditer(line)]
        else:
            found = _RAW_URL_RE.findall(line)
        for url in found:
            url = _strip_fragment(url)
            if url not in seen:
                seen.add(url)
                urls.append(url)
    return urls


def _from_urls(
    urls: list[str], patterns: tuple[SourcePattern, ...]
) -> list[RelatedReference]:
    sources: list[RelatedReference] = []
    for url in urls:
        for pattern in patterns:
            if pattern.url_pattern is None:
                continue
            match = pattern.url_pattern.search(url)
            if match:
                sources.append(
                    RelatedReference(type=pattern.type, path=match.group(1), origin="document")
                )
                break
    return sources


def _from_commands(
    content: str, patterns: tuple[SourcePattern, ...]
) -> list[RelatedReference]:
    sources: list[RelatedReference] = []
    for pattern in patterns:
        if pattern.command_pattern is None:
            continue
        for match in pattern.command_pattern.finditer(content):
            sources.append(
                RelatedReference(type=pattern.type, path=match.group(1), origin="document")
            )
    return sources


def _filter_and_deduplicate(
    sources: list[RelatedReference], current_package: str
) -> list[RelatedReference]:
    filtered: list[RelatedReference] = []
    seen: set[str] = set()
    for source in sources:
        key = source.url or source.path
        if key in seen:
            continue
        if current_package in key:
            filtered.append(source)
            seen.add(key)
    return filtered


def extract_related_sources(
    content: str,
    current_package: str,
    patterns: tuple[SourcePattern, ...] = SOURCE_PATTERNS,
) -> list[RelatedReference]:
    """Find references to ``current_package`` on other sources in ``content``."""
    if not content:
        return []
    sources = _from_urls(extract_urls(content), patterns)
    sources.extend(_from_commands(content, patterns))
    return _filter_and_deduplicate(sources, current_package)
