"""Map raw user input (package path + optional language hint) to a Reference."""

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from pkgscope.errors import InvalidPackagePathError
from pkgscope.models import Reference, SourceType

# Language / ecosystem aliases -> canonical source type
LANGUAGE_ALIASES: Mapping[str, SourceType] = MappingProxyType(
    {
        # go
        "go": SourceType.GO_PKG_DEV,
        "golang": SourceType.GO_PKG_DEV,
        # javascript, typescript
        "js": SourceType.NPM,
        "javascript": SourceType.NPM,
        "npm": SourceType.NPM,
        "node": SourceType.NPM,
        "nodejs": SourceType.NPM,
        "ts": SourceType.NPM,
        "tsx": SourceType.NPM,
        "typescript": SourceType.NPM,
        "jsr": SourceType.JSR,
        # rust
        "rust": SourceType.CRATES_IO,
        "rs": SourceType.CRATES_IO,
        "crates": SourceType.CRATES_IO,
        "cargo": SourceType.CRATES_IO,
        # ruby
        "ruby": SourceType.RUBYGEMS,
        "rb": SourceType.RUBYGEMS,
        "gem": SourceType.RUBYGEMS,
        "gems": SourceType.RUBYGEMS,
        "rubygems": SourceType.RUBYGEMS,
        # python
        "python": SourceType.PYPI,
        "py": SourceType.PYPI,
        "pypi": SourceType.PYPI,
        "pip": SourceType.PYPI,
        # php
        "php": SourceType.PACKAGIST,
        "packagist": SourceType.PACKAGIST,
        "composer": SourceType.PACKAGIST,
        # repositories
        "github": SourceType.GITHUB,
        "gh": SourceType.GITHUB,
        "gitlab": SourceType.GITLAB,
    }
)

_PASSTHROUGH_TYPES = frozenset(
    {
        SourceType.NPM,
        SourceType.CRATES_IO,
        SourceType.RUBYGEMS,
        SourceType.PYPI,
        SourceType.PACKAGIST,
    }
)

_GO_PREFIX = "pkg.go.dev/"
_REPO_PREFIXES: tuple[tuple[str, SourceType], ...] = (
    ("github.com/", SourceType.GITHUB),
    ("gitlab.com/", SourceType.GITLAB),
)


@dataclass(frozen=True)
class UserInput:
    package_path: str
    language: str = ""
    force_update: bool = False


@dataclass(frozen=True)
class InitialQuery:
    source_ref: Reference
    force_update: bool = False


def resolve_language(
    language: str, aliases: Mapping[str, SourceType] = LANGUAGE_ALIASES
) -> SourceType:
    """Resolve a language hint to a source type (UNKNOWN if not an alias)."""
    return aliases.get(language.strip().lower(), SourceType.UNKNOWN)


def _normalize_jsr(path: str) -> str:
    if not path.startswith("@"):
        path = "@" + path
    if path.count("/") != 1 or path.startswith("@/") or path.endswith("/"):
        raise InvalidPackagePathError(
            "JSR package path must look like @scope/name",
            type=SourceType.JSR.value,
            path=path,
        )
    return path


def _looks_like_go_repository(path: str) -> bool:
    parts = path.split("/")
    if len(parts) < 3:
        return False
    repo_name = parts[2].lower()
    return (
        repo_name.startswith("go-")
        or repo_name.endswith("-go")
        or ".go" in repo_name
    )


def detect(
    path: str,
    language_hint: str = "",
    aliases: Mapping[str, SourceType] = LANGUAGE_ALIASES,
) -> Reference:
    """Detect the documentation source for a package path.

    Pure function of its inputs and the alias table. Raises
    ``InvalidPackagePathError`` only for type-specific path shape problems
    (currently JSR). An unrecognized path yields ``SourceType.UNKNOWN``;
    callers decide how to report that.
    """
    path = path.strip()
    hinted = resolve_language(language_hint, aliases) if language_hint else SourceType.UNKNOWN

    if hinted == SourceType.JSR:
        return Reference(SourceType.JSR, _normalize_jsr(path))

    if hinted in _PASSTHROUGH_TYPES:
        return Reference(hinted, path)

    if hinted == SourceType.GO_PKG_DEV or path.startswith(_GO_PREFIX):
        return Reference(SourceType.GO_PKG_DEV, path.removeprefix(_GO_PREFIX))

    repo_prefixed = any(path.startswith(prefix) for prefix, _ in _REPO_PREFIXES)
    if (hinted.is_repository() or repo_prefixed) and _looks_like_go_repository(path):
        return Reference(SourceType.GO_PKG_DEV, path)

    for prefix, source_type in _REPO_PREFIXES:
        if path.startswith(prefix):
            return Reference(source_type, path.removeprefix(prefix))

    if hinted.is_repository():
        return Reference(hinted, path)

    return Reference(SourceType.UNKNOWN, path)


def new_initial_query(
    user_input: UserInput, aliases: Mapping[str, SourceType] = LANGUAGE_ALIASES
) -> InitialQuery:
    """Build the crawl seed from user input."""
    ref = detect(user_input.package_path, user_input.language, aliases)
    return InitialQuery(source_ref=ref, force_update=user_input.force_update)


def aliases_by_source(
    aliases: Mapping[str, SourceType] = LANGUAGE_ALIASES,
) -> dict[SourceType, list[str]]:
    """Group aliases by their source type, both sorted, for help output."""
    grouped: dict[SourceType, list[str]] = {}
    for alias, source_type in aliases.items():
        grouped.setdefault(source_type, []).append(alias)
    return {
        source_type: sorted(grouped[source_type])
        for source_type in sorted(grouped, key=lambda t: t.value)
    }
