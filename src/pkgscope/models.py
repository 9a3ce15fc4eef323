"""Source types and the value objects passed between detector, investigators,
engine and aggregator."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Literal

Origin = Literal["api", "document"]


class SourceType(StrEnum):
    """Where a package's documentation can come from."""

    GO_PKG_DEV = "pkg.go.dev"
    JSR = "jsr.io"
    NPM = "npmjs.com"
    CRATES_IO = "crates.io"
    RUBYGEMS = "rubygems.org"
    PYPI = "pypi.org"
    PACKAGIST = "packagist.org"
    GITHUB = "github.com"
    GITLAB = "gitlab.com"
    DOCUMENTATION = "documentation"
    HOMEPAGE = "homepage"
    WEBSITE = "website"
    UNKNOWN = ""

    def is_registry(self) -> bool:
        return self in _REGISTRY_TYPES

    def is_repository(self) -> bool:
        return self in (SourceType.GITHUB, SourceType.GITLAB)

    def is_documentation(self) -> bool:
        return self in (
            SourceType.GO_PKG_DEV,
            SourceType.JSR,
            SourceType.DOCUMENTATION,
        )

    def contains_repository_url(self) -> bool:
        return self in (SourceType.GITHUB, SourceType.GITLAB, SourceType.GO_PKG_DEV)

    @classmethod
    def from_url(cls, url: str) -> "SourceType":
        """Sniff the source type from the host appearing in a URL."""
        for needle, source_type in _URL_SNIFF_ORDER:
            if needle in url:
                return source_type
        return cls.UNKNOWN


_REGISTRY_TYPES = frozenset(
    {
        SourceType.GO_PKG_DEV,
        SourceType.JSR,
        SourceType.NPM,
        SourceType.CRATES_IO,
        SourceType.RUBYGEMS,
        SourceType.PYPI,
        SourceType.PACKAGIST,
    }
)

# Checked in order: a GitHub URL mentioning "npmjs.com" in its path is
# still a GitHub URL.
_URL_SNIFF_ORDER: tuple[tuple[str, SourceType], ...] = (
    ("github.com", SourceType.GITHUB),
    ("gitlab.com", SourceType.GITLAB),
    ("rubygems.org", SourceType.RUBYGEMS),
    ("npmjs.com", SourceType.NPM),
    ("jsr.io", SourceType.JSR),
    ("pkg.go.dev", SourceType.GO_PKG_DEV),
    ("crates.io", SourceType.CRATES_IO),
    ("packagist.org", SourceType.PACKAGIST),
)


@dataclass(frozen=True)
class Reference:
    """What to fetch and how: a source type plus a type-specific path."""

    type: SourceType
    path: str

    def cache_key(self) -> str:
        return f"{self.type.value}:{self.path}"


@dataclass(frozen=True)
class RelatedReference:
    """A source discovered while fetching another one."""

    type: SourceType
    path: str = ""
    url: str = ""
    origin: Origin = "document"

    def to_reference(self) -> Reference:
        return Reference(type=self.type, path=self.path or self.url)

    def to_dict(self) -> dict[str, str]:
        return {
            "type": self.type.value,
            "path": self.path,
            "url": self.url,
            "origin": self.origin,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "RelatedReference":
        return cls(
            type=SourceType(raw.get("type", "")),
            path=raw.get("path", ""),
            url=raw.get("url", ""),
            origin=raw.get("origin", "document"),
        )


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass
class Data:
    """Outcome of fetching one source.

    On failure only ``fetch_error`` and ``fetched_at`` are meaningful;
    ``source`` and ``browser_url`` stay ``None``.
    """

    source: Reference | None = None
    contents: dict[str, str] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)
    browser_url: str | None = None
    fetch_error: str | None = None
    fetched_at: datetime = field(default_factory=_now)
    related_sources: list[RelatedReference] = field(default_factory=list)

    @property
    def readme(self) -> str:
        return self.contents.get("README.md", "")

    @property
    def ok(self) -> bool:
        return self.fetch_error is None

    @classmethod
    def failed(cls, error: str) -> "Data":
        return cls(fetch_error=error)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the on-disk cache. ``source`` is not persisted; the
        engine stamps it after every fetch."""
        return {
            "contents": self.contents,
            "metadata": self.metadata,
            "browser_url": self.browser_url,
            "fetch_error": self.fetch_error,
            "fetched_at": self.fetched_at.isoformat(),
            "related_sources": [r.to_dict() for r in self.related_sources],
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Data":
        fetched_at = raw.get("fetched_at")
        return cls(
            contents=dict(raw.get("contents") or {}),
            metadata=dict(raw.get("metadata") or {}),
            browser_url=raw.get("browser_url"),
            fetch_error=raw.get("fetch_error"),
            fetched_at=datetime.fromisoformat(fetched_at) if fetched_at else _now(),
            related_sources=[
                RelatedReference.from_dict(r) for r in raw.get("related_sources", [])
            ],
        )


@dataclass(frozen=True)
class Link:
    type: SourceType
    url: str
