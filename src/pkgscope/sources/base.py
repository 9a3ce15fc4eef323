"""Investigator protocol and the shared base most implementations extend."""

from datetime import UTC, datetime
from typing import Any, ClassVar, Protocol, runtime_checkable

from pkgscope.errors import InvalidPackagePathError
from pkgscope.models import Data, RelatedReference, SourceType
from pkgscope.sources.util import strip_prefix_from_url


@runtime_checkable
class SourceInvestigator(Protocol):
    """Fetch-and-describe capability for one source type."""

    @property
    def source_type(self) -> SourceType: ...

    async def fetch(self, package_path: str) -> Data: ...

    def get_url(self, package_path: str) -> str: ...

    def package_from_url(self, url: str) -> str: ...


class BaseInvestigator:
    """Common plumbing: browser-URL prefix handling and Data assembly.

    Subclasses set ``source_type`` and ``url_prefix`` and implement
    ``fetch``.
    """

    source_type: ClassVar[SourceType] = SourceType.UNKNOWN
    url_prefix: ClassVar[str] = ""

    async def fetch(self, package_path: str) -> Data:
        raise NotImplementedError

    def get_url(self, package_path: str) -> str:
        return f"{self.url_prefix}{package_path}"

    def package_from_url(self, url: str) -> str:
        """Extract the package path from this source's browser URL.

        Foreign URLs are returned unchanged.
        """
        package_path = strip_prefix_from_url(url, self.url_prefix)
        if package_path is None:
            return url
        if not package_path:
            raise InvalidPackagePathError(
                f"Invalid {self.source_type.value} package path",
                url=url,
            )
        return package_path

    def build_data(
        self,
        package_path: str,
        readme: str,
        related: list[RelatedReference] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Data:
        return Data(
            contents={"README.md": readme},
            metadata=metadata or {},
            browser_url=self.get_url(package_path),
            fetched_at=datetime.now(UTC),
            related_sources=related or [],
        )
