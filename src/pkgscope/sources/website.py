"""Investigator for plain web pages (homepages, documentation sites).

Pages are not fetched; the entry only records the URL so it shows up among
the result links.
"""

from pkgscope.errors import InvalidPackagePathError
from pkgscope.models import Data, SourceType


class WebsiteInvestigator:
    def __init__(self, source_type: SourceType = SourceType.WEBSITE):
        self.source_type = source_type

    async def fetch(self, package_path: str) -> Data:
        return Data(browser_url=self.get_url(package_path))

    def get_url(self, package_path: str) -> str:
        return package_path

    def package_from_url(self, url: str) -> str:
        if not url:
            raise InvalidPackagePathError("Invalid website URL", url=url)
        return url
