"""JSR investigator. JSR has no documentation API yet; a placeholder
document pointing at the package page is returned."""

from pkgscope.models import Data, SourceType
from pkgscope.sources.base import BaseInvestigator


class JSRInvestigator(BaseInvestigator):
    source_type = SourceType.JSR
    url_prefix = "https://jsr.io/"

    async def fetch(self, package_path: str) -> Data:
        url = self.get_url(package_path)
        return self.build_data(
            package_path,
            f"JavaScript package documentation for {url}\nSource: jsr.io",
        )
