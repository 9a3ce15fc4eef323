"""Reduce a finished investigation to one README and a set of typed links."""

from dataclasses import dataclass, field
from typing import Any

from pkgscope.investigation import Investigation
from pkgscope.models import Link, SourceType


@dataclass
class Result:
    readme: str = ""
    initial_query_url: str | None = None
    initial_query_type: SourceType = SourceType.UNKNOWN
    links: list[Link] = field(default_factory=list)

    def _first(self, predicate) -> str | None:
        for link in self.links:
            if predicate(link.type):
                return link.url
        return None

    def get_homepage(self) -> str | None:
        return self._first(lambda t: t == SourceType.HOMEPAGE)

    def get_repository(self) -> str | None:
        return self._first(SourceType.is_repository)

    def get_registry(self) -> str | None:
        return self._first(SourceType.is_registry)

    def get_documentation(self) -> str | None:
        return self._first(SourceType.is_documentation)

    def get_url(self, target: str) -> str | None:
        """Resolve a link target name (``registry``, ``repository``,
        ``homepage``, ``documentation``); empty means the initial query URL."""
        match target:
            case "":
                return self.initial_query_url
            case "registry":
                return self.get_registry()
            case "repository":
                return self.get_repository()
            case "homepage":
                return self.get_homepage()
            case "documentation":
                return self.get_documentation()
        raise ValueError(f"unknown link target: {target}")

    def to_dict(self) -> dict[str, Any]:
        """JSON document describing where the package lives.

        Optional keys are omitted when no such link was found.
        """
        info: dict[str, Any] = {
            "type": self.initial_query_type.value,
            "url": self.initial_query_url or "",
        }
        optional = {
            "homepage": self.get_homepage(),
            "repository": self.get_repository(),
            "registry": self.get_registry(),
            "documentation": self.get_documentation(),
        }
        info.update({k: v for k, v in optional.items() if v})
        info["urls"] = [{"type": link.type.value, "url": link.url} for link in self.links]
        return info


def create_result(investigation: Investigation) -> Result:
    result = Result()

    for data in investigation.collected_data.values():
        # Strictly longer wins, so ties keep the earliest visited source
        if len(data.readme) > len(result.readme):
            result.readme = data.readme

        if data.source is None or not data.browser_url:
            continue
        result.links.append(Link(type=data.source.type, url=data.browser_url))

    query_type = investigation.query.source_ref.type
    data = investigation.collected_data.get(query_type)
    if data is not None:
        result.initial_query_type = query_type
        if data.ok:
            result.initial_query_url = data.browser_url

    return result
