"""pkgscope - package documentation lookup across registries and repositories."""

from importlib.metadata import version

__version__ = version("pkgscope")

from pkgscope.__main__ import _cli as main  # noqa: E402

__all__ = ["main", "__version__"]
