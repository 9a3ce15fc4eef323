"""Tests for src/pkgscope/detect.py: source detection from user input."""

from types import MappingProxyType

import pytest

from pkgscope.detect import (
    LANGUAGE_ALIASES,
    UserInput,
    aliases_by_source,
    detect,
    new_initial_query,
    resolve_language,
)
from pkgscope.errors import InvalidPackagePathError
from pkgscope.models import Reference, SourceType


class TestAliases:
    def test_table_is_immutable(self):
        with pytest.raises(TypeError):
            LANGUAGE_ALIASES["kotlin"] = SourceType.NPM  # type: ignore[index]

    @pytest.mark.parametrize(
        ("alias", "expected"),
        [
            ("go", SourceType.GO_PKG_DEV),
            ("golang", SourceType.GO_PKG_DEV),
            ("TypeScript", SourceType.NPM),
            ("rs", SourceType.CRATES_IO),
            ("gem", SourceType.RUBYGEMS),
            (" py ", SourceType.PYPI),
            ("composer", SourceType.PACKAGIST),
            ("jsr", SourceType.JSR),
            ("cobol", SourceType.UNKNOWN),
        ],
    )
    def test_resolve_language(self, alias, expected):
        assert resolve_language(alias) == expected

    def test_grouped_for_help(self):
        grouped = aliases_by_source()
        assert grouped[SourceType.CRATES_IO] == ["cargo", "crates", "rs", "rust"]
        assert list(grouped) == sorted(grouped, key=lambda t: t.value)


class TestDetect:
    def test_deterministic(self):
        assert detect("github.com/spf13/cobra", "go") == detect("github.com/spf13/cobra", "go")

    def test_registry_hint_passes_path_through(self):
        assert detect("requests", "python") == Reference(SourceType.PYPI, "requests")
        assert detect("@types/node", "ts") == Reference(SourceType.NPM, "@types/node")
        assert detect("monolog/monolog", "php") == Reference(SourceType.PACKAGIST, "monolog/monolog")

    def test_jsr_adds_at_sign(self):
        assert detect("scope/name", "jsr") == Reference(SourceType.JSR, "@scope/name")
        assert detect("@std/path", "jsr") == Reference(SourceType.JSR, "@std/path")

    @pytest.mark.parametrize("path", ["onlyname", "@a/b/c", "@/name"])
    def test_jsr_invalid_shape(self, path):
        with pytest.raises(InvalidPackagePathError):
            detect(path, "jsr")

    def test_go_hint(self):
        assert detect("golang.org/x/tools", "go") == Reference(
            SourceType.GO_PKG_DEV, "golang.org/x/tools"
        )

    def test_pkg_go_dev_prefix_stripped(self):
        assert detect("pkg.go.dev/golang.org/x/tools") == Reference(
            SourceType.GO_PKG_DEV, "golang.org/x/tools"
        )

    @pytest.mark.parametrize(
        "path",
        [
            "github.com/acme/foo-go",
            "github.com/acme/go-foo",
            "gitlab.com/acme/foo.go",
        ],
    )
    def test_go_repository_heuristic(self, path):
        assert detect(path) == Reference(SourceType.GO_PKG_DEV, path)

    def test_repository_prefix_stripped(self):
        assert detect("github.com/acme/foo") == Reference(SourceType.GITHUB, "acme/foo")
        assert detect("gitlab.com/acme/foo") == Reference(SourceType.GITLAB, "acme/foo")

    def test_repository_hint_with_bare_path(self):
        assert detect("acme/foo", "github") == Reference(SourceType.GITHUB, "acme/foo")

    def test_unknown_without_hint(self):
        assert detect("requests") == Reference(SourceType.UNKNOWN, "requests")

    def test_custom_alias_table(self):
        aliases = MappingProxyType({"deno": SourceType.JSR})
        assert detect("std/path", "deno", aliases) == Reference(SourceType.JSR, "@std/path")
        assert detect("std/path", "jsr", aliases) == Reference(SourceType.UNKNOWN, "std/path")


class TestInitialQuery:
    def test_copies_force_update(self):
        query = new_initial_query(UserInput("serde", "rust", force_update=True))
        assert query.source_ref == Reference(SourceType.CRATES_IO, "serde")
        assert query.force_update is True
