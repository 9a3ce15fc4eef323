"""pkgscope command-line entry point."""

import argparse
import asyncio
import json
import sys
import webbrowser

from loguru import logger

from pkgscope import cache
from pkgscope.config import settings
from pkgscope.detect import (
    InitialQuery,
    UserInput,
    aliases_by_source,
    new_initial_query,
)
from pkgscope.errors import InvalidPackagePathError, PkgscopeError
from pkgscope.investigation import Investigation
from pkgscope.models import SourceType
from pkgscope.result import Result, create_result

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_UNSUPPORTED = 2

SUBCOMMANDS = ("sources", "cache", "mcp", "version")

# -b target -> Result.get_url() name ("" = initial query URL)
BROWSER_TARGETS = {
    "default": "",
    "r": "registry",
    "registry": "registry",
    "g": "repository",
    "repo": "repository",
    "repository": "repository",
    "h": "homepage",
    "homepage": "homepage",
    "d": "documentation",
    "documentation": "documentation",
}


def _configure_logging(verbose: bool = False) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else settings.log_level)


def format_supported_languages() -> str:
    """One line per source type, e.g. ``rust, rs, crates, cargo => crates.io``."""
    return "\n".join(
        f"  {', '.join(aliases)} => {source_type.value}"
        for source_type, aliases in aliases_by_source().items()
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pkgscope",
        description="View package documentation from registries and repositories.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "examples:\n"
            "  pkgscope go github.com/spf13/cobra\n"
            "  pkgscope github.com/spf13/cobra -l go\n"
            "  pkgscope python requests -o json\n\n"
            "supported languages:\n"
            f"{format_supported_languages()}\n\n"
            "browser targets (-b):\n"
            "  r, registry | g, repo, repository | h, homepage | d, documentation\n\n"
            f"other commands: {', '.join(SUBCOMMANDS)}"
        ),
    )
    parser.add_argument(
        "args",
        nargs="+",
        metavar="[lang] package",
        help="Package path, optionally preceded by its language.",
    )
    parser.add_argument("-l", "--lang", default="", help="Specify package language explicitly.")
    parser.add_argument("-o", "--output", choices=["json"], help="Output format.")
    parser.add_argument(
        "-b",
        "--browser",
        nargs="?",
        const="default",
        default=None,
        metavar="TARGET",
        help="Open a URL in the browser instead of printing documentation.",
    )
    parser.add_argument(
        "--force", action="store_true", help="Bypass the cache and refetch every source."
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Increase log verbosity."
    )
    return parser


def _build_command_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pkgscope")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser(
        "sources", help="List supported documentation sources and their language aliases."
    )
    cache_parser = subparsers.add_parser("cache", help="Cache management commands.")
    cache_sub = cache_parser.add_subparsers(dest="cache_command", required=True)
    cache_sub.add_parser("clear", help="Remove all cached documentation.")
    subparsers.add_parser("mcp", help="Start the MCP server (stdio).")
    subparsers.add_parser("version", help="Print version information.")
    return parser


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


async def load_result(query: InitialQuery) -> Result:
    investigation = Investigation(query, concurrency=settings.concurrency)
    try:
        await investigation.run(timeout=settings.resolve_investigation_timeout())
    except TimeoutError:
        logger.warning(
            f"Investigation timed out, showing {len(investigation.collected_data)} sources"
        )
    return create_result(investigation)


def _split_positionals(
    parser: argparse.ArgumentParser, args: argparse.Namespace
) -> tuple[str, str]:
    match args.args:
        case [package]:
            lang = ""
        case [lang, package]:
            pass
        case _:
            parser.error("expected [lang] package")
    # -l takes precedence over the positional language
    return args.lang or lang, package


def _open_in_browser(result: Result, target: str) -> int:
    key = BROWSER_TARGETS.get(target.lower())
    if key is None:
        print(
            f"Unknown browser target '{target}'. "
            f"Valid targets: {', '.join(BROWSER_TARGETS)}",
            file=sys.stderr,
        )
        return EXIT_UNSUPPORTED
    url = result.get_url(key)
    if not url:
        print("No URL available to open in browser", file=sys.stderr)
        return EXIT_FAILURE
    print(f"Opening in browser: {url}", file=sys.stderr)
    webbrowser.open(url)
    return EXIT_OK


def run_lookup(argv: list[str]) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    lang, package = _split_positionals(parser, args)
    try:
        query = new_initial_query(
            UserInput(package_path=package, language=lang, force_update=args.force)
        )
    except InvalidPackagePathError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_UNSUPPORTED

    if query.source_ref.type == SourceType.UNKNOWN:
        print(
            "Unsupported language\n\nSupported languages:\n"
            f"{format_supported_languages()}",
            file=sys.stderr,
        )
        return EXIT_UNSUPPORTED

    try:
        result = asyncio.run(load_result(query))
    except PkgscopeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    if args.browser is not None:
        return _open_in_browser(result, args.browser)

    if args.output == "json":
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return EXIT_OK

    ref = query.source_ref
    print(f"Displaying documentation: {ref.path} ({ref.type.value})", file=sys.stderr)
    print(result.readme)
    return EXIT_OK


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


def run_sources() -> int:
    print("Documentation Sources:")
    for source_type, aliases in aliases_by_source().items():
        print(f"  {source_type.value:<14} ({', '.join(aliases)})")
    print(f"  {'website':<14} (homepages and documentation sites, links only)")
    return EXIT_OK


def run_command(argv: list[str]) -> int:
    args = _build_command_parser().parse_args(argv)
    _configure_logging()

    match args.command:
        case "sources":
            return run_sources()
        case "cache":
            cache.clear_all()
            print("Cache cleared successfully")
            return EXIT_OK
        case "version":
            from pkgscope import __version__

            print(f"pkgscope version {__version__}")
            return EXIT_OK
        case "mcp":
            from pkgscope.server import main as serve

            serve()
            return EXIT_OK
    return EXIT_FAILURE


def main(argv: list[str] | None = None) -> int:
    """CLI dispatcher: a subcommand, or a package lookup."""
    argv = list(sys.argv[1:] if argv is None else argv)
    if argv and argv[0] in SUBCOMMANDS:
        return run_command(argv)
    return run_lookup(argv)


def _cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    _cli()
