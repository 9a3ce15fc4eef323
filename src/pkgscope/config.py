"""Configuration settings for pkgscope."""

import tempfile
from pathlib import Path

import platformdirs
from pydantic_settings import BaseSettings

APP_NAME = "pkgscope"


def _default_cache_base() -> Path:
    """Get default cache base directory (platform user cache dir)."""
    return Path(platformdirs.user_cache_dir(APP_NAME))


class Settings(BaseSettings):
    """pkgscope configuration.

    Environment variables (all prefixed with ``PKGSCOPE_``):
    - CACHE_DIR: Parent directory for the cache; entries live in its
      pkgscope/ subdirectory (default: platform user cache dir)
    - NO_CACHE: Use a throwaway temp directory as cache root (default: false)
    - CACHE_TTL: Cache entry lifetime in seconds (default: 86400)
    - GH_BIN: GitHub CLI binary (default: gh)
    - GLAB_BIN: GitLab CLI binary (default: glab)
    - HTTP_TIMEOUT: Registry request timeout in seconds (default: 15)
    - COMMAND_TIMEOUT: gh/glab invocation timeout in seconds (default: 30)
    - INVESTIGATION_TIMEOUT: Whole-crawl deadline in seconds (0 = none)
    - CONCURRENCY: Max sources fetched together during a crawl (default: 1)
    - TOOL_TIMEOUT: MCP tool execution timeout in seconds (0 = none)
    - LOG_LEVEL: loguru level (default: WARNING)
    """

    # Cache
    cache_dir: str = ""
    no_cache: bool = False
    cache_ttl: int = 86400  # 24 hours

    # External CLIs
    gh_bin: str = "gh"
    glab_bin: str = "glab"

    # Timeouts (seconds)
    http_timeout: float = 15.0
    command_timeout: float = 30.0
    investigation_timeout: float = 0
    tool_timeout: int = 120

    # Crawl
    concurrency: int = 1

    # Logging
    log_level: str = "WARNING"

    model_config = {"env_prefix": "PKGSCOPE_", "case_sensitive": False}

    def get_cache_base_dir(self) -> Path:
        """Get the unversioned cache base directory.

        NO_CACHE wins over CACHE_DIR: a fresh temp directory is returned so
        nothing outlives the process. CACHE_DIR gets an app-owned
        subdirectory; version pruning only ever touches that directory.
        """
        if self.no_cache:
            return Path(tempfile.mkdtemp(prefix=f"{APP_NAME}-"))
        if self.cache_dir:
            return Path(self.cache_dir).expanduser() / APP_NAME
        return _default_cache_base()

    def resolve_investigation_timeout(self) -> float | None:
        """Return the crawl deadline or None when disabled."""
        if self.investigation_timeout > 0:
            return self.investigation_timeout
        return None


settings = Settings()
