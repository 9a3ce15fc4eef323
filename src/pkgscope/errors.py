"""Error taxonomy for source resolution and investigation.

Per-source errors are raised by investigators and recorded by the
investigation engine; they never abort a crawl. ``InvestigatorNotFoundError``
is the one engine-level escalation.
"""

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    INVALID_PACKAGE_PATH = "InvalidPackagePath"
    REPOSITORY_NOT_FOUND = "RepositoryNotFound"
    PACKAGE_NOT_FOUND = "PackageNotFound"
    README_NOT_FOUND = "READMENotFound"
    INVALID_META_TAG = "InvalidMetaTag"
    COMMAND_NOT_FOUND = "CommandNotFound"
    COMMAND_FAILED = "CommandFailed"
    FETCH_FAILED = "FetchFailed"
    INVESTIGATOR_NOT_FOUND = "InvestigatorNotFound"


class PkgscopeError(Exception):
    """Base class for all pkgscope errors."""

    code: ErrorCode = ErrorCode.FETCH_FAILED

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context

    def __str__(self) -> str:
        if not self.context:
            return f"[{self.code}] {self.message}"
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"[{self.code}] {self.message} ({details})"


class SourceError(PkgscopeError):
    """A single source could not be fetched."""


class InvalidPackagePathError(SourceError):
    code = ErrorCode.INVALID_PACKAGE_PATH


class RepositoryNotFoundError(SourceError):
    code = ErrorCode.REPOSITORY_NOT_FOUND


class PackageNotFoundError(SourceError):
    code = ErrorCode.PACKAGE_NOT_FOUND


class ReadmeNotFoundError(SourceError):
    code = ErrorCode.README_NOT_FOUND


class InvalidMetaTagError(SourceError):
    code = ErrorCode.INVALID_META_TAG


class CommandNotFoundError(SourceError):
    """External CLI (gh/glab) is not installed or not on PATH."""

    code = ErrorCode.COMMAND_NOT_FOUND


class CommandFailedError(SourceError):
    code = ErrorCode.COMMAND_FAILED


class FetchError(SourceError):
    """Transport-level failure (connection, timeout, undecodable body)."""

    code = ErrorCode.FETCH_FAILED


class InvestigatorNotFoundError(PkgscopeError):
    code = ErrorCode.INVESTIGATOR_NOT_FOUND
