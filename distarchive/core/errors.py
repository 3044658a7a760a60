"""
distarchive: Exception hierarchy.

Errors raised while matching rules, building the manifest and running the
archive command. Each carries an ErrorCode like ConfigError does.
"""
from typing import Optional

from distarchive.core.constants import ErrorCode


class DistArchiveError(Exception):
    """Base exception for distarchive core failures."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INTERNAL_ERROR):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class InvalidPathError(DistArchiveError, ValueError):
    """A relative path could not be evaluated against the ignore rules."""

    def __init__(self, message: str, relative_path: Optional[str] = None):
        super().__init__(message, ErrorCode.INVALID_INPUT)
        self.relative_path = relative_path


class InvalidRuleError(DistArchiveError):
    """Manifest construction failed because an entry could not be matched."""

    def __init__(self, message: str, relative_path: str):
        super().__init__(message, ErrorCode.INVALID_INPUT)
        self.relative_path = relative_path


class BrokenSymlinkError(DistArchiveError):
    """A symlink in the source tree points at a missing target."""

    def __init__(self, relative_path: str, target: str):
        super().__init__(
            f"Broken symlink at {relative_path}. Target missing at {target}.",
            ErrorCode.BROKEN_SYMLINK,
        )
        self.relative_path = relative_path
        self.target = target


class ArchiveError(DistArchiveError):
    """The archive command failed."""

    def __init__(self, message: str, returncode: Optional[int] = None):
        super().__init__(message, ErrorCode.COMMAND_FAILED)
        self.returncode = returncode
