"""
distarchive: Constants

This module provides package-wide constants and error codes shared by the
rule matcher, traversal, manifest and archive layers.
"""
from enum import Enum, IntEnum

# Version information
DISTARCHIVE_VERSION = "1.0.0"

# Name of the rule file looked up in the source directory
DEFAULT_IGNORE_FILE = ".distignore"

# Synthetic child name used to check whether a rule blankets a directory
PROBE_NAME = "__probe__"

# Default archive filename template
DEFAULT_FILENAME_FORMAT = "{name}.{version}"


class ErrorCode(IntEnum):
    """Standardized error codes for distarchive operations."""

    SUCCESS = 0  # Operation completed successfully
    INVALID_INPUT = 1  # Bad path, invalid configuration
    NOT_FOUND = 2  # File or resource doesn't exist
    PERMISSION_DENIED = 3  # Insufficient permissions
    CONFLICT = 4  # Archive path taken by a directory
    DEPENDENCY_ERROR = 5  # zip/tar missing
    INTERNAL_ERROR = 6  # Bug in distarchive
    BROKEN_SYMLINK = 7  # Symlink target missing
    COMMAND_FAILED = 8  # Archive command exited non-zero


class Limits:
    """Limits and default sizes."""

    # Path limits
    MAX_PATH_LENGTH = 4096
    MAX_FILENAME_LENGTH = 255

    # Bytes read from a file when looking for a version header
    VERSION_SCAN_BYTES = 5000

    # Length of an abbreviated git commit hash
    GIT_SHORT_HASH_LENGTH = 7


class ArchiveFormat(Enum):
    """Supported archive formats."""

    ZIP = "zip"
    TARGZ = "targz"

    @property
    def extension(self) -> str:
        """File extension written for this format."""
        if self is ArchiveFormat.ZIP:
            return ".zip"
        return ".tar.gz"


class MatcherType(Enum):
    """Rule evaluation strategy used during traversal."""

    GITIGNORE = "gitignore"  # Full gitignore semantics with negation
    SIMPLE = "simple"  # Any-match-ignores rule matcher


# Configuration keys
class ConfigKey:
    """Configuration key constants."""

    IGNORE_FILE = "ignore_file"
    FORMAT = "format"
    FILENAME_FORMAT = "filename_format"
    MATCHER = "matcher"
    INCLUDE_DIRECTORIES = "include_directories"
    LOGGING = "logging"


# Default configuration values
DEFAULT_CONFIG = {
    ConfigKey.IGNORE_FILE: DEFAULT_IGNORE_FILE,
    ConfigKey.FORMAT: ArchiveFormat.ZIP.value,
    ConfigKey.FILENAME_FORMAT: DEFAULT_FILENAME_FORMAT,
    ConfigKey.MATCHER: MatcherType.GITIGNORE.value,
    ConfigKey.INCLUDE_DIRECTORIES: True,
    ConfigKey.LOGGING: {
        "level": "INFO",
        "file": None,
    },
}
