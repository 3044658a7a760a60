"""
distarchive: Input Validators.

This module provides validation functions for configuration, relative paths,
ignore patterns and archive naming inputs.
"""
from typing import Any, Dict

from distarchive.core.constants import ArchiveFormat, ConfigKey, ErrorCode, Limits, MatcherType


class ValidationError(Exception):
    """Base exception for validation errors."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INVALID_INPUT):
        """Initialize ValidationError.

        Args:
            message: Error message
            error_code: Associated error code
        """
        super().__init__(message)
        self.error_code = error_code


def validate_config(config: Dict[str, Any]) -> bool:
    """Validate the ``distarchive`` configuration section.

    Args:
        config: Configuration dictionary

    Returns:
        True if valid

    Raises:
        ValidationError: If configuration is invalid
    """
    if not isinstance(config, dict):
        raise ValidationError("Configuration must be a dictionary")

    if ConfigKey.FORMAT in config:
        validate_archive_format(config[ConfigKey.FORMAT])

    if ConfigKey.FILENAME_FORMAT in config:
        validate_filename_format(config[ConfigKey.FILENAME_FORMAT])

    if ConfigKey.MATCHER in config:
        matcher = config[ConfigKey.MATCHER]
        valid = [m.value for m in MatcherType]
        if matcher not in valid:
            raise ValidationError(f"Invalid matcher: {matcher}. Must be one of: {valid}")

    if ConfigKey.IGNORE_FILE in config:
        ignore_file = config[ConfigKey.IGNORE_FILE]
        if not isinstance(ignore_file, str) or not ignore_file:
            raise ValidationError("Ignore file name must be a non-empty string")
        if "/" in ignore_file:
            raise ValidationError(f"Ignore file must be a bare file name: {ignore_file}")

    if ConfigKey.INCLUDE_DIRECTORIES in config:
        if not isinstance(config[ConfigKey.INCLUDE_DIRECTORIES], bool):
            raise ValidationError("include_directories must be a boolean")

    return True


def validate_relative_path(path: str) -> bool:
    """Validate a source-relative path handed to a rule checker.

    Relative paths are POSIX style and start with ``/`` (the source root).

    Args:
        path: Relative path to validate

    Returns:
        True if valid

    Raises:
        ValidationError: If path is invalid
    """
    if not isinstance(path, str):
        raise ValidationError(f"Path must be string, got {type(path)}")

    if not path.startswith("/"):
        raise ValidationError(f"Relative path must start with '/': {path!r}")

    if len(path) > Limits.MAX_PATH_LENGTH:
        raise ValidationError(f"Path exceeds maximum length ({Limits.MAX_PATH_LENGTH})")

    if "\0" in path:
        raise ValidationError("Path contains null bytes")

    # Traversal outside the source root
    if ".." in path.split("/"):
        raise ValidationError(f"Path traversal not allowed: {path!r}")

    return True


def validate_pattern(pattern: str) -> bool:
    """Validate a single ignore rule line.

    Args:
        pattern: Pattern to validate

    Returns:
        True if valid

    Raises:
        ValidationError: If pattern is invalid
    """
    if not pattern:
        raise ValidationError("Pattern cannot be empty")

    if not isinstance(pattern, str):
        raise ValidationError(f"Pattern must be string, got {type(pattern)}")

    if len(pattern) > Limits.MAX_PATH_LENGTH:
        raise ValidationError(f"Pattern exceeds maximum length ({Limits.MAX_PATH_LENGTH})")

    if "\0" in pattern:
        raise ValidationError("Invalid pattern: contains null bytes")

    if any(ord(c) < 32 and c != "\t" for c in pattern):
        raise ValidationError("Invalid pattern: contains control characters")

    return True


def validate_archive_format(archive_format: str) -> ArchiveFormat:
    """Validate and convert an archive format name.

    Args:
        archive_format: Format name ("zip" or "targz")

    Returns:
        Matching ArchiveFormat member

    Raises:
        ValidationError: If format is unknown
    """
    try:
        return ArchiveFormat(archive_format)
    except ValueError:
        valid = [f.value for f in ArchiveFormat]
        raise ValidationError(f"Invalid archive format: {archive_format}. Must be one of: {valid}")


def validate_filename_format(filename_format: str) -> bool:
    """Validate an archive filename template.

    Args:
        filename_format: Template using {name} and {version}

    Returns:
        True if valid

    Raises:
        ValidationError: If template is invalid
    """
    if not isinstance(filename_format, str) or not filename_format.strip():
        raise ValidationError("Filename format cannot be empty")

    if "/" in filename_format:
        raise ValidationError(f"Filename format cannot contain '/': {filename_format}")

    if len(filename_format) > Limits.MAX_FILENAME_LENGTH:
        raise ValidationError(
            f"Filename format exceeds maximum length ({Limits.MAX_FILENAME_LENGTH})"
        )

    return True
