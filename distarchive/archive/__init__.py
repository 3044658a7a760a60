"""Archive collaborators: version discovery, staging copy, zip/tar invocation."""

from .invoker import ArchiveInvoker, escape_exclude_pattern, get_size_format
from .staging import cleanup_staging, needs_staging, path_contains_symlink, stage_manifest
from .version import get_version

__all__ = [
    "ArchiveInvoker",
    "cleanup_staging",
    "escape_exclude_pattern",
    "get_size_format",
    "get_version",
    "needs_staging",
    "path_contains_symlink",
    "stage_manifest",
]
