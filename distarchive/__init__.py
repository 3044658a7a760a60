"""distarchive - distribution archives filtered by a .distignore file.

The core selects which paths of a project directory go into an archive:
- rules: ignore-rule matching (RuleMatcher, GitIgnoreChecker)
- traversal: filtered depth-first walk of the source tree
- manifest: include/exclude lists with directory reconciliation
- archive: version discovery, staging copy, zip/tar invocation
"""

from distarchive.core.constants import DISTARCHIVE_VERSION as __version__

__all__ = ["__version__"]
