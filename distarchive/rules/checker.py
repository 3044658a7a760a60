#!/usr/bin/env python3
"""Gitignore-semantics checker for the source tree.

``GitIgnoreChecker`` evaluates ``/``-prefixed relative paths against the rule
file with git's last-match-wins semantics, including negation (``!``) and
directory-only rules, using ``pathspec.GitIgnoreSpec``.

Example:
    >>> checker = GitIgnoreChecker("/srv/plugin", ["frontend/*", "!/frontend/build/"])
    >>> checker.is_path_ignored("/frontend/source.ts")
    True
    >>> checker.is_path_ignored("/frontend/build/output.js")
    False
"""

import os
from pathlib import Path
from typing import Iterable, List, Union

import pathspec

from distarchive.core.errors import InvalidPathError
from distarchive.core.validators import ValidationError, validate_relative_path
from distarchive.rules.patterns import read_rule_lines


class GitIgnoreChecker:
    """Evaluate relative paths against gitignore-style rules.

    Directories that exist on disk are matched with a trailing ``/`` so
    rules such as ``build/`` apply to them. Paths that do not exist are
    evaluated by pattern alone.
    """

    def __init__(self, source_root: Union[str, Path], rule_lines: Iterable[str] = ()):
        """Initialize checker.

        Args:
            source_root: Directory the rules apply to
            rule_lines: Active lines of the rule file
        """
        self._source_root = os.fspath(source_root)
        self._rule_lines: List[str] = [line.strip() for line in rule_lines if line.strip()]
        self._spec = pathspec.GitIgnoreSpec.from_lines(self._rule_lines)

    @classmethod
    def from_file(cls, source_root: Union[str, Path], filename: str) -> "GitIgnoreChecker":
        """Create a checker from the rule file in ``source_root``.

        A missing file gives a checker that ignores nothing.
        """
        return cls(source_root, read_rule_lines(source_root, filename) or [])

    @property
    def rule_lines(self) -> List[str]:
        """Rule lines the checker was built from."""
        return self._rule_lines.copy()

    def is_path_ignored(self, relative_path: str) -> bool:
        """Check whether a relative path is ignored.

        Args:
            relative_path: Path relative to the source root, starting with '/'

        Returns:
            True if the last matching rule excludes the path

        Raises:
            InvalidPathError: If the path is malformed or is a dangling symlink
        """
        try:
            validate_relative_path(relative_path)
        except ValidationError as e:
            raise InvalidPathError(str(e), relative_path) from e

        full_path = self._source_root + relative_path
        if os.path.islink(full_path) and not os.path.exists(full_path):
            raise InvalidPathError(
                f"Cannot evaluate {relative_path}: symlink target does not exist", relative_path
            )

        candidate = relative_path.lstrip("/")
        if not candidate:
            return False
        if os.path.isdir(full_path):
            candidate += "/"

        return self._spec.match_file(candidate)

    def __len__(self) -> int:
        """Return number of rule lines."""
        return len(self._rule_lines)
