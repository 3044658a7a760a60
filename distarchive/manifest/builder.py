#!/usr/bin/env python3
"""Manifest construction from a filtered traversal.

Turns the entries yielded by TraversalFilter into two disjoint lists of
relative paths: what goes into the archive and what is kept out of it.
Excluded directories that still contain included paths (re-included by a
negation rule) are dropped from the exclude list, since archivers that
exclude whole directories would otherwise lose those paths.

Errors recorded during the walk are fatal: the first errored entry in
traversal order is raised, as BrokenSymlinkError when the entry is a
dangling symlink and InvalidRuleError otherwise.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Set, Union

from distarchive.core.errors import BrokenSymlinkError, InvalidRuleError
from distarchive.infrastructure.logger import get_logger
from distarchive.traversal.filter import PathChecker, PathEntry, TraversalFilter


@dataclass
class Manifest:
    """Include and exclude lists for one source tree."""

    included: List[str]
    excluded: List[str]
    errors: Dict[str, Exception] = field(default_factory=dict)
    entries: List[PathEntry] = field(default_factory=list)

    @property
    def directories(self) -> Set[str]:
        """Relative paths of every directory seen during traversal."""
        return {entry.relative_path for entry in self.entries if entry.is_dir}

    def is_directory(self, relative_path: str) -> bool:
        """True if the relative path was traversed as a directory."""
        return relative_path in self.directories

    @property
    def included_files(self) -> List[str]:
        """Included paths that are not directories."""
        directories = self.directories
        return [path for path in self.included if path not in directories]


def _ancestors(relative_path: str) -> Iterable[str]:
    """'/a/b/c' -> '/a/b', '/a'."""
    parts = relative_path.strip("/").split("/")
    for i in range(len(parts) - 1, 0, -1):
        yield "/" + "/".join(parts[:i])


def reconcile_excluded(
    excluded: List[str], included: List[str], directories: Set[str]
) -> List[str]:
    """Drop excluded directories that contain an included path.

    Args:
        excluded: Excluded relative paths in traversal order
        included: Included relative paths
        directories: Relative paths known to be directories

    Returns:
        Exclude list without directories holding included content
    """
    covered: Set[str] = set()
    for path in included:
        covered.update(_ancestors(path))

    return [
        path for path in excluded if not (path in directories and path in covered)
    ]


class ManifestBuilder:
    """Build a Manifest for a source tree.

    Each call to ``build`` runs a fresh traversal with its own state.
    """

    def __init__(
        self,
        source_root: Union[str, Path],
        checker: PathChecker,
        include_directories: bool = True,
    ):
        """Initialize manifest builder.

        Args:
            source_root: Directory to package
            checker: Rule checker consulted for every entry
            include_directories: Keep non-ignored directories in the include
                list (needed when staging a copy of the tree)
        """
        self.source_root = source_root
        self.checker = checker
        self.include_directories = include_directories
        self._logger = get_logger()

    def build(self) -> Manifest:
        """Traverse the tree and produce the manifest.

        Returns:
            Manifest with disjoint include and exclude lists

        Raises:
            BrokenSymlinkError: If the tree contains a dangling symlink
            InvalidRuleError: If any other entry could not be evaluated
        """
        walker = TraversalFilter(self.source_root, self.checker)
        entries = list(walker.walk())
        state = walker.state

        self._raise_for_errors(entries, state.errors)

        included = [
            entry.relative_path
            for entry in entries
            if not state.ignored_cache.get(entry.relative_path, False)
            and (self.include_directories or not entry.is_dir)
        ]
        directories = {entry.relative_path for entry in entries if entry.is_dir}
        excluded = reconcile_excluded(state.excluded, included, directories)

        self._logger.debug(
            "Manifest built",
            source=self.source_root,
            included=len(included),
            excluded=len(excluded),
        )
        return Manifest(
            included=included,
            excluded=excluded,
            errors=dict(state.errors),
            entries=entries,
        )

    def _raise_for_errors(self, entries: List[PathEntry], errors: Dict[str, Exception]) -> None:
        if not errors:
            return

        for relative_path, error in errors.items():
            self._logger.debug("Entry could not be evaluated", path=relative_path, error=error)

        for entry in entries:
            error = errors.get(entry.relative_path)
            if error is None:
                continue
            if entry.is_broken_symlink:
                raise BrokenSymlinkError(entry.relative_path, entry.link_target or "") from error
            raise InvalidRuleError(str(error), entry.relative_path) from error

        # Errors not tied to a yielded entry (e.g. the root could not be listed)
        relative_path, error = next(iter(errors.items()))
        raise InvalidRuleError(str(error), relative_path) from error


def get_file_list(
    source_root: Union[str, Path], checker: PathChecker, excluded: bool = False
) -> List[str]:
    """List the paths to include in, or exclude from, the archive.

    Args:
        source_root: Directory to package
        checker: Rule checker
        excluded: Return the exclude list instead of the include list

    Returns:
        Relative paths, '/'-prefixed
    """
    manifest = ManifestBuilder(source_root, checker).build()
    return manifest.excluded if excluded else manifest.included
