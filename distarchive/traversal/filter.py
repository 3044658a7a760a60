#!/usr/bin/env python3
"""Depth-first traversal of the source tree filtered by ignore rules.

The walk yields every directory (ignored or not, so the manifest can
reconcile directory exclusions) and every file that is not ignored. Ignored
files are collected in the traversal state's exclude list instead.

Descent into a directory is skipped when:
- its real path was already descended into, or is the source root or one of
  its ancestors (symlink cycles), or
- it is a symlink to a directory inside the source root, which the walk
  reaches under its real path anyway, or
- it is ignored, sits directly under the source root, and a probe child
  path is ignored too, so the rule blankets the whole subtree (the common
  ``node_modules`` case).

Every recursion level shares one TraversalState: the ignored-status cache,
the exclude list, the per-entry errors and the visited real paths.

Example:
    >>> walker = TraversalFilter("/srv/plugin", GitIgnoreChecker("/srv/plugin", ["node_modules"]))
    >>> [entry.relative_path for entry in walker.walk()]
    ['/index.php', '/node_modules']
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Protocol, Set, Union

from distarchive.core.constants import PROBE_NAME
from distarchive.core.errors import BrokenSymlinkError
from distarchive.infrastructure.logger import get_logger


class PathChecker(Protocol):
    """Anything that can classify a relative path as ignored."""

    def is_path_ignored(self, relative_path: str) -> bool:
        ...


@dataclass(frozen=True)
class PathEntry:
    """A filesystem node visited during traversal."""

    path: str  # Absolute path as reached through the walk
    relative_path: str  # '/'-prefixed, relative to the source root
    is_dir: bool
    is_symlink: bool
    real_path: str  # Fully resolved path

    @property
    def is_broken_symlink(self) -> bool:
        """True if this is a symlink whose target does not exist."""
        return self.is_symlink and not os.path.exists(self.path)

    @property
    def link_target(self) -> Optional[str]:
        """Raw symlink target, or None for non-links."""
        if not self.is_symlink:
            return None
        try:
            return os.readlink(self.path)
        except OSError:
            return None


@dataclass
class TraversalState:
    """Mutable state of one traversal, shared by every recursion level."""

    ignored_cache: Dict[str, bool] = field(default_factory=dict)
    excluded: List[str] = field(default_factory=list)
    errors: Dict[str, Exception] = field(default_factory=dict)
    visited: Set[str] = field(default_factory=set)


class TraversalFilter:
    """Walk a source tree, consulting a rule checker for every entry."""

    def __init__(self, source_root: Union[str, Path], checker: PathChecker):
        """Initialize traversal filter.

        Args:
            source_root: Directory to walk
            checker: Rule checker (RuleMatcher or GitIgnoreChecker)
        """
        self.source_root = os.path.abspath(os.fspath(source_root))
        self.checker = checker
        self.state = TraversalState()
        self._root_real = os.path.realpath(self.source_root)
        self._logger = get_logger()

    def walk(self, state: Optional[TraversalState] = None) -> Iterator[PathEntry]:
        """Walk the tree depth-first, parents before children.

        Args:
            state: State to accumulate into; a fresh one is created if omitted

        Yields:
            Directories (always) and files that are not ignored
        """
        self.state = state if state is not None else TraversalState()
        self.state.visited.add(self._root_real)
        yield from self._walk_directory(self.source_root, "", self.state)

    def _walk_directory(
        self, dir_path: str, relative_dir: str, state: TraversalState
    ) -> Iterator[PathEntry]:
        try:
            with os.scandir(dir_path) as it:
                dir_entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            state.errors[relative_dir or "/"] = e
            self._logger.debug("Cannot list directory", path=relative_dir or "/", error=e)
            return

        for dir_entry in dir_entries:
            entry = self._make_entry(dir_entry, f"{relative_dir}/{dir_entry.name}")
            ignored = self._evaluate(entry, state)

            if entry.is_dir:
                if ignored:
                    state.excluded.append(entry.relative_path)
                yield entry

                if self._should_descend(entry, ignored, state):
                    state.visited.add(entry.real_path)
                    yield from self._walk_directory(entry.path, entry.relative_path, state)
            elif ignored:
                state.excluded.append(entry.relative_path)
            else:
                yield entry

    def _make_entry(self, dir_entry: os.DirEntry, relative_path: str) -> PathEntry:
        is_symlink = dir_entry.is_symlink()
        try:
            is_dir = dir_entry.is_dir()
        except OSError:
            is_dir = False

        if is_dir or is_symlink:
            real_path = os.path.realpath(dir_entry.path)
        else:
            real_path = dir_entry.path

        return PathEntry(
            path=dir_entry.path,
            relative_path=relative_path,
            is_dir=is_dir,
            is_symlink=is_symlink,
            real_path=real_path,
        )

    def _evaluate(self, entry: PathEntry, state: TraversalState) -> bool:
        """Ignored status of an entry; errors are recorded and count as not ignored."""
        if entry.is_broken_symlink:
            state.errors[entry.relative_path] = BrokenSymlinkError(
                entry.relative_path, entry.link_target or ""
            )
            return False

        try:
            return self.is_path_ignored_cached(entry.relative_path, state)
        except (ValueError, OSError) as e:
            state.errors[entry.relative_path] = e
            self._logger.debug("Rule check failed", path=entry.relative_path, error=e)
            return False

    def is_path_ignored_cached(
        self, relative_path: str, state: Optional[TraversalState] = None
    ) -> bool:
        """Check if a path is ignored, memoising the answer in the traversal state.

        Raises:
            ValueError: If the checker rejects the path
        """
        cache = (state or self.state).ignored_cache
        if relative_path not in cache:
            cache[relative_path] = self.checker.is_path_ignored(relative_path)
        return cache[relative_path]

    def _should_descend(self, entry: PathEntry, ignored: bool, state: TraversalState) -> bool:
        if entry.real_path in state.visited or self._is_root_or_ancestor(entry.real_path):
            self._logger.debug(
                "Not descending into already visited directory",
                path=entry.relative_path,
                real_path=entry.real_path,
            )
            return False

        # The target of an in-tree link is walked under its own path.
        if entry.is_symlink and self._is_inside_root(entry.real_path):
            self._logger.debug(
                "Not descending into link to source tree",
                path=entry.relative_path,
                real_path=entry.real_path,
            )
            return False

        if not ignored:
            return True

        # Only single-segment directories are safe to skip; deeper ones may
        # hold paths re-included by a later negation rule.
        if "/" in entry.relative_path.strip("/"):
            return True

        probe = f"{entry.relative_path}/{PROBE_NAME}"
        try:
            children_ignored = self.is_path_ignored_cached(probe, state)
        except (ValueError, OSError):
            return True

        if children_ignored:
            self._logger.debug("Skipping ignored directory", path=entry.relative_path)
            return False
        return True

    def _is_root_or_ancestor(self, real_path: str) -> bool:
        if real_path == self._root_real:
            return True
        return self._root_real.startswith(real_path.rstrip(os.sep) + os.sep)

    def _is_inside_root(self, real_path: str) -> bool:
        return real_path.startswith(self._root_real.rstrip(os.sep) + os.sep)

    def get_excluded_files(self) -> List[str]:
        """Relative paths found ignored during the last walk."""
        return self.state.excluded.copy()

    def get_error_for_item(self, relative_path: str) -> Optional[Exception]:
        """Error recorded for a relative path during the last walk, if any."""
        return self.state.errors.get(relative_path)

    def get_errors(self) -> Dict[str, Exception]:
        """All errors recorded during the last walk, in discovery order."""
        return dict(self.state.errors)
