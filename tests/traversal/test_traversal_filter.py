#!/usr/bin/env python3
"""Tests for the filtered source-tree traversal."""

import os

import pytest

from distarchive.core.errors import BrokenSymlinkError
from distarchive.rules.checker import GitIgnoreChecker
from distarchive.rules.patterns import RuleMatcher
from distarchive.traversal.filter import TraversalFilter, TraversalState


def _walk(source, rules):
    walker = TraversalFilter(source, GitIgnoreChecker(source, rules))
    paths = [entry.relative_path for entry in walker.walk()]
    return walker, paths


class CountingChecker:
    """Checker that records every path it is asked about."""

    def __init__(self, inner):
        self.inner = inner
        self.calls = []

    def is_path_ignored(self, relative_path):
        self.calls.append(relative_path)
        return self.inner.is_path_ignored(relative_path)


class FailingChecker:
    """Checker that rejects one path."""

    def __init__(self, bad_path):
        self.bad_path = bad_path

    def is_path_ignored(self, relative_path):
        if relative_path == self.bad_path:
            raise ValueError(f"cannot evaluate {relative_path}")
        return False


class TestTraversalFilter:
    """Tests for TraversalFilter.walk."""

    def test_filters_ignored_files(self, temp_dir, write_tree):
        """Ignored files are not yielded."""
        write_tree(
            temp_dir,
            {"included.txt": "test", "ignored.log": "test", ".distignore": "*.log\n"},
        )
        _, paths = _walk(temp_dir, ["*.log"])

        assert "/included.txt" in paths
        assert "/.distignore" in paths
        assert "/ignored.log" not in paths

    def test_tracks_ignored_directories(self, temp_dir, write_tree):
        """Ignored directories are yielded but their files are not."""
        write_tree(
            temp_dir,
            {"node_modules/package.json": "{}", "index.php": "<?php"},
        )
        walker, paths = _walk(temp_dir, ["node_modules"])

        assert "/index.php" in paths
        assert "/node_modules" in paths
        assert "/node_modules/package.json" not in paths
        assert "/node_modules/package.json" not in walker.get_excluded_files()

    def test_does_not_descend_into_blanketed_directory(self, temp_dir, write_tree):
        """The checker is never asked about paths below a skipped directory."""
        write_tree(
            temp_dir,
            {"node_modules/file1.js": "test", "node_modules/file2.js": "test"},
        )
        checker = CountingChecker(GitIgnoreChecker(temp_dir, ["node_modules"]))
        paths = [e.relative_path for e in TraversalFilter(temp_dir, checker).walk()]

        assert paths == ["/node_modules"]
        assert checker.calls == ["/node_modules", "/node_modules/__probe__"]

    def test_get_excluded_files(self, temp_dir, write_tree):
        """Excluded paths are collected during the walk."""
        write_tree(
            temp_dir,
            {"ignored_dir/file.txt": "test", "included.txt": "test"},
        )
        walker, _ = _walk(temp_dir, ["ignored_dir"])

        excluded = walker.get_excluded_files()
        assert "/ignored_dir" in excluded
        assert "/included.txt" not in excluded

    def test_caching_avoids_duplicate_checks(self, temp_dir):
        """A cached answer is not recomputed."""
        (temp_dir / "test.txt").write_text("test")
        checker = CountingChecker(GitIgnoreChecker(temp_dir, ["*.log"]))
        walker = TraversalFilter(temp_dir, checker)

        first = walker.is_path_ignored_cached("/test.txt")
        second = walker.is_path_ignored_cached("/test.txt")

        assert first is second is False
        assert checker.calls == ["/test.txt"]

    def test_cache_is_per_walk(self, temp_dir):
        """Each walk starts from an empty cache."""
        (temp_dir / "test.txt").write_text("test")
        checker = CountingChecker(GitIgnoreChecker(temp_dir, []))
        walker = TraversalFilter(temp_dir, checker)

        list(walker.walk())
        list(walker.walk())

        assert checker.calls == ["/test.txt", "/test.txt"]

    def test_negation_patterns(self, temp_dir, write_tree):
        """Paths re-included by a negation rule are yielded."""
        write_tree(
            temp_dir,
            {"frontend/source.ts": "test", "frontend/build/output.js": "test"},
        )
        _, paths = _walk(temp_dir, ["frontend/*", "!/frontend/build/"])

        assert "/frontend" in paths
        assert "/frontend/build" in paths
        assert "/frontend/build/output.js" in paths
        assert "/frontend/source.ts" not in paths

    def test_ignored_nested_directory_still_descended(self, temp_dir, write_tree):
        """Ignored directories below the root are walked for re-included paths."""
        write_tree(temp_dir, {"vendor/lib/keep.php": "x", "vendor/lib/other.php": "x"})
        walker, paths = _walk(temp_dir, ["/vendor/lib", "!/vendor/lib/keep.php"])

        assert "/vendor/lib/keep.php" in paths
        assert walker.get_excluded_files() == ["/vendor/lib", "/vendor/lib/other.php"]

    def test_ignored_root_directory_with_reincluded_child(self, temp_dir, write_tree):
        """A top-level directory is descended when the probe child is not ignored."""
        write_tree(temp_dir, {"assets/app.js": "x"})
        _, paths = _walk(temp_dir, ["assets/", "!assets/*"])

        assert "/assets" in paths
        assert "/assets/app.js" in paths

    def test_get_error_for_item_returns_none(self, temp_dir):
        """No error is recorded for a path that was evaluated normally."""
        (temp_dir / "test.txt").write_text("test")
        walker, _ = _walk(temp_dir, [])
        assert walker.get_error_for_item("/test.txt") is None
        assert walker.get_errors() == {}

    def test_nested_directory_filtering(self, temp_dir, write_tree):
        """Every level of a nested tree is yielded."""
        write_tree(
            temp_dir,
            {"src/index.php": "<?php", "src/components/widget.php": "<?php"},
        )
        _, paths = _walk(temp_dir, [])

        assert paths == [
            "/src",
            "/src/components",
            "/src/components/widget.php",
            "/src/index.php",
        ]

    def test_children_share_state(self, temp_dir, write_tree):
        """Exclusions found deep in the tree land in the shared state."""
        write_tree(
            temp_dir,
            {"level1/file1.txt": "test", "level1/level2/file2.log": "test"},
        )
        walker, _ = _walk(temp_dir, ["*.log"])

        assert "/level1/level2/file2.log" in walker.get_excluded_files()
        assert walker.state.ignored_cache["/level1/level2/file2.log"] is True

    def test_explicit_state(self, temp_dir):
        """A caller-supplied state receives the results."""
        (temp_dir / "a.log").write_text("x")
        state = TraversalState()
        walker = TraversalFilter(temp_dir, GitIgnoreChecker(temp_dir, ["*.log"]))
        list(walker.walk(state))

        assert state.excluded == ["/a.log"]
        assert walker.state is state

    def test_simple_matcher_skips_node_modules(self, temp_dir, write_tree):
        """The simple matcher also prunes blanketed directories."""
        write_tree(temp_dir, {"node_modules/a/b.js": "x", "index.php": "x"})
        walker = TraversalFilter(temp_dir, RuleMatcher(["node_modules"], temp_dir))
        paths = [e.relative_path for e in walker.walk()]

        assert paths == ["/index.php", "/node_modules"]
        assert walker.get_excluded_files() == ["/node_modules"]


class TestTraversalErrors:
    """Tests for per-entry error recording."""

    def test_checker_error_recorded(self, temp_dir, write_tree):
        """A checker failure is recorded and the entry treated as not ignored."""
        write_tree(temp_dir, {"bad.txt": "x", "good.txt": "x"})
        walker = TraversalFilter(temp_dir, FailingChecker("/bad.txt"))
        paths = [e.relative_path for e in walker.walk()]

        assert paths == ["/bad.txt", "/good.txt"]
        assert isinstance(walker.get_error_for_item("/bad.txt"), ValueError)
        assert walker.get_error_for_item("/good.txt") is None

    def test_broken_symlink_recorded(self, temp_dir):
        """A dangling symlink records a BrokenSymlinkError."""
        os.symlink(temp_dir / "missing.txt", temp_dir / "link.txt")
        walker = TraversalFilter(temp_dir, RuleMatcher([]))
        paths = [e.relative_path for e in walker.walk()]

        assert paths == ["/link.txt"]
        error = walker.get_error_for_item("/link.txt")
        assert isinstance(error, BrokenSymlinkError)
        assert error.target == str(temp_dir / "missing.txt")


class TestSymlinkCycles:
    """Tests for symlinked directories that loop back."""

    def test_link_to_root_not_descended(self, temp_dir, write_tree):
        """A link back to the source root is yielded but not walked."""
        write_tree(temp_dir, {"src/a.php": "x"})
        os.symlink(temp_dir, temp_dir / "src" / "loop")
        _, paths = _walk(temp_dir, [])

        assert "/src/loop" in paths
        assert not any(p.startswith("/src/loop/") for p in paths)

    def test_link_to_ancestor_not_descended(self, temp_dir, write_tree):
        """A link to an ancestor of the source root is not walked."""
        source = temp_dir / "project"
        write_tree(source, {"index.php": "x"})
        os.symlink(temp_dir, source / "up")
        _, paths = _walk(source, [])

        assert paths == ["/index.php", "/up"]

    def test_link_sorted_before_target_leaves_target_walked(self, temp_dir, write_tree):
        """A link to an in-tree directory does not take its place in the walk."""
        write_tree(temp_dir, {"real/file.txt": "x", "index.php": "x"})
        os.symlink(temp_dir / "real", temp_dir / "alink")
        _, paths = _walk(temp_dir, [])

        assert paths == ["/alink", "/index.php", "/real", "/real/file.txt"]

    def test_link_to_outside_directory_walked(self, temp_dir, write_tree):
        """A link leaving the source tree is walked under the link path."""
        source = temp_dir / "project"
        write_tree(temp_dir, {"shared/lib.php": "x", "project/index.php": "x"})
        os.symlink(temp_dir / "shared", source / "lib")
        _, paths = _walk(source, [])

        assert paths == ["/index.php", "/lib", "/lib/lib.php"]

    def test_link_to_visited_directory_not_descended_twice(self, temp_dir, write_tree):
        """A second route to the same directory is not walked again."""
        write_tree(temp_dir, {"real/file.txt": "x"})
        os.symlink(temp_dir / "real", temp_dir / "zlink")
        _, paths = _walk(temp_dir, [])

        assert paths == ["/real", "/real/file.txt", "/zlink"]

    @pytest.mark.parametrize("rules", [[], ["*.log"]])
    def test_walk_terminates(self, temp_dir, write_tree, rules):
        """Mutually linked directories do not loop forever."""
        write_tree(temp_dir, {"a/x.txt": "x", "b/y.txt": "y"})
        os.symlink(temp_dir / "b", temp_dir / "a" / "to_b")
        os.symlink(temp_dir / "a", temp_dir / "b" / "to_a")
        _, paths = _walk(temp_dir, rules)

        assert "/a/to_b" in paths
        assert len(paths) == len(set(paths))
