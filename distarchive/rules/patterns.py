#!/usr/bin/env python3
r"""Ignore-rule parsing and matching for relative paths.

This module provides the rule matcher used to decide whether a path under
the source directory is excluded from the archive:
- Rule file parsing (comments, blank and invalid lines dropped)
- ``*`` wildcard matching that crosses directory separators
- Unanchored rules that match any trailing part of the path
- Root-anchored rules (``/maybe.txt``)
- Hidden-file rules (``.*``) that apply at every depth
- Directory rules widened to cover everything beneath the directory
- Any-match-ignores evaluation

Example:
    >>> matcher = RuleMatcher(parse_rules(["*.log", "/maybe.txt"]))
    >>> matcher.matches("subdir/ignored.log")
    True
    >>> matcher.matches("subdir/maybe.txt")
    False
"""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Pattern, Union

from distarchive.core.validators import ValidationError, validate_pattern
from distarchive.infrastructure.logger import get_logger

COMMENT_PREFIX = "#"
NEGATION_PREFIX = "!"

# Suffix that lets a directory rule match the directory's descendants
_DESCENDANTS = "(?:/.*)?"


@dataclass(frozen=True)
class IgnoreRule:
    """A single active line of the rule file."""

    pattern: str
    root_anchored: bool = False
    hidden_anchored: bool = False
    directory_only: bool = False
    negated: bool = False

    @classmethod
    def from_line(
        cls, line: str, source_root: Optional[Union[str, Path]] = None
    ) -> Optional["IgnoreRule"]:
        """Build a rule from one line of the rule file.

        Args:
            line: Raw line text
            source_root: Directory the rules apply to; used to detect rules
                that name an existing directory

        Returns:
            The rule, or None for blank, comment and invalid lines
        """
        pattern = line.strip()
        if not pattern or pattern.startswith(COMMENT_PREFIX):
            return None

        try:
            validate_pattern(pattern)
        except ValidationError as e:
            get_logger().warning("Skipping invalid rule", rule=repr(pattern), error=str(e))
            return None

        negated = pattern.startswith(NEGATION_PREFIX)
        body = pattern[1:] if negated else pattern

        directory_only = body.endswith("/")
        target = body.strip("/")
        if not directory_only and source_root is not None and target and "*" not in target:
            directory_only = os.path.isdir(os.path.join(os.fspath(source_root), target))

        return cls(
            pattern=pattern,
            root_anchored=body.startswith("/"),
            hidden_anchored=body.startswith("."),
            directory_only=directory_only,
            negated=negated,
        )

    def to_regex(self) -> Optional[str]:
        """Translate the rule into a regular expression.

        Returns:
            Regex source, or None when the rule can never match a path
        """
        if self.negated:
            return None

        body = self.pattern.strip("/")
        if not body:
            return None

        regex = re.escape(body).replace(r"\*", ".*")

        if self.directory_only:
            regex += _DESCENDANTS

        if self.root_anchored:
            # Whole-path match; "/.*" only covers hidden files at the root
            return "^" + regex + "$"

        if self.hidden_anchored:
            # Hidden-file rules start a segment at any depth
            return "(?:^|/)" + regex + "$"

        # Any trailing part of the path
        return regex + "$"


def parse_rules(
    lines: Union[str, Iterable[str]], source_root: Optional[Union[str, Path]] = None
) -> List[IgnoreRule]:
    """Parse rule file content into active rules.

    Args:
        lines: Full rule file text or an iterable of its lines
        source_root: Directory the rules apply to

    Returns:
        Active rules in file order
    """
    if isinstance(lines, str):
        lines = lines.splitlines()

    rules = []
    for line in lines:
        rule = IgnoreRule.from_line(line, source_root)
        if rule is not None:
            rules.append(rule)
    return rules


def read_rule_lines(source_root: Union[str, Path], filename: str) -> Optional[List[str]]:
    """Read the rule file from the source directory.

    Args:
        source_root: Source directory
        filename: Rule file name (e.g. ".distignore")

    Returns:
        Active, valid rule lines, or None when the file does not exist
    """
    path = Path(source_root) / filename
    if not path.is_file():
        return None

    text = path.read_text(encoding="utf-8")
    return [line.strip() for line in text.splitlines() if IgnoreRule.from_line(line) is not None]


def _normalize_path(path: Union[str, Path]) -> str:
    if isinstance(path, Path):
        path = str(path)
    return path.replace("\\", "/").lstrip("/")


class RuleMatcher:
    """Any-match-ignores evaluator over an ordered list of ignore rules.

    The first rule that matches marks the path ignored. Negation rules are
    kept in the rule list but never match; last-match-wins negation is
    handled by ``GitIgnoreChecker``.
    """

    def __init__(
        self,
        rules: Iterable[Union[IgnoreRule, str]] = (),
        source_root: Optional[Union[str, Path]] = None,
    ):
        """Initialize rule matcher.

        Args:
            rules: Parsed rules or raw rule lines
            source_root: Directory the rules apply to
        """
        self._rules: List[IgnoreRule] = []
        self._compiled: List[Optional[Pattern[str]]] = []
        self._source_root = source_root

        for rule in rules:
            if isinstance(rule, str):
                rule = IgnoreRule.from_line(rule, source_root)
                if rule is None:
                    continue
            self.add_rule(rule)

    @classmethod
    def from_file(cls, source_root: Union[str, Path], filename: str) -> "RuleMatcher":
        """Create a matcher from the rule file in ``source_root``.

        A missing file gives a matcher with no rules.
        """
        return cls(read_rule_lines(source_root, filename) or [], source_root)

    def add_rule(self, rule: IgnoreRule) -> None:
        """Append a rule and compile its pattern."""
        self._rules.append(rule)
        self._compiled.append(self._compile(rule))

    def _compile(self, rule: IgnoreRule) -> Optional[Pattern[str]]:
        regex = rule.to_regex()
        if regex is None:
            return None
        try:
            return re.compile(regex)
        except re.error as e:
            get_logger().debug("Ignoring uncompilable rule", rule=rule.pattern, error=e)
            return None

    def matches(self, path: Union[str, Path]) -> bool:
        """Check if path is ignored by any rule.

        Args:
            path: Path relative to the source root, with or without leading '/'

        Returns:
            True if any rule matches
        """
        normalized = _normalize_path(path)
        if not normalized:
            return False

        for compiled in self._compiled:
            if compiled is not None and compiled.search(normalized):
                return True
        return False

    # Same interface as GitIgnoreChecker so the traversal accepts either
    is_path_ignored = matches

    def get_matching_rules(self, path: Union[str, Path]) -> List[IgnoreRule]:
        """Get all rules that match the path."""
        normalized = _normalize_path(path)
        return [
            rule
            for rule, compiled in zip(self._rules, self._compiled)
            if compiled is not None and compiled.search(normalized)
        ]

    def get_rules(self) -> List[IgnoreRule]:
        """Get all rules in evaluation order."""
        return self._rules.copy()

    def __len__(self) -> int:
        """Return number of rules."""
        return len(self._rules)

    def __bool__(self) -> bool:
        """Return True if any rules are loaded."""
        return bool(self._rules)


def is_ignored_file(relative_path: str, rules: Iterable[Union[IgnoreRule, str]]) -> bool:
    """Check a single path against a list of ignore rules.

    Args:
        relative_path: Path relative to the source root
        rules: Parsed rules or raw rule lines

    Returns:
        True if the path is ignored
    """
    return RuleMatcher(rules).matches(relative_path)
